"""Gateway exception hierarchy.

``ConfigurationError`` is fatal and never retried. ``UpstreamError`` is raised
only before a stream produced its first item and may be retried with another
credential. Once output has flowed, failures travel as ``ChatCompletionError``
items instead of exceptions.
"""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base error for the chat gateway."""


class ConfigurationError(GatewayError):
    """Caller or configuration mistake; retrying cannot help."""


class UnsupportedModelError(ConfigurationError):
    """No route (or no enabled provider) serves the requested model."""

    def __init__(self, model: str) -> None:
        super().__init__(f"Unsupported model {model}")
        self.model = model


class NoUsableCredentialError(ConfigurationError):
    """Every candidate credential is inactive, excluded, or has zero weight."""


class SchemaTranslationError(ConfigurationError):
    """A JSON schema cannot be expressed in the upstream's schema dialect."""


class UpstreamError(GatewayError):
    """The upstream refused or failed the call before producing output."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamStatusError(UpstreamError):
    """The upstream answered with an HTTP error status."""


class UpstreamTransportError(UpstreamError):
    """The upstream could not be reached or the connection broke."""
