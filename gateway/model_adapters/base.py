"""Shared streaming plumbing for HTTP model adapters.

Subclasses describe the upstream request and how to translate its SSE events.
This base owns the connection and the error split: failures before the first
yielded item are raised as ``UpstreamError`` so the caller may fail over;
failures after that are yielded as a terminal ``ChatCompletionError``.
"""

from __future__ import annotations

from abc import abstractmethod
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator

import httpx
from pydantic import ValidationError

from contracts.adapter import ChatAdapter
from contracts.chat import ChatCompletionInput, ChatCompletionResponse, error_chunk
from contracts.errors import UpstreamError, UpstreamStatusError, UpstreamTransportError
from contracts.provider import Credential, ProviderConfig
from gateway.sse import error_message


@dataclass
class UpstreamRequest:
    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


class HttpStreamingAdapter(ChatAdapter):
    """Streams one POST request per call over a fresh httpx client."""

    def __init__(
        self,
        timeout: httpx.Timeout | float | None = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout if isinstance(timeout, httpx.Timeout) else httpx.Timeout(timeout)
        self._transport = transport

    async def stream(
        self,
        request: ChatCompletionInput,
        provider: ProviderConfig,
        credential: Credential,
        upstream_model: str,
    ) -> AsyncGenerator[ChatCompletionResponse, None]:
        upstream = self._build_request(request, provider, credential, upstream_model)
        emitted = False

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                async with client.stream(
                    "POST",
                    upstream.url,
                    json=upstream.json,
                    headers=upstream.headers,
                    params=upstream.params or None,
                ) as response:
                    if response.status_code >= 400:
                        body = await response.aread()
                        raise UpstreamStatusError(
                            f"{provider.name.value} request failed ({response.status_code}): "
                            f"{error_message(body)}",
                            status_code=response.status_code,
                        )
                    async with aclosing(self._translate(response)) as items:
                        async for item in items:
                            emitted = True
                            yield item
            except httpx.TransportError as exc:
                if not emitted:
                    raise UpstreamTransportError(
                        f"Cannot connect to {provider.name.value} at {upstream.url}: {exc}"
                    ) from exc
                yield error_chunk(f"Upstream connection lost: {exc}")
            except UpstreamError as exc:
                if not emitted:
                    raise
                yield error_chunk(str(exc))
            except (httpx.HTTPError, ValidationError) as exc:
                # Undecodable bodies and events that do not fit the canonical types.
                message = f"Invalid response from {provider.name.value}: {exc}"
                if not emitted:
                    raise UpstreamError(message) from exc
                yield error_chunk(message)

    # ── subclass hooks ───────────────────────────────────────────────

    @abstractmethod
    def _build_request(
        self,
        request: ChatCompletionInput,
        provider: ProviderConfig,
        credential: Credential,
        upstream_model: str,
    ) -> UpstreamRequest:
        """Describe the upstream call. May raise ``ConfigurationError``."""
        ...

    @abstractmethod
    def _translate(self, response: httpx.Response) -> AsyncGenerator[ChatCompletionResponse, None]:
        """Turn the upstream event stream into canonical items.

        Raises ``UpstreamError`` for upstream error events; the base decides
        whether that becomes an exception or a terminal error item.
        """
        ...


def omit_none(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}
