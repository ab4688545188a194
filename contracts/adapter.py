"""Provider adapter interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import AsyncGenerator

from contracts.chat import ChatCompletionInput, ChatCompletionResponse
from contracts.provider import Credential, ProviderConfig


class ProviderKind(str, Enum):
    """Wire dialect spoken by an upstream."""

    OPENAI_COMPATIBLE = "openai_compatible"
    GEMINI = "gemini"


class ChatAdapter(ABC):
    """Translates one canonical request into one upstream streaming call."""

    kind: ProviderKind

    @abstractmethod
    def stream(
        self,
        request: ChatCompletionInput,
        provider: ProviderConfig,
        credential: Credential,
        upstream_model: str,
    ) -> AsyncGenerator[ChatCompletionResponse, None]:
        """Return a lazy stream of canonical items.

        Raises ``UpstreamError`` on the first pull when the upstream fails
        before producing output, and ``ConfigurationError`` when the request
        cannot be translated. Closing the generator releases the connection.
        """
        ...
