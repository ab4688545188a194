"""Adapter registry: one adapter instance per provider kind."""

from __future__ import annotations

import httpx

from contracts.adapter import ChatAdapter, ProviderKind
from contracts.config import UpstreamConfig
from gateway.ids import IdFactory, tool_call_id
from gateway.model_adapters.gemini import GeminiAdapter
from gateway.model_adapters.openai_compat import OpenAICompatAdapter


def create_default_adapters(
    upstream: UpstreamConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    id_factory: IdFactory = tool_call_id,
) -> dict[ProviderKind, ChatAdapter]:
    """Create the adapter for every ``ProviderKind``."""
    upstream = upstream or UpstreamConfig()
    timeout = httpx.Timeout(upstream.timeout_seconds, connect=upstream.connect_timeout_seconds)
    return {
        ProviderKind.OPENAI_COMPATIBLE: OpenAICompatAdapter(timeout=timeout, transport=transport),
        ProviderKind.GEMINI: GeminiAdapter(timeout=timeout, transport=transport, id_factory=id_factory),
    }
