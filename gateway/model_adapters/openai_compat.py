"""OpenAI-compatible streaming adapter.

Serves OpenAI itself and every upstream that speaks the same
``/chat/completions`` SSE dialect (OpenRouter, DeepSeek, xAI, Ollama's
``/v1`` endpoint).
"""

from __future__ import annotations

from typing import Any, AsyncGenerator

import httpx

from contracts.adapter import ProviderKind
from contracts.chat import (
    ChatCompletionChunk,
    ChatCompletionInput,
    ChatCompletionResponse,
    ChunkDelta,
    ResponseFormat,
    Role,
    Usage,
    UsageChunk,
)
from contracts.errors import UpstreamError
from contracts.provider import Credential, ProviderConfig
from gateway.model_adapters.base import HttpStreamingAdapter, UpstreamRequest, omit_none
from gateway.sse import error_message, iter_sse_json
from gateway.tool_calls import ToolCallAccumulator
from gateway.transcoder import to_openai_messages

DEFAULT_BASE_URL = "https://api.openai.com/v1"

_ROLES = {r.value for r in Role}


class OpenAICompatAdapter(HttpStreamingAdapter):
    """Async adapter for ``POST {base_url}/chat/completions`` with ``stream: true``."""

    kind = ProviderKind.OPENAI_COMPATIBLE

    def _build_request(
        self,
        request: ChatCompletionInput,
        provider: ProviderConfig,
        credential: Credential,
        upstream_model: str,
    ) -> UpstreamRequest:
        base_url = (provider.base_url or DEFAULT_BASE_URL).rstrip("/")
        headers = {"Accept": "text/event-stream"}
        if credential.api_key:
            headers["Authorization"] = f"Bearer {credential.api_key}"
        return UpstreamRequest(
            url=f"{base_url}/chat/completions",
            json=self._build_payload(request, upstream_model),
            headers=headers,
        )

    async def _translate(self, response: httpx.Response) -> AsyncGenerator[ChatCompletionResponse, None]:
        tool_calls = ToolCallAccumulator()

        async for event in iter_sse_json(response):
            if event.get("error"):
                raise UpstreamError(error_message(event))

            delta = self._first_delta(event)
            if delta:
                for fragment in delta.get("tool_calls") or []:
                    if not isinstance(fragment, dict):
                        continue
                    fn = fragment.get("function") or {}
                    tool_calls.merge(
                        _fragment_index(tool_calls, fragment),
                        call_id=fragment.get("id"),
                        call_type=fragment.get("type"),
                        name=fn.get("name"),
                        arguments=fn.get("arguments"),
                    )
                role = delta.get("role")
                yield ChatCompletionChunk(
                    delta=ChunkDelta(
                        role=role if role in _ROLES else None,
                        content=delta.get("content"),
                        tool_calls=tool_calls.snapshot() if tool_calls else None,
                    )
                )

            usage = event.get("usage")
            if isinstance(usage, dict):
                yield UsageChunk(
                    usage=Usage(
                        prompt_tokens=usage.get("prompt_tokens") or 0,
                        completion_tokens=usage.get("completion_tokens") or 0,
                        total_tokens=usage.get("total_tokens") or 0,
                    )
                )
                return

    # ── format helpers ───────────────────────────────────────────────

    @staticmethod
    def _build_payload(request: ChatCompletionInput, upstream_model: str) -> dict[str, Any]:
        tool_choice: Any = request.tool_choice
        if tool_choice is not None and not isinstance(tool_choice, str):
            tool_choice = tool_choice.model_dump()
        if tool_choice is None and request.tools:
            tool_choice = "auto"

        return omit_none({
            "model": upstream_model,
            "messages": to_openai_messages(request.messages),
            "stream": True,
            "stream_options": {"include_usage": True},
            "temperature": request.temperature,
            "top_p": request.top_p,
            "presence_penalty": request.presence_penalty,
            "frequency_penalty": request.frequency_penalty,
            "max_tokens": request.max_tokens,
            "tools": [t.model_dump(exclude_none=True) for t in request.tools] if request.tools else None,
            "tool_choice": tool_choice,
            "response_format": _response_format(request.response_format),
        })

    @staticmethod
    def _first_delta(event: dict[str, Any]) -> dict[str, Any] | None:
        choices = event.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta")
        return delta if isinstance(delta, dict) and delta else None


def _response_format(fmt: ResponseFormat | None) -> dict[str, Any] | None:
    if fmt is None:
        return None
    out: dict[str, Any] = {"type": fmt.type}
    if fmt.json_schema is not None:
        out["json_schema"] = omit_none({
            "name": fmt.json_schema.name,
            "description": fmt.json_schema.description,
            "schema": fmt.json_schema.schema_,
            "strict": fmt.json_schema.strict,
        })
    return out


def _fragment_index(tool_calls: ToolCallAccumulator, fragment: dict[str, Any]) -> int:
    """Slot for a tool-call fragment.

    Uses ``index`` when the upstream sends one. Without it, a new ``id``
    opens the next slot, a known ``id`` returns to its slot, and a fragment
    with neither continues the most recent call.
    """
    try:
        return int(fragment["index"])
    except (KeyError, TypeError, ValueError):
        pass
    last = tool_calls.last_index()
    call_id = fragment.get("id")
    if call_id:
        known = tool_calls.index_of(call_id)
        if known is not None:
            return known
        return 0 if last is None else last + 1
    return 0 if last is None else last
