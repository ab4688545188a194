"""Google Gemini streaming adapter.

Talks to ``models/{model}:streamGenerateContent?alt=sse``; every SSE event is
a complete ``GenerateContentResponse``.
"""

from __future__ import annotations

import json
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
    ToolChoice,
    ToolDefinition,
    Usage,
    UsageChunk,
    error_chunk,
)
from contracts.errors import ConfigurationError, SchemaTranslationError, UpstreamError
from contracts.provider import Credential, ProviderConfig
from gateway.ids import IdFactory, tool_call_id
from gateway.model_adapters.base import HttpStreamingAdapter, UpstreamRequest, omit_none
from gateway.sse import error_message, iter_sse_json
from gateway.tool_calls import ToolCallAccumulator
from gateway.transcoder import to_gemini_contents

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

_PRIMITIVE_TYPES = {
    "string": "STRING",
    "number": "NUMBER",
    "integer": "INTEGER",
    "boolean": "BOOLEAN",
}


class GeminiAdapter(HttpStreamingAdapter):
    """Async adapter for the Gemini streaming generateContent endpoint."""

    kind = ProviderKind.GEMINI

    def __init__(
        self,
        timeout: httpx.Timeout | float | None = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
        id_factory: IdFactory = tool_call_id,
    ) -> None:
        super().__init__(timeout=timeout, transport=transport)
        self._id_factory = id_factory

    def _build_request(
        self,
        request: ChatCompletionInput,
        provider: ProviderConfig,
        credential: Credential,
        upstream_model: str,
    ) -> UpstreamRequest:
        if not credential.api_key:
            raise ConfigurationError(f"Credential {credential.id} has no api_key")
        base_url = (provider.base_url or DEFAULT_BASE_URL).rstrip("/")
        return UpstreamRequest(
            url=f"{base_url}/models/{upstream_model}:streamGenerateContent",
            json=self._build_payload(request),
            headers={"x-goog-api-key": credential.api_key},
            params={"alt": "sse"},
        )

    async def _translate(self, response: httpx.Response) -> AsyncGenerator[ChatCompletionResponse, None]:
        tool_calls = ToolCallAccumulator()
        usage: Usage | None = None

        async for event in iter_sse_json(response):
            if event.get("error"):
                raise UpstreamError(error_message(event))

            parts = self._first_candidate_parts(event)
            if parts:
                texts: list[str] = []
                for part in parts:
                    if part.get("text"):
                        texts.append(part["text"])
                    call = part.get("functionCall")
                    if isinstance(call, dict):
                        tool_calls.append(
                            call_id=self._id_factory(),
                            name=call.get("name"),
                            arguments=json.dumps(call.get("args") or {}),
                        )
                yield ChatCompletionChunk(
                    delta=ChunkDelta(
                        role=Role.ASSISTANT,
                        content="\n".join(texts) if texts else None,
                        tool_calls=tool_calls.snapshot() if tool_calls else None,
                    )
                )

            feedback = event.get("promptFeedback")
            if isinstance(feedback, dict) and feedback.get("blockReason"):
                words = ["PROMPT_BLOCKED", str(feedback["blockReason"])]
                if feedback.get("blockReasonMessage"):
                    words.append(str(feedback["blockReasonMessage"]))
                yield error_chunk(" ".join(words))
                return

            metadata = event.get("usageMetadata")
            if isinstance(metadata, dict):
                usage = Usage(
                    prompt_tokens=metadata.get("promptTokenCount") or 0,
                    completion_tokens=metadata.get("candidatesTokenCount") or 0,
                    total_tokens=metadata.get("totalTokenCount") or 0,
                )

        if usage is not None:
            yield UsageChunk(usage=usage)

    # ── format helpers ───────────────────────────────────────────────

    @staticmethod
    def _build_payload(request: ChatCompletionInput) -> dict[str, Any]:
        payload: dict[str, Any] = {"contents": to_gemini_contents(request.messages)}

        if request.tools:
            payload["tools"] = [
                {"functionDeclarations": [function_declaration(t) for t in request.tools]}
            ]
        tool_config = _tool_config(request.tool_choice)
        if tool_config is not None:
            payload["toolConfig"] = tool_config

        generation_config = omit_none({
            "temperature": request.temperature,
            "topP": request.top_p,
            "maxOutputTokens": request.max_tokens,
            "presencePenalty": request.presence_penalty,
            "frequencyPenalty": request.frequency_penalty,
            **_response_format(request.response_format),
        })
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    @staticmethod
    def _first_candidate_parts(event: dict[str, Any]) -> list[dict[str, Any]]:
        candidates = event.get("candidates")
        if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
            return []
        content = candidates[0].get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list):
            return []
        return [p for p in parts if isinstance(p, dict)]


# ── schema translation ───────────────────────────────────────────────


def to_gemini_schema(schema: Any) -> dict[str, Any]:
    """Translate a JSON-schema node into Gemini's upper-case schema dialect.

    ``object`` and ``array`` recurse; primitives map one to one; a node without
    a type (including the ``true`` schema) becomes ``STRING``. A type list such
    as ``["string", "null"]`` uses its first non-null entry and marks the node
    ``nullable``. Anything else raises ``SchemaTranslationError``.
    """
    if schema is True:
        schema = {}
    if not isinstance(schema, dict):
        raise SchemaTranslationError(f"Unsupported schema node {schema!r}")

    kind = schema.get("type")
    nullable = False
    if isinstance(kind, list):
        concrete = [k for k in kind if k != "null"]
        if not concrete:
            raise SchemaTranslationError(f"Unsupported schema type {kind!r}")
        nullable = len(concrete) < len(kind)
        kind = concrete[0]

    if kind == "object":
        properties = schema.get("properties") or {}
        if not isinstance(properties, dict):
            raise SchemaTranslationError(f"Object properties must be a mapping, got {properties!r}")
        out: dict[str, Any] = {
            "type": "OBJECT",
            "properties": {name: to_gemini_schema(sub) for name, sub in properties.items()},
        }
        if schema.get("required"):
            out["required"] = list(schema["required"])
    elif kind == "array":
        out = {"type": "ARRAY", "items": to_gemini_schema(schema.get("items") or {})}
    elif kind is None or (isinstance(kind, str) and kind in _PRIMITIVE_TYPES):
        out = {"type": _PRIMITIVE_TYPES.get(kind, "STRING")}
        if isinstance(schema.get("enum"), list) and schema["enum"]:
            out["enum"] = [str(v) for v in schema["enum"] if v is not None]
    else:
        raise SchemaTranslationError(f"Unsupported schema type {kind!r}")

    if nullable:
        out["nullable"] = True
    if schema.get("description"):
        out["description"] = schema["description"]
    return out


def function_declaration(tool: ToolDefinition) -> dict[str, Any]:
    """Build one Gemini ``functionDeclarations`` entry."""
    fn = tool.function
    parameters = fn.parameters or {}
    if parameters and parameters.get("type", "object") != "object":
        raise SchemaTranslationError(
            f"Tool {fn.name} parameters must be an object schema, got {parameters.get('type')!r}"
        )
    declaration: dict[str, Any] = {"name": fn.name}
    if fn.description:
        declaration["description"] = fn.description
    if parameters.get("properties"):
        declaration["parameters"] = to_gemini_schema({**parameters, "type": "object"})
    return declaration


def _tool_config(choice: ToolChoice | None) -> dict[str, Any] | None:
    if choice is None:
        return None
    if isinstance(choice, str):
        mode = {"required": "ANY", "none": "NONE"}.get(choice, "AUTO")
        return {"functionCallingConfig": {"mode": mode}}
    return {
        "functionCallingConfig": {
            "mode": "ANY",
            "allowedFunctionNames": [choice.function.name],
        }
    }


def _response_format(fmt: ResponseFormat | None) -> dict[str, Any]:
    if fmt is None or fmt.type == "text":
        return {}
    out: dict[str, Any] = {"responseMimeType": "application/json"}
    if fmt.type == "json_schema" and fmt.json_schema is not None:
        out["responseSchema"] = to_gemini_schema(fmt.json_schema.schema_)
    return out
