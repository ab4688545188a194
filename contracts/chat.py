"""Canonical chat-completion contracts.

Every adapter consumes ``ChatCompletionInput`` and produces a lazy sequence of
``ChatCompletionResponse`` items, whatever the upstream wire format is. Wire
names are camelCase (``toolCallId``, ``topP``); Python attributes are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


# ── Request: message content ─────────────────────────────────────────


class TextPart(_WireModel):
    type: Literal["text"] = "text"
    text: str


class ImageUrl(_WireModel):
    url: str


class ImageUrlPart(_WireModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Annotated[Union[TextPart, ImageUrlPart], Field(discriminator="type")]


class ToolCallFunction(_WireModel):
    name: str
    arguments: str  # JSON-encoded string


class ToolCall(_WireModel):
    id: str
    type: Literal["function"] = "function"
    function: ToolCallFunction


class SystemMessage(_WireModel):
    role: Literal["system"] = "system"
    content: str | None = None


class UserMessage(_WireModel):
    role: Literal["user"] = "user"
    content: str | list[ContentPart] | None = None


class AssistantMessage(_WireModel):
    role: Literal["assistant"] = "assistant"
    content: str | None = None
    tool_calls: list[ToolCall] | None = None


class ToolMessage(_WireModel):
    role: Literal["tool"] = "tool"
    content: str | None = None
    tool_call_id: str


Message = Annotated[
    Union[SystemMessage, UserMessage, AssistantMessage, ToolMessage],
    Field(discriminator="role"),
]


# ── Request: tools and formats ───────────────────────────────────────


class FunctionDeclaration(_WireModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] = {}  # JSON-schema-like object


class ToolDefinition(_WireModel):
    type: Literal["function"] = "function"
    function: FunctionDeclaration


class ToolChoiceFunctionName(_WireModel):
    name: str


class ToolChoiceFunction(_WireModel):
    type: Literal["function"] = "function"
    function: ToolChoiceFunctionName


ToolChoice = Union[Literal["auto", "none", "required"], ToolChoiceFunction]


class JsonSchemaFormat(_WireModel):
    name: str
    description: str | None = None
    schema_: dict[str, Any] = Field(alias="schema")
    strict: bool | None = None


class ResponseFormat(_WireModel):
    type: Literal["text", "json_object", "json_schema"] = "text"
    json_schema: JsonSchemaFormat | None = None


class ChatCompletionInput(_WireModel):
    model: str
    messages: list[Message] = Field(min_length=1)
    temperature: float | None = None
    top_p: float | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    max_tokens: int | None = None
    tools: list[ToolDefinition] | None = None
    tool_choice: ToolChoice | None = None
    response_format: ResponseFormat | None = None


# ── Response ─────────────────────────────────────────────────────────


class StreamedFunction(_WireModel):
    name: str | None = None
    arguments: str = ""


class StreamedToolCall(_WireModel):
    """One entry of the cumulative tool-call array carried by every chunk."""

    id: str | None = None
    type: Literal["function"] | None = None
    function: StreamedFunction = StreamedFunction()


class ChunkDelta(_WireModel):
    role: Role | None = None
    content: str | None = None
    tool_calls: list[StreamedToolCall] | None = None


class ChatCompletionChunk(_WireModel):
    delta: ChunkDelta


class Usage(_WireModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class UsageChunk(_WireModel):
    usage: Usage


class ErrorDetail(_WireModel):
    message: str


class ChatCompletionError(_WireModel):
    error: ErrorDetail


ChatCompletionResponse = Union[ChatCompletionChunk, UsageChunk, ChatCompletionError]


def error_chunk(message: str) -> ChatCompletionError:
    """Build the terminal error item of a stream."""
    return ChatCompletionError(error=ErrorDetail(message=message))
