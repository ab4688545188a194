"""Message transcoding from canonical messages to upstream dialects.

Transcoding never raises: shapes an upstream cannot express are dropped.
"""

from __future__ import annotations

from typing import Any, Sequence

from contracts.chat import (
    AssistantMessage,
    ImageUrlPart,
    SystemMessage,
    TextPart,
    ToolMessage,
    UserMessage,
)

# Gemini rejects empty text parts, so padding turns carry a single space.
_PADDING_TURN = {"role": "user", "parts": [{"text": " "}]}


# ── OpenAI ───────────────────────────────────────────────────────────


def to_openai_messages(messages: Sequence[Any]) -> list[dict[str, Any]]:
    """Convert canonical messages to the OpenAI chat-completions shape."""
    out: list[dict[str, Any]] = []
    for msg in messages:
        if isinstance(msg, SystemMessage):
            out.append({"role": "system", "content": msg.content})
        elif isinstance(msg, UserMessage):
            out.append({"role": "user", "content": _openai_user_content(msg.content)})
        elif isinstance(msg, AssistantMessage):
            m: dict[str, Any] = {"role": "assistant", "content": msg.content}
            if msg.tool_calls:
                m["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.function.name, "arguments": tc.function.arguments},
                    }
                    for tc in msg.tool_calls
                ]
            out.append(m)
        elif isinstance(msg, ToolMessage):
            out.append({"role": "tool", "content": msg.content, "tool_call_id": msg.tool_call_id})
    return out


def _openai_user_content(content: Any) -> Any:
    if not isinstance(content, list):
        return content
    parts: list[dict[str, Any]] = []
    for part in content:
        if isinstance(part, TextPart):
            parts.append({"type": "text", "text": part.text})
        elif isinstance(part, ImageUrlPart):
            parts.append({"type": "image_url", "image_url": {"url": part.image_url.url}})
    return parts


# ── Gemini ───────────────────────────────────────────────────────────


def to_gemini_contents(messages: Sequence[Any]) -> list[dict[str, Any]]:
    """Convert canonical messages to Gemini ``contents``.

    The result strictly alternates ``user``/``model``, starts with ``user`` and
    ends with ``user``. Consecutive messages mapping to the same role are merged
    into one turn; padding turns are inserted at either end when needed.
    """
    turns: list[dict[str, Any]] = []
    for msg in messages:
        parts = _gemini_parts(msg)
        if not parts:
            continue
        role = "model" if isinstance(msg, AssistantMessage) else "user"
        if turns and turns[-1]["role"] == role:
            turns[-1]["parts"].extend(parts)
        else:
            turns.append({"role": role, "parts": parts})

    if not turns or turns[0]["role"] != "user":
        turns.insert(0, _padding_turn())
    if turns[-1]["role"] != "user":
        turns.append(_padding_turn())
    return turns


def _gemini_parts(msg: Any) -> list[dict[str, Any]]:
    content = getattr(msg, "content", None)
    if isinstance(content, str):
        return [{"text": content}] if content else []
    if isinstance(content, list):
        # Image parts have no Gemini counterpart here and are dropped.
        return [{"text": p.text} for p in content if isinstance(p, TextPart) and p.text]
    return []


def _padding_turn() -> dict[str, Any]:
    return {"role": _PADDING_TURN["role"], "parts": [dict(p) for p in _PADDING_TURN["parts"]]}
