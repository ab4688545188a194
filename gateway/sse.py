"""Server-sent-events reading helpers for upstream streams."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

import httpx

from contracts.errors import UpstreamError

DONE_SENTINEL = "[DONE]"


async def iter_sse_json(response: httpx.Response) -> AsyncIterator[dict[str, Any]]:
    """Yield the JSON object carried by each ``data:`` line.

    Comments, ``event:``/``id:`` fields, blank keep-alives and non-object
    payloads are skipped. ``[DONE]`` ends the iteration. A payload that is not
    valid JSON raises ``UpstreamError``.
    """
    async for raw_line in response.aiter_lines():
        line = raw_line.strip()
        if not line.startswith("data:"):
            continue
        payload = line[len("data:"):].strip()
        if not payload:
            continue
        if payload == DONE_SENTINEL:
            return
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as exc:
            raise UpstreamError(f"Error parsing JSON response: {payload[:200]}") from exc
        if isinstance(parsed, dict):
            yield parsed


def error_message(body: bytes | str | dict[str, Any]) -> str:
    """Pull a human-readable message out of an upstream error body or event."""
    if isinstance(body, dict):
        parsed: Any = body
        text = json.dumps(body)
    else:
        text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            return text.strip()[:500]
    # Gemini wraps errors in a one-element list.
    if isinstance(parsed, list) and parsed:
        parsed = parsed[0]
    if isinstance(parsed, dict):
        err = parsed.get("error", parsed)
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str):
            return err
    return text.strip()[:500]
