"""Cumulative tool-call accumulation for streamed responses.

Upstreams deliver tool calls in fragments; callers receive the full array
assembled so far on every chunk. Per index, ``id``, ``type`` and
``function.name`` are fixed once set, ``function.arguments`` only grows, and
entries are never removed.
"""

from __future__ import annotations

from dataclasses import dataclass

from contracts.chat import StreamedFunction, StreamedToolCall


@dataclass
class _Slot:
    id: str | None = None
    type: str | None = None
    name: str | None = None
    arguments: str = ""


class ToolCallAccumulator:
    """Per-stream tool-call state. Not shared between requests."""

    def __init__(self) -> None:
        self._slots: dict[int, _Slot] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def merge(
        self,
        index: int,
        *,
        call_id: str | None = None,
        call_type: str | None = None,
        name: str | None = None,
        arguments: str | None = None,
    ) -> None:
        """Fold one fragment into the call at ``index``."""
        slot = self._slots.setdefault(index, _Slot())
        if call_id and not slot.id:
            slot.id = call_id
        if call_type and not slot.type:
            slot.type = call_type
        if name and not slot.name:
            slot.name = name
        if arguments:
            slot.arguments += arguments

    def index_of(self, call_id: str) -> int | None:
        for index, slot in self._slots.items():
            if slot.id == call_id:
                return index
        return None

    def last_index(self) -> int | None:
        return max(self._slots, default=None)

    def append(self, *, call_id: str, name: str | None, arguments: str) -> int:
        """Add a complete call after the last index; return its index."""
        index = max(self._slots, default=-1) + 1
        self._slots[index] = _Slot(id=call_id, type="function", name=name, arguments=arguments)
        return index

    def snapshot(self) -> list[StreamedToolCall]:
        """Independent copy of every call so far, ordered by index."""
        return [
            StreamedToolCall(
                id=slot.id,
                type="function" if slot.type == "function" else None,
                function=StreamedFunction(name=slot.name, arguments=slot.arguments),
            )
            for _, slot in sorted(self._slots.items())
        ]
