"""Audit query helpers.

Standalone functions over a JSONL audit file, for read-only callers (the
``logs`` CLI command) that have a path but no logger instance.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import AsyncIterator

from contracts.audit import AuditEntry, AuditEvent


def query_by_request(log_path: str | Path, request_id: str) -> list[AuditEntry]:
    """Return all audit entries for a given request_id."""
    return [e for e in _read_all(log_path) if e.request_id == request_id]


def query_by_event(
    log_path: str | Path, event: AuditEvent, limit: int = 100
) -> list[AuditEntry]:
    """Return recent entries of a given event type."""
    matches = [e for e in _read_all(log_path) if e.event == event]
    return matches[-limit:]


def query_by_credential(
    log_path: str | Path, credential_id: str, limit: int = 100
) -> list[AuditEntry]:
    """Return recent entries that used a given credential."""
    matches = [e for e in _read_all(log_path) if e.credential_id == credential_id]
    return matches[-limit:]


def tail(log_path: str | Path, n: int = 20) -> list[AuditEntry]:
    """Return the last N entries from the audit log."""
    entries = _read_all(log_path)
    return entries[-n:]


def query_filtered(
    log_path: str | Path,
    *,
    event: AuditEvent | None = None,
    request_id: str | None = None,
    credential_id: str | None = None,
    limit: int = 20,
) -> list[AuditEntry]:
    """Return the most recent entries matching every given filter, oldest first."""
    filtered = _read_all(log_path)

    if event is not None:
        filtered = [e for e in filtered if e.event == event]
    if request_id is not None:
        filtered = [e for e in filtered if e.request_id == request_id]
    if credential_id is not None:
        filtered = [e for e in filtered if e.credential_id == credential_id]

    return filtered[-limit:]


async def stream_tail(
    log_path: str | Path, poll_interval: float = 0.5
) -> AsyncIterator[AuditEntry]:
    """Yield new audit entries as they are appended to the log file.

    Polls the JSONL file for new lines every *poll_interval* seconds.
    """
    p = Path(log_path)
    pos = p.stat().st_size if p.exists() else 0

    while True:
        if p.exists() and p.stat().st_size > pos:
            with p.open("r", encoding="utf-8") as f:
                f.seek(pos)
                for line in f:
                    line = line.strip()
                    if line:
                        yield AuditEntry(**json.loads(line))
                pos = f.tell()
        await asyncio.sleep(poll_interval)


def _read_all(log_path: str | Path) -> list[AuditEntry]:
    p = Path(log_path)
    if not p.exists():
        return []
    entries: list[AuditEntry] = []
    with p.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            entries.append(AuditEntry(**json.loads(line)))
    return entries
