"""ChatRelay FastAPI gateway server."""

from __future__ import annotations

import os
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse

from contracts.audit import AuditEntry, AuditEvent
from contracts.chat import ChatCompletionInput, ChatCompletionResponse, error_chunk
from contracts.config import GatewayConfig
from contracts.errors import ConfigurationError, GatewayError, NoUsableCredentialError, UpstreamError

from gateway.audit.logger import JsonlAuditLogger
from gateway.audit.query import query_filtered
from gateway.chat_router import ChatRouter
from gateway.config_loader import load_config
from gateway.model_adapters.registry import create_default_adapters
from gateway.model_routes import ModelRouter

VERSION = "0.1.0"

# ── Module-level state (set during lifespan) ─────────────────────────

_router: ChatRouter | None = None
_logger: JsonlAuditLogger | None = None
_config: GatewayConfig | None = None
_start_time: float = 0.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the config snapshot and wire the router on startup."""
    global _router, _logger, _config, _start_time  # noqa: PLW0603

    _start_time = time.time()

    config_path = os.environ.get("CHATRELAY_CONFIG", "./chatrelay.yaml")
    _config = load_config(config_path)
    _logger = JsonlAuditLogger(_config.audit.path)

    _router = ChatRouter(
        routes=ModelRouter.from_config(_config),
        adapters=create_default_adapters(_config.upstream),
        logger=_logger,
        failover_attempts=_config.failover_attempts,
        app_name=_config.app.name,
    )

    yield


app = FastAPI(title="ChatRelay Gateway", version=VERSION, lifespan=lifespan)


def _sse(item: ChatCompletionResponse) -> str:
    return f"data: {item.model_dump_json(by_alias=True, exclude_none=True)}\n\n"


# ── Endpoints ────────────────────────────────────────────────────────


@app.get("/v1/chatrelay/health")
async def health() -> dict[str, Any]:
    """Health-check endpoint with a config summary."""
    result: dict[str, Any] = {"status": "ok", "version": VERSION}
    result["uptime_seconds"] = round(time.time() - _start_time, 1) if _start_time else 0

    if _config:
        result["config"] = {
            "app": _config.app.name,
            "app_version": _config.app.version,
            "failover_attempts": _config.failover_attempts,
            "allowed_models": _config.allowed_models,
            "providers": [
                {
                    "name": p.name.value,
                    "enabled": p.enabled,
                    "active_credentials": len(p.active_credentials()),
                }
                for p in _config.providers
            ],
        }

        log_path = Path(_config.audit.path)
        if log_path.exists():
            result["audit_log_size_bytes"] = log_path.stat().st_size

    return result


@app.post("/v1/chat/completions")
async def chat_completions(request: ChatCompletionInput) -> StreamingResponse:
    """Stream canonical chunks as server-sent events.

    Failures before the first item map to an HTTP status; later failures are
    sent as a final ``error`` event.
    """
    if _router is None:
        raise HTTPException(status_code=503, detail="Gateway not initialised")

    request_id = str(uuid.uuid4())
    stream = _router.stream(request, request_id=request_id)
    try:
        first: ChatCompletionResponse | None = await anext(stream)
    except StopAsyncIteration:
        first = None
    except NoUsableCredentialError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UpstreamError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    async def event_generator() -> AsyncIterator[str]:
        try:
            if first is not None:
                yield _sse(first)
            async for item in stream:
                yield _sse(item)
        except GatewayError as exc:
            yield _sse(error_chunk(str(exc)))
        finally:
            await stream.aclose()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"X-Request-ID": request_id},
    )


@app.get("/v1/chatrelay/audit/logs")
async def audit_logs(
    event: AuditEvent | None = Query(None),
    request_id: str | None = Query(None),
    credential_id: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
) -> dict[str, Any]:
    """Filtered audit log query."""
    if _config is None:
        raise HTTPException(status_code=503, detail="Gateway not initialised")

    entries = query_filtered(
        _config.audit.path,
        event=event,
        request_id=request_id,
        credential_id=credential_id,
        limit=limit,
    )
    return {"entries": [e.model_dump(mode="json") for e in entries], "total": len(entries)}


@app.get("/v1/chatrelay/audit/{request_id}")
async def audit_query(request_id: str) -> list[AuditEntry]:
    """Return audit entries for a given request_id."""
    if _logger is None:
        raise HTTPException(status_code=503, detail="Gateway not initialised")
    return _logger.query_by_request(request_id)
