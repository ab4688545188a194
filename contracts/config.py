"""Gateway config (chatrelay.yaml) schema: Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from contracts.adapter import ProviderKind
from contracts.provider import Provider, ProviderName


# ── Top-level sections ──────────────────────────────────────────────


class AppInfo(BaseModel):
    name: str
    version: str = "0.0.1"


class RouteRule(BaseModel):
    """Maps a model-name prefix to a provider and wire dialect."""

    model_config = ConfigDict(frozen=True)

    prefix: str
    provider: ProviderName
    kind: ProviderKind = ProviderKind.OPENAI_COMPATIBLE
    strip_prefix: bool = False


class UpstreamConfig(BaseModel):
    timeout_seconds: float | None = 120.0  # read timeout; None = unlimited
    connect_timeout_seconds: float = 10.0


class AuditConfig(BaseModel):
    path: str = "audit.jsonl"


# ── Root ─────────────────────────────────────────────────────────────


class GatewayConfig(BaseModel):
    """Root config model: mirrors chatrelay.yaml."""

    app: AppInfo
    providers: list[Provider] = []
    routes: list[RouteRule] | None = None  # None = built-in prefix table
    allowed_models: list[str] | None = None
    failover_attempts: int = Field(default=1, ge=0)
    upstream: UpstreamConfig = UpstreamConfig()
    audit: AuditConfig = AuditConfig()
