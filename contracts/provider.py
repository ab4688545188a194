"""Provider and credential snapshots.

Records are loaded once from the config file and never mutated by the gateway.
Outcomes of using a credential are published as ``CredentialReport`` events so
an external store can update ``error`` and ``usage_count``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProviderName(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    BEDROCK = "bedrock"
    GOOGLE = "google"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"
    DEEPSEEK = "deepseek"
    XAI = "xai"


class CredentialType(str, Enum):
    API_KEY = "api_key"
    ACCESS_KEY_PAIR = "access_key_pair"
    CUSTOM = "custom"


class CredentialOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


# ── Credentials ──────────────────────────────────────────────────────


def mask_secret(value: str | None) -> str:
    """Keep the first and last four characters of a secret, star the rest."""
    if not value or len(value) < 8:
        return "***"
    return f"{value[:4]}{'*' * min(16, len(value) - 8)}{value[-4:]}"


class CredentialValue(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    api_key: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None

    def masked(self) -> dict[str, str]:
        """String fields for display. ``access_key_id`` is not secret and stays clear."""
        out: dict[str, str] = {}
        for key, value in self.model_dump(exclude_none=True).items():
            if isinstance(value, str):
                out[key] = value if key == "access_key_id" else mask_secret(value)
        return out


class Credential(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    provider_id: str = ""
    name: str = ""
    credential_type: CredentialType = CredentialType.API_KEY
    credential_value: CredentialValue = CredentialValue()
    active: bool = True
    weight: int = Field(default=100, ge=0)
    error: str | None = None
    usage_count: int = 0

    @property
    def api_key(self) -> str | None:
        return self.credential_value.api_key


class CredentialReport(BaseModel):
    """Health signal for one use of a credential."""

    model_config = ConfigDict(frozen=True)

    credential_id: str
    provider_id: str = ""
    outcome: CredentialOutcome
    reason: str | None = None


# ── Providers ────────────────────────────────────────────────────────


class ProviderConfig(BaseModel):
    """The part of a provider an adapter needs to build a request."""

    model_config = ConfigDict(frozen=True)

    name: ProviderName
    base_url: str | None = None
    region: str | None = None


class Provider(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: ProviderName
    display_name: str = ""
    base_url: str | None = None
    region: str | None = None
    enabled: bool = True
    check_model: str | None = None  # model used by credential checks
    credentials: tuple[Credential, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _link_credentials(cls, data: Any) -> Any:
        # Providers default their id to their name; nested credentials inherit it.
        if isinstance(data, dict) and (data.get("id") or data.get("name")):
            name = data.get("name")
            data = {**data, "id": data.get("id") or getattr(name, "value", name)}
            linked = []
            for cred in data.get("credentials") or ():
                if isinstance(cred, dict) and not cred.get("provider_id"):
                    cred = {**cred, "provider_id": data["id"]}
                linked.append(cred)
            data = {**data, "credentials": linked}
        return data

    def active_credentials(self) -> list[Credential]:
        return [c for c in self.credentials if c.active and c.weight > 0]
