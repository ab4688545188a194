"""Model routing: map a requested model name to an adapter and provider.

Rules are checked in order and the first case-insensitive prefix match wins.
Routing is a pure lookup over the frozen config snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from contracts.adapter import ProviderKind
from contracts.config import GatewayConfig, RouteRule
from contracts.errors import UnsupportedModelError
from contracts.provider import Credential, Provider, ProviderConfig, ProviderName

DEFAULT_BASE_URLS: dict[ProviderName, str] = {
    ProviderName.OPENAI: "https://api.openai.com/v1",
    ProviderName.OPENROUTER: "https://openrouter.ai/api/v1",
    ProviderName.DEEPSEEK: "https://api.deepseek.com/v1",
    ProviderName.XAI: "https://api.x.ai/v1",
    ProviderName.OLLAMA: "http://localhost:11434/v1",
    ProviderName.ANTHROPIC: "https://api.anthropic.com/v1",
    ProviderName.GOOGLE: "https://generativelanguage.googleapis.com/v1beta",
}


def _prefixed(name: ProviderName, kind: ProviderKind = ProviderKind.OPENAI_COMPATIBLE) -> RouteRule:
    return RouteRule(prefix=f"{name.value}/", provider=name, kind=kind, strip_prefix=True)


DEFAULT_ROUTES: tuple[RouteRule, ...] = (
    RouteRule(prefix="gemini", provider=ProviderName.GOOGLE, kind=ProviderKind.GEMINI),
    RouteRule(prefix="gpt", provider=ProviderName.OPENAI),
    RouteRule(prefix="openRouter/", provider=ProviderName.OPENROUTER, strip_prefix=True),
    _prefixed(ProviderName.OPENAI),
    _prefixed(ProviderName.GOOGLE, ProviderKind.GEMINI),
    _prefixed(ProviderName.OPENROUTER),
    _prefixed(ProviderName.DEEPSEEK),
    _prefixed(ProviderName.XAI),
    _prefixed(ProviderName.OLLAMA),
    _prefixed(ProviderName.ANTHROPIC),
)


def provider_config(provider: Provider) -> ProviderConfig:
    """The adapter-facing view of ``provider`` with its default base URL filled in."""
    return ProviderConfig(
        name=provider.name,
        base_url=provider.base_url or DEFAULT_BASE_URLS.get(provider.name),
        region=provider.region,
    )


@dataclass(frozen=True)
class Route:
    """Outcome of routing one model name."""

    kind: ProviderKind
    provider: ProviderConfig
    upstream_model: str
    provider_id: str
    credentials: tuple[Credential, ...]


class ModelRouter:
    """Resolves model names against an allow-list and an ordered prefix table."""

    def __init__(
        self,
        providers: Iterable[Provider],
        routes: Iterable[RouteRule] | None = None,
        allowed_models: Iterable[str] | None = None,
    ) -> None:
        self._providers: dict[ProviderName, Provider] = {}
        for provider in providers:
            # First enabled record per provider name wins.
            if provider.enabled and provider.name not in self._providers:
                self._providers[provider.name] = provider
        self._routes = tuple(routes) if routes is not None else DEFAULT_ROUTES
        self._allowed = frozenset(allowed_models) if allowed_models is not None else None

    @classmethod
    def from_config(cls, config: GatewayConfig) -> ModelRouter:
        return cls(config.providers, config.routes, config.allowed_models)

    @property
    def routes(self) -> tuple[RouteRule, ...]:
        return self._routes

    def resolve(self, model: str) -> Route:
        """Return the route for ``model`` or raise ``UnsupportedModelError``."""
        if self._allowed is not None and model not in self._allowed:
            raise UnsupportedModelError(model)

        rule = self._match(model)
        if rule is None:
            raise UnsupportedModelError(model)

        provider = self._providers.get(rule.provider)
        if provider is None:
            raise UnsupportedModelError(model)

        upstream_model = model[len(rule.prefix):] if rule.strip_prefix else model
        if not upstream_model:
            raise UnsupportedModelError(model)

        return Route(
            kind=rule.kind,
            provider=provider_config(provider),
            upstream_model=upstream_model,
            provider_id=provider.id,
            credentials=provider.credentials,
        )

    def _match(self, model: str) -> RouteRule | None:
        lowered = model.lower()
        for rule in self._routes:
            if lowered.startswith(rule.prefix.lower()):
                return rule
        return None
