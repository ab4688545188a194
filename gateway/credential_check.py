"""Credential verification: one small live chat call per credential.

The result is a ``CredentialReport`` per credential. Nothing in the config is
changed; callers decide what to do with failing keys.
"""

from __future__ import annotations

from contextlib import aclosing
from dataclasses import dataclass
from typing import Mapping

from contracts.adapter import ChatAdapter, ProviderKind
from contracts.chat import ChatCompletionError, ChatCompletionInput, UserMessage
from contracts.config import GatewayConfig
from contracts.errors import GatewayError
from contracts.provider import (
    Credential,
    CredentialOutcome,
    CredentialReport,
    ProviderConfig,
    ProviderName,
)
from gateway.credential_selector import CredentialSelector
from gateway.model_routes import ModelRouter, provider_config

CHECK_PROMPT = "Hello, world!"

DEFAULT_CHECK_MODELS: dict[ProviderName, str] = {
    ProviderName.OPENAI: "gpt-4o-mini",
    ProviderName.GOOGLE: "gemini-1.5-flash",
    ProviderName.OPENROUTER: "openai/gpt-4o-mini",
    ProviderName.DEEPSEEK: "deepseek-chat",
    ProviderName.XAI: "grok-2-latest",
    ProviderName.OLLAMA: "llama3.2",
    ProviderName.ANTHROPIC: "claude-3-5-haiku-latest",
}


@dataclass(frozen=True)
class CredentialCheck:
    provider: ProviderName
    credential: Credential
    report: CredentialReport

    @property
    def ok(self) -> bool:
        return self.report.outcome == CredentialOutcome.SUCCESS


async def check_credential(
    adapter: ChatAdapter,
    provider: ProviderConfig,
    credential: Credential,
    model: str,
) -> CredentialReport:
    """Stream a one-message chat through ``adapter`` and report the outcome.

    The whole response is consumed; an error item or a ``GatewayError`` at
    any point counts as a failure.
    """
    request = ChatCompletionInput(
        model=model, messages=[UserMessage(content=CHECK_PROMPT)], max_tokens=16
    )
    try:
        async with aclosing(adapter.stream(request, provider, credential, model)) as items:
            async for item in items:
                if isinstance(item, ChatCompletionError):
                    return CredentialSelector.report(
                        credential, CredentialOutcome.FAILURE, item.error.message
                    )
    except GatewayError as exc:
        return CredentialSelector.report(credential, CredentialOutcome.FAILURE, str(exc))
    return CredentialSelector.report(credential, CredentialOutcome.SUCCESS)


async def check_credentials(
    config: GatewayConfig,
    adapters: Mapping[ProviderKind, ChatAdapter],
) -> list[CredentialCheck]:
    """Check every active credential of every enabled provider, in config order.

    The adapter kind comes from the first route that targets the provider;
    the model from ``check_model`` or the per-provider default.
    """
    routes = ModelRouter.from_config(config).routes
    checks: list[CredentialCheck] = []

    for provider in config.providers:
        if not provider.enabled:
            continue
        kind = next((r.kind for r in routes if r.provider == provider.name), None)
        model = provider.check_model or DEFAULT_CHECK_MODELS.get(provider.name)

        for credential in provider.credentials:
            if not credential.active:
                continue
            if kind is None:
                report = CredentialSelector.report(
                    credential,
                    CredentialOutcome.FAILURE,
                    f"No route targets provider {provider.name.value}",
                )
            elif model is None:
                report = CredentialSelector.report(
                    credential,
                    CredentialOutcome.FAILURE,
                    f"No check model for provider {provider.name.value}",
                )
            else:
                report = await check_credential(
                    adapters[kind], provider_config(provider), credential, model
                )
            checks.append(CredentialCheck(provider.name, credential, report))

    return checks
