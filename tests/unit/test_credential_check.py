"""Unit tests for live credential checks and credential masking."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from contracts.config import GatewayConfig
from contracts.provider import CredentialOutcome, CredentialValue, ProviderName, mask_secret
from gateway.credential_check import CHECK_PROMPT, check_credentials
from gateway.model_adapters.registry import create_default_adapters

GOOD_KEY = "sk-good-key-12345678"
BAD_KEY = "sk-bad-key-87654321"


def _sse(*events: dict[str, Any]) -> bytes:
    return "".join(f"data: {json.dumps(e)}\n\n" for e in events).encode()


def _upstream(seen: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.headers.get("authorization") == f"Bearer {BAD_KEY}":
            return httpx.Response(401, json={"error": {"message": "Incorrect API key"}})
        if request.url.host == "generativelanguage.googleapis.com":
            body = _sse({"candidates": [{"content": {"role": "model", "parts": [{"text": "hi"}]}}]})
        else:
            body = _sse({"choices": [{"index": 0, "delta": {"content": "hi"}}]})
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    return httpx.MockTransport(handler)


def _config(**overrides: Any) -> GatewayConfig:
    data: dict[str, Any] = {
        "app": {"name": "check"},
        "providers": [
            {
                "name": "openai",
                "credentials": [
                    {"id": "good", "credential_value": {"api_key": GOOD_KEY}},
                    {"id": "bad", "credential_value": {"api_key": BAD_KEY}},
                    {"id": "off", "credential_value": {"api_key": GOOD_KEY}, "active": False},
                ],
            },
            {
                "name": "google",
                "check_model": "gemini-2.0-flash",
                "credentials": [{"id": "g", "credential_value": {"api_key": "g-key-00000000"}}],
            },
        ],
    }
    data.update(overrides)
    return GatewayConfig(**data)


class TestCheckCredentials:
    @pytest.mark.asyncio
    async def test_reports_each_active_credential(self) -> None:
        seen: list[httpx.Request] = []
        adapters = create_default_adapters(transport=_upstream(seen))

        checks = await check_credentials(_config(), adapters)

        assert [(c.provider, c.credential.id, c.ok) for c in checks] == [
            (ProviderName.OPENAI, "good", True),
            (ProviderName.OPENAI, "bad", False),
            (ProviderName.GOOGLE, "g", True),
        ]
        assert checks[1].report.outcome == CredentialOutcome.FAILURE
        assert "Incorrect API key" in (checks[1].report.reason or "")
        assert checks[0].report.reason is None
        assert checks[0].report.provider_id == "openai"

    @pytest.mark.asyncio
    async def test_one_message_call_per_credential(self) -> None:
        seen: list[httpx.Request] = []
        adapters = create_default_adapters(transport=_upstream(seen))

        await check_credentials(_config(), adapters)

        assert len(seen) == 3
        openai_body = json.loads(seen[0].content)
        assert openai_body["model"] == "gpt-4o-mini"
        assert openai_body["messages"] == [{"role": "user", "content": CHECK_PROMPT}]
        assert openai_body["stream"] is True
        assert seen[2].url.path == "/v1beta/models/gemini-2.0-flash:streamGenerateContent"

    @pytest.mark.asyncio
    async def test_disabled_providers_are_skipped(self) -> None:
        seen: list[httpx.Request] = []
        config = _config(
            providers=[
                {
                    "name": "openai",
                    "enabled": False,
                    "credentials": [{"id": "good", "credential_value": {"api_key": GOOD_KEY}}],
                }
            ]
        )

        checks = await check_credentials(config, create_default_adapters(transport=_upstream(seen)))

        assert checks == []
        assert seen == []

    @pytest.mark.asyncio
    async def test_provider_without_route_fails_without_network(self) -> None:
        seen: list[httpx.Request] = []
        config = _config(
            providers=[
                {
                    "name": "bedrock",
                    "credentials": [
                        {
                            "id": "aws",
                            "credential_type": "access_key_pair",
                            "credential_value": {"access_key_id": "AKIA", "secret_access_key": "s"},
                        }
                    ],
                }
            ]
        )

        (check,) = await check_credentials(config, create_default_adapters(transport=_upstream(seen)))

        assert not check.ok
        assert check.report.reason == "No route targets provider bedrock"
        assert seen == []

    @pytest.mark.asyncio
    async def test_connection_failure_is_reported(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        config = _config(
            providers=[
                {"name": "ollama", "credentials": [{"id": "local", "credential_type": "custom"}]}
            ]
        )
        adapters = create_default_adapters(transport=httpx.MockTransport(handler))

        (check,) = await check_credentials(config, adapters)

        assert not check.ok
        assert "Cannot connect to ollama" in (check.report.reason or "")


# ── masking ─────────────────────────────────────────────────────────


class TestMasking:
    def test_short_secret_fully_hidden(self) -> None:
        assert mask_secret("short") == "***"
        assert mask_secret(None) == "***"

    def test_keeps_four_characters_each_side(self) -> None:
        assert mask_secret("sk-abcdefgh1234") == "sk-a*******1234"

    def test_star_run_capped_at_sixteen(self) -> None:
        masked = mask_secret("sk-" + "x" * 40 + "tail")
        assert masked == "sk-x" + "*" * 16 + "tail"

    def test_access_key_id_stays_clear(self) -> None:
        value = CredentialValue(access_key_id="AKIAEXAMPLE", secret_access_key="secret-value-1234")
        assert value.masked() == {
            "access_key_id": "AKIAEXAMPLE",
            "secret_access_key": "secr*********1234",
        }
