"""Unit tests for the chatrelay CLI."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from cli.chatrelay import main
from contracts.audit import AuditEntry, AuditEvent
from gateway.audit.logger import JsonlAuditLogger

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
EXAMPLE_ENV = ("OPENAI_API_KEY", "OPENAI_API_KEY_BACKUP", "GEMINI_API_KEY", "OPENROUTER_API_KEY")


class TestValidate:
    def test_example_config_is_valid(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        for name in EXAMPLE_ENV:
            monkeypatch.setenv(name, f"test-{name.lower()}")
        main(["validate", str(PROJECT_ROOT / "chatrelay.yaml")])

        out = capsys.readouterr().out
        assert "Config OK: chatrelay-dev" in out
        assert "(built-in)" in out

    def test_missing_config_exits(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", "/nonexistent/chatrelay.yaml"])

        assert exc_info.value.code == 1
        assert "config not found" in capsys.readouterr().err

    def test_warns_about_unusable_providers_and_routes(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = tmp_path / "chatrelay.yaml"
        config.write_text(
            "app:\n  name: warn\n"
            "providers:\n  - name: openai\n    credentials:\n      - id: k\n        weight: 0\n"
            "routes:\n  - prefix: gemini\n    provider: google\n    kind: gemini\n"
        )

        main(["validate", str(config)])

        out = capsys.readouterr().out
        assert "provider 'openai' has no usable credential" in out
        assert "route 'gemini' targets provider 'google'" in out


class TestCheckCredentials:
    GOOD = "sk-good-key-12345678"
    BAD = "sk-bad-key-87654321"

    def _write(self, tmp_path: Path) -> Path:
        config = tmp_path / "chatrelay.yaml"
        config.write_text(
            "app:\n  name: check\n"
            "providers:\n  - name: openai\n    credentials:\n"
            f"      - id: good\n        credential_value:\n          api_key: {self.GOOD}\n"
            f"      - id: bad\n        credential_value:\n          api_key: {self.BAD}\n"
        )
        return config

    def _mock_upstream(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from gateway.model_adapters import registry

        def handler(request: httpx.Request) -> httpx.Response:
            if request.headers.get("authorization") == f"Bearer {self.BAD}":
                return httpx.Response(401, json={"error": {"message": "Incorrect API key"}})
            body = b'data: {"choices": [{"index": 0, "delta": {"content": "hi"}}]}\n\ndata: [DONE]\n\n'
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        real = registry.create_default_adapters
        monkeypatch.setattr(
            registry,
            "create_default_adapters",
            lambda upstream=None: real(upstream, transport=httpx.MockTransport(handler)),
        )

    def test_prints_masked_report_per_credential(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        self._mock_upstream(monkeypatch)

        with pytest.raises(SystemExit) as exc_info:
            main(["validate", str(self._write(tmp_path)), "--check-credentials"])

        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        lines = [line.strip() for line in out.splitlines() if "openai/" in line]
        assert lines[0].startswith("ok")
        assert "openai/good  api_key=sk-g************5678" in lines[0]
        assert lines[1].startswith("FAIL")
        assert "Incorrect API key" in lines[1]
        assert self.GOOD not in out
        assert self.BAD not in out

    def test_not_run_without_flag(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        self._mock_upstream(monkeypatch)

        main(["validate", str(self._write(tmp_path))])

        assert "Credentials:" not in capsys.readouterr().out


class TestLogs:
    def _log(self, path: Path) -> None:
        logger = JsonlAuditLogger(path)
        logger.log(AuditEntry(request_id="req-aaaa", event=AuditEvent.REQUEST_START))
        logger.log(
            AuditEntry(
                request_id="req-aaaa",
                event=AuditEvent.CREDENTIAL_FAILURE,
                credential_id="key-a",
                detail={"reason": "down"},
            )
        )
        logger.log(
            AuditEntry(request_id="req-bbbb", event=AuditEvent.CREDENTIAL_SUCCESS, credential_id="key-b")
        )

    def test_filter_by_credential(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        log = tmp_path / "audit.jsonl"
        self._log(log)

        main(["logs", str(log), "-c", "key-a"])

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        assert "credential.failure" in lines[0]
        assert "key-a" in lines[0]

    def test_json_output(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        log = tmp_path / "audit.jsonl"
        self._log(log)

        main(["logs", str(log), "-r", "req-bbbb", "--json"])

        out = capsys.readouterr().out
        assert '"credential_id": "key-b"' in out

    def test_unknown_event_exits(self, tmp_path: Path) -> None:
        log = tmp_path / "audit.jsonl"
        self._log(log)

        with pytest.raises(SystemExit):
            main(["logs", str(log), "-e", "tool.call"])

    def test_missing_log_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit):
            main(["logs", str(tmp_path / "none.jsonl")])
