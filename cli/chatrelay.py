"""ChatRelay CLI: validate configs, run the gateway, and query audit logs."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Ensure project root is importable when running as script
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a chatrelay.yaml config."""
    from gateway.config_loader import load_config
    from gateway.model_routes import ModelRouter

    path = args.config
    try:
        config = load_config(path)
    except FileNotFoundError:
        print(f"Error: config not found: {path}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Error: invalid config: {exc}", file=sys.stderr)
        sys.exit(1)

    router = ModelRouter.from_config(config)

    print(f"Config OK: {config.app.name} v{config.app.version}")
    print(f"  Providers:      {', '.join(p.name.value for p in config.providers) or '(none)'}")
    print(f"  Routes:         {len(router.routes)}{' (built-in)' if config.routes is None else ''}")
    allowed = ", ".join(config.allowed_models) if config.allowed_models is not None else "(any)"
    print(f"  Allowed models: {allowed}")
    print(f"  Failover:       {config.failover_attempts} extra attempt(s)")
    print(f"  Audit path:     {config.audit.path}")

    for provider in config.providers:
        if provider.enabled and not provider.active_credentials():
            print(f"  Warning: provider '{provider.name.value}' has no usable credential")

    configured = {p.name for p in config.providers if p.enabled}
    if config.routes is not None:
        for rule in config.routes:
            if rule.provider not in configured:
                print(
                    f"  Warning: route '{rule.prefix}' targets provider "
                    f"'{rule.provider.value}' which is not configured or disabled"
                )

    if args.check_credentials:
        _check_credentials(config)


def _check_credentials(config) -> None:
    import asyncio

    from gateway.credential_check import check_credentials
    from gateway.model_adapters.registry import create_default_adapters

    checks = asyncio.run(check_credentials(config, create_default_adapters(config.upstream)))

    print("  Credentials:")
    if not checks:
        print("    (none active)")
    for check in checks:
        masked = " ".join(f"{k}={v}" for k, v in check.credential.credential_value.masked().items())
        status = "ok  " if check.ok else "FAIL"
        line = f"    {status}  {check.provider.value}/{check.credential.id}  {masked or '-'}"
        if check.report.reason:
            line += f"  ({check.report.reason})"
        print(line)

    if not all(check.ok for check in checks):
        sys.exit(1)


def cmd_run(args: argparse.Namespace) -> None:
    """Start the ChatRelay gateway server."""
    import os

    os.environ["CHATRELAY_CONFIG"] = args.config

    # Validate first
    from gateway.config_loader import load_config

    try:
        config = load_config(args.config)
    except Exception as exc:
        print(f"Error loading config: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Starting ChatRelay gateway for '{config.app.name}'...")
    print(f"  Config:    {args.config}")
    print(f"  Host:      {args.host}")
    print(f"  Port:      {args.port}")
    print(f"  Providers: {', '.join(p.name.value for p in config.providers if p.enabled)}")
    print()

    import uvicorn

    uvicorn.run(
        "gateway.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


def _print_entry(entry, as_json: bool) -> None:
    record = json.loads(entry.model_dump_json())
    if as_json:
        print(json.dumps(record))
        return
    ts = record["ts"][:19]
    event = record["event"]
    rid = record["request_id"][:8]
    cred = record.get("credential_id") or "-"
    detail = json.dumps(record.get("detail", {}))
    print(f"{ts}  [{event:18s}]  {rid}  {cred}  {detail}")


def cmd_logs(args: argparse.Namespace) -> None:
    """Query audit logs."""
    from contracts.audit import AuditEvent
    from gateway.audit.query import query_filtered, stream_tail

    log_path = args.log_path

    if not Path(log_path).exists():
        print(f"No audit log found at {log_path}", file=sys.stderr)
        sys.exit(1)

    event = None
    if args.event:
        try:
            event = AuditEvent(args.event)
        except ValueError:
            valid = ", ".join(e.value for e in AuditEvent)
            print(f"Unknown event type: {args.event}", file=sys.stderr)
            print(f"Valid events: {valid}", file=sys.stderr)
            sys.exit(1)

    entries = query_filtered(
        log_path,
        event=event,
        request_id=args.request_id,
        credential_id=args.credential,
        limit=args.limit,
    )

    if not entries and not args.follow:
        print("No matching audit entries.")
        return

    for entry in entries:
        _print_entry(entry, args.json)

    if args.follow:
        import asyncio

        async def follow() -> None:
            async for entry in stream_tail(log_path):
                _print_entry(entry, args.json)

        try:
            asyncio.run(follow())
        except KeyboardInterrupt:
            pass


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="chatrelay",
        description="ChatRelay: multi-provider LLM chat gateway CLI",
    )
    sub = parser.add_subparsers(dest="command")

    # validate
    p_val = sub.add_parser("validate", help="Validate a chatrelay.yaml config")
    p_val.add_argument(
        "config", nargs="?", default="chatrelay.yaml", help="Path to config"
    )
    p_val.add_argument(
        "--check-credentials",
        action="store_true",
        help="Make a test call with every active credential",
    )
    p_val.set_defaults(func=cmd_validate)

    # run
    p_run = sub.add_parser("run", help="Start the ChatRelay gateway server")
    p_run.add_argument(
        "config", nargs="?", default="chatrelay.yaml", help="Path to config"
    )
    p_run.add_argument("--host", default="127.0.0.1", help="Bind address")
    p_run.add_argument("--port", type=int, default=8080, help="Port")
    p_run.add_argument("--reload", action="store_true", help="Enable auto-reload")
    p_run.set_defaults(func=cmd_run)

    # logs
    p_logs = sub.add_parser("logs", help="Query audit logs")
    p_logs.add_argument("log_path", help="Path to audit JSONL file")
    p_logs.add_argument("--request-id", "-r", help="Filter by request ID")
    p_logs.add_argument("--event", "-e", help="Filter by event type")
    p_logs.add_argument("--credential", "-c", help="Filter by credential ID")
    p_logs.add_argument("--limit", "-n", type=int, default=20, help="Max entries")
    p_logs.add_argument("--follow", "-f", action="store_true", help="Keep printing new entries")
    p_logs.add_argument("--json", action="store_true", help="Output raw JSON")
    p_logs.set_defaults(func=cmd_logs)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
