"""Chat router: route a request, pick a credential, stream with failover."""

from __future__ import annotations

import uuid
from contextlib import aclosing
from typing import Any, AsyncGenerator, Callable, Mapping

from contracts.adapter import ChatAdapter, ProviderKind
from contracts.audit import AuditEntry, AuditEvent, AuditLogger
from contracts.chat import ChatCompletionError, ChatCompletionInput, ChatCompletionResponse, UsageChunk
from contracts.errors import ConfigurationError, GatewayError, NoUsableCredentialError, UpstreamError
from contracts.provider import Credential, CredentialOutcome, CredentialReport

from gateway.credential_selector import CredentialSelector
from gateway.model_routes import ModelRouter, Route

ReportCallback = Callable[[CredentialReport], None]


class ChatRouter:
    """Streams one canonical request through the routed adapter.

    A credential that fails before producing output is reported, excluded,
    and replaced by another credential of the same provider, at most
    ``failover_attempts`` times. Once the first item has arrived the stream
    is committed to that credential.
    """

    def __init__(
        self,
        routes: ModelRouter,
        adapters: Mapping[ProviderKind, ChatAdapter],
        logger: AuditLogger | None = None,
        selector: CredentialSelector | None = None,
        failover_attempts: int = 1,
        on_report: ReportCallback | None = None,
        app_name: str = "",
    ) -> None:
        missing = set(ProviderKind) - set(adapters)
        if missing:
            raise ValueError(f"No adapter for provider kinds: {sorted(k.value for k in missing)}")
        self._routes = routes
        self._adapters = dict(adapters)
        self._logger = logger
        self._selector = selector or CredentialSelector()
        self._failover_attempts = failover_attempts
        self._on_report = on_report
        self._app_name = app_name

    async def stream(
        self, request: ChatCompletionInput, request_id: str | None = None
    ) -> AsyncGenerator[ChatCompletionResponse, None]:
        """Yield canonical items for ``request``.

        Raises ``ConfigurationError`` or ``UpstreamError`` on the first pull
        when no output could be produced.
        """
        request_id = request_id or str(uuid.uuid4())
        route = self._routes.resolve(request.model)
        adapter = self._adapters[route.kind]

        self._audit(request_id, AuditEvent.REQUEST_START, request.model, route)

        excluded: set[str] = set()
        last_error: UpstreamError | None = None

        for _ in range(self._failover_attempts + 1):
            try:
                credential = self._selector.select(route.credentials, exclude=excluded)
            except NoUsableCredentialError as exc:
                failure = last_error or exc
                self._audit_failed_end(request_id, request.model, route, failure)
                raise failure from None

            async with aclosing(
                adapter.stream(request, route.provider, credential, route.upstream_model)
            ) as upstream:
                try:
                    first = await anext(upstream)
                except StopAsyncIteration:
                    first = None
                except UpstreamError as exc:
                    last_error = exc
                    excluded.add(credential.id)
                    self._report(request_id, request.model, route, credential, CredentialOutcome.FAILURE, str(exc))
                    continue
                except ConfigurationError as exc:
                    self._audit_failed_end(request_id, request.model, route, exc, credential)
                    raise

                self._report(request_id, request.model, route, credential, CredentialOutcome.SUCCESS)

                count = 0
                try:
                    if first is not None:
                        count += 1
                        self._observe(request_id, request.model, route, credential, first)
                        yield first
                    async for item in upstream:
                        count += 1
                        self._observe(request_id, request.model, route, credential, item)
                        yield item
                finally:
                    self._audit(
                        request_id,
                        AuditEvent.REQUEST_END,
                        request.model,
                        route,
                        credential,
                        {"items": count},
                    )
                return

        assert last_error is not None
        self._audit_failed_end(request_id, request.model, route, last_error)
        raise last_error

    # ── internal ────────────────────────────────────────────────────

    def _report(
        self,
        request_id: str,
        model: str,
        route: Route,
        credential: Credential,
        outcome: CredentialOutcome,
        reason: str | None = None,
    ) -> None:
        report = self._selector.report(credential, outcome, reason)
        event = (
            AuditEvent.CREDENTIAL_SUCCESS
            if outcome == CredentialOutcome.SUCCESS
            else AuditEvent.CREDENTIAL_FAILURE
        )
        detail = {"reason": reason} if reason else {}
        self._audit(request_id, event, model, route, credential, detail)
        if self._on_report is not None:
            self._on_report(report)

    def _audit_failed_end(
        self,
        request_id: str,
        model: str,
        route: Route,
        exc: GatewayError,
        credential: Credential | None = None,
    ) -> None:
        self._audit(
            request_id, AuditEvent.REQUEST_END, model, route, credential, {"items": 0, "error": str(exc)}
        )

    def _observe(
        self,
        request_id: str,
        model: str,
        route: Route,
        credential: Credential,
        item: ChatCompletionResponse,
    ) -> None:
        if isinstance(item, UsageChunk):
            self._audit(
                request_id, AuditEvent.USAGE, model, route, credential, item.usage.model_dump()
            )
        elif isinstance(item, ChatCompletionError):
            self._audit(
                request_id,
                AuditEvent.STREAM_ERROR,
                model,
                route,
                credential,
                {"message": item.error.message},
            )

    def _audit(
        self,
        request_id: str,
        event: AuditEvent,
        model: str,
        route: Route,
        credential: Credential | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        if self._logger is None:
            return
        self._logger.log(
            AuditEntry(
                request_id=request_id,
                event=event,
                app=self._app_name,
                model=model,
                provider=route.provider.name.value,
                credential_id=credential.id if credential else "",
                detail=detail or {},
            )
        )
