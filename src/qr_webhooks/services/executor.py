"""Delivery of one webhook event with retries, signing and audit logging."""
from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping

import structlog
from aiohttp import ClientSession, ClientTimeout

from qr_webhooks.core.ids import new_log_id
from qr_webhooks.domain.enums import HttpMethod, WebhookEvent
from qr_webhooks.domain.webhooks import DeliveryLog, WebhookConfig
from qr_webhooks.otel import get_tracer
from qr_webhooks.services.delivery_log import DeliveryLogger
from qr_webhooks.services.retry import AttemptOutcome, RetryState
from qr_webhooks.services.signing import SignatureSigner

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)

SECRET_HEADER = "X-Webhook-Secret"
SIGNATURE_HEADER = "X-Webhook-Signature"

SleepFn = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    final_status: int | None
    final_error: str | None
    duration_ms: int
    attempts: int


def serialize_payload(payload: Mapping[str, Any]) -> bytes:
    """Canonical wire form; signatures are computed over exactly these bytes."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str).encode(
        "utf-8"
    )


def _event_value(event: WebhookEvent | str) -> str:
    return event.value if isinstance(event, WebhookEvent) else str(event)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryExecutor:
    """Runs logical deliveries: up to ``retry_count + 1`` HTTP attempts.

    Exactly one :class:`DeliveryLog` is written per :meth:`execute` call. The
    executor never raises for network, HTTP or log-storage failures.
    """

    def __init__(
        self,
        session: ClientSession,
        delivery_logger: DeliveryLogger,
        *,
        signer: SignatureSigner | None = None,
        timeout_s: float = 10.0,
        sleep: SleepFn = asyncio.sleep,
        log_body_limit: int = 2000,
    ):
        self._session = session
        self._logs = delivery_logger
        self._signer = signer or SignatureSigner()
        self._timeout = ClientTimeout(total=timeout_s)
        self._timeout_s = timeout_s
        self._sleep = sleep
        self._log_body_limit = log_body_limit

    @staticmethod
    def build_payload(
        config: WebhookConfig,
        event: WebhookEvent | str,
        data: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "event": _event_value(event),
            "resourceId": config.resource_id,
            "timestamp": _utcnow().isoformat(),
            "webhookId": config.id,
        }
        payload.update(config.payload or {})
        payload.update(data or {})
        return payload

    def build_headers(self, config: WebhookConfig, body: bytes) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(config.headers or {})
        if config.secret:
            headers[SECRET_HEADER] = config.secret
            headers[SIGNATURE_HEADER] = self._signer.sign(body, config.secret)
        return headers

    async def attempt(
        self,
        config: WebhookConfig,
        body: bytes,
        headers: Mapping[str, str],
    ) -> AttemptOutcome:
        """Issue a single HTTP request and classify its outcome."""
        method = config.method.value
        try:
            async with self._session.request(
                method,
                config.url,
                data=body if config.method is not HttpMethod.GET else None,
                headers=dict(headers),
                timeout=self._timeout,
            ) as resp:
                text = await resp.text(errors="replace")
                if 200 <= resp.status < 300:
                    return AttemptOutcome(success=True, status=resp.status, body=text)
                return AttemptOutcome(
                    success=False,
                    status=resp.status,
                    body=text,
                    error=f"HTTP {resp.status}: {text}",
                )
        except asyncio.TimeoutError:
            return AttemptOutcome(
                success=False, error=f"Request timed out after {self._timeout_s:g}s"
            )
        except Exception as exc:
            return AttemptOutcome(success=False, error=str(exc) or type(exc).__name__)

    async def execute(
        self,
        config: WebhookConfig,
        event: WebhookEvent | str,
        data: Mapping[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> DeliveryResult:
        state = RetryState(config.retry_count, config.retry_delay_ms)
        payload = self.build_payload(config, event, data)
        body = serialize_payload(payload)
        headers = self.build_headers(config, body)
        log = logger.bind(webhook_id=config.id, resource_id=config.resource_id, event=payload["event"])

        with tracer.start_as_current_span("webhook.deliver") as span:
            span.set_attribute("webhook.id", config.id)
            span.set_attribute("webhook.event", payload["event"])
            span.set_attribute("http.method", config.method.value)

            while True:
                outcome = await self.attempt(config, body, headers)
                state.record(outcome)
                if not outcome.success:
                    log.warning(
                        "webhook_attempt failed",
                        attempt=state.attempts,
                        max_attempts=state.max_attempts,
                        status=outcome.status,
                        error=outcome.error,
                    )
                delay = state.next_delay_seconds()
                if delay is None:
                    break
                if cancel is not None and cancel.is_set():
                    log.info("webhook_delivery cancelled", attempts=state.attempts)
                    break
                await self._sleep(delay)
                if cancel is not None and cancel.is_set():
                    log.info("webhook_delivery cancelled", attempts=state.attempts)
                    break

            span.set_attribute("webhook.attempts", state.attempts)
            span.set_attribute("webhook.success", state.succeeded)

        last = state.last or AttemptOutcome(success=False)
        final_error = None if state.succeeded else last.error
        result = DeliveryResult(
            success=state.succeeded,
            final_status=last.status,
            final_error=final_error,
            duration_ms=state.elapsed_ms,
            attempts=state.attempts,
        )

        if result.success:
            log.info(
                "webhook_delivery succeeded",
                attempts=result.attempts,
                status=result.final_status,
                duration_ms=result.duration_ms,
            )
        else:
            log.warning(
                "webhook_delivery failed",
                attempts=result.attempts,
                status=result.final_status,
                error=result.final_error,
                duration_ms=result.duration_ms,
            )

        entry = DeliveryLog(
            id=new_log_id(),
            webhook_id=config.id,
            resource_id=config.resource_id,
            event=payload["event"],
            timestamp=_utcnow(),
            request_url=config.url,
            request_method=config.method,
            request_payload=payload,
            response_status=last.status,
            response_body=last.body[: self._log_body_limit] if last.body is not None else None,
            success=result.success,
            error=final_error,
            duration_ms=result.duration_ms,
        )
        try:
            await self._logs.append(entry)
        except Exception:
            log.exception("webhook_log append failed")

        return result
