"""Fan-out of lifecycle events to matching webhook configurations."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Mapping

import structlog

from qr_webhooks.domain.enums import WebhookEvent
from qr_webhooks.domain.webhooks import TriggerResult, WebhookConfig
from qr_webhooks.services.config_store import ConfigStore
from qr_webhooks.services.executor import DeliveryExecutor
from qr_webhooks.services.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


class EventDispatcher:
    """Delivers an event to every enabled, subscribed webhook of a resource.

    Deliveries run strictly one after another in creation order: the next
    webhook is not contacted until the previous delivery, retries included,
    has finished and its statistics were written back.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        executor: DeliveryExecutor,
        *,
        rate_limiter: RateLimiter | None = None,
    ):
        self._store = config_store
        self._executor = executor
        self._rate_limiter = rate_limiter

    async def select(self, resource_id: str, event: WebhookEvent | str) -> list[WebhookConfig]:
        configs = await self._store.list_by_resource(resource_id)
        return [c for c in configs if c.enabled and c.subscribes_to(event)]

    async def trigger(
        self,
        resource_id: str,
        event: WebhookEvent | str,
        data: Mapping[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> TriggerResult:
        event_name = event.value if isinstance(event, WebhookEvent) else str(event)
        log = logger.bind(resource_id=resource_id, event=event_name)
        try:
            matched = await self.select(resource_id, event)
        except Exception:
            log.exception("webhook_trigger lookup failed")
            return TriggerResult()

        result = TriggerResult()
        for config in matched:
            if cancel is not None and cancel.is_set():
                log.info("webhook_trigger cancelled", skipped=len(matched) - result.attempted)
                break
            result.attempted += 1
            success, error = await self._deliver(config, event, data, cancel)
            if success:
                result.succeeded += 1
            else:
                result.failed += 1
            try:
                await self._store.record_delivery(
                    config.id,
                    success=success,
                    error=error,
                    at=datetime.now(timezone.utc),
                )
            except Exception:
                log.exception("webhook_stats update failed", webhook_id=config.id)

        log.info(
            "webhook_trigger completed",
            attempted=result.attempted,
            succeeded=result.succeeded,
            failed=result.failed,
        )
        return result

    async def _deliver(
        self,
        config: WebhookConfig,
        event: WebhookEvent | str,
        data: Mapping[str, Any] | None,
        cancel: asyncio.Event | None,
    ) -> tuple[bool, str | None]:
        limiter = self._rate_limiter
        if limiter is not None:
            decision = limiter.can_make_request(config.id)
            if not decision.allowed:
                logger.warning(
                    "webhook_delivery rate limited",
                    webhook_id=config.id,
                    reason=decision.reason,
                    retry_after_ms=decision.retry_after_ms,
                )
                return False, decision.reason
            limiter.record_request(config.id)

        try:
            outcome = await self._executor.execute(config, event, data, cancel=cancel)
        except Exception as exc:
            logger.exception("webhook_delivery crashed", webhook_id=config.id)
            success, error = False, str(exc) or type(exc).__name__
        else:
            success, error = outcome.success, outcome.final_error

        if limiter is not None:
            if success:
                limiter.record_success(config.id)
            else:
                limiter.record_failure(config.id)
        return success, error
