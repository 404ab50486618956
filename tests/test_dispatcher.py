from __future__ import annotations

import asyncio

import pytest

from qr_webhooks.core.exceptions import RepositoryError
from qr_webhooks.domain.enums import DeliveryStatus, WebhookEvent
from qr_webhooks.repositories import InMemoryWebhookConfigStorage
from qr_webhooks.services import ConfigStore, EventDispatcher, RateLimitConfig, RateLimiter

from tests.utils import webhook_payload


@pytest.mark.asyncio
async def test_only_subscribed_webhooks_receive_event(hook, config_store, dispatcher):
    scans = await config_store.create("qr-1", webhook_payload(hook.url("/a"), events=["scan"]))
    expiries = await config_store.create("qr-1", webhook_payload(hook.url("/b"), events=["expire"]))

    result = await dispatcher.trigger("qr-1", WebhookEvent.SCAN, {"city": "Oslo"})

    assert result.model_dump() == {"attempted": 1, "succeeded": 1, "failed": 0}
    assert len(hook.calls("/a")) == 1
    assert hook.calls("/b") == []
    assert (await config_store.get(scans.id)).trigger_count == 1
    assert (await config_store.get(expiries.id)).trigger_count == 0


@pytest.mark.asyncio
async def test_other_resources_are_not_triggered(hook, config_store, dispatcher):
    await config_store.create("qr-2", webhook_payload(hook.url("/other")))

    result = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)

    assert result.attempted == 0
    assert hook.requests == []


@pytest.mark.asyncio
async def test_disabled_webhook_is_skipped_but_keeps_its_logs(
    hook, config_store, dispatcher, delivery_logger
):
    config = await config_store.create("qr-1", webhook_payload(hook.url()))
    await dispatcher.trigger("qr-1", WebhookEvent.SCAN)

    assert await config_store.toggle(config.id) is False
    result = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)

    assert result.attempted == 0
    assert len(hook.calls()) == 1
    assert len(await delivery_logger.for_webhook(config.id)) == 1
    assert (await config_store.get(config.id)).trigger_count == 1


@pytest.mark.asyncio
async def test_deliveries_run_one_after_another_in_creation_order(
    hook, config_store, dispatcher
):
    hook.delay = 0.05
    for name in ("first", "second", "third"):
        await config_store.create("qr-1", webhook_payload(hook.url(f"/{name}")))

    result = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)

    assert result.attempted == 3
    assert hook.events == [
        "start /first",
        "end /first",
        "start /second",
        "end /second",
        "start /third",
        "end /third",
    ]


@pytest.mark.asyncio
async def test_stats_are_written_back_after_each_delivery(hook, config_store, dispatcher):
    hook.script("/flaky", (500, "down"), (500, "down"), (200, "ok"))
    config = await config_store.create(
        "qr-1", webhook_payload(hook.url("/flaky"), retry_count=0)
    )

    first = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)
    stored = await config_store.get(config.id)
    assert first.failed == 1
    assert stored.trigger_count == 1
    assert stored.last_status == DeliveryStatus.FAILED
    assert stored.last_error == "HTTP 500: down"
    assert stored.last_triggered_at is not None

    await dispatcher.trigger("qr-1", WebhookEvent.SCAN)
    third = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)
    stored = await config_store.get(config.id)
    assert third.succeeded == 1
    assert stored.trigger_count == 3
    assert stored.last_status == DeliveryStatus.SUCCESS
    assert stored.last_error is None


@pytest.mark.asyncio
async def test_failed_delivery_does_not_stop_the_next_one(hook, config_store, dispatcher):
    hook.script("/bad", (500, "nope"))
    await config_store.create("qr-1", webhook_payload(hook.url("/bad"), retry_count=0))
    await config_store.create("qr-1", webhook_payload(hook.url("/good")))

    result = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)

    assert result.model_dump() == {"attempted": 2, "succeeded": 1, "failed": 1}
    assert len(hook.calls("/good")) == 1


@pytest.mark.asyncio
async def test_unknown_event_matches_nothing(hook, config_store, dispatcher):
    await config_store.create("qr-1", webhook_payload(hook.url()))

    result = await dispatcher.trigger("qr-1", "renamed")

    assert result.attempted == 0
    assert hook.requests == []


@pytest.mark.asyncio
async def test_stats_write_failure_is_swallowed(hook, executor):
    class FlakyStatsStorage(InMemoryWebhookConfigStorage):
        async def record_delivery(self, webhook_id, *, success, error, at):
            raise RepositoryError("stats unavailable")

    store = ConfigStore(FlakyStatsStorage())
    await store.create("qr-1", webhook_payload(hook.url("/a")))
    await store.create("qr-1", webhook_payload(hook.url("/b")))

    result = await EventDispatcher(store, executor).trigger("qr-1", WebhookEvent.SCAN)

    assert result.succeeded == 2
    assert len(hook.calls("/b")) == 1


@pytest.mark.asyncio
async def test_lookup_failure_yields_empty_result(executor):
    class BrokenStorage(InMemoryWebhookConfigStorage):
        async def list_by_resource(self, resource_id):
            raise RepositoryError("db down")

    dispatcher = EventDispatcher(ConfigStore(BrokenStorage()), executor)

    result = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)

    assert result.model_dump() == {"attempted": 0, "succeeded": 0, "failed": 0}


@pytest.mark.asyncio
async def test_cancel_skips_remaining_webhooks(hook, config_store, dispatcher):
    await config_store.create("qr-1", webhook_payload(hook.url("/a")))
    await config_store.create("qr-1", webhook_payload(hook.url("/b")))
    cancel = asyncio.Event()
    cancel.set()

    result = await dispatcher.trigger("qr-1", WebhookEvent.SCAN, cancel=cancel)

    assert result.attempted == 0
    assert hook.requests == []


@pytest.mark.asyncio
async def test_rate_limited_delivery_counts_as_failure(hook, config_store, executor):
    limiter = RateLimiter(RateLimitConfig(max_requests_per_minute=1), clock=lambda: 1_000.0)
    dispatcher = EventDispatcher(config_store, executor, rate_limiter=limiter)
    config = await config_store.create("qr-1", webhook_payload(hook.url()))

    first = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)
    second = await dispatcher.trigger("qr-1", WebhookEvent.SCAN)

    assert first.succeeded == 1
    assert second.model_dump() == {"attempted": 1, "succeeded": 0, "failed": 1}
    assert len(hook.calls()) == 1
    stored = await config_store.get(config.id)
    assert stored.trigger_count == 2
    assert stored.last_error.startswith("Rate limit exceeded")


@pytest.mark.asyncio
async def test_fail_fail_then_success_end_to_end(hook, config_store, dispatcher, delivery_logger):
    hook.script("/hook", (500, "one"), (500, "two"), (500, "three"))
    config = await config_store.create(
        "qr-1", webhook_payload(hook.url(), retry_count=0)
    )

    outcomes = [await dispatcher.trigger("qr-1", WebhookEvent.SCAN) for _ in range(4)]

    assert [o.succeeded for o in outcomes] == [0, 0, 0, 1]
    logs = await delivery_logger.for_webhook(config.id)
    assert [entry.success for entry in logs] == [True, False, False, False]
    stored = await config_store.get(config.id)
    assert stored.trigger_count == 4
    assert stored.last_status == DeliveryStatus.SUCCESS
