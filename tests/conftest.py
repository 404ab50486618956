from __future__ import annotations

import pytest
from aiohttp import ClientSession, web

from qr_webhooks.main import create_app
from qr_webhooks.repositories import InMemoryDeliveryLogStorage, InMemoryWebhookConfigStorage
from qr_webhooks.services import ConfigStore, DeliveryExecutor, DeliveryLogger, EventDispatcher
from qr_webhooks.settings import Settings

from tests.utils import HookTarget, SleepRecorder


@pytest.fixture
async def hook(aiohttp_server):
    """Receiving endpoint; answers 200 unless a response script is queued."""
    target = HookTarget()
    app = web.Application()
    app.router.add_route("*", "/{name}", target.handler)
    target.server = await aiohttp_server(app)
    return target


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
async def http_session():
    async with ClientSession() as session:
        yield session


@pytest.fixture
def delivery_logger() -> DeliveryLogger:
    return DeliveryLogger(InMemoryDeliveryLogStorage(capacity=100))


@pytest.fixture
def config_store() -> ConfigStore:
    return ConfigStore(InMemoryWebhookConfigStorage())


@pytest.fixture
def executor(http_session, delivery_logger, sleep_recorder) -> DeliveryExecutor:
    return DeliveryExecutor(
        http_session,
        delivery_logger,
        timeout_s=5.0,
        sleep=sleep_recorder,
    )


@pytest.fixture
def dispatcher(config_store, executor) -> EventDispatcher:
    return EventDispatcher(config_store, executor)


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        storage_backend="memory",
        otel_exporter_endpoint=None,
        webhook_request_timeout_seconds=5.0,
    )


@pytest.fixture
async def service_client(aiohttp_client, app_settings, sleep_recorder):
    """Client for calling the service API (in-memory storage, recorded sleeps)."""
    app = create_app(app_settings, sleep=sleep_recorder)
    return await aiohttp_client(app)
