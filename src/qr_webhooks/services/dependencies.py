"""Shared dependency providers for aiohttp handlers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aiohttp import ClientSession, web

from qr_webhooks.services.config_store import ConfigStore
from qr_webhooks.services.delivery_log import DeliveryLogger
from qr_webhooks.services.dispatcher import EventDispatcher
from qr_webhooks.services.test_harness import TestHarness


@dataclass
class WebhookServices:
    """Per-application service graph, populated by the startup hook."""

    config_store: ConfigStore | None = None
    delivery_logger: DeliveryLogger | None = None
    dispatcher: EventDispatcher | None = None
    test_harness: TestHarness | None = None
    session: ClientSession | None = None
    pool: Any = None


SERVICES_KEY = web.AppKey("webhook_services", WebhookServices)


def get_services(app: web.Application) -> WebhookServices:
    return app[SERVICES_KEY]


def _require(value, name: str):
    if value is None:
        raise RuntimeError(f"{name} is not initialised; was the app started?")
    return value


def get_config_store(request: web.Request) -> ConfigStore:
    return _require(get_services(request.app).config_store, "ConfigStore")


def get_delivery_logger(request: web.Request) -> DeliveryLogger:
    return _require(get_services(request.app).delivery_logger, "DeliveryLogger")


def get_dispatcher(request: web.Request) -> EventDispatcher:
    return _require(get_services(request.app).dispatcher, "EventDispatcher")


def get_test_harness(request: web.Request) -> TestHarness:
    return _require(get_services(request.app).test_harness, "TestHarness")
