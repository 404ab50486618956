"""aiohttp application entrypoint."""
from __future__ import annotations

import asyncio

import structlog
from aiohttp import ClientSession, ClientTimeout, web
from aiohttp_cors import ResourceOptions, setup as cors_setup

from qr_webhooks.api.router import setup_routes
from qr_webhooks.db.migrations import apply_migrations
from qr_webhooks.db.pool import create_pool
from qr_webhooks.domain.enums import SignatureMode
from qr_webhooks.logging_config import configure_logging
from qr_webhooks.middleware.trace import REQUEST_ID_HEADER, TRACE_ID_HEADER, create_trace_middleware
from qr_webhooks.otel import setup_otel, shutdown_otel
from qr_webhooks.repositories import (
    DeliveryLogRepository,
    DeliveryLogStorage,
    InMemoryDeliveryLogStorage,
    InMemoryWebhookConfigStorage,
    WebhookConfigRepository,
    WebhookConfigStorage,
)
from qr_webhooks.services import (
    ConfigStore,
    DeliveryExecutor,
    DeliveryLogger,
    EventDispatcher,
    RateLimiter,
    SignatureSigner,
    TestHarness,
)
from qr_webhooks.services.dependencies import SERVICES_KEY, WebhookServices, get_services
from qr_webhooks.services.executor import SleepFn
from qr_webhooks.settings import Settings, settings

logger = structlog.get_logger(__name__)

_ALLOWED_HEADERS = (
    "Accept",
    "Accept-Language",
    "Content-Language",
    "Content-Type",
    "Authorization",
    TRACE_ID_HEADER,
    REQUEST_ID_HEADER,
)
_ALLOWED_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")
_EXPOSED_HEADERS = (TRACE_ID_HEADER, REQUEST_ID_HEADER)


def _make_startup(
    app_settings: Settings,
    *,
    config_storage: WebhookConfigStorage | None,
    log_storage: DeliveryLogStorage | None,
    sleep: SleepFn | None,
    rate_limiter: RateLimiter | None,
):
    async def init_services(app: web.Application) -> None:
        services = get_services(app)

        if app_settings.storage_backend == "postgres" and (
            config_storage is None or log_storage is None
        ):
            services.pool = await create_pool(
                str(app_settings.database_url), app_settings.db_pool_size
            )
            await apply_migrations(services.pool)

        if config_storage is not None:
            configs = config_storage
        elif services.pool is not None:
            configs = WebhookConfigRepository(services.pool)
        else:
            configs = InMemoryWebhookConfigStorage()

        if log_storage is not None:
            logs = log_storage
        elif services.pool is not None:
            logs = DeliveryLogRepository(services.pool, capacity=app_settings.max_delivery_logs)
        else:
            logs = InMemoryDeliveryLogStorage(capacity=app_settings.max_delivery_logs)

        services.session = ClientSession(
            timeout=ClientTimeout(total=app_settings.webhook_request_timeout_seconds)
        )
        services.config_store = ConfigStore(configs)
        services.delivery_logger = DeliveryLogger(logs)
        executor = DeliveryExecutor(
            services.session,
            services.delivery_logger,
            signer=SignatureSigner(SignatureMode(app_settings.signature_mode)),
            timeout_s=app_settings.webhook_request_timeout_seconds,
            sleep=sleep or asyncio.sleep,
            log_body_limit=app_settings.log_response_body_limit,
        )
        limiter = rate_limiter
        if limiter is None and app_settings.rate_limit_enabled:
            limiter = RateLimiter()
        services.dispatcher = EventDispatcher(
            services.config_store, executor, rate_limiter=limiter
        )
        services.test_harness = TestHarness(
            executor, snippet_limit=app_settings.test_response_snippet_limit
        )
        logger.info(
            "webhook services initialised",
            storage_backend="custom" if config_storage is not None else app_settings.storage_backend,
            signature_mode=app_settings.signature_mode,
            rate_limit_enabled=limiter is not None,
        )

    return init_services


async def close_services(app: web.Application) -> None:
    services = get_services(app)
    if services.session is not None:
        await services.session.close()
        services.session = None
    if services.pool is not None:
        await services.pool.close()
        services.pool = None


def create_app(
    app_settings: Settings | None = None,
    *,
    config_storage: WebhookConfigStorage | None = None,
    log_storage: DeliveryLogStorage | None = None,
    sleep: SleepFn | None = None,
    rate_limiter: RateLimiter | None = None,
) -> web.Application:
    cfg = app_settings or settings
    configure_logging(cfg.log_level)

    app = web.Application()
    app[SERVICES_KEY] = WebhookServices()
    app.middlewares.append(create_trace_middleware(cfg.app_name))

    cors = cors_setup(
        app,
        defaults={
            origin: ResourceOptions(
                allow_credentials=True,
                expose_headers=_EXPOSED_HEADERS,
                allow_headers=_ALLOWED_HEADERS,
                allow_methods=_ALLOWED_METHODS,
            )
            for origin in cfg.cors_allowed_origins
        },
    )

    async def healthcheck(_request: web.Request) -> web.Response:
        return web.json_response({"status": "ok", "service": cfg.app_name, "env": cfg.env})

    app.router.add_get("/health", healthcheck)
    setup_routes(app)

    app.on_startup.append(
        _make_startup(
            cfg,
            config_storage=config_storage,
            log_storage=log_storage,
            sleep=sleep,
            rate_limiter=rate_limiter,
        )
    )
    app.on_cleanup.append(close_services)

    setup_otel(app, cfg)
    app.on_cleanup.append(shutdown_otel)

    for route in list(app.router.routes()):
        cors.add(route)

    return app


def main() -> None:
    web.run_app(create_app(), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
