"""Webhook configuration endpoints."""
from __future__ import annotations

from datetime import datetime, timezone

from aiohttp import web
from pydantic import ValidationError

from qr_webhooks.api.utils import dump, read_json
from qr_webhooks.core.exceptions import WebhookValidationError
from qr_webhooks.core.ids import new_webhook_id
from qr_webhooks.domain.dto import WebhookCreateDTO, WebhookUpdateDTO
from qr_webhooks.domain.webhooks import WebhookConfig
from qr_webhooks.services.dependencies import get_config_store, get_test_harness

routes = web.RouteTableDef()


async def _require_webhook(request: web.Request) -> WebhookConfig:
    webhook_id = request.match_info["webhook_id"]
    config = await get_config_store(request).get(webhook_id)
    if config is None:
        raise web.HTTPNotFound(text="Webhook not found")
    return config


@routes.get("/api/v1/resources/{resource_id}/webhooks")
async def list_webhooks(request: web.Request):
    store = get_config_store(request)
    items = await store.list_by_resource(request.match_info["resource_id"])
    return web.json_response({"webhooks": [dump(item) for item in items], "total": len(items)})


@routes.post("/api/v1/resources/{resource_id}/webhooks")
async def create_webhook(request: web.Request):
    body = await read_json(request)
    try:
        dto = WebhookCreateDTO.model_validate(body)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc

    store = get_config_store(request)
    try:
        config = await store.create(request.match_info["resource_id"], dto)
    except WebhookValidationError as exc:
        raise web.HTTPBadRequest(text=str(exc)) from exc
    return web.json_response(dump(config), status=201)


@routes.post("/api/v1/resources/{resource_id}/webhooks/test")
async def test_candidate_webhook(request: web.Request):
    """Test a configuration that has not been saved yet."""
    body = await read_json(request)
    try:
        dto = WebhookCreateDTO.model_validate(body)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc

    now = datetime.now(timezone.utc)
    candidate = WebhookConfig(
        id=new_webhook_id(),
        resource_id=request.match_info["resource_id"],
        **dto.model_dump(),
        created_at=now,
        updated_at=now,
    )
    result = await get_test_harness(request).test(candidate)
    return web.json_response(dump(result))


@routes.get("/api/v1/webhooks/{webhook_id}")
async def get_webhook(request: web.Request):
    config = await _require_webhook(request)
    return web.json_response(dump(config))


@routes.patch("/api/v1/webhooks/{webhook_id}")
async def update_webhook(request: web.Request):
    body = await read_json(request)
    try:
        dto = WebhookUpdateDTO.model_validate(body)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc

    store = get_config_store(request)
    try:
        config = await store.update(request.match_info["webhook_id"], dto)
    except WebhookValidationError as exc:
        raise web.HTTPBadRequest(text=str(exc)) from exc
    if config is None:
        raise web.HTTPNotFound(text="Webhook not found")
    return web.json_response(dump(config))


@routes.delete("/api/v1/webhooks/{webhook_id}")
async def delete_webhook(request: web.Request):
    config = await _require_webhook(request)
    await get_config_store(request).delete(config.id)
    return web.Response(status=204)


@routes.post("/api/v1/webhooks/{webhook_id}/toggle")
async def toggle_webhook(request: web.Request):
    enabled = await get_config_store(request).toggle(request.match_info["webhook_id"])
    if enabled is None:
        raise web.HTTPNotFound(text="Webhook not found")
    return web.json_response({"enabled": enabled})


@routes.post("/api/v1/webhooks/{webhook_id}/test")
async def test_webhook(request: web.Request):
    config = await _require_webhook(request)
    result = await get_test_harness(request).test(config)
    return web.json_response(dump(result))
