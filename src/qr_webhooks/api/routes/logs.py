"""Delivery log endpoints."""
from __future__ import annotations

from aiohttp import web

from qr_webhooks.api.utils import dump, limit_param
from qr_webhooks.services.dependencies import get_delivery_logger

routes = web.RouteTableDef()


@routes.get("/api/v1/webhooks/{webhook_id}/logs")
async def list_webhook_logs(request: web.Request):
    limit = limit_param(request, default=20)
    entries = await get_delivery_logger(request).for_webhook(
        request.match_info["webhook_id"], limit=limit
    )
    return web.json_response({"logs": [dump(e) for e in entries]})


@routes.delete("/api/v1/webhooks/{webhook_id}/logs")
async def clear_webhook_logs(request: web.Request):
    await get_delivery_logger(request).clear_for_webhook(request.match_info["webhook_id"])
    return web.Response(status=204)


@routes.get("/api/v1/resources/{resource_id}/webhook-logs")
async def list_resource_logs(request: web.Request):
    limit = limit_param(request, default=50)
    entries = await get_delivery_logger(request).for_resource(
        request.match_info["resource_id"], limit=limit
    )
    return web.json_response({"logs": [dump(e) for e in entries]})


@routes.delete("/api/v1/webhook-logs")
async def clear_all_logs(request: web.Request):
    await get_delivery_logger(request).clear_all()
    return web.Response(status=204)
