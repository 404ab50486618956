"""Lifecycle event intake: fans the event out to subscribed webhooks."""
from __future__ import annotations

from aiohttp import web
from pydantic import ValidationError

from qr_webhooks.api.utils import dump, read_json
from qr_webhooks.domain.dto import TriggerEventDTO
from qr_webhooks.services.dependencies import get_dispatcher

routes = web.RouteTableDef()


@routes.post("/api/v1/resources/{resource_id}/events")
async def trigger_event(request: web.Request):
    body = await read_json(request)
    try:
        dto = TriggerEventDTO.model_validate(body)
    except ValidationError as exc:
        raise web.HTTPBadRequest(text=exc.json()) from exc

    dispatcher = get_dispatcher(request)
    result = await dispatcher.trigger(request.match_info["resource_id"], dto.event, dto.data)
    return web.json_response(dump(result))
