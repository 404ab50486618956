"""Built-in webhook template catalog."""
from __future__ import annotations

from aiohttp import web

from qr_webhooks.api.utils import dump
from qr_webhooks.core.exceptions import TemplateNotFoundError
from qr_webhooks.domain.templates import apply_template, list_templates

routes = web.RouteTableDef()


@routes.get("/api/v1/templates")
async def get_templates(_request: web.Request):
    return web.json_response({"templates": [dump(t) for t in list_templates()]})


@routes.get("/api/v1/templates/{name}/prefill")
async def get_template_prefill(request: web.Request):
    try:
        prefill = apply_template(request.match_info["name"])
    except TemplateNotFoundError as exc:
        raise web.HTTPNotFound(text=str(exc)) from exc
    return web.json_response(prefill)
