"""Helper utilities for API handlers."""
from __future__ import annotations

from typing import Any

from aiohttp import web
from pydantic import BaseModel


async def read_json(request: web.Request) -> dict[str, Any]:
    """Parse JSON body from request, raising HTTPBadRequest on invalid input."""
    try:
        data = await request.json()
    except Exception as exc:
        raise web.HTTPBadRequest(text="Invalid JSON payload") from exc
    if not isinstance(data, dict):
        raise web.HTTPBadRequest(text="JSON body must be an object")
    return data


def limit_param(request: web.Request, *, default: int, max_limit: int = 100) -> int:
    raw = request.rel_url.query.get("limit", str(default))
    try:
        limit = int(raw)
    except ValueError as exc:
        raise web.HTTPBadRequest(text="limit must be an integer") from exc
    if limit <= 0:
        limit = default
    return min(limit, max_limit)


def dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")
