from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from aiohttp import web

from qr_webhooks.domain.enums import WebhookEvent
from qr_webhooks.domain.webhooks import WebhookConfig


def make_config(url: str, **overrides: Any) -> WebhookConfig:
    now = datetime.now(timezone.utc)
    data: dict[str, Any] = {
        "id": f"webhook-test-{uuid4().hex[:6]}",
        "resource_id": "qr-1",
        "name": "Test hook",
        "url": url,
        "events": [WebhookEvent.SCAN],
        "retry_count": 0,
        "retry_delay_ms": 100,
        "created_at": now,
        "updated_at": now,
    }
    data.update(overrides)
    return WebhookConfig(**data)


def webhook_payload(url: str, /, **overrides: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"name": "Scan hook", "url": url, "events": ["scan"]}
    body.update(overrides)
    return body


@dataclass
class ReceivedRequest:
    method: str
    path: str
    headers: dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class HookTarget:
    """Scriptable receiving endpoint served by an in-process aiohttp server."""

    requests: list[ReceivedRequest] = field(default_factory=list)
    events: list[str] = field(default_factory=list)
    delay: float = 0.0
    server: Any = None
    _scripts: dict[str, list[tuple[int, str]]] = field(default_factory=dict)

    def url(self, path: str = "/hook") -> str:
        return str(self.server.make_url(path))

    def script(self, path: str, *responses: tuple[int, str]) -> None:
        self._scripts.setdefault(path, []).extend(responses)

    def calls(self, path: str = "/hook") -> list[ReceivedRequest]:
        return [r for r in self.requests if r.path == path]

    async def handler(self, request: web.Request) -> web.Response:
        body = await request.read()
        self.requests.append(
            ReceivedRequest(
                method=request.method,
                path=request.path,
                headers=dict(request.headers),
                body=body,
            )
        )
        self.events.append(f"start {request.path}")
        if self.delay:
            await asyncio.sleep(self.delay)
        queue = self._scripts.get(request.path)
        status, text = queue.pop(0) if queue else (200, "ok")
        self.events.append(f"end {request.path}")
        return web.Response(status=status, text=text)
