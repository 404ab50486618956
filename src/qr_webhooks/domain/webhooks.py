"""Webhook domain primitives."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from qr_webhooks.domain.enums import DeliveryStatus, HttpMethod, WebhookEvent


class WebhookConfig(BaseModel):
    """One outbound subscription attached to a QR code."""

    id: str
    resource_id: str
    name: str
    url: str
    method: HttpMethod = HttpMethod.POST
    headers: dict[str, str] | None = None
    payload: dict[str, Any] | None = None
    events: list[WebhookEvent] = Field(min_length=1)
    enabled: bool = True
    secret: str | None = None
    retry_count: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)
    last_triggered_at: datetime | None = None
    last_status: DeliveryStatus | None = None
    last_error: str | None = None
    trigger_count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime

    def subscribes_to(self, event: WebhookEvent | str) -> bool:
        value = event.value if isinstance(event, WebhookEvent) else event
        return any(e.value == value for e in self.events)


class DeliveryLog(BaseModel):
    """Record of one logical delivery. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    webhook_id: str
    resource_id: str
    event: str
    timestamp: datetime
    request_url: str
    request_method: HttpMethod
    request_payload: dict[str, Any] | None = None
    response_status: int | None = None
    response_body: str | None = None
    success: bool
    error: str | None = None
    duration_ms: int


class TriggerResult(BaseModel):
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0


class TestResult(BaseModel):
    __test__ = False  # not a pytest test class

    success: bool
    status: int | None = None
    response: str | None = None
    error: str | None = None
    duration_ms: int


class WebhookTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    method: HttpMethod = HttpMethod.POST
    headers: dict[str, str] | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    events: list[WebhookEvent]
