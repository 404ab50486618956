"""Pydantic DTOs for service and API layers."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from qr_webhooks.domain.enums import HttpMethod, WebhookEvent


def _require_text(value: str | None, label: str) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"{label} must not be blank")
    return value


def _dedupe_events(events: list[WebhookEvent] | None) -> list[WebhookEvent] | None:
    if events is None:
        return None
    return list(dict.fromkeys(events))


class WebhookCreateDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    url: str
    method: HttpMethod = HttpMethod.POST
    headers: dict[str, str] | None = None
    payload: dict[str, Any] | None = None
    events: list[WebhookEvent] = Field(min_length=1)
    secret: str | None = None
    retry_count: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        return _require_text(value, "name")  # type: ignore[return-value]

    @field_validator("url")
    @classmethod
    def _url_not_blank(cls, value: str) -> str:
        return _require_text(value, "url")  # type: ignore[return-value]

    @field_validator("events")
    @classmethod
    def _unique_events(cls, value: list[WebhookEvent]) -> list[WebhookEvent]:
        return _dedupe_events(value)  # type: ignore[return-value]


class WebhookUpdateDTO(BaseModel):
    """Partial update. Identity fields are not accepted."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    url: str | None = None
    method: HttpMethod | None = None
    headers: dict[str, str] | None = None
    payload: dict[str, Any] | None = None
    events: list[WebhookEvent] | None = Field(default=None, min_length=1)
    secret: str | None = None
    retry_count: int | None = Field(default=None, ge=0)
    retry_delay_ms: int | None = Field(default=None, ge=0)
    enabled: bool | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str | None) -> str | None:
        return _require_text(value, "name")

    @field_validator("url")
    @classmethod
    def _url_not_blank(cls, value: str | None) -> str | None:
        return _require_text(value, "url")

    @field_validator("events")
    @classmethod
    def _unique_events(cls, value: list[WebhookEvent] | None) -> list[WebhookEvent] | None:
        return _dedupe_events(value)


class TriggerEventDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    event: WebhookEvent
    data: dict[str, Any] | None = None
