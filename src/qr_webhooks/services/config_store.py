"""Webhook configuration store (validation, defaults, stats write-back)."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping

import structlog
from pydantic import ValidationError

from qr_webhooks.core.exceptions import WebhookValidationError
from qr_webhooks.core.ids import new_webhook_id
from qr_webhooks.domain.dto import WebhookCreateDTO, WebhookUpdateDTO
from qr_webhooks.domain.webhooks import WebhookConfig
from qr_webhooks.repositories.ports import WebhookConfigStorage

logger = structlog.get_logger(__name__)


def _validate(model: type, data: Any):
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise WebhookValidationError(str(exc)) from exc


class ConfigStore:
    def __init__(self, storage: WebhookConfigStorage):
        self._storage = storage

    async def create(
        self, resource_id: str, data: WebhookCreateDTO | Mapping[str, Any]
    ) -> WebhookConfig:
        if not resource_id or not resource_id.strip():
            raise WebhookValidationError("resource_id must not be blank")
        dto: WebhookCreateDTO = _validate(WebhookCreateDTO, data)
        now = datetime.now(timezone.utc)
        config = WebhookConfig(
            id=new_webhook_id(),
            resource_id=resource_id,
            **dto.model_dump(),
            enabled=True,
            trigger_count=0,
            created_at=now,
            updated_at=now,
        )
        await self._storage.save(config)
        logger.info(
            "webhook created",
            webhook_id=config.id,
            resource_id=resource_id,
            events=[e.value for e in config.events],
        )
        return config

    async def get(self, webhook_id: str) -> WebhookConfig | None:
        return await self._storage.get(webhook_id)

    async def list_by_resource(self, resource_id: str) -> List[WebhookConfig]:
        return await self._storage.list_by_resource(resource_id)

    async def update(
        self, webhook_id: str, partial: WebhookUpdateDTO | Mapping[str, Any]
    ) -> WebhookConfig | None:
        dto: WebhookUpdateDTO = _validate(WebhookUpdateDTO, partial)
        current = await self._storage.get(webhook_id)
        if current is None:
            return None
        changes = dto.model_dump(exclude_unset=True)
        merged = current.model_dump()
        merged.update(changes)
        merged["updated_at"] = datetime.now(timezone.utc)
        # re-validate the merged record (e.g. events=None is not allowed)
        updated: WebhookConfig = _validate(WebhookConfig, merged)
        await self._storage.save(updated)
        logger.info("webhook updated", webhook_id=webhook_id, fields=sorted(changes))
        return updated

    async def delete(self, webhook_id: str) -> None:
        await self._storage.delete(webhook_id)
        logger.info("webhook deleted", webhook_id=webhook_id)

    async def toggle(self, webhook_id: str) -> bool | None:
        current = await self._storage.get(webhook_id)
        if current is None:
            return None
        updated = current.model_copy(
            update={"enabled": not current.enabled, "updated_at": datetime.now(timezone.utc)}
        )
        await self._storage.save(updated)
        logger.info("webhook toggled", webhook_id=webhook_id, enabled=updated.enabled)
        return updated.enabled

    async def record_delivery(
        self,
        webhook_id: str,
        *,
        success: bool,
        error: str | None,
        at: datetime | None = None,
    ) -> WebhookConfig | None:
        return await self._storage.record_delivery(
            webhook_id,
            success=success,
            error=error,
            at=at or datetime.now(timezone.utc),
        )
