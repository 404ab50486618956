"""In-process storage backends (default for single-process deployments)."""
from __future__ import annotations

from collections import deque
from datetime import datetime
from typing import Deque, Dict, List

from qr_webhooks.domain.enums import DeliveryStatus
from qr_webhooks.domain.webhooks import DeliveryLog, WebhookConfig

_STATS_FIELDS = ("last_triggered_at", "last_status", "last_error", "trigger_count")


class InMemoryWebhookConfigStorage:
    def __init__(self) -> None:
        self._items: Dict[str, WebhookConfig] = {}

    async def save(self, config: WebhookConfig) -> None:
        existing = self._items.get(config.id)
        if existing is not None:
            config = config.model_copy(
                update={name: getattr(existing, name) for name in _STATS_FIELDS}
            )
        self._items[config.id] = config.model_copy(deep=True)

    async def get(self, webhook_id: str) -> WebhookConfig | None:
        config = self._items.get(webhook_id)
        return config.model_copy(deep=True) if config is not None else None

    async def list_by_resource(self, resource_id: str) -> List[WebhookConfig]:
        return [
            config.model_copy(deep=True)
            for config in self._items.values()
            if config.resource_id == resource_id
        ]

    async def delete(self, webhook_id: str) -> None:
        self._items.pop(webhook_id, None)

    async def record_delivery(
        self,
        webhook_id: str,
        *,
        success: bool,
        error: str | None,
        at: datetime,
    ) -> WebhookConfig | None:
        config = self._items.get(webhook_id)
        if config is None:
            return None
        updated = config.model_copy(
            update={
                "last_triggered_at": at,
                "last_status": DeliveryStatus.SUCCESS if success else DeliveryStatus.FAILED,
                "last_error": error,
                "trigger_count": config.trigger_count + 1,
            }
        )
        self._items[webhook_id] = updated
        return updated.model_copy(deep=True)


class InMemoryDeliveryLogStorage:
    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        # deque(maxlen) drops the oldest entry on overflow
        self._entries: Deque[DeliveryLog] = deque(maxlen=capacity)

    async def append(self, entry: DeliveryLog) -> None:
        self._entries.append(entry)

    async def list_all(self) -> List[DeliveryLog]:
        return list(self._entries)

    async def delete_for_webhook(self, webhook_id: str) -> None:
        kept = [entry for entry in self._entries if entry.webhook_id != webhook_id]
        self._entries = deque(kept, maxlen=self.capacity)

    async def clear(self) -> None:
        self._entries.clear()
