"""Bounded audit trail of webhook deliveries."""
from __future__ import annotations

from typing import List

import structlog

from qr_webhooks.domain.webhooks import DeliveryLog
from qr_webhooks.repositories.ports import DeliveryLogStorage

logger = structlog.get_logger(__name__)


class DeliveryLogger:
    """Appends delivery records to a single global FIFO and queries it.

    Eviction is owned by the storage: once ``capacity`` entries are held,
    each append drops the oldest one.
    """

    def __init__(self, storage: DeliveryLogStorage):
        self._storage = storage

    @property
    def capacity(self) -> int:
        return self._storage.capacity

    async def append(self, entry: DeliveryLog) -> None:
        await self._storage.append(entry)

    async def for_webhook(self, webhook_id: str, limit: int = 20) -> List[DeliveryLog]:
        entries = [e for e in await self._storage.list_all() if e.webhook_id == webhook_id]
        return _newest_first(entries, limit)

    async def for_resource(self, resource_id: str, limit: int = 50) -> List[DeliveryLog]:
        entries = [e for e in await self._storage.list_all() if e.resource_id == resource_id]
        return _newest_first(entries, limit)

    async def clear_for_webhook(self, webhook_id: str) -> None:
        await self._storage.delete_for_webhook(webhook_id)
        logger.info("webhook_logs cleared", webhook_id=webhook_id)

    async def clear_all(self) -> None:
        await self._storage.clear()
        logger.info("webhook_logs cleared", webhook_id=None)


def _newest_first(entries: List[DeliveryLog], limit: int) -> List[DeliveryLog]:
    if limit <= 0:
        return []
    return list(reversed(entries[-limit:]))
