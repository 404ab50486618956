"""Persistence ports consumed by the config store and delivery logger."""
from __future__ import annotations

from datetime import datetime
from typing import List, Protocol

from qr_webhooks.domain.webhooks import DeliveryLog, WebhookConfig


class WebhookConfigStorage(Protocol):
    """Keyed store of webhook configurations.

    ``save`` never overwrites delivery statistics of an existing record;
    those change only through ``record_delivery``.
    """

    async def save(self, config: WebhookConfig) -> None: ...

    async def get(self, webhook_id: str) -> WebhookConfig | None: ...

    async def list_by_resource(self, resource_id: str) -> List[WebhookConfig]: ...

    async def delete(self, webhook_id: str) -> None: ...

    async def record_delivery(
        self,
        webhook_id: str,
        *,
        success: bool,
        error: str | None,
        at: datetime,
    ) -> WebhookConfig | None: ...


class DeliveryLogStorage(Protocol):
    """Capacity-bounded FIFO of delivery logs, oldest first."""

    capacity: int

    async def append(self, entry: DeliveryLog) -> None: ...

    async def list_all(self) -> List[DeliveryLog]: ...

    async def delete_for_webhook(self, webhook_id: str) -> None: ...

    async def clear(self) -> None: ...
