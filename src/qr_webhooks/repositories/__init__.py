"""Repository package exports."""

from qr_webhooks.repositories.memory import (
    InMemoryDeliveryLogStorage,
    InMemoryWebhookConfigStorage,
)
from qr_webhooks.repositories.ports import DeliveryLogStorage, WebhookConfigStorage
from qr_webhooks.repositories.webhooks import DeliveryLogRepository, WebhookConfigRepository

__all__ = [
    "WebhookConfigStorage",
    "DeliveryLogStorage",
    "InMemoryWebhookConfigStorage",
    "InMemoryDeliveryLogStorage",
    "WebhookConfigRepository",
    "DeliveryLogRepository",
]
