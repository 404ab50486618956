"""Service layer exports."""

from qr_webhooks.services.config_store import ConfigStore
from qr_webhooks.services.delivery_log import DeliveryLogger
from qr_webhooks.services.dispatcher import EventDispatcher
from qr_webhooks.services.executor import DeliveryExecutor, DeliveryResult
from qr_webhooks.services.rate_limiter import RateLimitConfig, RateLimiter
from qr_webhooks.services.signing import SignatureSigner
from qr_webhooks.services.test_harness import TestHarness

__all__ = [
    "ConfigStore",
    "DeliveryLogger",
    "EventDispatcher",
    "DeliveryExecutor",
    "DeliveryResult",
    "RateLimitConfig",
    "RateLimiter",
    "SignatureSigner",
    "TestHarness",
]
