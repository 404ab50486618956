"""Enumerations shared by domain models."""
from __future__ import annotations

from enum import Enum


class WebhookEvent(str, Enum):
    SCAN = "scan"
    EXPIRE = "expire"
    LIMIT_REACHED = "limit_reached"
    PASSWORD_ATTEMPT = "password_attempt"
    LOCATION_CHECK = "location_check"


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"


class DeliveryStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class SignatureMode(str, Enum):
    """``hmac`` is the default; ``simple`` is a degraded, non-cryptographic mode."""

    HMAC = "hmac"
    SIMPLE = "simple"
