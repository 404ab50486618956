"""Payload signatures for outbound webhooks."""
from __future__ import annotations

import hmac
from hashlib import sha256

from qr_webhooks.domain.enums import SignatureMode

HMAC_PREFIX = "sha256="
SIMPLE_PREFIX = "simple="


def _as_bytes(payload: str | bytes) -> bytes:
    return payload if isinstance(payload, bytes) else payload.encode("utf-8")


def _as_text(payload: str | bytes) -> str:
    return payload.decode("utf-8") if isinstance(payload, bytes) else payload


def hmac_signature(payload: str | bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), _as_bytes(payload), sha256).hexdigest()
    return f"{HMAC_PREFIX}{digest}"


def simple_signature(payload: str | bytes, secret: str) -> str:
    """Rolling 32-bit string hash of ``payload + secret``.

    NOT cryptographically secure. Kept only for receivers that were built
    against the legacy ``simple=`` header.
    """
    value = 0
    data = (_as_text(payload) + secret).encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return f"{SIMPLE_PREFIX}{abs(value):x}"


class SignatureSigner:
    """Signs serialized payloads with a shared secret."""

    def __init__(self, mode: SignatureMode = SignatureMode.HMAC):
        self.mode = SignatureMode(mode)

    @property
    def is_secure(self) -> bool:
        return self.mode is SignatureMode.HMAC

    def sign(self, payload: str | bytes, secret: str) -> str:
        if self.mode is SignatureMode.SIMPLE:
            return simple_signature(payload, secret)
        return hmac_signature(payload, secret)

    @staticmethod
    def verify(payload: str | bytes, secret: str, signature: str) -> bool:
        if signature.startswith(HMAC_PREFIX):
            expected = hmac_signature(payload, secret)
        elif signature.startswith(SIMPLE_PREFIX):
            expected = simple_signature(payload, secret)
        else:
            return False
        return hmac.compare_digest(expected, signature)
