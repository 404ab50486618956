"""Opaque identifiers: ``<prefix>-<epoch ms>-<random base36>``."""
from __future__ import annotations

import secrets
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_webhook_id() -> str:
    return f"webhook-{int(time.time() * 1000)}-{_random_suffix(6)}"


def new_log_id() -> str:
    return f"log-{int(time.time() * 1000)}-{_random_suffix(4)}"
