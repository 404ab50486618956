from __future__ import annotations

import pytest

from qr_webhooks.core.exceptions import TemplateNotFoundError
from qr_webhooks.domain.templates import apply_template, list_templates


def test_builtin_templates():
    names = [t.name for t in list_templates()]
    assert names == [
        "Slack Notification",
        "Discord Notification",
        "Google Analytics",
        "Zapier Webhook",
        "Custom API",
    ]


def test_prefill_contains_template_fields():
    prefill = apply_template("Custom API")

    assert prefill["name"] == "Custom API"
    assert prefill["method"] == "POST"
    assert prefill["headers"]["Authorization"] == "Bearer {{your_api_key}}"
    assert prefill["events"] == ["scan", "expire", "limit_reached"]
    assert "description" not in prefill
    assert "url" not in prefill


def test_prefill_omits_empty_headers():
    assert "headers" not in apply_template("Google Analytics")


@pytest.mark.asyncio
async def test_prefill_plus_url_creates_webhook(config_store):
    body = {**apply_template("Slack Notification"), "url": "https://hooks.slack.test/x"}

    config = await config_store.create("qr-1", body)

    assert config.payload["text"] == "QR Code was scanned!"


def test_unknown_template():
    with pytest.raises(TemplateNotFoundError):
        apply_template("Carrier Pigeon")
