"""Built-in webhook presets used to pre-fill new configurations."""
from __future__ import annotations

from typing import Any

from qr_webhooks.core.exceptions import TemplateNotFoundError
from qr_webhooks.domain.enums import HttpMethod, WebhookEvent
from qr_webhooks.domain.webhooks import WebhookTemplate

_JSON_HEADERS = {"Content-Type": "application/json"}

WEBHOOK_TEMPLATES: tuple[WebhookTemplate, ...] = (
    WebhookTemplate(
        name="Slack Notification",
        description="Send a message to Slack when QR is scanned",
        method=HttpMethod.POST,
        headers=dict(_JSON_HEADERS),
        payload={
            "text": "QR Code was scanned!",
            "blocks": [
                {
                    "type": "section",
                    "text": {"type": "mrkdwn", "text": "*QR Code Scanned* :qr_code:"},
                },
            ],
        },
        events=[WebhookEvent.SCAN],
    ),
    WebhookTemplate(
        name="Discord Notification",
        description="Send a message to Discord when QR is scanned",
        method=HttpMethod.POST,
        headers=dict(_JSON_HEADERS),
        payload={
            "content": "QR Code was scanned!",
            "embeds": [{"title": "QR Code Scan Event", "color": 5814783}],
        },
        events=[WebhookEvent.SCAN],
    ),
    WebhookTemplate(
        name="Google Analytics",
        description="Track scans in Google Analytics",
        method=HttpMethod.POST,
        payload={
            "client_id": "{{client_id}}",
            "events": [{"name": "qr_scan", "params": {"qr_id": "{{qr_id}}"}}],
        },
        events=[WebhookEvent.SCAN],
    ),
    WebhookTemplate(
        name="Zapier Webhook",
        description="Trigger a Zapier workflow",
        method=HttpMethod.POST,
        headers=dict(_JSON_HEADERS),
        payload={},
        events=[WebhookEvent.SCAN, WebhookEvent.EXPIRE],
    ),
    WebhookTemplate(
        name="Custom API",
        description="Send data to your own API endpoint",
        method=HttpMethod.POST,
        headers={
            "Content-Type": "application/json",
            "Authorization": "Bearer {{your_api_key}}",
        },
        payload={},
        events=[WebhookEvent.SCAN, WebhookEvent.EXPIRE, WebhookEvent.LIMIT_REACHED],
    ),
)


def list_templates() -> list[WebhookTemplate]:
    return list(WEBHOOK_TEMPLATES)


def apply_template(name: str) -> dict[str, Any]:
    """Return create-request fields pre-filled from the named template.

    The caller still has to supply ``url``; ``name`` defaults to the template name.
    """
    for template in WEBHOOK_TEMPLATES:
        if template.name == name:
            prefill = template.model_dump(mode="json", exclude={"description"})
            if not prefill.get("headers"):
                prefill.pop("headers", None)
            return prefill
    raise TemplateNotFoundError(f"Unknown webhook template: {name}")
