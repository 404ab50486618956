"""PostgreSQL storage for webhook configurations and delivery logs."""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List

from asyncpg import Pool, Record  # type: ignore[import-untyped]

from qr_webhooks.domain.enums import DeliveryStatus
from qr_webhooks.domain.webhooks import DeliveryLog, WebhookConfig
from qr_webhooks.repositories.base import BaseRepository


def _dump_json(value: Any) -> str | None:
    return json.dumps(value) if value is not None else None


def _load_json(payload: dict[str, Any], *keys: str) -> dict[str, Any]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str):
            payload[key] = json.loads(value)
    return payload


class WebhookConfigRepository(BaseRepository):
    def __init__(self, pool: Pool):
        super().__init__(pool)

    @staticmethod
    def _to_model(record: Record) -> WebhookConfig:
        payload = dict(record)
        payload.pop("seq", None)
        return WebhookConfig.model_validate(_load_json(payload, "headers", "payload"))

    async def save(self, config: WebhookConfig) -> None:
        # Stats columns are left out of the conflict update so a stale read
        # never rolls back a concurrent record_delivery().
        await self._execute(
            """
            INSERT INTO webhook_configs (
                id,
                resource_id,
                name,
                url,
                method,
                headers,
                payload,
                events,
                enabled,
                secret,
                retry_count,
                retry_delay_ms,
                created_at,
                updated_at
            )
            VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7::jsonb, $8::text[], $9, $10, $11, $12, $13, $14)
            ON CONFLICT (id) DO UPDATE
            SET name = EXCLUDED.name,
                url = EXCLUDED.url,
                method = EXCLUDED.method,
                headers = EXCLUDED.headers,
                payload = EXCLUDED.payload,
                events = EXCLUDED.events,
                enabled = EXCLUDED.enabled,
                secret = EXCLUDED.secret,
                retry_count = EXCLUDED.retry_count,
                retry_delay_ms = EXCLUDED.retry_delay_ms,
                updated_at = EXCLUDED.updated_at
            """,
            config.id,
            config.resource_id,
            config.name,
            config.url,
            config.method.value,
            _dump_json(config.headers),
            _dump_json(config.payload),
            [event.value for event in config.events],
            config.enabled,
            config.secret,
            config.retry_count,
            config.retry_delay_ms,
            config.created_at,
            config.updated_at,
        )

    async def get(self, webhook_id: str) -> WebhookConfig | None:
        record = await self._fetchrow("SELECT * FROM webhook_configs WHERE id = $1", webhook_id)
        return self._to_model(record) if record is not None else None

    async def list_by_resource(self, resource_id: str) -> List[WebhookConfig]:
        records = await self._fetch(
            """
            SELECT *
            FROM webhook_configs
            WHERE resource_id = $1
            ORDER BY seq ASC
            """,
            resource_id,
        )
        return [self._to_model(r) for r in records]

    async def delete(self, webhook_id: str) -> None:
        await self._execute("DELETE FROM webhook_configs WHERE id = $1", webhook_id)

    async def record_delivery(
        self,
        webhook_id: str,
        *,
        success: bool,
        error: str | None,
        at: datetime,
    ) -> WebhookConfig | None:
        status = DeliveryStatus.SUCCESS if success else DeliveryStatus.FAILED
        record = await self._fetchrow(
            """
            UPDATE webhook_configs
            SET last_triggered_at = $2,
                last_status = $3,
                last_error = $4,
                trigger_count = trigger_count + 1
            WHERE id = $1
            RETURNING *
            """,
            webhook_id,
            at,
            status.value,
            error,
        )
        return self._to_model(record) if record is not None else None


class DeliveryLogRepository(BaseRepository):
    def __init__(self, pool: Pool, *, capacity: int = 100):
        super().__init__(pool)
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity

    @staticmethod
    def _to_model(record: Record) -> DeliveryLog:
        payload = dict(record)
        payload.pop("seq", None)
        payload["timestamp"] = payload.pop("logged_at")
        return DeliveryLog.model_validate(_load_json(payload, "request_payload"))

    async def append(self, entry: DeliveryLog) -> None:
        async with self._connection() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    INSERT INTO webhook_delivery_logs (
                        id,
                        webhook_id,
                        resource_id,
                        event,
                        logged_at,
                        request_url,
                        request_method,
                        request_payload,
                        response_status,
                        response_body,
                        success,
                        error,
                        duration_ms
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb, $9, $10, $11, $12, $13)
                    """,
                    entry.id,
                    entry.webhook_id,
                    entry.resource_id,
                    entry.event,
                    entry.timestamp,
                    entry.request_url,
                    entry.request_method.value,
                    _dump_json(entry.request_payload),
                    entry.response_status,
                    entry.response_body,
                    entry.success,
                    entry.error,
                    entry.duration_ms,
                )
                # evict everything older than the newest `capacity` rows
                await conn.execute(
                    """
                    DELETE FROM webhook_delivery_logs
                    WHERE seq <= (
                        SELECT seq
                        FROM webhook_delivery_logs
                        ORDER BY seq DESC
                        OFFSET $1
                        LIMIT 1
                    )
                    """,
                    self.capacity,
                )

    async def list_all(self) -> List[DeliveryLog]:
        records = await self._fetch("SELECT * FROM webhook_delivery_logs ORDER BY seq ASC")
        return [self._to_model(r) for r in records]

    async def delete_for_webhook(self, webhook_id: str) -> None:
        await self._execute("DELETE FROM webhook_delivery_logs WHERE webhook_id = $1", webhook_id)

    async def clear(self) -> None:
        await self._execute("DELETE FROM webhook_delivery_logs")
