"""Checksum-tracked SQL migrations applied on startup."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Iterable

import asyncpg  # type: ignore[import-untyped]
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_MIGRATION_PATHS = (
    Path(__file__).resolve().parent.parent.parent.parent / "migrations",  # source checkout
    Path("/app/migrations"),  # container
)


def find_migrations_dir(possible_paths: Iterable[Path]) -> Path | None:
    for path in possible_paths:
        if path.exists():
            return path
    return None


def load_migrations(directory: Path) -> dict[str, Path]:
    migrations: dict[str, Path] = {}
    for path in sorted(directory.glob("*.sql")):
        version = path.stem
        if version in migrations:
            raise ValueError(f"Duplicate migration version detected: {version}")
        migrations[version] = path
    return migrations


async def apply_migrations(
    pool: asyncpg.Pool,
    possible_paths: Iterable[Path] = DEFAULT_MIGRATION_PATHS,
) -> int:
    """Apply pending migrations. Returns the number applied."""
    paths = list(possible_paths)
    migrations_dir = find_migrations_dir(paths)
    if migrations_dir is None:
        logger.warning("migrations directory not found, skipping", tried=[str(p) for p in paths])
        return 0

    migrations = load_migrations(migrations_dir)
    if not migrations:
        logger.warning("no migrations found, skipping", directory=str(migrations_dir))
        return 0

    async with pool.acquire() as conn:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version text PRIMARY KEY,
                checksum text NOT NULL,
                applied_at timestamptz NOT NULL DEFAULT now()
            );
            """
        )
        rows = await conn.fetch("SELECT version, checksum FROM schema_migrations")
        applied = {row["version"]: row["checksum"] for row in rows}

        pending = []
        for version, path in migrations.items():
            sql = path.read_text(encoding="utf-8")
            checksum = hashlib.sha256(sql.encode("utf-8")).hexdigest()
            if version in applied:
                if applied[version] != checksum:
                    raise RuntimeError(
                        f"Checksum mismatch for {version}: "
                        f"{applied[version]} (db) != {checksum} (file)"
                    )
                continue
            pending.append((version, sql, checksum))

        for version, sql, checksum in pending:
            logger.info("applying migration", version=version)
            async with conn.transaction():
                await conn.execute(sql)
                await conn.execute(
                    "INSERT INTO schema_migrations (version, checksum) VALUES ($1, $2)",
                    version,
                    checksum,
                )

    logger.info("migrations up to date", applied=len(pending))
    return len(pending)
