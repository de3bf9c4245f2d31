"""Apply the SQL files in ``versions/`` once each, recording them in a tracking table."""

from __future__ import annotations

import logging
from pathlib import Path

import asyncpg

logger = logging.getLogger(__name__)

VERSIONS_DIR = Path(__file__).resolve().parent / "versions"

# Arbitrary key shared by every API instance so only one migrates at a time
_ADVISORY_LOCK_KEY = 7_301_204


class MigrationRunner:
    """Execute and track schema migrations.

    Files are named ``NNN_description.sql``; the stem is the version.
    Applied versions live in ``schema_migrations``.
    """

    TRACKING_TABLE = "schema_migrations"

    def __init__(self, pool: asyncpg.Pool, versions_dir: Path | None = None) -> None:
        self.pool = pool
        self.versions_dir = versions_dir or VERSIONS_DIR

    def discover(self) -> list[Path]:
        """Return migration files in version order."""
        return sorted(self.versions_dir.glob("*.sql"))

    async def run_pending(self) -> list[str]:
        """Apply every migration not yet recorded. Returns the applied versions."""
        files = self.discover()
        if not files:
            logger.info(f"No migration files found in {self.versions_dir}")
            return []

        applied_now: list[str] = []
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.execute("SELECT pg_advisory_xact_lock($1)", _ADVISORY_LOCK_KEY)
                await conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {self.TRACKING_TABLE} (
                        version    TEXT PRIMARY KEY,
                        applied_at TIMESTAMPTZ DEFAULT NOW()
                    )
                    """
                )
                rows = await conn.fetch(f"SELECT version FROM {self.TRACKING_TABLE}")  # noqa: S608
                done = {row["version"] for row in rows}

                for path in files:
                    if path.stem in done:
                        continue
                    logger.info(f"Applying migration: {path.stem}")
                    await conn.execute(path.read_text(encoding="utf-8"))
                    await conn.execute(
                        f"INSERT INTO {self.TRACKING_TABLE} (version) VALUES ($1)",  # noqa: S608
                        path.stem,
                    )
                    applied_now.append(path.stem)

        if applied_now:
            logger.info(f"Applied {len(applied_now)} migration(s): {', '.join(applied_now)}")
        else:
            logger.info("Database schema is up to date")
        return applied_now
