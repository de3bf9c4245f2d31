"""Repository for idols table."""

from __future__ import annotations

import asyncpg

from shared.models.idol import Idol

_COLUMNS = "id, name, official_url, tags, created_at, updated_at"


def _row_to_idol(row: asyncpg.Record) -> Idol:
    d = dict(row)
    d["tags"] = list(d.get("tags") or [])
    return Idol(**d)


class IdolRepository:
    """Pure SQL operations for idols."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def find_by_name(self, name: str) -> Idol | None:
        """Exact, case-sensitive lookup by name."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM idols WHERE name = $1",
                name,
            )
            if not row:
                return None
            return _row_to_idol(row)

    async def create(self, name: str, tags: list[str] | None = None) -> Idol:
        """Insert an idol, returning the existing row if the name is already taken.

        The no-op update on conflict makes RETURNING yield the row that won
        a concurrent insert instead of nothing.
        """
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO idols (name, tags)
                VALUES ($1, $2::text[])
                ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name
                RETURNING {_COLUMNS}
                """,
                name,
                tags or [],
            )
            return _row_to_idol(row)
