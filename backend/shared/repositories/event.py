"""Repository for events and ticket_deadlines tables."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

import asyncpg

from shared.models.event import Event, TicketDeadline

_EVENT_COLUMNS = (
    "id, idol_id, title, event_date, venue, source_url, is_draft, "
    "created_by, verified_count, created_at, updated_at"
)

_DEADLINE_COLUMNS = (
    "id, event_id, deadline_type, end_at, start_at, description, created_at, updated_at"
)


class EventRepository:
    """Pure SQL operations for events."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def create(
        self,
        idol_id: UUID,
        title: str,
        created_by: str | UUID,
        *,
        event_date: datetime | None = None,
        venue: str | None = None,
        source_url: str | None = None,
        is_draft: bool = True,
    ) -> Event:
        """Insert an event row."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO events (idol_id, title, event_date, venue, source_url, is_draft, created_by)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING {_EVENT_COLUMNS}
                """,
                idol_id,
                title,
                event_date,
                venue,
                source_url,
                is_draft,
                created_by,
            )
            return Event(**dict(row))


class TicketDeadlineRepository:
    """Pure SQL operations for ticket_deadlines."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def create(
        self,
        event_id: UUID,
        deadline_type: str,
        end_at: datetime,
        *,
        start_at: datetime | None = None,
        description: str | None = None,
    ) -> TicketDeadline:
        """Insert a deadline for an event. Raises CheckViolationError on unknown types."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO ticket_deadlines (event_id, deadline_type, end_at, start_at, description)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING {_DEADLINE_COLUMNS}
                """,
                event_id,
                deadline_type,
                end_at,
                start_at,
                description,
            )
            return TicketDeadline(**dict(row))

    async def list_for_events(self, event_ids: list[UUID]) -> dict[UUID, list[TicketDeadline]]:
        """Group deadlines by event id, ordered by end_at."""
        if not event_ids:
            return {}
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_DEADLINE_COLUMNS} FROM ticket_deadlines "
                "WHERE event_id = ANY($1::uuid[]) ORDER BY end_at",
                event_ids,
            )
        grouped: dict[UUID, list[TicketDeadline]] = {}
        for row in rows:
            deadline = TicketDeadline(**dict(row))
            grouped.setdefault(deadline.event_id, []).append(deadline)
        return grouped
