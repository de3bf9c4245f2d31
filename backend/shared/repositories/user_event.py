"""Repository for user_events table."""

from __future__ import annotations

from uuid import UUID

import asyncpg

from shared.models.event import Event
from shared.models.idol import Idol
from shared.models.user_event import CollectedEvent, UserEvent

from .event import TicketDeadlineRepository

_COLUMNS = "id, user_id, event_id, status, notes, created_at, updated_at"

_JOINED_SELECT = """
    SELECT
        ue.id AS link_id, ue.user_id, ue.event_id, ue.status, ue.notes,
        ue.created_at AS link_created_at, ue.updated_at AS link_updated_at,
        e.idol_id, e.title, e.event_date, e.venue, e.source_url, e.is_draft,
        e.created_by, e.verified_count,
        e.created_at AS event_created_at, e.updated_at AS event_updated_at,
        i.name AS idol_name, i.official_url, i.tags,
        i.created_at AS idol_created_at, i.updated_at AS idol_updated_at
    FROM user_events ue
    JOIN events e ON e.id = ue.event_id
    JOIN idols i ON i.id = e.idol_id
"""


def _row_to_collected(row: asyncpg.Record) -> CollectedEvent:
    """Split one joined row into link, event and idol models."""
    link = UserEvent(
        id=row["link_id"],
        user_id=row["user_id"],
        event_id=row["event_id"],
        status=row["status"],
        notes=row["notes"],
        created_at=row["link_created_at"],
        updated_at=row["link_updated_at"],
    )
    event = Event(
        id=row["event_id"],
        idol_id=row["idol_id"],
        title=row["title"],
        event_date=row["event_date"],
        venue=row["venue"],
        source_url=row["source_url"],
        is_draft=row["is_draft"],
        created_by=row["created_by"],
        verified_count=row["verified_count"],
        created_at=row["event_created_at"],
        updated_at=row["event_updated_at"],
    )
    idol = Idol(
        id=row["idol_id"],
        name=row["idol_name"],
        official_url=row["official_url"],
        tags=list(row["tags"] or []),
        created_at=row["idol_created_at"],
        updated_at=row["idol_updated_at"],
    )
    return CollectedEvent(link=link, event=event, idol=idol)


class UserEventRepository:
    """Pure SQL operations for user_events."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool
        self.deadlines = TicketDeadlineRepository(pool)

    async def create(
        self,
        user_id: str | UUID,
        event_id: UUID,
        status: str = "not_applied",
        notes: str | None = None,
    ) -> UserEvent:
        """Link a user to an event. Raises UniqueViolationError if already linked."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO user_events (user_id, event_id, status, notes)
                VALUES ($1, $2, $3, $4)
                RETURNING {_COLUMNS}
                """,
                user_id,
                event_id,
                status,
                notes,
            )
            return UserEvent(**dict(row))

    async def list_collected(self, user_id: str | UUID, limit: int = 100) -> list[CollectedEvent]:
        """Return a user's links joined with event, idol and deadlines, newest first."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                _JOINED_SELECT + " WHERE ue.user_id = $1 ORDER BY ue.created_at DESC LIMIT $2",
                user_id,
                limit,
            )
        collected = [_row_to_collected(row) for row in rows]
        by_event = await self.deadlines.list_for_events([c.event.id for c in collected])
        for item in collected:
            item.deadlines = by_event.get(item.event.id, [])
        return collected
