"""Data model for user_events table."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from shared.models.event import Event, TicketDeadline
from shared.models.idol import Idol


@dataclass
class UserEvent:
    """A user's tracking link to an event."""

    id: UUID
    user_id: UUID
    event_id: UUID
    status: str = "not_applied"  # applied | pending | won | lost | paid | confirmed
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class CollectedEvent:
    """A user's link joined with its event, idol and deadlines."""

    link: UserEvent
    event: Event
    idol: Idol
    deadlines: list[TicketDeadline] = field(default_factory=list)
