"""Data models for events and ticket_deadlines tables."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

DEADLINE_TYPES = ("lottery_start", "lottery_end", "payment")


@dataclass
class Event:
    """Ticketed occurrence owned by one idol."""

    id: UUID
    idol_id: UUID
    title: str
    event_date: datetime | None
    venue: str | None
    source_url: str | None
    is_draft: bool
    created_by: UUID
    verified_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TicketDeadline:
    """Lottery or payment window attached to an event."""

    id: UUID
    event_id: UUID
    deadline_type: str  # 'lottery_start' | 'lottery_end' | 'payment'
    end_at: datetime
    start_at: datetime | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
