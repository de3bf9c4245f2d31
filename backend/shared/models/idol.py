"""Data model for idols table."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass
class Idol:
    """Artist, group or franchise that events belong to."""

    id: UUID
    name: str
    official_url: str | None = None
    tags: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
