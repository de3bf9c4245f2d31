"""Collection service: persists user-confirmed event drafts.

Resolves the idol, then writes each event with its deadlines and the
user's tracking link. Records are written one at a time and a failure
only skips the record it happened in.
"""

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

import asyncpg
from pydantic import ValidationError as PydanticValidationError

from api.schemas import DeadlineDraft, ExtractedEventDraft
from shared.models import Idol
from shared.repositories import (
    EventRepository,
    IdolRepository,
    TicketDeadlineRepository,
    UserEventRepository,
)

from .errors import StorageError, ValidationError

logger = logging.getLogger(__name__)

LINK_NOTES = "AI収集から登録されたイベントです。"


@dataclass
class SaveResult:
    saved_count: int
    message: str


def parse_timestamp(value: str | None, tz: ZoneInfo) -> datetime | None:
    """Parse an ISO-8601 date or datetime; naive values are read in ``tz``.

    Raises ValueError for anything that is not ISO-8601.
    """
    if value is None or not value.strip():
        return None
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


class CollectionService:
    """API-facing save and history operations for collected events."""

    def __init__(
        self,
        pool: asyncpg.Pool | None,
        *,
        timezone: str = "Asia/Tokyo",
        idols: IdolRepository | None = None,
        events: EventRepository | None = None,
        deadlines: TicketDeadlineRepository | None = None,
        user_events: UserEventRepository | None = None,
    ) -> None:
        self.pool = pool
        self.tz = ZoneInfo(timezone)
        self.idols = idols or IdolRepository(pool)
        self.events = events or EventRepository(pool)
        self.deadlines = deadlines or TicketDeadlineRepository(pool)
        self.user_events = user_events or UserEventRepository(pool)

    # ==================== Save ====================

    async def save(
        self,
        idol_name: str | None,
        events: Sequence[Any] | None,
        user_id: str,
    ) -> SaveResult:
        """Persist confirmed drafts for ``user_id``.

        Raises ValidationError on empty input and StorageError when the
        idol cannot be resolved. Per-record failures are logged and skipped.
        """
        name = (idol_name or "").strip()
        if not name:
            raise ValidationError("idol_name is required")
        if not events:
            raise ValidationError("events must not be empty")

        idol = await self._resolve_idol(name)

        saved_count = 0
        for index, raw in enumerate(events):
            try:
                if await self._save_event(idol, raw, user_id, index):
                    saved_count += 1
            except Exception as e:
                logger.exception(f"Unexpected error saving event #{index} for {name!r}: {e}")

        logger.info(f"User {user_id} saved {saved_count}/{len(events)} event(s) for {name!r}")
        return SaveResult(
            saved_count=saved_count,
            message=f"{saved_count}件のイベントを保存しました",
        )

    async def _resolve_idol(self, name: str) -> Idol:
        """Reuse the idol with exactly this name, creating it if absent."""
        try:
            idol = await self.idols.find_by_name(name)
            if idol is not None:
                return idol
            idol = await self.idols.create(name, tags=[])
            logger.info(f"Created idol {name!r} ({idol.id})")
            return idol
        except Exception as e:
            logger.exception(f"Idol resolution failed for {name!r}: {e}")
            raise StorageError(f"Failed to resolve idol {name!r}") from e

    @staticmethod
    def _split_draft(raw: Any) -> tuple[ExtractedEventDraft, list[Any]]:
        """Validate the event fields alone; deadlines are validated one by one later."""
        if isinstance(raw, ExtractedEventDraft):
            return raw, list(raw.deadlines)
        if not isinstance(raw, dict):
            raise ValueError(f"Event draft must be an object, got {type(raw).__name__}")
        raw_deadlines = raw.get("deadlines")
        if raw_deadlines is not None and not isinstance(raw_deadlines, list):
            logger.warning(f"Ignoring non-list deadlines for {raw.get('title')!r}")
            raw_deadlines = None
        draft = ExtractedEventDraft.model_validate({**raw, "deadlines": []})
        return draft, raw_deadlines or []

    async def _save_event(
        self,
        idol: Idol,
        raw: Any,
        user_id: str,
        index: int,
    ) -> bool:
        """Write one event with its deadlines and link. True once the event row exists."""
        try:
            draft, raw_deadlines = self._split_draft(raw)
            event_date = parse_timestamp(draft.event_date, self.tz)
        except (PydanticValidationError, ValueError) as e:
            logger.error(f"Skipping invalid event draft #{index}: {e}")
            return False

        try:
            event = await self.events.create(
                idol.id,
                draft.title,
                user_id,
                event_date=event_date,
                venue=draft.venue,
                source_url=draft.source_url or None,
                is_draft=False,
            )
        except Exception as e:
            logger.error(f"Event insert failed for {draft.title!r}: {type(e).__name__}: {e}")
            return False

        for position, item in enumerate(raw_deadlines):
            try:
                deadline = DeadlineDraft.model_validate(item)
                await self.deadlines.create(
                    event.id,
                    deadline.type,
                    parse_timestamp(deadline.end_at, self.tz),
                    start_at=parse_timestamp(deadline.start_at, self.tz),
                    description=deadline.description,
                )
            except Exception as e:
                logger.error(
                    f"Deadline #{position} skipped for event {event.id}: {type(e).__name__}: {e}"
                )

        try:
            await self.user_events.create(user_id, event.id, status="not_applied", notes=LINK_NOTES)
        except Exception as e:
            logger.error(f"User event insert failed for event {event.id}: {type(e).__name__}: {e}")

        return True

    # ==================== History ====================

    async def get_history(self, user_id: str | UUID) -> list[dict]:
        """Return the user's tracked events with idol and deadlines (API format)."""
        collected = await self.user_events.list_collected(user_id)
        return [
            {
                **asdict(item.link),
                "event": {
                    **asdict(item.event),
                    "idol": asdict(item.idol),
                    "ticket_deadlines": [asdict(d) for d in item.deadlines],
                },
            }
            for item in collected
        ]
