"""Shared data models for the collection backend."""

from .event import DEADLINE_TYPES, Event, TicketDeadline
from .idol import Idol
from .user_event import CollectedEvent, UserEvent

__all__ = [
    "DEADLINE_TYPES",
    "CollectedEvent",
    "Event",
    "Idol",
    "TicketDeadline",
    "UserEvent",
]
