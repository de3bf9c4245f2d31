"""Repository layer for the collection backend."""

from .event import EventRepository, TicketDeadlineRepository
from .idol import IdolRepository
from .user_event import UserEventRepository

__all__ = [
    "EventRepository",
    "IdolRepository",
    "TicketDeadlineRepository",
    "UserEventRepository",
]
