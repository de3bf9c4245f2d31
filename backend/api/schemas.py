"""Pydantic models shared by the collection services and routers"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from shared.models import DEADLINE_TYPES


class DeadlineDraft(BaseModel):
    type: str
    end_at: str
    start_at: str | None = None
    description: str | None = None

    @field_validator("type")
    @classmethod
    def known_type(cls, v: str) -> str:
        if v not in DEADLINE_TYPES:
            raise ValueError(f"type must be one of {', '.join(DEADLINE_TYPES)}")
        return v

    @field_validator("end_at")
    @classmethod
    def end_at_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("end_at must not be empty")
        return v.strip()


class ExtractedEventDraft(BaseModel):
    """Event as produced by extraction, before the user saves it."""

    title: str
    event_date: str | None = None
    venue: str | None = None
    deadlines: list[DeadlineDraft] = Field(default_factory=list)
    source_url: str = ""

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be empty")
        return v.strip()

    @field_validator("deadlines", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class CollectRequest(BaseModel):
    """Body of POST /api/extract-or-save"""

    mode: str = "extract"
    keyword: str | None = None
    url: str | None = None
    idol_name: str | None = None
    # Validated one by one when saving so a malformed draft only skips itself
    events: list[Any] | None = None
