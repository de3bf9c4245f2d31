"""AI collection API routes"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.core.dependencies import (
    get_collect_pipeline,
    get_collection_service,
    get_current_user_id,
    get_optional_user_id,
)
from api.schemas import CollectRequest
from api.services import CollectionService, CollectPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai-collect"])


# ============================================
# Response Models
# ============================================


class IdolResponse(BaseModel):
    id: UUID
    name: str
    official_url: str | None = None
    tags: list[str] = []


class DeadlineResponse(BaseModel):
    id: UUID
    event_id: UUID
    deadline_type: str
    start_at: datetime | None = None
    end_at: datetime
    description: str | None = None


class EventResponse(BaseModel):
    id: UUID
    idol_id: UUID
    title: str
    event_date: datetime | None = None
    venue: str | None = None
    source_url: str | None = None
    is_draft: bool
    verified_count: int = 0
    idol: IdolResponse
    ticket_deadlines: list[DeadlineResponse] = []


class UserEventResponse(BaseModel):
    id: UUID
    user_id: UUID
    event_id: UUID
    status: str
    notes: str | None = None
    created_at: datetime | None = None
    event: EventResponse


class HistoryResponse(BaseModel):
    success: bool = True
    data: list[UserEventResponse]


# ============================================
# Endpoints
# ============================================


@router.post("/extract-or-save")
async def extract_or_save(
    body: CollectRequest,
    user_id: str | None = Depends(get_optional_user_id),
    pipeline: CollectPipeline = Depends(get_collect_pipeline),
) -> JSONResponse:
    """Extract event drafts from a page (mode=extract) or save confirmed drafts (mode=save)."""
    result = await pipeline.run(body, user_id)
    if not result.success:
        logger.info(f"AI collect {body.mode} failed: {result.kind} -> {result.status_code}")
    return JSONResponse(content=result.to_payload(), status_code=result.status_code)


@router.get("/collection-history", response_model=HistoryResponse)
async def get_collection_history(
    user_id: str = Depends(get_current_user_id),
    service: CollectionService = Depends(get_collection_service),
) -> HistoryResponse:
    """Get the authenticated user's tracked events with idol and deadlines."""
    try:
        history = await service.get_history(user_id)
        return HistoryResponse(data=[UserEventResponse(**item) for item in history])
    except Exception as e:
        logger.exception(f"Failed to get collection history: {e}")
        raise HTTPException(status_code=500, detail="サーバーエラーが発生しました") from None
