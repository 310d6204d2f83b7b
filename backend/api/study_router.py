"""API routes for fetching due/new cards and submitting single reviews."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    CardResponse,
    DueCardResponse,
    ProgressResponse,
    ReviewRequest,
    ReviewResponse,
)
from backend.database import get_session
from backend.srs.modes import StudyMode
from backend.srs.review import submit_review
from backend.srs.store import ProgressStore, StudyFilters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/study", tags=["study"])


def get_filters(
    textbook_part: int | None = None,
    lesson_number: int | None = None,
    folder_id: int | None = None,
) -> StudyFilters:
    return StudyFilters(
        textbook_part=textbook_part,
        lesson_number=lesson_number,
        folder_id=folder_id,
    )


@router.get("/due", response_model=list[DueCardResponse])
async def due_cards(
    user_id: int,
    mode: StudyMode,
    limit: int = Query(default=20, ge=1),
    filters: StudyFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_session),
) -> list[DueCardResponse]:
    """Cards due for review in a mode, most overdue first."""
    store = ProgressStore(db)
    due = await store.get_due_progress(user_id, mode, filters, limit=limit)
    return [
        DueCardResponse(
            card_progress=ProgressResponse.model_validate(d.progress),
            card=CardResponse.model_validate(d.card),
        )
        for d in due
    ]


@router.get("/new", response_model=list[CardResponse])
async def new_cards(
    user_id: int,
    mode: StudyMode,
    limit: int = Query(default=10, ge=1),
    filters: StudyFilters = Depends(get_filters),
    db: AsyncSession = Depends(get_session),
) -> list[CardResponse]:
    """Cards never reviewed in a mode, oldest first."""
    store = ProgressStore(db)
    cards = await store.get_unstudied_cards(user_id, mode, filters, limit=limit)
    return [CardResponse.model_validate(card) for card in cards]


@router.post("/review", response_model=ReviewResponse)
async def review(
    user_id: int,
    request: ReviewRequest,
    db: AsyncSession = Depends(get_session),
) -> ReviewResponse:
    """Schedule one review of a card in a mode."""
    store = ProgressStore(db)
    card = await store.get_card(request.card_id)
    if card is None or card.user_id != user_id:
        raise HTTPException(status_code=404, detail="Card not found")

    outcome = await submit_review(
        store,
        user_id,
        request.card_id,
        request.mode,
        request.quality,
        request.response_time_ms,
    )
    return ReviewResponse(
        card_progress=ProgressResponse.model_validate(outcome.progress),
        was_correct=outcome.was_correct,
        next_review=outcome.result.next_review_date,
    )
