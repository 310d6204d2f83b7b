"""API routes for study sessions."""

import logging
import random
import time
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import (
    AnswerRequest,
    AnswerResponse,
    NextCardResponse,
    SessionStartRequest,
    SessionStartResponse,
    SessionStatsResponse,
)
from backend.config import settings
from backend.database import get_session
from backend.srs.queue import QueueConfig
from backend.srs.session import ReviewSession, SessionPolicy, finish_session, start_session
from backend.srs.store import ProgressStore, StudyFilters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])

# In-memory session store (for MVP; move to Redis for production)
# Maps session id to the session and the monotonic time it was last used.
_active_sessions: dict[str, tuple[ReviewSession, float]] = {}


def _prune_expired(now: float) -> None:
    expired = [
        sid
        for sid, (_, last_used) in _active_sessions.items()
        if now - last_used > settings.session_ttl_seconds
    ]
    for sid in expired:
        logger.info("Dropping expired session %s", sid)
        del _active_sessions[sid]


def _get_active(session_id: str) -> ReviewSession:
    now = time.monotonic()
    _prune_expired(now)
    entry = _active_sessions.get(session_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Session not found")
    _active_sessions[session_id] = (entry[0], now)
    return entry[0]


@router.post("/start", response_model=SessionStartResponse)
async def session_start(
    request: SessionStartRequest,
    db: AsyncSession = Depends(get_session),
) -> SessionStartResponse:
    """Start a new study session."""
    _prune_expired(time.monotonic())
    store = ProgressStore(db)

    config = None
    if request.max_reviews is not None or request.max_new is not None:
        defaults = QueueConfig()
        config = QueueConfig(
            max_reviews=request.max_reviews if request.max_reviews is not None else defaults.max_reviews,
            max_new=request.max_new if request.max_new is not None else defaults.max_new,
        )

    review_session = await start_session(
        store,
        request.user_id,
        request.mode,
        policy=request.policy,
        filters=StudyFilters(
            textbook_part=request.textbook_part,
            lesson_number=request.lesson_number,
            folder_id=request.folder_id,
        ),
        config=config,
        rng=random.Random(request.seed) if request.seed is not None else None,
        sync_practice_reviews=request.sync_practice_reviews,
    )

    if review_session.total == 0:
        await finish_session(store, review_session)
        raise HTTPException(status_code=404, detail="No cards available for study")

    session_id = str(uuid.uuid4())
    _active_sessions[session_id] = (review_session, time.monotonic())

    queue = review_session.queue
    return SessionStartResponse(
        session_id=session_id,
        user_id=request.user_id,
        mode=request.mode,
        policy=request.policy,
        total_cards=review_session.total,
        due_cards=len(queue.due_cards) if queue else 0,
        new_cards=len(queue.new_cards) if queue else 0,
    )


@router.get("/next/{session_id}", response_model=NextCardResponse)
async def session_next(session_id: str) -> NextCardResponse:
    """Get the next card in the session."""
    review_session = _get_active(session_id)

    card = review_session.current_card
    if card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    mode = review_session.mode
    return NextCardResponse(
        card_id=card.id,
        prompt=mode.prompt_for(card),
        prompt_field=mode.prompt_field,
        answer_field=mode.answer_field,
        streak=review_session.current_streak,
        remaining=review_session.remaining,
    )


@router.post("/answer/{session_id}", response_model=AnswerResponse)
async def session_answer(
    session_id: str,
    request: AnswerRequest,
    db: AsyncSession = Depends(get_session),
) -> AnswerResponse:
    """Submit an answer for the current card."""
    review_session = _get_active(session_id)

    card = review_session.current_card
    if card is None:
        raise HTTPException(status_code=410, detail="Session is complete")

    mode = review_session.mode
    expected_correct = None
    if request.response is not None:
        expected_correct = mode.check_answer(card, request.response)

    answer = await review_session.submit_answer(
        ProgressStore(db),
        card_id=request.card_id,
        quality=request.resolved_quality(expected_correct),
        response_time_ms=request.response_time_ms,
    )

    result = answer.review.result if answer.review else None
    return AnswerResponse(
        correct=answer.correct,
        quality=answer.quality,
        correct_answer=mode.expected_answer(card),
        retired=answer.retired,
        next_review=result.next_review_date if result else None,
        interval_days=result.interval_days if result else None,
        remaining=answer.remaining,
        session_complete=answer.session_complete,
    )


@router.get("/stats/{session_id}", response_model=SessionStatsResponse)
async def session_stats(session_id: str) -> SessionStatsResponse:
    """Get stats for the current session."""
    s = _get_active(session_id).stats
    return SessionStatsResponse(
        cards_reviewed=s.cards_reviewed,
        correct=s.correct,
        incorrect=s.incorrect,
        new_cards_seen=s.new_cards_seen,
        cards_retired=s.cards_retired,
        average_time_ms=s.average_time_ms,
    )


@router.post("/end/{session_id}")
async def session_end(
    session_id: str,
    db: AsyncSession = Depends(get_session),
) -> dict:
    """End a session and record it in the history."""
    entry = _active_sessions.pop(session_id, None)
    if not entry:
        raise HTTPException(status_code=404, detail="Session not found")

    review_session = entry[0]
    await finish_session(ProgressStore(db), review_session)

    s = review_session.stats
    return {
        "status": "ended",
        "policy": review_session.policy.value,
        "cards_reviewed": s.cards_reviewed,
        "correct": s.correct,
        "incorrect": s.incorrect,
        "completed": review_session.is_complete,
        "mastered": (
            len(review_session.practice.retired)
            if review_session.policy is SessionPolicy.MASTERY
            else 0
        ),
    }
