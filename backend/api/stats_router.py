"""API routes for user statistics and dashboard data."""

import logging
from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.schemas import HeatmapDay, ModeDueCount, RecentSession, UserStatsResponse
from backend.config import settings, utcnow
from backend.database import get_session
from backend.models.card import Card
from backend.models.card_progress import CardProgress
from backend.models.review_log import ReviewLog
from backend.models.study_session import StudySession
from backend.srs.modes import StudyMode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/{user_id}", response_model=UserStatsResponse)
async def get_user_stats(
    user_id: int,
    db: AsyncSession = Depends(get_session),
) -> UserStatsResponse:
    """Get overall statistics for a user."""
    now = utcnow()

    # Total cards
    total_stmt = select(func.count(Card.id)).where(Card.user_id == user_id)
    total_cards = (await db.execute(total_stmt)).scalar() or 0

    # Total reviews
    reviews_stmt = select(func.count(ReviewLog.id)).where(ReviewLog.user_id == user_id)
    total_reviews = (await db.execute(reviews_stmt)).scalar() or 0

    # Due counts per mode, every mode including the reserved one
    due_stmt = (
        select(CardProgress.mode, func.count(CardProgress.id))
        .where(and_(CardProgress.user_id == user_id, CardProgress.next_review_date <= now))
        .group_by(CardProgress.mode)
    )
    due_by_mode = dict((await db.execute(due_stmt)).all())
    due_counts = [ModeDueCount(mode=mode, count=due_by_mode.get(mode, 0)) for mode in StudyMode]

    # Accuracy over the last 30 days
    recent_cutoff = now - timedelta(days=30)
    accuracy_stmt = select(
        func.count(ReviewLog.id),
        func.coalesce(func.sum(case((ReviewLog.was_correct, 1), else_=0)), 0),
    ).where(and_(ReviewLog.user_id == user_id, ReviewLog.reviewed_at >= recent_cutoff))
    recent_total, recent_correct = (await db.execute(accuracy_stmt)).one()
    average_accuracy = recent_correct / recent_total if recent_total else None

    streak_days = await _calculate_streak(db, user_id, now)

    sessions_stmt = (
        select(StudySession)
        .where(StudySession.user_id == user_id)
        .order_by(StudySession.started_at.desc(), StudySession.id.desc())
        .limit(10)
    )
    sessions = (await db.execute(sessions_stmt)).scalars().all()

    return UserStatsResponse(
        total_cards=total_cards,
        total_reviews=total_reviews,
        due_counts=due_counts,
        average_accuracy=round(average_accuracy, 3) if average_accuracy is not None else None,
        streak_days=streak_days,
        recent_sessions=[RecentSession.model_validate(s) for s in sessions],
    )


@router.get("/{user_id}/heatmap", response_model=dict[str, HeatmapDay])
async def get_heatmap(
    user_id: int,
    days: int = Query(default=settings.heatmap_days, ge=1, le=366),
    db: AsyncSession = Depends(get_session),
) -> dict[str, HeatmapDay]:
    """Reviews per day over the last ``days`` days, keyed by ISO date."""
    start = utcnow() - timedelta(days=days)
    stmt = select(ReviewLog.reviewed_at, ReviewLog.was_correct).where(
        and_(ReviewLog.user_id == user_id, ReviewLog.reviewed_at >= start)
    )
    rows = (await db.execute(stmt)).all()

    heatmap: dict[str, HeatmapDay] = {}
    for reviewed_at, was_correct in rows:
        day = heatmap.setdefault(reviewed_at.date().isoformat(), HeatmapDay(total=0, correct=0))
        day.total += 1
        if was_correct:
            day.correct += 1
    return heatmap


async def _calculate_streak(
    db: AsyncSession,
    user_id: int,
    now: datetime,
) -> int:
    """Calculate the number of consecutive days, ending today, with a review."""
    stmt = (
        select(func.date(ReviewLog.reviewed_at))
        .distinct()
        .where(ReviewLog.user_id == user_id)
        .order_by(func.date(ReviewLog.reviewed_at).desc())
    )
    result = await db.execute(stmt)
    dates = [row[0] for row in result.all()]

    if not dates:
        return 0

    today = now.date()
    streak = 0

    for i, review_date in enumerate(dates):
        expected = today - timedelta(days=i)
        if str(review_date) == str(expected):
            streak += 1
        else:
            break

    return streak
