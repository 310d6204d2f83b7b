"""Apply one review to persisted scheduling state."""

import logging
from dataclasses import dataclass

from backend.models.card_progress import CardProgress
from backend.models.review_log import ReviewLog
from backend.srs.errors import StorageError
from backend.srs.modes import StudyMode
from backend.srs.sm2 import PASSING_QUALITY, SchedulingState, SM2Result, advance, validate_quality
from backend.srs.store import ProgressStore

logger = logging.getLogger(__name__)


@dataclass
class ReviewOutcome:
    """What happened to a progress row after one review."""

    progress: CardProgress
    result: SM2Result
    previous: SchedulingState
    log_entry: ReviewLog
    was_correct: bool


async def submit_review(
    store: ProgressStore,
    user_id: int,
    card_id: int,
    mode: StudyMode,
    quality: int,
    response_time_ms: int,
) -> ReviewOutcome:
    """Schedule a card after a review and record it.

    The progress row is created on first review. The state transition and
    the log row are committed together; on any failure the unit of work is
    rolled back so nothing partial is written, and the error propagates.

    Raises:
        InvalidQualityError: If quality is outside 0-5.
        StorageError: If the store fails (ConcurrentUpdateError on a lost update).
    """
    quality = validate_quality(quality)
    was_correct = quality >= PASSING_QUALITY

    try:
        progress = await store.get_or_create_progress(user_id, card_id, mode)
        previous = progress.state
        result = advance(
            quality,
            previous.ease_factor,
            previous.interval_days,
            previous.repetitions,
            now=store.now(),
        )
        await store.persist_progress(progress, result, was_correct)
        log_entry = await store.append_review_log(progress, quality, response_time_ms, was_correct)
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    logger.debug(
        "Card %d/%s q=%d: interval %d -> %d days, ease %.2f -> %.2f",
        card_id,
        mode.value,
        quality,
        previous.interval_days,
        result.interval_days,
        previous.ease_factor,
        result.ease_factor,
    )
    return ReviewOutcome(
        progress=progress,
        result=result,
        previous=previous,
        log_entry=log_entry,
        was_correct=was_correct,
    )
