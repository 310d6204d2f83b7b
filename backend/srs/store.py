"""Storage collaborator for the scheduling core.

Reads candidate cards and progress rows for a (user, mode, filter) and writes
scheduling updates and review logs. All database failures surface as
``StorageError``; the store never retries.
"""

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, and_, exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from backend.config import utcnow
from backend.models.card import Card
from backend.models.card_progress import CardProgress
from backend.models.folder import folder_cards
from backend.models.review_log import ReviewLog
from backend.models.study_session import StudySession
from backend.models.user import User
from backend.srs.errors import ConcurrentUpdateError, StorageError
from backend.srs.modes import StudyMode
from backend.srs.sm2 import SchedulingState, SM2Result

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class StudyFilters:
    """Catalog narrowing shared by every selection query."""

    textbook_part: int | None = None
    lesson_number: int | None = None
    folder_id: int | None = None

    def apply(self, stmt: Select) -> Select:
        """Add WHERE clauses on ``Card`` for each filter that is set."""
        if self.textbook_part is not None:
            stmt = stmt.where(Card.textbook_part == self.textbook_part)
        if self.lesson_number is not None:
            stmt = stmt.where(Card.lesson_number == self.lesson_number)
        if self.folder_id is not None:
            in_folder = select(folder_cards.c.card_id).where(
                folder_cards.c.folder_id == self.folder_id
            )
            stmt = stmt.where(Card.id.in_(in_folder))
        return stmt


NO_FILTERS = StudyFilters()


@dataclass
class DueProgress:
    """A due progress row with its card."""

    progress: CardProgress
    card: Card


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure while trying to %s", action)
        raise StorageError(f"could not {action}") from exc


class ProgressStore:
    """SQLAlchemy-backed catalog and progress access for one unit of work."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow) -> None:
        self.db = db
        self.clock = clock

    def now(self) -> datetime:
        return self.clock()

    async def get_due_progress(
        self,
        user_id: int,
        mode: StudyMode,
        filters: StudyFilters = NO_FILTERS,
        limit: int = 20,
    ) -> list[DueProgress]:
        """Progress rows due at or before now, most overdue first."""
        now = self.now()
        stmt = (
            select(CardProgress, Card)
            .join(Card, CardProgress.card_id == Card.id)
            .where(
                and_(
                    CardProgress.user_id == user_id,
                    CardProgress.mode == mode,
                    CardProgress.next_review_date <= now,
                )
            )
            .order_by(CardProgress.next_review_date.asc(), CardProgress.id.asc())
            .limit(limit)
        )
        stmt = filters.apply(stmt)
        with _storage_errors("load due cards"):
            result = await self.db.execute(stmt)
            rows = result.all()
        return [DueProgress(progress=progress, card=card) for progress, card in rows]

    async def get_unstudied_cards(
        self,
        user_id: int,
        mode: StudyMode,
        filters: StudyFilters = NO_FILTERS,
        limit: int = 10,
    ) -> list[Card]:
        """Cards with no progress row for this mode, in catalog order."""
        has_progress = exists().where(
            and_(CardProgress.card_id == Card.id, CardProgress.mode == mode)
        )
        stmt = (
            select(Card)
            .where(and_(Card.user_id == user_id, ~has_progress))
            .order_by(Card.created_at.asc(), Card.id.asc())
            .limit(limit)
        )
        stmt = filters.apply(stmt)
        with _storage_errors("load new cards"):
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

    async def get_all_cards(self, user_id: int, filters: StudyFilters = NO_FILTERS) -> list[Card]:
        """Every card matching the filters, for the practice policies."""
        stmt = select(Card).where(Card.user_id == user_id).order_by(Card.id.asc())
        stmt = filters.apply(stmt)
        with _storage_errors("load cards"):
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

    async def get_card(self, card_id: int) -> Card | None:
        with _storage_errors("load card"):
            return await self.db.get(Card, card_id)

    async def get_progress(self, card_id: int, mode: StudyMode) -> CardProgress | None:
        stmt = select(CardProgress).where(
            and_(CardProgress.card_id == card_id, CardProgress.mode == mode)
        )
        with _storage_errors("load card progress"):
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()

    async def get_or_create_progress(
        self,
        user_id: int,
        card_id: int,
        mode: StudyMode,
    ) -> CardProgress:
        """Return the progress row for (card, mode), creating it with defaults.

        Must run before any other pending write in the unit of work: when a
        concurrent writer inserts the same row first, the transaction is rolled
        back and the winner's row is re-read.
        """
        progress = await self.get_progress(card_id, mode)
        if progress is not None:
            return progress

        initial = SchedulingState.initial(self.now())
        progress = CardProgress(
            card_id=card_id,
            user_id=user_id,
            mode=mode,
            ease_factor=initial.ease_factor,
            interval_days=initial.interval_days,
            repetitions=initial.repetitions,
            next_review_date=initial.next_review_date,
            total_reviews=0,
            correct_count=0,
        )
        self.db.add(progress)
        try:
            await self.db.flush()
        except IntegrityError:
            logger.info("Progress for card %d/%s created concurrently, re-reading", card_id, mode.value)
            await self.db.rollback()
            progress = await self.get_progress(card_id, mode)
            if progress is None:
                raise StorageError(f"could not create progress for card {card_id}") from None
        except SQLAlchemyError as exc:
            logger.exception("Storage failure while creating progress for card %d", card_id)
            raise StorageError(f"could not create progress for card {card_id}") from exc
        return progress

    async def persist_progress(
        self,
        progress: CardProgress,
        result: SM2Result,
        was_correct: bool,
    ) -> CardProgress:
        """Write a scheduling result and counters onto a progress row.

        Raises:
            ConcurrentUpdateError: If the row was changed since it was read.
        """
        progress.ease_factor = result.ease_factor
        progress.interval_days = result.interval_days
        progress.repetitions = result.repetitions
        progress.next_review_date = result.next_review_date
        progress.total_reviews += 1
        if was_correct:
            progress.correct_count += 1
        progress.last_reviewed_at = self.now()

        # A failed flush leaves the session unusable until rollback, so the
        # instance cannot be read inside the handlers.
        progress_id = progress.id
        try:
            await self.db.flush()
        except StaleDataError as exc:
            logger.warning("Lost update prevented on card progress %d", progress_id)
            raise ConcurrentUpdateError(progress_id) from exc
        except SQLAlchemyError as exc:
            logger.exception("Storage failure while saving card progress %d", progress_id)
            raise StorageError(f"could not save card progress {progress_id}") from exc
        return progress

    async def append_review_log(
        self,
        progress: CardProgress,
        quality: int,
        response_time_ms: int,
        was_correct: bool,
    ) -> ReviewLog:
        log_entry = ReviewLog(
            card_progress_id=progress.id,
            user_id=progress.user_id,
            quality=quality,
            response_time_ms=response_time_ms,
            was_correct=was_correct,
            reviewed_at=self.now(),
        )
        self.db.add(log_entry)
        with _storage_errors("append review log"):
            await self.db.flush()
        return log_entry

    async def commit(self) -> None:
        with _storage_errors("commit"):
            await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    async def get_user(self, user_id: int) -> User | None:
        with _storage_errors("load user"):
            return await self.db.get(User, user_id)

    async def open_study_session(self, user_id: int, mode: StudyMode, policy: str) -> StudySession:
        """Record the start of a sitting."""
        record = StudySession(user_id=user_id, mode=mode.value, policy=policy, started_at=self.now())
        self.db.add(record)
        with _storage_errors("record study session"):
            await self.db.commit()
        return record

    async def close_study_session(
        self,
        record_id: int,
        cards_reviewed: int,
        correct_count: int,
    ) -> StudySession | None:
        with _storage_errors("close study session"):
            record = await self.db.get(StudySession, record_id)
            if record is None:
                return None
            record.ended_at = self.now()
            record.cards_reviewed = cards_reviewed
            record.correct_count = correct_count
            await self.db.commit()
        return record
