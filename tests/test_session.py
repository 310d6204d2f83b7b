"""Tests for session orchestration across the three policies."""

import random
from datetime import timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.models import Card, CardProgress, ReviewLog, StudySession, User
from backend.srs.errors import CardMismatchError, SessionCompleteError, StorageError
from backend.srs.modes import StudyMode
from backend.srs.queue import QueueConfig, ReviewQueue, build_queue
from backend.srs.review import submit_review
from backend.srs.session import SessionPolicy, finish_session, start_session
from backend.srs.sm2 import QUALITY_CORRECT, QUALITY_INCORRECT
from backend.srs.store import ProgressStore, StudyFilters
from tests.conftest import FixedClock

MODE = StudyMode.HANZI_TO_PINYIN


async def count(db: AsyncSession, model: type) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def make_due(store: ProgressStore, cards: list[Card], clock: FixedClock) -> None:
    """Review cards once, then move the clock so they are due, oldest review first."""
    for card in cards:
        await submit_review(store, card.user_id, card.id, MODE, QUALITY_CORRECT, 1000)
        clock.advance(hours=1)
    clock.advance(days=2)


class TestReviewQueue:
    def test_ordered_is_due_then_new(self) -> None:
        queue = ReviewQueue(due_cards=["a", "b"], new_cards=["x"])
        assert queue.ordered() == ["a", "b", "x"]
        assert queue.total == 3

    @pytest.mark.asyncio
    async def test_build_queue_limits(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        await make_due(store, cards[:3], clock)

        queue = await build_queue(
            store, cards[0].user_id, MODE, config=QueueConfig(max_reviews=2, max_new=1)
        )
        assert [c.id for c in queue.due_cards] == [cards[0].id, cards[1].id]
        assert [c.id for c in queue.new_cards] == [cards[3].id]


class TestSRSSession:
    @pytest.mark.asyncio
    async def test_due_then_new_in_static_order(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        await make_due(store, [cards[3], cards[4]], clock)

        session = await start_session(store, cards[0].user_id, MODE)
        expected = [cards[3].id, cards[4].id, cards[0].id, cards[1].id, cards[2].id]
        assert session.total == 5

        seen = []
        while (card := session.current_card) is not None:
            seen.append(card.id)
            answer = await session.submit_answer(store, card.id, QUALITY_INCORRECT, 800)
            assert answer.review is not None
        assert seen == expected
        assert session.is_complete
        assert session.stats.cards_reviewed == 5
        assert session.stats.new_cards_seen == 3
        assert session.stats.incorrect == 5

    @pytest.mark.asyncio
    async def test_every_answer_persists_one_log(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        session = await start_session(store, cards[0].user_id, MODE)
        before = await count(db, ReviewLog)

        for quality in (0, 3, 4, 5, 2):
            card = session.current_card
            answer = await session.submit_answer(store, card.id, quality, 1000)
            assert answer.correct is (quality >= 3)

        assert await count(db, ReviewLog) == before + 5
        assert await count(db, CardProgress) == 5

    @pytest.mark.asyncio
    async def test_wrong_card_rejected(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        session = await start_session(store, cards[0].user_id, MODE)
        with pytest.raises(CardMismatchError):
            await session.submit_answer(store, cards[3].id, QUALITY_CORRECT, 1000)
        assert session.remaining == 5

    @pytest.mark.asyncio
    async def test_answer_after_complete(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        session = await start_session(store, cards[0].user_id, MODE, filters=StudyFilters(lesson_number=2))
        for _ in range(session.total):
            await session.submit_answer(store, session.current_card.id, QUALITY_CORRECT, 1000)
        with pytest.raises(SessionCompleteError):
            await session.submit_answer(store, cards[0].id, QUALITY_CORRECT, 1000)

    @pytest.mark.asyncio
    async def test_storage_failure_keeps_card_current(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        cards: list[Card],
        clock: FixedClock,
    ) -> None:
        user_id, first_id = cards[0].user_id, cards[0].id

        class BrokenStore(ProgressStore):
            async def persist_progress(self, *args: object, **kwargs: object) -> CardProgress:
                raise StorageError("progress store unavailable")

        async with sessionmaker() as db:
            session = await start_session(ProgressStore(db, clock=clock), user_id, MODE)

        async with sessionmaker() as db:
            with pytest.raises(StorageError):
                await session.submit_answer(BrokenStore(db, clock=clock), first_id, QUALITY_CORRECT, 1000)

        assert session.remaining == 5
        assert session.current_card.id == first_id
        assert session.stats.cards_reviewed == 0
        async with sessionmaker() as db:
            assert await count(db, CardProgress) == 0

    @pytest.mark.asyncio
    async def test_user_daily_limits_cap_queue(
        self, db: AsyncSession, user: User, cards: list[Card], clock: FixedClock
    ) -> None:
        user.daily_new_cards = 2
        await db.commit()

        session = await start_session(ProgressStore(db, clock=clock), user.id, MODE)
        assert session.total == 2


class TestQuickSession:
    @pytest.mark.asyncio
    async def test_each_card_once_without_touching_schedule(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        session = await start_session(
            store, cards[0].user_id, MODE, policy=SessionPolicy.QUICK, rng=random.Random(1)
        )

        answers = 0
        while not session.is_complete:
            answer = await session.submit_answer(
                store, session.current_card.id, QUALITY_INCORRECT, 700
            )
            assert answer.retired
            assert answer.review is None
            answers += 1

        assert answers == len(cards)
        assert await count(db, CardProgress) == 0
        assert await count(db, ReviewLog) == 0

    @pytest.mark.asyncio
    async def test_sync_routes_answers_into_schedule(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        session = await start_session(
            store,
            cards[0].user_id,
            MODE,
            policy=SessionPolicy.QUICK,
            rng=random.Random(1),
            sync_practice_reviews=True,
        )
        while not session.is_complete:
            answer = await session.submit_answer(store, session.current_card.id, QUALITY_CORRECT, 700)
            assert answer.review is not None

        assert await count(db, CardProgress) == len(cards)
        assert await count(db, ReviewLog) == len(cards)


class TestMasterySession:
    @pytest.mark.asyncio
    async def test_all_correct_masters_every_card(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        session = await start_session(
            store, cards[0].user_id, MODE, policy=SessionPolicy.MASTERY, rng=random.Random(8)
        )

        answers = 0
        while not session.is_complete:
            card = session.current_card
            streak = session.current_streak
            answer = await session.submit_answer(store, card.id, QUALITY_CORRECT, 600)
            assert answer.retired is (streak == 2)
            answers += 1

        assert answers == 3 * len(cards)
        assert sorted(c.id for c in session.practice.mastered) == sorted(c.id for c in cards)
        assert session.stats.cards_retired == len(cards)
        assert await count(db, ReviewLog) == 0

    @pytest.mark.asyncio
    async def test_empty_catalog_never_completes(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        session = await start_session(
            ProgressStore(db, clock=clock),
            cards[0].user_id,
            MODE,
            policy=SessionPolicy.MASTERY,
            filters=StudyFilters(lesson_number=99),
        )
        assert session.total == 0
        assert session.current_card is None
        assert not session.is_complete


class TestSessionHistory:
    @pytest.mark.asyncio
    async def test_finish_records_history(
        self, db: AsyncSession, cards: list[Card], clock: FixedClock
    ) -> None:
        store = ProgressStore(db, clock=clock)
        session = await start_session(store, cards[0].user_id, MODE, filters=StudyFilters(lesson_number=2))
        await session.submit_answer(store, session.current_card.id, QUALITY_CORRECT, 1000)
        await session.submit_answer(store, session.current_card.id, QUALITY_INCORRECT, 1000)
        clock.advance(minutes=5)

        record = await finish_session(store, session)

        assert record.policy == "srs"
        assert record.mode == MODE.value
        assert record.cards_reviewed == 2
        assert record.correct_count == 1
        assert record.ended_at - record.started_at == timedelta(minutes=5)
        assert await count(db, StudySession) == 1
