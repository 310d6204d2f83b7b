"""Study session orchestrator.

Ties a queue policy to the scheduler and the review log:

- ``srs``: due then new cards in a fixed order; every answer is scheduled.
- ``quick``: every filtered card once, shuffled.
- ``mastery``: every filtered card until it is answered right three times
  in a row.

Quick and mastery answers only touch persisted SM-2 state when
``sync_practice_reviews`` is on.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum

from backend.config import settings
from backend.models.card import Card
from backend.models.study_session import StudySession
from backend.srs.errors import CardMismatchError, SessionCompleteError
from backend.srs.modes import StudyMode
from backend.srs.practice import MasteryQueue, PracticeQueue, QuickReviewQueue
from backend.srs.queue import QueueConfig, ReviewQueue, build_queue
from backend.srs.review import ReviewOutcome, submit_review
from backend.srs.sm2 import PASSING_QUALITY, validate_quality
from backend.srs.store import NO_FILTERS, ProgressStore, StudyFilters

logger = logging.getLogger(__name__)


class SessionPolicy(str, Enum):
    """How cards are ordered and retired within one sitting."""

    SRS = "srs"
    QUICK = "quick"
    MASTERY = "mastery"


@dataclass
class SessionStats:
    """Running statistics for a session."""

    cards_reviewed: int = 0
    correct: int = 0
    incorrect: int = 0
    new_cards_seen: int = 0
    cards_retired: int = 0
    average_time_ms: float = 0.0
    total_time_ms: int = 0

    def record(self, correct: bool, time_ms: int) -> None:
        self.cards_reviewed += 1
        self.total_time_ms += time_ms
        self.average_time_ms = self.total_time_ms / self.cards_reviewed
        if correct:
            self.correct += 1
        else:
            self.incorrect += 1


@dataclass
class SessionAnswer:
    """The effect of one answer on the session."""

    card: Card
    quality: int
    correct: bool
    retired: bool
    review: ReviewOutcome | None
    remaining: int
    session_complete: bool


@dataclass
class ReviewSession:
    """Manages an active study session for a user and mode."""

    user_id: int
    mode: StudyMode
    policy: SessionPolicy
    queue: ReviewQueue | None = None
    practice: PracticeQueue[Card] | None = None
    sync_practice_reviews: bool = False
    record_id: int | None = None
    stats: SessionStats = field(default_factory=SessionStats)
    _card_index: int = 0
    _cards: list[Card] = field(default_factory=list)
    _new_card_ids: set[int] = field(default_factory=set)

    def __post_init__(self) -> None:
        """Freeze the SRS order at session start."""
        if self.policy is SessionPolicy.SRS:
            if self.queue is None:
                raise ValueError("an SRS session needs a ReviewQueue")
            self._cards = self.queue.ordered()
            self._new_card_ids = {card.id for card in self.queue.new_cards}
        elif self.practice is None:
            raise ValueError(f"a {self.policy.value} session needs a practice queue")

    @property
    def total(self) -> int:
        if self.policy is SessionPolicy.SRS:
            return len(self._cards)
        return self.practice.remaining + len(self.practice.retired)

    @property
    def remaining(self) -> int:
        """Return the number of cards left in the queue."""
        if self.policy is SessionPolicy.SRS:
            return max(0, len(self._cards) - self._card_index)
        return self.practice.remaining

    @property
    def is_complete(self) -> bool:
        if self.policy is SessionPolicy.SRS:
            return self._card_index >= len(self._cards)
        return self.practice.is_complete

    @property
    def current_card(self) -> Card | None:
        """Return the card awaiting an answer, or None when none is left."""
        if self.policy is SessionPolicy.SRS:
            if self._card_index < len(self._cards):
                return self._cards[self._card_index]
            return None
        entry = self.practice.current
        return entry.card if entry is not None else None

    @property
    def current_streak(self) -> int:
        """Session-local correct streak of the current card (practice policies)."""
        if self.practice is None or self.practice.current is None:
            return 0
        return self.practice.current.correct_count

    async def submit_answer(
        self,
        store: ProgressStore,
        card_id: int,
        quality: int,
        response_time_ms: int,
    ) -> SessionAnswer:
        """Submit an answer for the current card.

        Args:
            store: Progress store for the current unit of work.
            card_id: The card being answered; must be the current card.
            quality: Recall quality 0-5 (the UI sends 4 for right, 2 for wrong).
            response_time_ms: How long the answer took.

        Returns:
            SessionAnswer describing the queue and scheduling effects.

        Raises:
            SessionCompleteError: If there is no card left to answer.
            CardMismatchError: If card_id is not the current card.
            InvalidQualityError: If quality is outside 0-5.
            StorageError: If the review could not be persisted. The queue is
                left unchanged so the answer can be resubmitted.
        """
        card = self.current_card
        if card is None:
            raise SessionCompleteError("no cards left in this session")
        if card.id != card_id:
            raise CardMismatchError(card.id, card_id)

        quality = validate_quality(quality)
        correct = quality >= PASSING_QUALITY

        review = None
        if self.policy is SessionPolicy.SRS or self.sync_practice_reviews:
            review = await submit_review(
                store, self.user_id, card.id, self.mode, quality, response_time_ms
            )

        retired = True
        if self.policy is SessionPolicy.SRS:
            self._card_index += 1
            if card.id in self._new_card_ids:
                self.stats.new_cards_seen += 1
        else:
            retired = self.practice.answer(correct).retired

        self.stats.record(correct, response_time_ms)
        if retired:
            self.stats.cards_retired += 1

        return SessionAnswer(
            card=card,
            quality=quality,
            correct=correct,
            retired=retired,
            review=review,
            remaining=self.remaining,
            session_complete=self.is_complete,
        )


async def start_session(
    store: ProgressStore,
    user_id: int,
    mode: StudyMode,
    policy: SessionPolicy = SessionPolicy.SRS,
    filters: StudyFilters = NO_FILTERS,
    config: QueueConfig | None = None,
    rng: random.Random | None = None,
    sync_practice_reviews: bool | None = None,
    mastery_target: int | None = None,
) -> ReviewSession:
    """Start a new study session.

    Args:
        store: Progress store.
        user_id: The user studying.
        mode: Direction of recall.
        policy: SRS, quick review or mastery.
        filters: Lesson/part/folder narrowing.
        config: SRS queue limits. Defaults to the session limits capped by the
            user's daily limits.
        rng: Random source for the practice policies.
        sync_practice_reviews: Route quick/mastery answers into SM-2 state.
            Defaults to ``settings.sync_practice_reviews``.
        mastery_target: Correct answers needed to retire a card in mastery.

    Returns:
        A ReviewSession ready for use.
    """
    if sync_practice_reviews is None:
        sync_practice_reviews = settings.sync_practice_reviews

    if policy is SessionPolicy.SRS:
        config = config or await _default_config(store, user_id)
        queue = await build_queue(store, user_id, mode, filters, config)
        session = ReviewSession(user_id=user_id, mode=mode, policy=policy, queue=queue)
    else:
        cards = await store.get_all_cards(user_id, filters)
        practice: PracticeQueue[Card]
        if policy is SessionPolicy.QUICK:
            practice = QuickReviewQueue(cards, rng=rng)
        else:
            practice = MasteryQueue(cards, rng=rng, target=mastery_target or settings.mastery_target)
        session = ReviewSession(
            user_id=user_id,
            mode=mode,
            policy=policy,
            practice=practice,
            sync_practice_reviews=sync_practice_reviews,
        )

    record = await store.open_study_session(user_id, mode, policy.value)
    session.record_id = record.id

    logger.info(
        "Started %s session for user %d in %s: %d cards queued",
        policy.value,
        user_id,
        mode.value,
        session.total,
    )
    return session


async def finish_session(store: ProgressStore, session: ReviewSession) -> StudySession | None:
    """Close the history row for a session."""
    if session.record_id is None:
        return None
    record = await store.close_study_session(
        session.record_id,
        cards_reviewed=session.stats.cards_reviewed,
        correct_count=session.stats.correct,
    )
    logger.info(
        "Finished %s session %d: %d reviewed, %d correct",
        session.policy.value,
        session.record_id,
        session.stats.cards_reviewed,
        session.stats.correct,
    )
    return record


async def _default_config(store: ProgressStore, user_id: int) -> QueueConfig:
    config = QueueConfig()
    user = await store.get_user(user_id)
    if user is None:
        return config
    return QueueConfig(
        max_reviews=min(config.max_reviews, user.daily_review_limit),
        max_new=min(config.max_new, user.daily_new_cards),
    )
