"""In-session queues for the non-SRS policies.

Quick review shows every card once. Mastery keeps a card in rotation until it
has been answered correctly ``target`` times in a row, pushing it further back
after each success and pulling it forward after a miss. Neither touches
persisted scheduling state; the queues are single-consumer and live only as
long as the session.
"""

import random
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")

# Reinsertion offsets, as (low, high) for random.randint.
MISS_OFFSET = (1, 3)
SUCCESS_OFFSETS = {
    1: (3, 6),
    2: (7, 12),
}
DEFAULT_MASTERY_TARGET = 3


@dataclass
class QueueEntry(Generic[T]):
    """A card in a practice queue with its session-local streak."""

    card: T
    correct_count: int = 0


@dataclass
class AnswerResult(Generic[T]):
    """What an answer did to the queue."""

    entry: QueueEntry[T]
    correct: bool
    retired: bool
    offset: int | None = None  # position the card was reinserted at


RetirePredicate = Callable[[QueueEntry, bool], bool]


class PracticeQueue(Generic[T]):
    """Shuffled queue that either retires or requeues the answered card.

    Args:
        cards: Cards for the sitting.
        rng: Random source; pass a seeded ``random.Random`` for repeatable order.
        retire: Decides, after the streak is updated, whether the head card leaves.
    """

    def __init__(
        self,
        cards: Iterable[T],
        rng: random.Random | None = None,
        retire: RetirePredicate | None = None,
    ) -> None:
        self.rng = rng or random.Random()
        self._retire = retire or (lambda entry, correct: True)
        entries = [QueueEntry(card=card) for card in cards]
        self.rng.shuffle(entries)
        self._queue: deque[QueueEntry[T]] = deque(entries)
        self.retired: list[T] = []
        self.answered = 0
        self.correct = 0

    @property
    def current(self) -> QueueEntry[T] | None:
        return self._queue[0] if self._queue else None

    @property
    def remaining(self) -> int:
        return len(self._queue)

    @property
    def is_complete(self) -> bool:
        return not self._queue

    def cards(self) -> list[T]:
        """Current queue order, head first."""
        return [entry.card for entry in self._queue]

    def answer(self, correct: bool) -> AnswerResult[T]:
        """Apply an answer to the card at the head of the queue.

        Raises:
            IndexError: If the queue is empty.
        """
        if not self._queue:
            raise IndexError("answer on an empty practice queue")

        entry = self._queue.popleft()
        self.answered += 1
        if correct:
            self.correct += 1
            entry.correct_count += 1
        else:
            entry.correct_count = 0

        if self._retire(entry, correct):
            self.retired.append(entry.card)
            return AnswerResult(entry=entry, correct=correct, retired=True)

        offset = min(self.requeue_offset(entry, correct), len(self._queue))
        self._queue.insert(offset, entry)
        return AnswerResult(entry=entry, correct=correct, retired=False, offset=offset)

    def requeue_offset(self, entry: QueueEntry[T], correct: bool) -> int:
        """Where a card that was not retired goes back in, counted from the head."""
        return len(self._queue)


class QuickReviewQueue(PracticeQueue[T]):
    """Every card once, right or wrong."""

    def __init__(self, cards: Iterable[T], rng: random.Random | None = None) -> None:
        super().__init__(cards, rng=rng, retire=lambda entry, correct: True)


class MasteryQueue(PracticeQueue[T]):
    """Cards stay until answered correctly ``target`` times without a miss."""

    def __init__(
        self,
        cards: Iterable[T],
        rng: random.Random | None = None,
        target: int = DEFAULT_MASTERY_TARGET,
    ) -> None:
        if target < 1:
            raise ValueError("mastery target must be at least 1")
        self.target = target
        super().__init__(
            cards,
            rng=rng,
            retire=lambda entry, correct: entry.correct_count >= self.target,
        )

    @property
    def mastered(self) -> list[T]:
        return self.retired

    @property
    def is_complete(self) -> bool:
        # An empty catalog never counts as done.
        return not self._queue and bool(self.retired)

    def requeue_offset(self, entry: QueueEntry[T], correct: bool) -> int:
        if not correct:
            low, high = MISS_OFFSET
        else:
            low, high = SUCCESS_OFFSETS.get(entry.correct_count, SUCCESS_OFFSETS[max(SUCCESS_OFFSETS)])
        return self.rng.randint(low, high)
