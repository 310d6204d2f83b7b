"""SM-2 spaced repetition scheduler.

Classic SuperMemo-2 as used by this app:

- Quality is 0-5. Below 3 the recall failed; 3 = hard, 4 = good, 5 = easy.
- A failure resets repetitions to 0 and the interval to 1 day. The ease
  factor is only adjusted on a pass.
- A pass increments repetitions. The interval ladder is 1 day, 6 days, then
  ``round(previous_interval * previous_ease)``.
- Ease changes by ``0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)`` with a floor
  of 1.3 and no ceiling.

Rounding is half-up, not Python's round-half-to-even, so 2.5 becomes 3.
Everything here is pure: the only outside input is ``now``.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from backend.config import utcnow
from backend.srs.errors import InvalidQualityError

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3

MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3

# The UI only distinguishes right from wrong.
QUALITY_CORRECT = 4
QUALITY_INCORRECT = 2


@dataclass(frozen=True)
class SchedulingState:
    """The four scheduling fields of a progress row."""

    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_date: datetime

    @classmethod
    def initial(cls, now: datetime | None = None) -> "SchedulingState":
        """State of a progress row created lazily on first review: due at once."""
        return cls(
            ease_factor=DEFAULT_EASE_FACTOR,
            interval_days=0,
            repetitions=0,
            next_review_date=now or utcnow(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ease_factor": self.ease_factor,
            "interval_days": self.interval_days,
            "repetitions": self.repetitions,
            "next_review_date": self.next_review_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SchedulingState":
        return cls(
            ease_factor=float(data["ease_factor"]),
            interval_days=int(data["interval_days"]),
            repetitions=int(data["repetitions"]),
            next_review_date=datetime.fromisoformat(data["next_review_date"]),
        )


@dataclass(frozen=True)
class SM2Result:
    """Outcome of one scheduling step."""

    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_date: datetime
    passed: bool

    @property
    def state(self) -> SchedulingState:
        return SchedulingState(
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            repetitions=self.repetitions,
            next_review_date=self.next_review_date,
        )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves always going up."""
    return math.floor(value + 0.5)


def ease_delta(quality: int) -> float:
    """Ease factor adjustment for a passing quality."""
    miss = MAX_QUALITY - quality
    return 0.1 - miss * (0.08 + miss * 0.02)


def advance(
    quality: int,
    ease_factor: float,
    interval_days: int,
    repetitions: int,
    now: datetime | None = None,
) -> SM2Result:
    """Compute the next scheduling state from a review.

    Args:
        quality: Recall quality, 0-5. Validate with ``validate_quality`` first;
            out-of-range values are not rejected here.
        ease_factor: Ease factor before the review.
        interval_days: Interval before the review.
        repetitions: Consecutive passes before the review.
        now: Time of the review (defaults to utcnow). The next review date is
            counted from here, not from the previous due date.

    Returns:
        SM2Result with the new ease, interval, repetitions and due date.
    """
    now = now or utcnow()

    if quality < PASSING_QUALITY:
        new_ease = ease_factor
        new_interval = 1
        new_repetitions = 0
    else:
        new_repetitions = repetitions + 1
        if new_repetitions == 1:
            new_interval = 1
        elif new_repetitions == 2:
            new_interval = 6
        else:
            new_interval = round_half_up(interval_days * ease_factor)
        new_ease = max(MIN_EASE_FACTOR, ease_factor + ease_delta(quality))

    return SM2Result(
        ease_factor=new_ease,
        interval_days=new_interval,
        repetitions=new_repetitions,
        next_review_date=now + timedelta(days=new_interval),
        passed=quality >= PASSING_QUALITY,
    )


def advance_state(state: SchedulingState, quality: int, now: datetime | None = None) -> SM2Result:
    """``advance`` applied to a ``SchedulingState``."""
    return advance(quality, state.ease_factor, state.interval_days, state.repetitions, now=now)


def validate_quality(value: Any) -> int:
    """Check a quality score at the API or session boundary.

    Raises:
        InvalidQualityError: If value is not an int in 0..5. Bools are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQualityError(value)
    if not MIN_QUALITY <= value <= MAX_QUALITY:
        raise InvalidQualityError(value)
    return value


def quality_from_correctness(correct: bool) -> int:
    """Map a right/wrong answer onto the 0-5 scale."""
    return QUALITY_CORRECT if correct else QUALITY_INCORRECT
