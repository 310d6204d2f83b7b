"""Queue building for SRS review sessions.

Due cards come first (most overdue first), then new cards in catalog order.
The order is fixed when the session starts and is not refreshed as answers
come in.
"""

import logging
from dataclasses import dataclass, field

from backend.config import settings
from backend.models.card import Card
from backend.srs.modes import StudyMode
from backend.srs.store import NO_FILTERS, ProgressStore, StudyFilters

logger = logging.getLogger(__name__)


@dataclass
class QueueConfig:
    """Configuration for queue building."""

    max_reviews: int = settings.max_reviews_per_session
    max_new: int = settings.max_new_cards_per_session


@dataclass
class ReviewQueue:
    """A prepared queue of cards for an SRS session."""

    due_cards: list[Card] = field(default_factory=list)
    new_cards: list[Card] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.due_cards) + len(self.new_cards)

    def ordered(self) -> list[Card]:
        """Due cards followed by new cards."""
        return [*self.due_cards, *self.new_cards]


async def build_queue(
    store: ProgressStore,
    user_id: int,
    mode: StudyMode,
    filters: StudyFilters = NO_FILTERS,
    config: QueueConfig | None = None,
) -> ReviewQueue:
    """Build an SRS queue for a user and mode.

    Args:
        store: Catalog and progress access.
        user_id: The user to build the queue for.
        mode: Direction of recall; progress is per mode.
        filters: Lesson/part/folder narrowing.
        config: Queue limits.

    Returns:
        A ReviewQueue with due and new cards.
    """
    config = config or QueueConfig()

    due = await store.get_due_progress(user_id, mode, filters, limit=config.max_reviews)
    new_cards = await store.get_unstudied_cards(user_id, mode, filters, limit=config.max_new)

    queue = ReviewQueue(due_cards=[d.card for d in due], new_cards=new_cards)

    logger.info(
        "Built %s queue for user %d: %d due + %d new = %d total",
        mode.value,
        user_id,
        len(queue.due_cards),
        len(queue.new_cards),
        queue.total,
    )
    return queue
