"""Per-mode scheduling state for a card."""

from datetime import datetime

from sqlalchemy import DateTime, Enum, Float, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base, TimestampMixin
from backend.srs.modes import StudyMode
from backend.srs.sm2 import DEFAULT_EASE_FACTOR, SchedulingState


class CardProgress(Base, TimestampMixin):
    """SM-2 state for one (card, mode) pair.

    ``version`` is an optimistic lock: an UPDATE issued from a stale copy of
    the row matches nothing and SQLAlchemy raises ``StaleDataError``.
    """

    __tablename__ = "card_progress"
    __table_args__ = (UniqueConstraint("card_id", "mode", name="uq_card_progress_card_mode"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    card_id: Mapped[int] = mapped_column(ForeignKey("cards.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    mode: Mapped[StudyMode] = mapped_column(
        Enum(
            StudyMode,
            native_enum=False,
            length=50,
            values_callable=lambda modes: [m.value for m in modes],
        ),
        nullable=False,
    )
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=DEFAULT_EASE_FACTOR)
    interval_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    card: Mapped["Card"] = relationship(back_populates="progress")  # type: ignore[name-defined] # noqa: F821
    review_logs: Mapped[list["ReviewLog"]] = relationship(back_populates="card_progress")  # type: ignore[name-defined] # noqa: F821

    @property
    def state(self) -> SchedulingState:
        """The four fields the scheduler reads and writes."""
        return SchedulingState(
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            repetitions=self.repetitions,
            next_review_date=self.next_review_date,
        )
