"""Vocabulary card model: the catalog entries learners study."""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Card(Base, TimestampMixin):
    """A vocabulary item owned by a user.

    Scheduling state lives in ``CardProgress``, one row per study mode,
    created the first time the card is reviewed in that mode.
    """

    __tablename__ = "cards"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    hanzi: Mapped[str] = mapped_column(String(100), nullable=False)
    pinyin: Mapped[str] = mapped_column(String(200), nullable=False)  # tone numbers: "ni3 hao3"
    pinyin_display: Mapped[str] = mapped_column(String(200), nullable=False)  # tone marks: "nǐ hǎo"
    english: Mapped[str] = mapped_column(String(500), nullable=False)
    example_sentence: Mapped[str | None] = mapped_column(Text, nullable=True)
    hsk_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    textbook_part: Mapped[int | None] = mapped_column(Integer, nullable=True)
    lesson_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    user: Mapped["User"] = relationship(back_populates="cards")  # type: ignore[name-defined] # noqa: F821
    progress: Mapped[list["CardProgress"]] = relationship(back_populates="card")  # type: ignore[name-defined] # noqa: F821
    folders: Mapped[list["Folder"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        secondary="folder_cards", back_populates="cards"
    )
