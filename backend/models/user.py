from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    daily_new_cards: Mapped[int] = mapped_column(Integer, nullable=False, default=20)
    daily_review_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    cards: Mapped[list["Card"]] = relationship(back_populates="user")  # type: ignore[name-defined] # noqa: F821
    study_sessions: Mapped[list["StudySession"]] = relationship(back_populates="user")  # type: ignore[name-defined] # noqa: F821
