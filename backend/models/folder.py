from sqlalchemy import Column, ForeignKey, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin

folder_cards = Table(
    "folder_cards",
    Base.metadata,
    Column("folder_id", ForeignKey("folders.id"), primary_key=True),
    Column("card_id", ForeignKey("cards.id"), primary_key=True),
)


class Folder(Base, TimestampMixin):
    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    cards: Mapped[list["Card"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        secondary=folder_cards, back_populates="folders"
    )
