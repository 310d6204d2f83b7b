"""SQLAlchemy ORM models for the Hanzi SRS database."""

from backend.models.base import Base
from backend.models.card import Card
from backend.models.card_progress import CardProgress
from backend.models.folder import Folder, folder_cards
from backend.models.review_log import ReviewLog
from backend.models.study_session import StudySession
from backend.models.user import User

__all__ = [
    "Base",
    "Card",
    "CardProgress",
    "Folder",
    "ReviewLog",
    "StudySession",
    "User",
    "folder_cards",
]
