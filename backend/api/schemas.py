"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backend.srs.modes import StudyMode
from backend.srs.session import SessionPolicy
from backend.srs.sm2 import quality_from_correctness

# --- Cards and progress ---


class CardResponse(BaseModel):
    """A catalog card."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    hanzi: str
    pinyin: str
    pinyin_display: str
    english: str
    example_sentence: str | None = None
    hsk_level: int | None = None
    textbook_part: int | None = None
    lesson_number: int | None = None


class ProgressResponse(BaseModel):
    """Scheduling state of a (card, mode) pair."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    card_id: int
    mode: StudyMode
    ease_factor: float
    interval_days: int
    repetitions: int
    next_review_date: datetime
    total_reviews: int
    correct_count: int
    last_reviewed_at: datetime | None = None


class DueCardResponse(BaseModel):
    card_progress: ProgressResponse
    card: CardResponse


class ReviewRequest(BaseModel):
    """A single review outside of a session."""

    card_id: int
    mode: StudyMode
    quality: int = Field(ge=0, le=5)
    response_time_ms: int = Field(ge=0)


class ReviewResponse(BaseModel):
    card_progress: ProgressResponse
    was_correct: bool
    next_review: datetime


# --- Session ---


class SessionStartRequest(BaseModel):
    """Request to start a study session."""

    user_id: int
    mode: StudyMode
    policy: SessionPolicy = SessionPolicy.SRS
    textbook_part: int | None = None
    lesson_number: int | None = None
    folder_id: int | None = None
    max_reviews: int | None = Field(default=None, ge=0)
    max_new: int | None = Field(default=None, ge=0)
    seed: int | None = None  # fixes the shuffle for quick/mastery
    sync_practice_reviews: bool | None = None


class SessionStartResponse(BaseModel):
    """Response when starting a new study session."""

    session_id: str
    user_id: int
    mode: StudyMode
    policy: SessionPolicy
    total_cards: int
    due_cards: int
    new_cards: int


class NextCardResponse(BaseModel):
    """The card to present next."""

    card_id: int
    prompt: str
    prompt_field: str
    answer_field: str
    streak: int  # session-local correct count (mastery)
    remaining: int


class AnswerRequest(BaseModel):
    """An answer for the current card: either a right/wrong flag or a 0-5 quality."""

    card_id: int
    correct: bool | None = None
    quality: int | None = Field(default=None, ge=0, le=5)
    response: str | None = None
    response_time_ms: int = Field(ge=0)

    @model_validator(mode="after")
    def _needs_outcome(self) -> "AnswerRequest":
        if self.correct is None and self.quality is None and self.response is None:
            raise ValueError("one of correct, quality or response is required")
        return self

    def resolved_quality(self, expected_correct: bool | None = None) -> int:
        """Quality to schedule with; an explicit quality wins."""
        if self.quality is not None:
            return self.quality
        if self.correct is not None:
            return quality_from_correctness(self.correct)
        return quality_from_correctness(bool(expected_correct))


class AnswerResponse(BaseModel):
    """Response after answering with feedback and scheduling info."""

    correct: bool
    quality: int
    correct_answer: str
    retired: bool
    next_review: datetime | None = None
    interval_days: int | None = None
    remaining: int
    session_complete: bool


class SessionStatsResponse(BaseModel):
    """Statistics for the current session."""

    cards_reviewed: int
    correct: int
    incorrect: int
    new_cards_seen: int
    cards_retired: int
    average_time_ms: float


# --- Stats ---


class ModeDueCount(BaseModel):
    mode: StudyMode
    count: int


class RecentSession(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mode: str
    policy: str
    started_at: datetime
    ended_at: datetime | None = None
    cards_reviewed: int
    correct_count: int


class UserStatsResponse(BaseModel):
    """Overall statistics for a user."""

    total_cards: int
    total_reviews: int
    due_counts: list[ModeDueCount]
    average_accuracy: float | None
    streak_days: int
    recent_sessions: list[RecentSession]


class HeatmapDay(BaseModel):
    total: int
    correct: int
