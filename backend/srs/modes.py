"""Study modes: the direction of recall a card is practised in.

Each (card, mode) pair carries its own scheduling state, so knowing a card
from hanzi to pinyin says nothing about recalling it from English.
"""

from enum import Enum
from typing import Any


class StudyMode(str, Enum):
    """A direction of recall."""

    HANZI_TO_PINYIN = "hanzi_to_pinyin"
    PINYIN_TO_ENGLISH = "pinyin_to_english"
    ENGLISH_TO_HANZI = "english_to_hanzi"
    ENGLISH_TO_PINYIN = "english_to_pinyin"
    PINYIN_TO_HANZI = "pinyin_to_hanzi"
    HANZI_TO_ENGLISH = "hanzi_to_english"
    # Reserved: valid for storage, not offered when starting a session.
    ENGLISH_PINYIN_TO_HANZI = "english_pinyin_to_hanzi"

    @property
    def prompt_field(self) -> str:
        """Card attribute shown to the learner."""
        return _PROMPT_FIELDS[self]

    @property
    def answer_field(self) -> str:
        """Card attribute the learner must produce."""
        return _ANSWER_FIELDS[self]

    @property
    def is_selectable(self) -> bool:
        return self in SELECTABLE_MODES

    def prompt_for(self, card: Any) -> str:
        if self is StudyMode.ENGLISH_PINYIN_TO_HANZI:
            return f"{card.english} ({card.pinyin_display})"
        return getattr(card, self.prompt_field) or ""

    def expected_answer(self, card: Any) -> str:
        value = getattr(card, self.answer_field) or ""
        if self.answer_field == "hanzi":
            return value.strip()
        return value.strip().lower()

    def check_answer(self, card: Any, response: str) -> bool:
        """Compare a typed response with the card.

        Pinyin and English answers ignore case and surrounding whitespace;
        hanzi must match exactly once trimmed.
        """
        expected = self.expected_answer(card)
        if self.answer_field == "hanzi":
            return response.strip() == expected
        return response.strip().lower() == expected


_PROMPT_FIELDS: dict[StudyMode, str] = {
    StudyMode.HANZI_TO_PINYIN: "hanzi",
    StudyMode.HANZI_TO_ENGLISH: "hanzi",
    StudyMode.PINYIN_TO_HANZI: "pinyin_display",
    StudyMode.PINYIN_TO_ENGLISH: "pinyin_display",
    StudyMode.ENGLISH_TO_HANZI: "english",
    StudyMode.ENGLISH_TO_PINYIN: "english",
    StudyMode.ENGLISH_PINYIN_TO_HANZI: "english",
}

_ANSWER_FIELDS: dict[StudyMode, str] = {
    StudyMode.HANZI_TO_PINYIN: "pinyin",
    StudyMode.ENGLISH_TO_PINYIN: "pinyin",
    StudyMode.HANZI_TO_ENGLISH: "english",
    StudyMode.PINYIN_TO_ENGLISH: "english",
    StudyMode.PINYIN_TO_HANZI: "hanzi",
    StudyMode.ENGLISH_TO_HANZI: "hanzi",
    StudyMode.ENGLISH_PINYIN_TO_HANZI: "hanzi",
}

SELECTABLE_MODES: tuple[StudyMode, ...] = (
    StudyMode.HANZI_TO_PINYIN,
    StudyMode.HANZI_TO_ENGLISH,
    StudyMode.PINYIN_TO_HANZI,
    StudyMode.PINYIN_TO_ENGLISH,
    StudyMode.ENGLISH_TO_HANZI,
    StudyMode.ENGLISH_TO_PINYIN,
)
