"""Tests for the quick-review and mastery practice queues."""

import random

import pytest

from backend.srs.practice import (
    MISS_OFFSET,
    SUCCESS_OFFSETS,
    MasteryQueue,
    PracticeQueue,
    QuickReviewQueue,
)

CARDS = ["a", "b", "c", "d", "e", "f", "g", "h", "i", "j", "k", "l", "m", "n", "o"]


class TestQuickReviewQueue:
    @pytest.mark.parametrize("pattern", [[True], [False], [True, False, False]])
    def test_n_answers_empty_the_queue(self, pattern: list[bool]) -> None:
        queue = QuickReviewQueue(CARDS, rng=random.Random(7))
        answers = 0
        while not queue.is_complete:
            queue.answer(pattern[answers % len(pattern)])
            answers += 1
        assert answers == len(CARDS)
        assert sorted(queue.retired) == sorted(CARDS)

    def test_shuffled_once_and_repeatable(self) -> None:
        first = QuickReviewQueue(CARDS, rng=random.Random(42)).cards()
        second = QuickReviewQueue(CARDS, rng=random.Random(42)).cards()
        assert first == second
        assert sorted(first) == sorted(CARDS)

    def test_wrong_answer_still_removes_card(self) -> None:
        queue = QuickReviewQueue(["a", "b"], rng=random.Random(1))
        head = queue.current.card
        result = queue.answer(False)
        assert result.retired
        assert head not in queue.cards()

    def test_empty_catalog_is_complete(self) -> None:
        assert QuickReviewQueue([], rng=random.Random(1)).is_complete

    def test_answer_on_empty_queue(self) -> None:
        with pytest.raises(IndexError):
            QuickReviewQueue([], rng=random.Random(1)).answer(True)


class TestMasteryQueue:
    def test_three_correct_retires_card(self) -> None:
        queue = MasteryQueue(["a", "b"], rng=random.Random(3))
        target = queue.current.card
        for expected_streak in (1, 2):
            result = queue.answer(True)
            assert result.entry.correct_count == expected_streak
            assert not result.retired
            # The other card is missed and the target comes back to the head.
            assert queue.current.card != target
            queue.answer(False)
            assert queue.current.card == target

        result = queue.answer(True)
        assert result.retired
        assert queue.mastered == [target]
        assert target not in queue.cards()
        assert queue.remaining == 1

    def test_miss_resets_streak(self) -> None:
        queue = MasteryQueue(["a"], rng=random.Random(0))
        queue.answer(True)
        queue.answer(True)
        assert queue.current.correct_count == 2
        result = queue.answer(False)
        assert result.entry.correct_count == 0
        assert not result.retired
        queue.answer(True)
        queue.answer(True)
        assert queue.remaining == 1
        queue.answer(True)
        assert queue.is_complete
        assert queue.mastered == ["a"]

    def test_miss_reinserts_near_front(self) -> None:
        queue = MasteryQueue(CARDS, rng=random.Random(11))
        for _ in range(20):
            result = queue.answer(False)
            low, high = MISS_OFFSET
            assert low <= result.offset <= high

    def test_offsets_widen_with_streak(self) -> None:
        queue = MasteryQueue(CARDS, rng=random.Random(5))
        target = queue.current.card

        first = queue.answer(True)
        assert SUCCESS_OFFSETS[1][0] <= first.offset <= SUCCESS_OFFSETS[1][1]
        assert queue.cards().index(target) == first.offset

        # Give the new head a one-answer streak and answer it again.
        queue.current.correct_count = 1
        second = queue.answer(True)
        assert SUCCESS_OFFSETS[2][0] <= second.offset <= SUCCESS_OFFSETS[2][1]
        assert second.offset > first.offset

    def test_offset_clipped_to_queue_end(self) -> None:
        queue = MasteryQueue(["a", "b"], rng=random.Random(2))
        result = queue.answer(True)
        assert result.offset == 1
        assert queue.cards()[-1] == result.entry.card

    def test_every_card_eventually_mastered(self) -> None:
        queue = MasteryQueue(CARDS, rng=random.Random(9))
        rng = random.Random(99)
        answers = 0
        while not queue.is_complete:
            queue.answer(rng.random() < 0.8)
            answers += 1
            assert answers < 10_000
        assert sorted(queue.mastered) == sorted(CARDS)
        assert answers >= 3 * len(CARDS)

    def test_empty_catalog_is_not_complete(self) -> None:
        queue = MasteryQueue([], rng=random.Random(1))
        assert queue.remaining == 0
        assert not queue.is_complete

    def test_custom_target(self) -> None:
        queue = MasteryQueue(["a"], rng=random.Random(1), target=1)
        assert queue.answer(True).retired

    def test_invalid_target(self) -> None:
        with pytest.raises(ValueError):
            MasteryQueue(["a"], target=0)


class TestPracticeQueue:
    def test_retire_predicate_injected(self) -> None:
        queue = PracticeQueue(["a", "b"], rng=random.Random(4), retire=lambda entry, correct: correct)
        head = queue.current.card
        result = queue.answer(False)
        assert not result.retired
        assert queue.cards()[-1] == head
        assert queue.answered == 1
        assert queue.correct == 0
