"""Errors raised by the scheduling core and its storage collaborator."""


class SchedulingError(Exception):
    """Base class for study and scheduling errors."""


class InvalidQualityError(SchedulingError, ValueError):
    """A review quality outside the 0-5 scale reached the boundary."""

    def __init__(self, value: object) -> None:
        super().__init__(f"quality must be an integer between 0 and 5, got {value!r}")
        self.value = value


class StorageError(SchedulingError):
    """The catalog or progress store could not be read or written."""


class ConcurrentUpdateError(StorageError):
    """A progress row changed underneath a scheduling update."""

    def __init__(self, progress_id: int) -> None:
        super().__init__(f"card progress {progress_id} was updated concurrently")
        self.progress_id = progress_id


class CardMismatchError(SchedulingError):
    """An answer was submitted for a card that is not at the head of the queue."""

    def __init__(self, expected: int | None, actual: int) -> None:
        super().__init__(f"expected an answer for card {expected}, got card {actual}")
        self.expected = expected
        self.actual = actual


class SessionCompleteError(SchedulingError):
    """An answer was submitted after the session ran out of cards."""
