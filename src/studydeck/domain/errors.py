"""Error taxonomy shared by every layer."""


class StudyDeckError(Exception):
    """Base class for all studydeck errors."""


class NotFoundError(StudyDeckError):
    """A course, page, question or upload does not exist."""


class InvalidInputError(StudyDeckError):
    """Caller-supplied data failed validation."""


class StaleStateError(StudyDeckError):
    """
    A conditional MemoryState write lost a race.

    Raised by repositories when the stored `times_seen` no longer matches the
    value the caller read before computing the new state.
    """

    def __init__(self, question_id: str, expected: int, actual: int | None):
        self.question_id = question_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"State for {question_id} changed concurrently "
            f"(expected times_seen={expected}, found {actual})"
        )


class GenerationError(StudyDeckError):
    """The AI question generator failed or returned an unusable response."""
