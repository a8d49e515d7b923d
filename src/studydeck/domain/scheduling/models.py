"""
Domain models for review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from studydeck.domain.constants import INITIAL_EASE


@dataclass(frozen=True)
class MemoryState:
    """
    Per-question memory model, persisted by the repository.

    Attributes:
        ease: Retention multiplier in [1.3, 3.0]. Higher = slower decay.
        interval_days: Gap until the question is next due (may be fractional).
        streak: Consecutive correct answers since the last miss.
        next_due_at: When the question is due again; None until first review.
        times_seen: Total reviews recorded.
        last_seen_at: When the last answer was recorded.
    """

    ease: float = INITIAL_EASE
    interval_days: float = 0.0
    streak: int = 0
    next_due_at: datetime | None = None
    times_seen: int = 0
    last_seen_at: datetime | None = None

    @property
    def is_new(self) -> bool:
        return self.times_seen == 0


@dataclass(frozen=True)
class ReviewResult:
    """Output of a single review transition."""

    ease: float
    interval_days: float
    streak: int
    next_due_at: datetime


@dataclass(frozen=True)
class Candidate:
    """
    A question offered to the session selector.

    The selector only reads `times_seen` and `next_due_at`; `payload` (usually
    the Question itself) flows through untouched.
    """

    id: str
    times_seen: int
    next_due_at: datetime | None
    payload: Any = field(default=None, compare=False)


@dataclass
class CandidatePartition:
    """Candidates split into the three scheduling classes."""

    due: list[Candidate] = field(default_factory=list)
    new: list[Candidate] = field(default_factory=list)
    future: list[Candidate] = field(default_factory=list)


@dataclass
class BatchPlan:
    """Per-class picks for a session, before the final interleaving shuffle."""

    due: list[Candidate] = field(default_factory=list)  # oldest due first
    new: list[Candidate] = field(default_factory=list)
    future: list[Candidate] = field(default_factory=list)

    def items(self) -> list[Candidate]:
        return [*self.due, *self.new, *self.future]

    def __len__(self) -> int:
        return len(self.due) + len(self.new) + len(self.future)
