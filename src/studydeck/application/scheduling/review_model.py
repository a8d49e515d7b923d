"""
Review model: per-question memory state transitions.

This is a pure computation module with no I/O. The only time input is the
explicit `now` argument.

After each answer:
1. A correct answer grows the streak, nudges ease up and lengthens the interval
   (1 day, then 3 days, then interval * ease, capped at 180 days).
2. A miss resets the streak, lowers ease and brings the question back in ~10 minutes.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta

from studydeck.domain.constants import (
    EASE_BONUS,
    EASE_PENALTY,
    FIRST_INTERVAL_DAYS,
    MAX_EASE,
    MAX_INTERVAL_DAYS,
    MIN_EASE,
    RELAPSE_INTERVAL_DAYS,
    SECOND_INTERVAL_DAYS,
)
from studydeck.domain.models import ensure_utc
from studydeck.domain.scheduling.models import MemoryState, ReviewResult

logger = logging.getLogger(__name__)


def initial_state() -> MemoryState:
    """State of a question that has never been reviewed."""
    return MemoryState()


def compute_next_state(
    correct: bool,
    ease: float,
    interval_days: float,
    streak: int,
    now: datetime,
) -> ReviewResult:
    """
    Compute the memory state that follows one answer.

    Out-of-range inputs (e.g. rows written before a parameter-range change)
    are clamped instead of rejected.

    Args:
        correct: Whether the question was answered correctly.
        ease: Current ease factor.
        interval_days: Current interval in days.
        streak: Current count of consecutive correct answers.
        now: Time of the answer.

    Returns:
        ReviewResult with the new ease, interval, streak and due time.
    """
    ease = _clamp_ease(ease)
    interval_days = _clamp_interval(interval_days)
    streak = max(0, int(streak))

    if correct:
        new_streak = streak + 1
        new_ease = min(MAX_EASE, ease + EASE_BONUS)

        if new_streak == 1:
            new_interval = FIRST_INTERVAL_DAYS
        elif new_streak == 2:
            new_interval = SECOND_INTERVAL_DAYS
        else:
            new_interval = float(_round_half_up(interval_days * new_ease))

        new_interval = min(MAX_INTERVAL_DAYS, new_interval)
    else:
        new_streak = 0
        new_ease = max(MIN_EASE, ease - EASE_PENALTY)
        new_interval = RELAPSE_INTERVAL_DAYS

    next_due_at = now + timedelta(days=new_interval)

    logger.debug(
        f"Review transition correct={correct}: ease {ease:.2f}->{new_ease:.2f}, "
        f"interval {interval_days}->{new_interval}, streak {streak}->{new_streak}"
    )

    return ReviewResult(
        ease=new_ease,
        interval_days=new_interval,
        streak=new_streak,
        next_due_at=next_due_at,
    )


def normalize_state(state: MemoryState) -> MemoryState:
    """
    Repair a stored state that violates the model's invariants.

    - ease is clamped to [1.3, 3.0] and interval to [0, 180]
    - negative counters become 0
    - an unseen question has no due date and no streak
    """
    times_seen = max(0, int(state.times_seen))
    next_due_at = state.next_due_at
    streak = max(0, int(state.streak))

    if times_seen == 0:
        next_due_at = None
        streak = 0

    return replace(
        state,
        ease=_clamp_ease(state.ease),
        interval_days=_clamp_interval(state.interval_days),
        streak=streak,
        next_due_at=ensure_utc(next_due_at) if next_due_at else None,
        times_seen=times_seen,
    )


def apply_review(state: MemoryState, correct: bool, now: datetime) -> MemoryState:
    """
    Produce the full MemoryState to persist after an answer.

    Wraps compute_next_state and also bumps `times_seen` and `last_seen_at`.
    """
    current = normalize_state(state)
    result = compute_next_state(
        correct,
        ease=current.ease,
        interval_days=current.interval_days,
        streak=current.streak,
        now=ensure_utc(now),
    )
    return MemoryState(
        ease=result.ease,
        interval_days=result.interval_days,
        streak=result.streak,
        next_due_at=result.next_due_at,
        times_seen=current.times_seen + 1,
        last_seen_at=ensure_utc(now),
    )


def _clamp_ease(ease: float) -> float:
    if math.isnan(ease):
        return MIN_EASE
    return min(MAX_EASE, max(MIN_EASE, float(ease)))


def _clamp_interval(interval_days: float) -> float:
    if math.isnan(interval_days):
        return 0.0
    return min(MAX_INTERVAL_DAYS, max(0.0, float(interval_days)))


def _round_half_up(value: float) -> int:
    # builtin round() uses banker's rounding; 2.5 must become 3
    return math.floor(value + 0.5)
