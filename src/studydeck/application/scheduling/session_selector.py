"""
Session selector for practice batches.

Builds a practice batch by:
1. Partitioning candidates into due, new and future questions
2. Filling fixed budgets (70% due, 20% new, remainder backfilled from future)
3. Shuffling the batch so the three classes are interleaved

Pure apart from the injected random source; `now` is always explicit.
"""

import logging
import math
import random
from datetime import datetime, timezone

from studydeck.domain.constants import DUE_SHARE, NEW_SHARE
from studydeck.domain.models import ensure_utc
from studydeck.domain.scheduling.models import BatchPlan, Candidate, CandidatePartition
from studydeck.domain.scheduling.ports import RandomSource

logger = logging.getLogger(__name__)

# Seen but undated candidates sort ahead of every real due date
_UNDATED = datetime.min.replace(tzinfo=timezone.utc)


def partition_candidates(candidates: list[Candidate], now: datetime) -> CandidatePartition:
    """
    Split candidates into due, new and future classes.

    A candidate with `times_seen == 0` is new even if it carries a due date.
    A seen candidate without a due date is treated as due.
    """
    now = ensure_utc(now)
    partition = CandidatePartition()

    for candidate in candidates:
        if candidate.times_seen <= 0:
            partition.new.append(candidate)
        elif candidate.next_due_at is None or ensure_utc(candidate.next_due_at) <= now:
            partition.due.append(candidate)
        else:
            partition.future.append(candidate)

    return partition


def plan_batch(
    candidates: list[Candidate],
    now: datetime,
    limit: int,
    rng: RandomSource | None = None,
    cascade_budgets: bool = False,
) -> BatchPlan:
    """
    Pick the questions for a session without the final interleaving shuffle.

    Args:
        candidates: Every question in scope.
        now: Current time.
        limit: Maximum batch size.
        rng: Random source for shuffling; a fresh `random.Random` if omitted.
        cascade_budgets: When True, slots left after the 70/20 split are filled
            with the remaining due questions, then the remaining new ones,
            before falling back to future questions. The default keeps the
            strict split where only future questions backfill a shortfall.

    Returns:
        BatchPlan whose `due` list is ordered oldest due first.
    """
    if limit <= 0 or not candidates:
        return BatchPlan()

    rng = rng or random.Random()
    partition = partition_candidates(candidates, now)

    # Stable sort: equal due times keep their input order
    due = sorted(partition.due, key=_due_key)
    new = list(partition.new)
    future = list(partition.future)
    rng.shuffle(new)
    rng.shuffle(future)

    due_budget = math.floor(limit * DUE_SHARE)
    new_budget = math.floor(limit * NEW_SHARE)

    plan = BatchPlan()
    plan.due = due[:due_budget]

    remaining = limit - len(plan)
    plan.new = new[: min(new_budget, remaining)]

    if cascade_budgets:
        # Leftover due questions first, then leftover new ones
        plan.due += due[len(plan.due) : len(plan.due) + limit - len(plan)]
        plan.new += new[len(plan.new) : len(plan.new) + limit - len(plan)]

    if len(plan) < limit:
        plan.future = future[: limit - len(plan)]

    logger.debug(
        f"Planned batch of {len(plan)}/{limit}: "
        f"due={len(plan.due)}/{len(due)} new={len(plan.new)}/{len(new)} "
        f"future={len(plan.future)}/{len(future)}"
    )
    return plan


def select_batch(
    candidates: list[Candidate],
    now: datetime,
    limit: int,
    rng: RandomSource | None = None,
    cascade_budgets: bool = False,
) -> list[Candidate]:
    """
    Select and order the questions for one practice session.

    Empty input or a non-positive limit yields an empty batch.
    """
    rng = rng or random.Random()
    batch = plan_batch(candidates, now, limit, rng=rng, cascade_budgets=cascade_budgets).items()
    rng.shuffle(batch)
    return batch


def _due_key(candidate: Candidate) -> datetime:
    if candidate.next_due_at is None:
        return _UNDATED
    return ensure_utc(candidate.next_due_at)
