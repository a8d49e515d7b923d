"""Tests for session selection (partitioning, budgets and ordering)."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from studydeck.application.scheduling.session_selector import (
    partition_candidates,
    plan_batch,
    select_batch,
)
from studydeck.domain.scheduling.models import Candidate

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def due(cid: str, days_overdue: float) -> Candidate:
    return Candidate(id=cid, times_seen=2, next_due_at=NOW - timedelta(days=days_overdue))


def new(cid: str) -> Candidate:
    return Candidate(id=cid, times_seen=0, next_due_at=None)


def future(cid: str, days_ahead: float = 3) -> Candidate:
    return Candidate(id=cid, times_seen=1, next_due_at=NOW + timedelta(days=days_ahead))


def ids(candidates: list[Candidate]) -> list[str]:
    return [c.id for c in candidates]


class TestPartition:
    def test_each_candidate_lands_in_exactly_one_class(self):
        pool = [due("d1", 1), new("n1"), future("f1"), due("d2", 0), new("n2")]
        p = partition_candidates(pool, NOW)

        assert ids(p.due) == ["d1", "d2"]
        assert ids(p.new) == ["n1", "n2"]
        assert ids(p.future) == ["f1"]
        assert len(p.due) + len(p.new) + len(p.future) == len(pool)

    def test_due_exactly_now_is_due(self):
        p = partition_candidates([Candidate("x", 1, NOW)], NOW)
        assert ids(p.due) == ["x"]

    def test_unseen_with_stray_due_date_is_new(self):
        p = partition_candidates([Candidate("x", 0, NOW - timedelta(days=5))], NOW)
        assert ids(p.new) == ["x"]

    def test_seen_without_due_date_is_due(self):
        p = partition_candidates([Candidate("x", 3, None)], NOW)
        assert ids(p.due) == ["x"]

    def test_naive_due_dates_compare_as_utc(self):
        naive_past = datetime(2026, 2, 28, 12, 0)
        p = partition_candidates([Candidate("x", 1, naive_past)], NOW)
        assert ids(p.due) == ["x"]


class TestPlanBatch:
    def test_due_sorted_most_overdue_first(self):
        pool = [due("d_recent", 1), due("d_oldest", 30), due("d_mid", 7)]
        plan = plan_batch(pool, NOW, limit=10, rng=random.Random(1))

        assert ids(plan.due) == ["d_oldest", "d_mid", "d_recent"]

    def test_budget_split_with_plenty_of_everything(self):
        pool = (
            [due(f"d{i}", i + 1) for i in range(20)]
            + [new(f"n{i}") for i in range(20)]
            + [future(f"f{i}") for i in range(20)]
        )
        plan = plan_batch(pool, NOW, limit=10, rng=random.Random(7))

        assert len(plan.due) == 7
        assert len(plan.new) == 2
        assert len(plan.future) == 1
        # the 7 most overdue, oldest first
        assert ids(plan.due) == [f"d{i}" for i in range(19, 12, -1)]

    def test_extra_due_items_are_dropped_when_new_is_empty(self):
        pool = [due(f"d{i}", i + 1) for i in range(15)]
        plan = plan_batch(pool, NOW, limit=10, rng=random.Random(0))

        # rigid split: no new questions, no future backfill, so only 7 slots used
        assert len(plan) == 7
        assert plan.new == []
        assert plan.future == []

    def test_shortfall_backfilled_from_future_only(self):
        pool = [due("d1", 2), new("n1")] + [future(f"f{i}") for i in range(10)]
        plan = plan_batch(pool, NOW, limit=10, rng=random.Random(3))

        assert ids(plan.due) == ["d1"]
        assert ids(plan.new) == ["n1"]
        assert len(plan.future) == 8
        assert len(plan) == 10

    def test_strict_split_with_five_due_and_five_new(self):
        pool = [due(f"d{i}", i + 1) for i in range(5)] + [new(f"n{i}") for i in range(5)]
        plan = plan_batch(pool, NOW, limit=10, rng=random.Random(2))

        assert len(plan.due) == 5
        assert len(plan.new) == 2
        assert len(plan) == 7

    def test_cascade_budgets_fills_from_due_and_new(self):
        pool = [due(f"d{i}", i + 1) for i in range(5)] + [new(f"n{i}") for i in range(5)]
        plan = plan_batch(pool, NOW, limit=10, rng=random.Random(2), cascade_budgets=True)

        assert len(plan) == 10
        assert ids(plan.due) == ["d4", "d3", "d2", "d1", "d0"]
        assert sorted(ids(plan.new)) == [f"n{i}" for i in range(5)]

    def test_cascade_prefers_leftover_due_over_future(self):
        pool = [due(f"d{i}", i + 1) for i in range(12)] + [future(f"f{i}") for i in range(5)]
        plan = plan_batch(pool, NOW, limit=10, rng=random.Random(4), cascade_budgets=True)

        assert len(plan.due) == 10
        assert plan.future == []

    def test_small_limit_goes_to_future(self):
        # floor(1 * 0.7) == floor(1 * 0.2) == 0
        pool = [due("d1", 1), new("n1"), future("f1")]
        plan = plan_batch(pool, NOW, limit=1, rng=random.Random(0))

        assert ids(plan.items()) == ["f1"]


class TestSelectBatch:
    def test_scenario_five_due_five_new_with_cascade(self):
        pool = [due(f"d{i}", i + 1) for i in range(5)] + [new(f"n{i}") for i in range(5)]
        batch = select_batch(pool, NOW, limit=10, rng=random.Random(11), cascade_budgets=True)

        assert sorted(ids(batch)) == sorted(ids(pool))
        due_in_batch = [c for c in batch if c.times_seen > 0]
        assert len(due_in_batch) == 5

    def test_empty_candidates(self):
        assert select_batch([], NOW, limit=10) == []

    @pytest.mark.parametrize("limit", [0, -5])
    def test_non_positive_limit(self, limit):
        assert select_batch([new("n1"), due("d1", 1)], NOW, limit=limit) == []

    def test_subset_without_duplicates(self):
        pool = (
            [due(f"d{i}", i) for i in range(8)]
            + [new(f"n{i}") for i in range(8)]
            + [future(f"f{i}") for i in range(8)]
        )
        for seed in range(25):
            batch = select_batch(pool, NOW, limit=10, rng=random.Random(seed))
            assert len(batch) == 10
            assert len(set(ids(batch))) == len(batch)
            assert set(ids(batch)) <= set(ids(pool))

    def test_never_exceeds_pool_size(self):
        pool = [new("n1"), future("f1")]
        batch = select_batch(pool, NOW, limit=10, rng=random.Random(0))
        assert len(batch) <= len(pool)

    def test_same_seed_same_order(self):
        pool = [due(f"d{i}", i) for i in range(6)] + [new(f"n{i}") for i in range(6)]
        a = select_batch(pool, NOW, limit=8, rng=random.Random(42))
        b = select_batch(pool, NOW, limit=8, rng=random.Random(42))
        assert ids(a) == ids(b)

    def test_final_batch_is_interleaved(self):
        pool = [due(f"d{i}", i + 1) for i in range(10)] + [new(f"n{i}") for i in range(10)]
        orders = {
            tuple(ids(select_batch(pool, NOW, limit=9, rng=random.Random(seed))))
            for seed in range(10)
        }
        # the batch is shuffled, not always the fill order
        assert len(orders) > 1

    def test_payload_passes_through_untouched(self):
        payload = {"question": "What is 2+2?"}
        batch = select_batch([Candidate("q1", 0, None, payload)], NOW, limit=5)
        assert batch[0].payload is payload
