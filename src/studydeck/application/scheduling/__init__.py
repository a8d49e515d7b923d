# Application Scheduling Package
from .review_model import apply_review, compute_next_state, initial_state, normalize_state
from .session_selector import partition_candidates, plan_batch, select_batch

__all__ = [
    "apply_review",
    "compute_next_state",
    "initial_state",
    "normalize_state",
    "partition_candidates",
    "plan_batch",
    "select_batch",
]
