# Domain Scheduling Package
from .models import BatchPlan, Candidate, CandidatePartition, MemoryState, ReviewResult
from .ports import RandomSource

__all__ = [
    "BatchPlan",
    "Candidate",
    "CandidatePartition",
    "MemoryState",
    "RandomSource",
    "ReviewResult",
]
