"""
Practice Service: Application layer orchestrator for review sessions.

Threads MemoryState between the repository and the two scheduler components:
- read path: candidates -> select_batch -> questions to show
- write path: stored state -> apply_review -> conditional save
"""

import asyncio
import logging
import random
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from studydeck.domain.constants import DEFAULT_SESSION_LIMIT, MAX_STATE_WRITE_ATTEMPTS
from studydeck.domain.errors import NotFoundError, StaleStateError
from studydeck.domain.models import Question, utcnow
from studydeck.domain.ports import StudyRepository
from studydeck.domain.scheduling.models import MemoryState
from studydeck.domain.scheduling.ports import RandomSource

from .scheduling.review_model import apply_review, initial_state
from .scheduling.session_selector import select_batch

logger = logging.getLogger(__name__)


@dataclass
class PracticeItem:
    """A question picked for a session, with the state it was picked under."""

    question: Question
    state: MemoryState


@dataclass
class PracticeSession:
    items: list[PracticeItem]
    total_available: int


class PracticeService:
    """
    Application service for building practice sessions and recording answers.

    Answers for the same question are serialized with a per-question lock;
    the repository's conditional write catches writers outside this process.
    """

    def __init__(
        self,
        repo: StudyRepository,
        rng: RandomSource | None = None,
        clock: Callable[[], datetime] = utcnow,
        cascade_budgets: bool = False,
    ):
        """
        Args:
            repo: The repository (port) for questions and states.
            rng: Random source for session shuffles.
            clock: Returns the current time; injectable for tests.
            cascade_budgets: Passed through to the session selector.
        """
        self._repo = repo
        self._rng = rng or random.Random()
        self._clock = clock
        self._cascade_budgets = cascade_budgets
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_session(
        self, course_id: str | None = None, limit: int = DEFAULT_SESSION_LIMIT
    ) -> PracticeSession:
        """
        Pick the questions for the next practice session.

        Args:
            course_id: Restrict to one course; None means all questions.
            limit: Maximum number of questions.
        """
        candidates = await self._repo.list_candidates(course_id)
        batch = select_batch(
            candidates,
            now=self._clock(),
            limit=limit,
            rng=self._rng,
            cascade_budgets=self._cascade_budgets,
        )

        items = []
        for candidate in batch:
            state = await self._repo.get_state(candidate.id) or initial_state()
            items.append(PracticeItem(question=candidate.payload, state=state))

        logger.info(
            f"Practice session: {len(items)} of {len(candidates)} questions "
            f"(course={course_id or 'all'}, limit={limit})"
        )
        return PracticeSession(items=items, total_available=len(candidates))

    async def record_answer(self, question_id: str, correct: bool) -> MemoryState:
        """
        Record one answer and persist the resulting state.

        Raises:
            NotFoundError: The question does not exist.
            StaleStateError: Concurrent writers kept winning after every retry.
        """
        async with self._locks[question_id]:
            last_error: StaleStateError | None = None

            for attempt in range(1, MAX_STATE_WRITE_ATTEMPTS + 1):
                current = await self._repo.get_state(question_id)
                if current is None:
                    if await self._repo.get_question(question_id) is None:
                        raise NotFoundError(f"Question {question_id} not found")
                    current = initial_state()

                updated = apply_review(current, correct, now=self._clock())
                try:
                    saved = await self._repo.save_state(
                        question_id, updated, expected_times_seen=current.times_seen
                    )
                except StaleStateError as e:
                    last_error = e
                    logger.warning(f"{e}; retrying ({attempt}/{MAX_STATE_WRITE_ATTEMPTS})")
                    continue

                logger.info(
                    f"Recorded {'correct' if correct else 'incorrect'} answer for {question_id}: "
                    f"streak={saved.streak} interval={saved.interval_days}d"
                )
                return saved

        assert last_error is not None
        raise last_error
