"""
Ports (interfaces) for persistence and question generation.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from .models import Course, CourseSummary, GeneratedQuestion, Page, Question
from .scheduling.models import Candidate, MemoryState


class StudyRepository(ABC):
    """
    Port for storing courses, pages, questions and their memory states.

    Implementations:
        - InMemoryStudyRepository: Process-local dictionaries.
        - SqliteStudyRepository: A single SQLite database file.
    """

    # ---------- Courses ----------

    @abstractmethod
    async def add_course(self, course: Course) -> Course:
        pass

    @abstractmethod
    async def get_course(self, course_id: str) -> Course | None:
        pass

    @abstractmethod
    async def list_courses(self) -> list[CourseSummary]:
        """Return all courses with page/question counts, newest first."""
        pass

    @abstractmethod
    async def delete_course(self, course_id: str) -> bool:
        """
        Delete a course together with its pages, questions and states.

        Returns:
            False if the course did not exist.
        """
        pass

    # ---------- Pages ----------

    @abstractmethod
    async def add_page(self, page: Page) -> Page:
        pass

    @abstractmethod
    async def list_pages(self, course_id: str) -> list[Page]:
        """Pages of a course ordered by page number."""
        pass

    # ---------- Questions ----------

    @abstractmethod
    async def add_questions(self, questions: list[Question]) -> list[Question]:
        """Store questions and create an initial MemoryState for each."""
        pass

    @abstractmethod
    async def get_question(self, question_id: str) -> Question | None:
        pass

    @abstractmethod
    async def list_questions(self, course_id: str | None = None) -> list[Question]:
        pass

    # ---------- Memory states ----------

    @abstractmethod
    async def get_state(self, question_id: str) -> MemoryState | None:
        pass

    @abstractmethod
    async def save_state(
        self, question_id: str, state: MemoryState, expected_times_seen: int
    ) -> MemoryState:
        """
        Overwrite the state of a question if nobody else wrote it first.

        Args:
            question_id: The question being updated.
            state: The new state.
            expected_times_seen: `times_seen` of the state the caller read.

        Raises:
            NotFoundError: The question does not exist.
            StaleStateError: The stored `times_seen` differs from the expected value.
        """
        pass

    @abstractmethod
    async def list_candidates(self, course_id: str | None = None) -> list[Candidate]:
        """
        Enumerate questions in scope as selector candidates.

        Each Candidate's payload is the Question.
        """
        pass


class QuestionGenerator(ABC):
    """Port for turning study material into question/answer pairs."""

    @abstractmethod
    async def generate_from_text(self, text: str) -> list[GeneratedQuestion]:
        pass

    @abstractmethod
    async def generate_from_image(self, image_path: Path) -> list[GeneratedQuestion]:
        pass
