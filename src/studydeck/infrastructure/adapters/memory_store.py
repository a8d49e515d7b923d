"""
In-memory Study Repository: Infrastructure adapter backed by dictionaries.

Used by tests and by `backend = "memory"` for throwaway sessions.
"""

from studydeck.domain.errors import NotFoundError, StaleStateError
from studydeck.domain.models import Course, CourseSummary, Page, Question
from studydeck.domain.ports import StudyRepository
from studydeck.domain.scheduling.models import Candidate, MemoryState


class InMemoryStudyRepository(StudyRepository):
    """Keeps everything in process memory; nothing survives a restart."""

    def __init__(self):
        self.courses: dict[str, Course] = {}
        self.pages: dict[str, Page] = {}
        self.questions: dict[str, Question] = {}
        self.states: dict[str, MemoryState] = {}

    async def add_course(self, course: Course) -> Course:
        self.courses[course.id] = course
        return course

    async def get_course(self, course_id: str) -> Course | None:
        return self.courses.get(course_id)

    async def list_courses(self) -> list[CourseSummary]:
        summaries = [
            CourseSummary(
                course=course,
                page_count=sum(1 for p in self.pages.values() if p.course_id == course.id),
                question_count=sum(
                    1 for q in self.questions.values() if q.course_id == course.id
                ),
            )
            for course in self.courses.values()
        ]
        summaries.sort(key=lambda s: s.course.created_at, reverse=True)
        return summaries

    async def delete_course(self, course_id: str) -> bool:
        if self.courses.pop(course_id, None) is None:
            return False

        self.pages = {k: p for k, p in self.pages.items() if p.course_id != course_id}
        doomed = [k for k, q in self.questions.items() if q.course_id == course_id]
        for question_id in doomed:
            del self.questions[question_id]
            self.states.pop(question_id, None)
        return True

    async def add_page(self, page: Page) -> Page:
        self.pages[page.id] = page
        return page

    async def list_pages(self, course_id: str) -> list[Page]:
        pages = [p for p in self.pages.values() if p.course_id == course_id]
        return sorted(pages, key=lambda p: p.page_number)

    async def add_questions(self, questions: list[Question]) -> list[Question]:
        for question in questions:
            self.questions[question.id] = question
            self.states.setdefault(question.id, MemoryState())
        return questions

    async def get_question(self, question_id: str) -> Question | None:
        return self.questions.get(question_id)

    async def list_questions(self, course_id: str | None = None) -> list[Question]:
        return [
            q for q in self.questions.values() if course_id is None or q.course_id == course_id
        ]

    async def get_state(self, question_id: str) -> MemoryState | None:
        return self.states.get(question_id)

    async def save_state(
        self, question_id: str, state: MemoryState, expected_times_seen: int
    ) -> MemoryState:
        if question_id not in self.questions:
            raise NotFoundError(f"Question {question_id} not found")

        current = self.states.get(question_id)
        actual = current.times_seen if current else 0
        if actual != expected_times_seen:
            raise StaleStateError(question_id, expected_times_seen, actual)

        self.states[question_id] = state
        return state

    async def list_candidates(self, course_id: str | None = None) -> list[Candidate]:
        candidates = []
        for question in await self.list_questions(course_id):
            state = self.states.get(question.id) or MemoryState()
            candidates.append(
                Candidate(
                    id=question.id,
                    times_seen=state.times_seen,
                    next_due_at=state.next_due_at,
                    payload=question,
                )
            )
        return candidates
