"""Service for managing courses, study pages and their generated questions."""

import logging
from dataclasses import dataclass
from pathlib import Path

from ulid import ULID

from studydeck.domain.errors import InvalidInputError, NotFoundError
from studydeck.domain.models import Course, CourseSummary, Page, Question
from studydeck.domain.ports import QuestionGenerator, StudyRepository

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    """Generate a sortable unique ID using ULID."""
    return f"{prefix}_{ULID()}"


@dataclass
class CourseDetail:
    course: Course
    pages: list[Page]
    question_count: int


class CourseService:
    def __init__(self, repo: StudyRepository, generator: QuestionGenerator | None = None):
        self._repo = repo
        self._generator = generator

    # ---------- Courses ----------

    async def create_course(self, name: str) -> Course:
        name = (name or "").strip()
        if not name:
            raise InvalidInputError("Course name is required")

        course = await self._repo.add_course(Course(id=generate_id("crs"), name=name))
        logger.info(f"Created course {course.id} ({course.name})")
        return course

    async def list_courses(self) -> list[CourseSummary]:
        return await self._repo.list_courses()

    async def get_course(self, course_id: str) -> CourseDetail:
        course = await self._require_course(course_id)
        pages = await self._repo.list_pages(course_id)
        questions = await self._repo.list_questions(course_id)
        return CourseDetail(course=course, pages=pages, question_count=len(questions))

    async def delete_course(self, course_id: str) -> None:
        if not await self._repo.delete_course(course_id):
            raise NotFoundError(f"Course {course_id} not found")
        logger.info(f"Deleted course {course_id}")

    # ---------- Pages ----------

    async def add_text_page(self, course_id: str, text: str, page_number: int = 1) -> Page:
        """Create a text-only page. Questions are generated separately."""
        text = (text or "").strip()
        if not text:
            raise InvalidInputError("Text content is required")

        await self._require_course(course_id)
        page = Page(
            id=generate_id("pg"),
            course_id=course_id,
            page_number=max(1, page_number or 1),
            text_extract=text,
        )
        return await self._repo.add_page(page)

    async def add_image_page(self, course_id: str, file_path: Path, page_number: int = 1) -> Page:
        """Create a page backed by an uploaded file."""
        await self._require_course(course_id)
        page = Page(
            id=generate_id("pg"),
            course_id=course_id,
            page_number=max(1, page_number or 1),
            file_path=str(file_path),
        )
        return await self._repo.add_page(page)

    # ---------- Question generation ----------

    async def generate_questions(self, page: Page) -> list[Question]:
        """
        Generate questions for a page and store them with fresh memory states.

        Image pages are sent as images; text pages as text.

        Raises:
            GenerationError: The generator failed.
            InvalidInputError: No generator is configured.
        """
        if self._generator is None:
            raise InvalidInputError("No question generator configured")

        if page.file_path:
            generated = await self._generator.generate_from_image(Path(page.file_path))
        else:
            generated = await self._generator.generate_from_text(page.text_extract or "")

        questions = [
            Question(
                id=generate_id("q"),
                course_id=page.course_id,
                page_id=page.id,
                question=g.question,
                answer=g.answer,
                type=g.type,
                difficulty=g.difficulty,
            )
            for g in generated
        ]
        saved = await self._repo.add_questions(questions)
        logger.info(f"Generated {len(saved)} questions for page {page.id}")
        return saved

    async def generate_questions_safely(self, page: Page) -> None:
        """Background-task wrapper: failures are logged, never raised."""
        try:
            await self.generate_questions(page)
        except Exception as e:
            logger.error(f"Question generation failed for page {page.id}: {e}", exc_info=True)

    async def _require_course(self, course_id: str) -> Course:
        course = await self._repo.get_course(course_id)
        if course is None:
            raise NotFoundError(f"Course {course_id} not found")
        return course
