"""
Domain models for courses, pages and questions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

QuestionType = Literal["short", "explanation", "extra"]
Difficulty = Literal["easy", "medium", "hard"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass
class Course:
    id: str
    name: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class CourseSummary:
    """A course with the counts shown in listings."""

    course: Course
    page_count: int = 0
    question_count: int = 0


@dataclass
class Page:
    """
    One unit of study material.

    Image pages carry `file_path`; text pages leave it empty and keep the
    submitted text in `text_extract`.
    """

    id: str
    course_id: str
    page_number: int = 1
    file_path: str = ""
    text_extract: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class GeneratedQuestion:
    """A question/answer pair as returned by the generator, not yet stored."""

    question: str
    answer: str
    type: QuestionType = "short"
    difficulty: Difficulty = "medium"


@dataclass
class Question:
    id: str
    course_id: str
    page_id: str
    question: str
    answer: str
    type: QuestionType = "short"
    difficulty: Difficulty = "medium"
    created_at: datetime = field(default_factory=utcnow)
