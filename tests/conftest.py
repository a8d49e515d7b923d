from datetime import datetime, timezone
from pathlib import Path

import pytest

from studydeck.domain.models import Course, GeneratedQuestion, Page, Question
from studydeck.domain.ports import QuestionGenerator
from studydeck.infrastructure.adapters.memory_store import InMemoryStudyRepository

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

class FakeGenerator(QuestionGenerator):
    """Returns canned questions and remembers what it was asked."""

    def __init__(self, questions: list[GeneratedQuestion] | None = None):
        self.questions = questions or [
            GeneratedQuestion("What is ATP?", "Energy currency", "short", "easy"),
            GeneratedQuestion("Explain glycolysis.", "Glucose -> pyruvate", "explanation", "medium"),
        ]
        self.text_calls: list[str] = []
        self.image_calls: list[Path] = []

    async def generate_from_text(self, text: str) -> list[GeneratedQuestion]:
        self.text_calls.append(text)
        return list(self.questions)

    async def generate_from_image(self, image_path: Path) -> list[GeneratedQuestion]:
        self.image_calls.append(image_path)
        return list(self.questions)

@pytest.fixture
def now() -> datetime:
    return T0

@pytest.fixture
def repo():
    return InMemoryStudyRepository()

@pytest.fixture
def fake_generator():
    return FakeGenerator()

@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config/logs from the real home directory
    monkeypatch.setenv("HOME", str(home))
    for key in ("STUDYDECK_BACKEND", "STUDYDECK_DATA_DIR", "STUDYDECK_GEMINI_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    return home

def make_question(qid: str, course_id: str = "crs_1", page_id: str = "pg_1") -> Question:
    return Question(
        id=qid,
        course_id=course_id,
        page_id=page_id,
        question=f"Question {qid}?",
        answer=f"Answer {qid}",
    )

async def _seed_course(repo, course_id: str = "crs_1", n_questions: int = 3) -> list[Question]:
    """Store one course with one page and `n_questions` fresh questions."""
    await repo.add_course(Course(id=course_id, name=f"Course {course_id}"))
    await repo.add_page(Page(id=f"pg_{course_id}", course_id=course_id, text_extract="notes"))
    questions = [
        make_question(f"q_{course_id}_{i}", course_id=course_id, page_id=f"pg_{course_id}")
        for i in range(n_questions)
    ]
    return await repo.add_questions(questions)


@pytest.fixture
def seed_course():
    """Async helper: `await seed_course(repo, course_id, n_questions)`."""
    return _seed_course
