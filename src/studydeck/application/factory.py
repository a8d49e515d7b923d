"""
Service Factory
Centralizes the logic for selecting adapters and wiring application services.
"""

from dataclasses import dataclass

from studydeck.application.config import AppConfig
from studydeck.application.course_service import CourseService
from studydeck.application.practice_service import PracticeService
from studydeck.domain.ports import QuestionGenerator, StudyRepository
from studydeck.domain.scheduling.ports import RandomSource
from studydeck.infrastructure.adapters.gemini import GeminiQuestionGenerator
from studydeck.infrastructure.adapters.memory_store import InMemoryStudyRepository
from studydeck.infrastructure.adapters.sqlite_store import SqliteStudyRepository
from studydeck.infrastructure.storage.uploads import UploadStore


@dataclass
class Services:
    """Everything the HTTP and CLI layers need, built from one config."""

    config: AppConfig
    repo: StudyRepository
    courses: CourseService
    practice: PracticeService
    uploads: UploadStore


def get_repository(config: AppConfig) -> StudyRepository:
    """
    Returns the StudyRepository implementation selected by config.backend.
    """
    if config.backend == "memory":
        return InMemoryStudyRepository()

    return SqliteStudyRepository(db_path=config.database_path)


def get_question_generator(config: AppConfig) -> QuestionGenerator:
    return GeminiQuestionGenerator(
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        base_url=config.gemini_base_url,
        timeout=config.request_timeout,
    )


def build_services(
    config: AppConfig,
    repo: StudyRepository | None = None,
    generator: QuestionGenerator | None = None,
    rng: RandomSource | None = None,
) -> Services:
    repo = repo or get_repository(config)
    generator = generator or get_question_generator(config)
    return Services(
        config=config,
        repo=repo,
        courses=CourseService(repo, generator),
        practice=PracticeService(repo, rng=rng, cascade_budgets=config.cascade_budgets),
        uploads=UploadStore(config.uploads_dir),
    )
