# Infrastructure Adapters Package
from .gemini import GeminiQuestionGenerator
from .memory_store import InMemoryStudyRepository
from .sqlite_store import SqliteStudyRepository

__all__ = ["GeminiQuestionGenerator", "InMemoryStudyRepository", "SqliteStudyRepository"]
