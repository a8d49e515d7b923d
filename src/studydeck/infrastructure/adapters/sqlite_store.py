"""
SQLite Study Repository: Infrastructure adapter for a local database file.

Implements StudyRepository with the standard library sqlite3 module.
The schema is created on first use; deleting a course cascades to its
pages, questions and memory states.
"""

import logging
import sqlite3
from contextlib import closing
from datetime import datetime
from pathlib import Path

from studydeck.domain.errors import NotFoundError, StaleStateError
from studydeck.domain.models import Course, CourseSummary, Page, Question, ensure_utc
from studydeck.domain.ports import StudyRepository
from studydeck.domain.scheduling.models import Candidate, MemoryState

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS courses (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS pages (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
    page_number INTEGER NOT NULL DEFAULT 1,
    file_path TEXT NOT NULL DEFAULT '',
    text_extract TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    course_id TEXT NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
    page_id TEXT NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
    question TEXT NOT NULL,
    answer TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'short',
    difficulty TEXT NOT NULL DEFAULT 'medium',
    created_at TEXT NOT NULL
);

-- Current state per question (overwritten after each answer)
CREATE TABLE IF NOT EXISTS memory_states (
    question_id TEXT PRIMARY KEY REFERENCES questions(id) ON DELETE CASCADE,
    ease REAL NOT NULL DEFAULT 2.5,
    interval_days REAL NOT NULL DEFAULT 0,
    streak INTEGER NOT NULL DEFAULT 0,
    next_due_at TEXT,
    times_seen INTEGER NOT NULL DEFAULT 0,
    last_seen_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_pages_course ON pages(course_id, page_number);
CREATE INDEX IF NOT EXISTS idx_questions_course ON questions(course_id);
"""


class SqliteStudyRepository(StudyRepository):
    """
    Stores everything in one SQLite file.

    A connection is opened per operation, so the repository can be shared
    by concurrent requests.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        if not self._initialized:
            self.init_db()
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self) -> None:
        """Create the database file and tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.executescript(SCHEMA)
            conn.commit()
        self._initialized = True
        logger.debug(f"SQLite store ready at {self.db_path}")

    # ---------- Courses ----------

    async def add_course(self, course: Course) -> Course:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT INTO courses (id, name, created_at) VALUES (?, ?, ?)",
                (course.id, course.name, _dump_dt(course.created_at)),
            )
        return course

    async def get_course(self, course_id: str) -> Course | None:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
        return _row_to_course(row) if row else None

    async def list_courses(self) -> list[CourseSummary]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                """
                SELECT c.*,
                    (SELECT COUNT(*) FROM pages p WHERE p.course_id = c.id) AS page_count,
                    (SELECT COUNT(*) FROM questions q WHERE q.course_id = c.id) AS question_count
                FROM courses c
                ORDER BY c.created_at DESC
                """
            ).fetchall()
        return [
            CourseSummary(
                course=_row_to_course(row),
                page_count=row["page_count"],
                question_count=row["question_count"],
            )
            for row in rows
        ]

    async def delete_course(self, course_id: str) -> bool:
        with closing(self._connect()) as conn, conn:
            deleted = conn.execute("DELETE FROM courses WHERE id = ?", (course_id,)).rowcount
        return deleted > 0

    # ---------- Pages ----------

    async def add_page(self, page: Page) -> Page:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                INSERT INTO pages (id, course_id, page_number, file_path, text_extract, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    page.id,
                    page.course_id,
                    page.page_number,
                    page.file_path,
                    page.text_extract,
                    _dump_dt(page.created_at),
                ),
            )
        return page

    async def list_pages(self, course_id: str) -> list[Page]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT * FROM pages WHERE course_id = ? ORDER BY page_number ASC, created_at ASC",
                (course_id,),
            ).fetchall()
        return [
            Page(
                id=row["id"],
                course_id=row["course_id"],
                page_number=row["page_number"],
                file_path=row["file_path"],
                text_extract=row["text_extract"],
                created_at=_load_dt(row["created_at"]),
            )
            for row in rows
        ]

    # ---------- Questions ----------

    async def add_questions(self, questions: list[Question]) -> list[Question]:
        if not questions:
            return []

        with closing(self._connect()) as conn, conn:
            conn.executemany(
                """
                INSERT INTO questions
                    (id, course_id, page_id, question, answer, type, difficulty, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        q.id,
                        q.course_id,
                        q.page_id,
                        q.question,
                        q.answer,
                        q.type,
                        q.difficulty,
                        _dump_dt(q.created_at),
                    )
                    for q in questions
                ],
            )
            conn.executemany(
                "INSERT OR IGNORE INTO memory_states (question_id) VALUES (?)",
                [(q.id,) for q in questions],
            )
        return questions

    async def get_question(self, question_id: str) -> Question | None:
        with closing(self._connect()) as conn:
            row = conn.execute("SELECT * FROM questions WHERE id = ?", (question_id,)).fetchone()
        return _row_to_question(row) if row else None

    async def list_questions(self, course_id: str | None = None) -> list[Question]:
        with closing(self._connect()) as conn:
            if course_id is None:
                rows = conn.execute("SELECT * FROM questions ORDER BY created_at").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM questions WHERE course_id = ? ORDER BY created_at",
                    (course_id,),
                ).fetchall()
        return [_row_to_question(row) for row in rows]

    # ---------- Memory states ----------

    async def get_state(self, question_id: str) -> MemoryState | None:
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM memory_states WHERE question_id = ?", (question_id,)
            ).fetchone()
        return _row_to_state(row) if row else None

    async def save_state(
        self, question_id: str, state: MemoryState, expected_times_seen: int
    ) -> MemoryState:
        with closing(self._connect()) as conn, conn:
            exists = conn.execute(
                "SELECT 1 FROM questions WHERE id = ?", (question_id,)
            ).fetchone()
            if not exists:
                raise NotFoundError(f"Question {question_id} not found")

            conn.execute(
                "INSERT OR IGNORE INTO memory_states (question_id) VALUES (?)", (question_id,)
            )
            # times_seen doubles as a version number for the conditional write
            cursor = conn.execute(
                """
                UPDATE memory_states
                SET ease = ?, interval_days = ?, streak = ?, next_due_at = ?,
                    times_seen = ?, last_seen_at = ?
                WHERE question_id = ? AND times_seen = ?
                """,
                (
                    state.ease,
                    state.interval_days,
                    state.streak,
                    _dump_dt(state.next_due_at),
                    state.times_seen,
                    _dump_dt(state.last_seen_at),
                    question_id,
                    expected_times_seen,
                ),
            )
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT times_seen FROM memory_states WHERE question_id = ?", (question_id,)
                ).fetchone()
                raise StaleStateError(
                    question_id, expected_times_seen, row["times_seen"] if row else None
                )
        return state

    async def list_candidates(self, course_id: str | None = None) -> list[Candidate]:
        query = """
            SELECT q.*, s.times_seen AS s_times_seen, s.next_due_at AS s_next_due_at
            FROM questions q
            LEFT JOIN memory_states s ON s.question_id = q.id
        """
        params: tuple = ()
        if course_id is not None:
            query += " WHERE q.course_id = ?"
            params = (course_id,)

        with closing(self._connect()) as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            Candidate(
                id=row["id"],
                times_seen=row["s_times_seen"] or 0,
                next_due_at=_load_dt(row["s_next_due_at"]),
                payload=_row_to_question(row),
            )
            for row in rows
        ]


def _dump_dt(value: datetime | None) -> str | None:
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def _load_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def _row_to_course(row: sqlite3.Row) -> Course:
    return Course(id=row["id"], name=row["name"], created_at=_load_dt(row["created_at"]))


def _row_to_question(row: sqlite3.Row) -> Question:
    return Question(
        id=row["id"],
        course_id=row["course_id"],
        page_id=row["page_id"],
        question=row["question"],
        answer=row["answer"],
        type=row["type"],
        difficulty=row["difficulty"],
        created_at=_load_dt(row["created_at"]),
    )


def _row_to_state(row: sqlite3.Row) -> MemoryState:
    return MemoryState(
        ease=row["ease"],
        interval_days=row["interval_days"],
        streak=row["streak"],
        next_due_at=_load_dt(row["next_due_at"]),
        times_seen=row["times_seen"],
        last_seen_at=_load_dt(row["last_seen_at"]),
    )
