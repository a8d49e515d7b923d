import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from functools import lru_cache

from fastapi import BackgroundTasks, Depends, FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError
from pydantic.alias_generators import to_camel

from studydeck.application.factory import Services, build_services
from studydeck.consts import VERSION
from studydeck.domain.constants import UPLOAD_CACHE_CONTROL
from studydeck.domain.errors import InvalidInputError, NotFoundError
from studydeck.domain.models import Page
from studydeck.domain.scheduling.models import MemoryState
from studydeck.infrastructure.storage.uploads import UploadStore, guess_content_type

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("studydeck.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"studydeck server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("studydeck server shutting down...")


app = FastAPI(
    title="studydeck",
    description="Study flashcards with AI-generated questions and spaced repetition.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


@lru_cache
def get_services() -> Services:
    from studydeck.application.config import resolve_config

    return build_services(resolve_config())


# ---------------------------------------------------------------------------
# Schemas (camelCase on the wire)
# ---------------------------------------------------------------------------


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CourseOut(ApiModel):
    id: str
    name: str
    created_at: datetime
    page_count: int = 0
    question_count: int = 0


class PageOut(ApiModel):
    id: str
    course_id: str
    page_number: int
    file_path: str
    public_path: str | None = None
    text_extract: str | None = None
    created_at: datetime

    @classmethod
    def from_page(cls, page: Page) -> "PageOut":
        return cls(
            id=page.id,
            course_id=page.course_id,
            page_number=page.page_number,
            file_path=page.file_path,
            public_path=UploadStore.public_path(page.file_path) if page.file_path else None,
            text_extract=page.text_extract,
            created_at=page.created_at,
        )


class CourseDetailOut(ApiModel):
    id: str
    name: str
    created_at: datetime
    pages: list[PageOut]
    question_count: int


class CreateCourseRequest(ApiModel):
    name: str


class TextUploadRequest(ApiModel):
    course_id: str | None = None
    text: str | None = None
    page_number: int | None = None


class UploadResponse(ApiModel):
    page: PageOut
    message: str


class StateOut(ApiModel):
    ease: float
    interval_days: float
    streak: int
    next_due_at: datetime | None
    times_seen: int
    last_seen_at: datetime | None

    @classmethod
    def from_state(cls, state: MemoryState) -> "StateOut":
        return cls(
            ease=state.ease,
            interval_days=state.interval_days,
            streak=state.streak,
            next_due_at=state.next_due_at,
            times_seen=state.times_seen,
            last_seen_at=state.last_seen_at,
        )


class PracticeQuestionOut(ApiModel):
    id: str
    question: str
    answer: str
    type: str
    difficulty: str
    course_id: str
    course_name: str | None = None
    page_id: str
    times_seen: int
    correct_streak: int
    next_due_at: datetime | None


class PracticeResponse(ApiModel):
    questions: list[PracticeQuestionOut]
    total_available: int


class AnswerRequest(ApiModel):
    question_id: str = Field(min_length=1)
    correct: StrictBool


class AnswerResponse(ApiModel):
    success: bool
    stat: StateOut


def _to_http_error(e: Exception, action: str) -> HTTPException:
    if isinstance(e, InvalidInputError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    logger.error(f"{action} failed: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"{action} failed: {e}")


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


@app.get("/api/courses", response_model=list[CourseOut])
async def list_courses(services: Services = Depends(get_services)):
    """List all courses, newest first."""
    try:
        summaries = await services.courses.list_courses()
    except Exception as e:
        raise _to_http_error(e, "Fetching courses") from e

    return [
        CourseOut(
            id=s.course.id,
            name=s.course.name,
            created_at=s.course.created_at,
            page_count=s.page_count,
            question_count=s.question_count,
        )
        for s in summaries
    ]


@app.post("/api/courses", response_model=CourseOut, status_code=201)
async def create_course(req: dict, services: Services = Depends(get_services)):
    try:
        payload = CreateCourseRequest(**req)
    except (ValidationError, TypeError) as e:
        raise HTTPException(status_code=400, detail="Course name is required") from e

    try:
        course = await services.courses.create_course(payload.name)
    except Exception as e:
        raise _to_http_error(e, "Creating course") from e

    return CourseOut(id=course.id, name=course.name, created_at=course.created_at)


@app.get("/api/courses/{course_id}", response_model=CourseDetailOut)
async def get_course(course_id: str, services: Services = Depends(get_services)):
    """Get a single course with its pages."""
    try:
        detail = await services.courses.get_course(course_id)
    except Exception as e:
        raise _to_http_error(e, "Fetching course") from e

    return CourseDetailOut(
        id=detail.course.id,
        name=detail.course.name,
        created_at=detail.course.created_at,
        pages=[PageOut.from_page(p) for p in detail.pages],
        question_count=detail.question_count,
    )


@app.delete("/api/courses/{course_id}")
async def delete_course(course_id: str, services: Services = Depends(get_services)):
    try:
        await services.courses.delete_course(course_id)
    except Exception as e:
        raise _to_http_error(e, "Deleting course") from e
    return {"success": True}


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


@app.post("/api/upload", response_model=UploadResponse)
async def upload_page(
    background_tasks: BackgroundTasks,
    file: UploadFile | None = File(None),
    course_id: str | None = Form(None, alias="courseId"),
    page_number: str | None = Form(None, alias="pageNumber"),
    services: Services = Depends(get_services),
):
    """
    Upload a page image; questions are generated in the background.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if not course_id:
        raise HTTPException(status_code=400, detail="Course ID is required")

    try:
        number = int(page_number) if page_number else 1
    except ValueError:
        number = 1

    try:
        # Verify course exists before touching the disk
        await services.courses.get_course(course_id)
        data = await file.read()
        path = services.uploads.save(data, file.filename or "", course_id, number)
        page = await services.courses.add_image_page(course_id, path, number)
    except Exception as e:
        raise _to_http_error(e, "Uploading page") from e

    background_tasks.add_task(services.courses.generate_questions_safely, page)
    return UploadResponse(
        page=PageOut.from_page(page),
        message="Page uploaded. Questions are being generated...",
    )


@app.post("/api/upload/text", response_model=UploadResponse)
async def upload_text(
    req: dict, background_tasks: BackgroundTasks, services: Services = Depends(get_services)
):
    """
    Store study text as a page; questions are generated in the background.
    """
    try:
        payload = TextUploadRequest(**req)
    except (ValidationError, TypeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid request: {e}") from None

    if not payload.text or not payload.text.strip():
        raise HTTPException(status_code=400, detail="Text content is required")
    if not payload.course_id:
        raise HTTPException(status_code=400, detail="Course ID is required")

    try:
        page = await services.courses.add_text_page(
            payload.course_id, payload.text, payload.page_number or 1
        )
    except Exception as e:
        raise _to_http_error(e, "Processing text") from e

    background_tasks.add_task(services.courses.generate_questions_safely, page)
    return UploadResponse(
        page=PageOut.from_page(page),
        message="Text processed. Questions are being generated...",
    )


@app.get("/api/uploads/{filename}")
async def serve_upload(filename: str, services: Services = Depends(get_services)):
    """Serve a stored page file."""
    try:
        path = services.uploads.resolve(filename)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="File not found") from e

    return FileResponse(
        path,
        media_type=guess_content_type(path),
        headers={"Cache-Control": UPLOAD_CACHE_CONTROL},
    )


# ---------------------------------------------------------------------------
# Practice
# ---------------------------------------------------------------------------


@app.get("/api/practice", response_model=PracticeResponse)
async def get_practice(
    course_id: str | None = Query(None, alias="courseId"),
    limit: int | None = None,
    services: Services = Depends(get_services),
):
    """
    Get the next practice session, mixing due, new and future questions.
    """
    try:
        session = await services.practice.get_session(
            course_id=course_id or None,
            limit=limit if limit is not None else services.config.session_limit,
        )

        course_names: dict[str, str | None] = {}
        for item in session.items:
            cid = item.question.course_id
            if cid not in course_names:
                course = await services.repo.get_course(cid)
                course_names[cid] = course.name if course else None
    except Exception as e:
        raise _to_http_error(e, "Fetching practice questions") from e

    return PracticeResponse(
        questions=[
            PracticeQuestionOut(
                id=item.question.id,
                question=item.question.question,
                answer=item.question.answer,
                type=item.question.type,
                difficulty=item.question.difficulty,
                course_id=item.question.course_id,
                course_name=course_names.get(item.question.course_id),
                page_id=item.question.page_id,
                times_seen=item.state.times_seen,
                correct_streak=item.state.streak,
                next_due_at=item.state.next_due_at,
            )
            for item in session.items
        ],
        total_available=session.total_available,
    )


@app.post("/api/practice/answer", response_model=AnswerResponse)
async def record_answer(req: dict, services: Services = Depends(get_services)):
    """Record an answer and return the updated memory state."""
    try:
        payload = AnswerRequest(**req)
    except (ValidationError, TypeError) as e:
        raise HTTPException(
            status_code=400, detail="questionId and correct (boolean) are required"
        ) from e

    try:
        state = await services.practice.record_answer(payload.question_id, payload.correct)
    except Exception as e:
        raise _to_http_error(e, "Recording answer") from e

    return AnswerResponse(success=True, stat=StateOut.from_state(state))
