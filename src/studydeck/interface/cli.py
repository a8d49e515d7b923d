"""studydeck CLI: root commands and subgroup registration."""

import asyncio
import json
import logging
import random
import sys
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer

from studydeck.application.config import resolve_config
from studydeck.application.factory import Services, build_services
from studydeck.domain.errors import StudyDeckError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="studydeck: AI-generated flashcards with spaced-repetition practice.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

courses_app = typer.Typer(help="Manage courses.", no_args_is_help=True)
app.add_typer(courses_app, name="courses")

config_app = typer.Typer(help="Manage studydeck configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _services(
    ctx: typer.Context | None = None, rng: random.Random | None = None, **overrides: Any
) -> Services:
    verbose = 1
    if ctx is not None and ctx.obj:
        verbose = ctx.obj.get("verbose_bonus", 1)
    config = resolve_config({k: v for k, v in overrides.items() if v is not None})

    if verbose > 1:
        from studydeck.logging_setup import setup_logging

        _, log_path, run_id = setup_logging(config.log_dir, verbose)
        logger.debug(f"Run {run_id}: logging to {log_path}")

    return build_services(config, rng=rng)


def _fail(e: Exception) -> NoReturn:
    typer.secho(f"Error: {e}", fg="red", err=True)
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for studydeck."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


# ---------------------------------------------------------------------------
# Courses subgroup
# ---------------------------------------------------------------------------


@courses_app.command("list")
def courses_list(ctx: typer.Context):
    """List courses, newest first."""
    services = _services(ctx)
    summaries = asyncio.run(services.courses.list_courses())
    if not summaries:
        typer.secho("No courses yet.", fg="yellow")
        return

    for s in summaries:
        typer.echo(
            f"{s.course.id}  {s.course.name}  "
            f"({s.page_count} pages, {s.question_count} questions)"
        )


@courses_app.command("create")
def courses_create(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Course name.")],
):
    """Create a course."""
    services = _services(ctx)
    try:
        course = asyncio.run(services.courses.create_course(name))
    except StudyDeckError as e:
        _fail(e)
    typer.secho(f"Created course {course.id} ({course.name})", fg="green")


@courses_app.command("show")
def courses_show(
    ctx: typer.Context,
    course_id: Annotated[str, typer.Argument(help="Course ID.")],
):
    """Show a course with its pages."""
    services = _services(ctx)
    try:
        detail = asyncio.run(services.courses.get_course(course_id))
    except StudyDeckError as e:
        _fail(e)

    typer.echo(f"{detail.course.name} ({detail.course.id})")
    typer.echo(f"Questions: {detail.question_count}")
    for page in detail.pages:
        source = Path(page.file_path).name if page.file_path else "text"
        typer.echo(f"  page {page.page_number}: {source}")


@courses_app.command("delete")
def courses_delete(
    ctx: typer.Context,
    course_id: Annotated[str, typer.Argument(help="Course ID.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Skip the confirmation prompt.")
    ] = False,
):
    """Delete a course with all its pages and questions."""
    if not force and not typer.confirm(f"Delete course {course_id} and all its questions?"):
        raise typer.Abort()

    services = _services(ctx)
    try:
        asyncio.run(services.courses.delete_course(course_id))
    except StudyDeckError as e:
        _fail(e)
    typer.secho(f"Deleted course {course_id}", fg="green")


# ---------------------------------------------------------------------------
# Study material
# ---------------------------------------------------------------------------


@app.command("add-text")
def add_text(
    ctx: typer.Context,
    course_id: Annotated[str, typer.Argument(help="Course ID.")],
    path: Annotated[Path, typer.Argument(help="Text or markdown file with study notes.")],
    page: Annotated[int, typer.Option("--page", help="Page number.")] = 1,
):
    """Add study notes as a page and generate questions from them."""
    services = _services(ctx)
    text = path.read_text(encoding="utf-8")

    async def run():
        new_page = await services.courses.add_text_page(course_id, text, page)
        return await services.courses.generate_questions(new_page)

    try:
        questions = asyncio.run(run())
    except StudyDeckError as e:
        _fail(e)
    typer.secho(f"Generated {len(questions)} questions.", fg="green")


@app.command("add-page")
def add_page(
    ctx: typer.Context,
    course_id: Annotated[str, typer.Argument(help="Course ID.")],
    image: Annotated[Path, typer.Argument(help="Image or PDF of a study page.")],
    page: Annotated[int, typer.Option("--page", help="Page number.")] = 1,
):
    """Upload a page image and generate questions from it."""
    services = _services(ctx)

    async def run():
        await services.courses.get_course(course_id)
        stored = services.uploads.save(image.read_bytes(), image.name, course_id, page)
        new_page = await services.courses.add_image_page(course_id, stored, page)
        return await services.courses.generate_questions(new_page)

    try:
        questions = asyncio.run(run())
    except StudyDeckError as e:
        _fail(e)
    typer.secho(f"Generated {len(questions)} questions.", fg="green")


# ---------------------------------------------------------------------------
# Practice
# ---------------------------------------------------------------------------


@app.command("session")
def session(
    ctx: typer.Context,
    course: Annotated[str | None, typer.Option(help="Restrict to one course.")] = None,
    limit: Annotated[int | None, typer.Option(help="Session size.")] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for a reproducible order.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Print the next practice batch without recording anything."""
    services = _services(ctx, rng=random.Random(seed) if seed is not None else None)

    result = asyncio.run(
        services.practice.get_session(course, limit or services.config.session_limit)
    )

    if json_output:
        data = [
            {
                "id": item.question.id,
                "question": item.question.question,
                "timesSeen": item.state.times_seen,
                "nextDueAt": item.state.next_due_at.isoformat()
                if item.state.next_due_at
                else None,
            }
            for item in result.items
        ]
        payload = {"questions": data, "totalAvailable": result.total_available}
        typer.echo(json.dumps(payload, indent=2))
        return

    typer.echo(f"Session: {len(result.items)} of {result.total_available} questions")
    for i, item in enumerate(result.items, 1):
        status = "new" if item.state.times_seen == 0 else f"seen {item.state.times_seen}x"
        typer.echo(f"  [{i}] {item.question.question}  ({status})")


@app.command("practice")
def practice(
    ctx: typer.Context,
    course: Annotated[str | None, typer.Option(help="Restrict to one course.")] = None,
    limit: Annotated[int | None, typer.Option(help="Session size.")] = None,
):
    """Run an interactive practice session."""
    services = _services(ctx)
    result = asyncio.run(
        services.practice.get_session(course, limit or services.config.session_limit)
    )

    if not result.items:
        typer.secho("Nothing to practice. Add some study material first.", fg="yellow")
        return

    correct_count = 0
    for i, item in enumerate(result.items, 1):
        typer.secho(f"\n[{i}/{len(result.items)}] {item.question.question}", bold=True)
        typer.prompt("Press Enter to reveal the answer", default="", show_default=False)
        typer.echo(item.question.answer)

        correct = typer.confirm("Did you get it right?")
        correct_count += int(correct)
        try:
            state = asyncio.run(services.practice.record_answer(item.question.id, correct))
        except StudyDeckError as e:
            _fail(e)
        typer.secho(f"Next review in {state.interval_days:g} days", fg="cyan")

    typer.secho(f"\nDone: {correct_count}/{len(result.items)} correct.", fg="green")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option(help="Host to bind.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port to bind.")] = 8000,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code changes.")] = False,
):
    """Start the HTTP API server."""
    import uvicorn

    uvicorn.run("studydeck.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    if d.get("gemini_api_key"):
        d["gemini_api_key"] = "***"
    typer.echo(json.dumps(d, indent=2))
