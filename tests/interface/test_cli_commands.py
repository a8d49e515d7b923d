"""Tests for CLI commands: courses, study material, practice, config and server."""

import json
import random
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from studydeck.application import factory
from studydeck.infrastructure.adapters.memory_store import InMemoryStudyRepository
from studydeck.interface.cli import app

runner = CliRunner()


@pytest.fixture
def repo():
    return InMemoryStudyRepository()


@pytest.fixture
def cli_env(mock_home, tmp_path, monkeypatch, repo, fake_generator):
    """Route every command to one shared in-memory repository."""
    monkeypatch.setenv("STUDYDECK_DATA_DIR", str(tmp_path / "data"))

    def fake_build(config, rng=None):
        return factory.build_services(
            config, repo=repo, generator=fake_generator, rng=rng or random.Random(0)
        )

    with patch("studydeck.interface.cli.build_services", side_effect=fake_build):
        yield repo


def create_course(name: str = "Biology") -> str:
    result = runner.invoke(app, ["courses", "create", name])
    assert result.exit_code == 0, result.output
    return result.output.split()[2]


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "AI-generated flashcards" in result.stdout
    assert "courses" in result.stdout
    assert "practice" in result.stdout


# --- Courses ---


def test_courses_list_empty(cli_env):
    result = runner.invoke(app, ["courses", "list"])
    assert result.exit_code == 0
    assert "No courses yet." in result.stdout


def test_courses_create_and_list(cli_env):
    course_id = create_course("Organic Chemistry")
    assert course_id.startswith("crs_")

    result = runner.invoke(app, ["courses", "list"])
    assert result.exit_code == 0
    assert f"{course_id}  Organic Chemistry  (0 pages, 0 questions)" in result.stdout


def test_courses_create_blank_name(cli_env):
    result = runner.invoke(app, ["courses", "create", "   "])
    assert result.exit_code == 1
    assert "Course name is required" in result.output


def test_courses_show(cli_env, tmp_path):
    course_id = create_course()
    notes = tmp_path / "notes.md"
    notes.write_text("Cells divide by mitosis.")
    runner.invoke(app, ["add-text", course_id, str(notes), "--page", "2"])

    result = runner.invoke(app, ["courses", "show", course_id])

    assert result.exit_code == 0
    assert f"Biology ({course_id})" in result.stdout
    assert "Questions: 2" in result.stdout
    assert "page 2: text" in result.stdout


def test_courses_show_missing(cli_env):
    result = runner.invoke(app, ["courses", "show", "crs_nope"])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_courses_delete_force(cli_env):
    course_id = create_course()

    result = runner.invoke(app, ["courses", "delete", course_id, "--force"])

    assert result.exit_code == 0
    assert f"Deleted course {course_id}" in result.stdout
    assert cli_env.courses == {}


def test_courses_delete_declined(cli_env):
    course_id = create_course()

    result = runner.invoke(app, ["courses", "delete", course_id], input="n\n")

    assert result.exit_code == 1
    assert course_id in cli_env.courses


# --- Study material ---


def test_add_text(cli_env, tmp_path, fake_generator):
    course_id = create_course()
    notes = tmp_path / "notes.md"
    notes.write_text("Photosynthesis turns light into sugar.")

    result = runner.invoke(app, ["add-text", course_id, str(notes)])

    assert result.exit_code == 0, result.output
    assert "Generated 2 questions." in result.stdout
    assert fake_generator.text_calls == ["Photosynthesis turns light into sugar."]


def test_add_page(cli_env, tmp_path, fake_generator):
    course_id = create_course()
    image = tmp_path / "scan.png"
    image.write_bytes(b"\x89PNG")

    result = runner.invoke(app, ["add-page", course_id, str(image), "--page", "5"])

    assert result.exit_code == 0, result.output
    (stored,) = fake_generator.image_calls
    assert stored.name.startswith(f"{course_id}_page_5_")
    assert stored.read_bytes() == b"\x89PNG"


def test_add_page_unknown_course(cli_env, tmp_path):
    image = tmp_path / "scan.png"
    image.write_bytes(b"\x89PNG")

    result = runner.invoke(app, ["add-page", "crs_nope", str(image)])
    assert result.exit_code == 1


# --- Practice ---


def test_session_json(cli_env, tmp_path):
    course_id = create_course()
    notes = tmp_path / "notes.md"
    notes.write_text("Atoms")
    runner.invoke(app, ["add-text", course_id, str(notes)])

    result = runner.invoke(app, ["session", "--json", "--seed", "3"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["totalAvailable"] == 2
    assert len(data["questions"]) == 2
    assert all(q["timesSeen"] == 0 and q["nextDueAt"] is None for q in data["questions"])


def test_session_same_seed_same_order(cli_env, tmp_path):
    course_id = create_course()
    notes = tmp_path / "notes.md"
    notes.write_text("Atoms")
    runner.invoke(app, ["add-text", course_id, str(notes)])

    first = runner.invoke(app, ["session", "--json", "--seed", "7"])
    second = runner.invoke(app, ["session", "--json", "--seed", "7"])
    assert first.stdout == second.stdout


def test_practice_records_answers(cli_env, tmp_path):
    course_id = create_course()
    notes = tmp_path / "notes.md"
    notes.write_text("Atoms")
    runner.invoke(app, ["add-text", course_id, str(notes)])

    result = runner.invoke(app, ["practice"], input="\ny\n\nn\n")

    assert result.exit_code == 0, result.output
    assert "Done: 1/2 correct." in result.stdout
    states = sorted(cli_env.states.values(), key=lambda s: s.streak)
    assert [s.times_seen for s in states] == [1, 1]
    assert [s.streak for s in states] == [0, 1]


def test_practice_nothing_to_do(cli_env):
    result = runner.invoke(app, ["practice"])
    assert result.exit_code == 0
    assert "Nothing to practice" in result.stdout


# --- Config ---


def test_config_show_masks_api_key(mock_home, monkeypatch):
    monkeypatch.setenv("STUDYDECK_GEMINI_API_KEY", "super-secret")
    monkeypatch.setenv("STUDYDECK_SESSION_LIMIT", "15")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["gemini_api_key"] == "***"
    assert data["session_limit"] == 15
    assert "super-secret" not in result.stdout


# --- Server ---


@patch("uvicorn.run")
def test_serve_command(mock_run):
    result = runner.invoke(app, ["serve", "--port", "9000"])
    assert result.exit_code == 0
    mock_run.assert_called_with("studydeck.server:app", host="127.0.0.1", port=9000, reload=False)
