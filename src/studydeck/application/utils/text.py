import json
import logging
import re
from typing import Any

from studydeck.domain.constants import (
    DEFAULT_DIFFICULTY,
    DEFAULT_QUESTION_TYPE,
    DIFFICULTIES,
    QUESTION_TYPES,
)
from studydeck.domain.errors import GenerationError
from studydeck.domain.models import GeneratedQuestion

logger = logging.getLogger(__name__)

# ---------- Model output cleanup ----------

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```) if present."""
    cleaned = text.strip()
    cleaned = _FENCE_OPEN.sub("", cleaned, count=1)
    cleaned = _FENCE_CLOSE.sub("", cleaned, count=1)
    return cleaned.strip()


def normalize_question_type(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in QUESTION_TYPES else DEFAULT_QUESTION_TYPE


def normalize_difficulty(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in DIFFICULTIES else DEFAULT_DIFFICULTY


# ---------- Generated question parsing ----------


def parse_generated_questions(text: str) -> list[GeneratedQuestion]:
    """Parse the generator's reply into questions.

    The reply must be a JSON array (optionally wrapped in a code block).
    Missing fields become empty strings; unknown types fall back to "short"
    and unknown difficulties to "medium". Entries without question text are
    dropped.

    Raises:
        GenerationError: The reply is not a JSON array.
    """
    cleaned = strip_code_fences(text)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse questions JSON: {e}. Raw text: {text[:200]!r}")
        raise GenerationError("Failed to parse questions from AI response") from e

    if not isinstance(parsed, list):
        logger.error(f"Questions response is not an array: {type(parsed).__name__}")
        raise GenerationError("Failed to parse questions from AI response")

    questions: list[GeneratedQuestion] = []
    for entry in parsed:
        if not isinstance(entry, dict):
            continue

        question = str(entry.get("question") or "").strip()
        if not question:
            continue

        questions.append(
            GeneratedQuestion(
                question=question,
                answer=str(entry.get("answer") or "").strip(),
                type=normalize_question_type(entry.get("type")),
                difficulty=normalize_difficulty(entry.get("difficulty")),
            )
        )

    return questions
