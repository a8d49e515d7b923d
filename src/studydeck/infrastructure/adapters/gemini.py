import base64
import logging
from pathlib import Path
from typing import Any

import httpx

from studydeck.application.utils.text import parse_generated_questions
from studydeck.domain.constants import GEMINI_BASE_URL, GEMINI_DEFAULT_MODEL, REQUEST_TIMEOUT
from studydeck.domain.errors import GenerationError
from studydeck.domain.models import GeneratedQuestion
from studydeck.domain.ports import QuestionGenerator
from studydeck.infrastructure.storage.uploads import guess_mime_type

_QUESTION_MIX = """Create a mix of question types:
1. SHORT (3-5 questions): Simple recall questions with 1-3 word answers. Test memorization of key terms, definitions, or facts.
2. EXPLANATION (3-5 questions): Questions requiring a paragraph explanation. Test understanding of concepts, processes, or relationships.
3. EXTRA (2-4 questions): Integration questions that go beyond what's explicitly written. These assume the student has broader knowledge and should connect concepts, apply to real-world scenarios, or explore implications.

For each question, also assign a difficulty:
- EASY: Basic recall or straightforward understanding
- MEDIUM: Requires connecting ideas or moderate analysis
- HARD: Complex reasoning, synthesis, or application

IMPORTANT: Respond ONLY with a valid JSON array. No markdown, no code blocks, just the raw JSON.

The JSON array should have objects with these exact fields:
- "question": the question text
- "answer": the correct answer
- "type": one of "short", "explanation", or "extra"
- "difficulty": one of "easy", "medium", or "hard"

Example format:
[{"question":"What is X?","answer":"Y","type":"short","difficulty":"easy"}]"""

_TUTOR_INTRO = "You are an expert tutor creating study questions from educational material."


def build_image_prompt() -> str:
    return (
        f"{_TUTOR_INTRO}\n\n"
        "Analyze this image of a study page and generate 8-15 questions "
        "to help a student learn the material.\n\n"
        f"{_QUESTION_MIX}"
    )


def build_text_prompt(text: str) -> str:
    return (
        f"{_TUTOR_INTRO}\n\n"
        "Analyze the following study notes/text and generate 8-15 questions "
        "to help a student learn the material.\n\n"
        f'TEXT TO ANALYZE:\n"""\n{text}\n"""\n\n'
        f"{_QUESTION_MIX}"
    )


class GeminiQuestionGenerator(QuestionGenerator):
    """Adapter for the Gemini `generateContent` REST endpoint."""

    def __init__(
        self,
        api_key: str | None,
        model: str = GEMINI_DEFAULT_MODEL,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_from_text(self, text: str) -> list[GeneratedQuestion]:
        parts = [{"text": build_text_prompt(text)}]
        questions = parse_generated_questions(await self._generate(parts))
        self.logger.info(f"Gemini produced {len(questions)} questions from text")
        return questions

    async def generate_from_image(self, image_path: Path) -> list[GeneratedQuestion]:
        try:
            data = Path(image_path).read_bytes()
        except OSError as e:
            raise GenerationError(f"Cannot read page image {image_path}: {e}") from e

        parts = [
            {"text": build_image_prompt()},
            {
                "inline_data": {
                    "mime_type": guess_mime_type(image_path),
                    "data": base64.b64encode(data).decode("ascii"),
                }
            },
        ]
        questions = parse_generated_questions(await self._generate(parts))
        self.logger.info(f"Gemini produced {len(questions)} questions from {image_path.name}")
        return questions

    async def _generate(self, parts: list[dict[str, Any]]) -> str:
        """Send one generateContent request and return the concatenated reply text."""
        if not self.api_key:
            raise GenerationError("Gemini API key is not configured (set STUDYDECK_GEMINI_API_KEY)")

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        payload = {"contents": [{"role": "user", "parts": parts}]}
        try:
            resp = await self._client.post(
                self.endpoint, params={"key": self.api_key}, json=payload
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            self.logger.error(
                f"Gemini returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            )
            raise GenerationError(f"Gemini request failed with HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            self.logger.error(f"Gemini request failed: {e}")
            raise GenerationError(f"Gemini request failed: {e}") from e

        try:
            reply_parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError("Gemini response contained no candidates") from e

        return "".join(p.get("text", "") for p in reply_parts if isinstance(p, dict))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
