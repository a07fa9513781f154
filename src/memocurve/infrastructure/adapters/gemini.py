"""
Gemini Question Generator — Infrastructure adapter for the AI question cache.

Implements QuestionGenerator with google-generativeai. Never raises: a missing
key or any failure yields a templated question and a log line.
"""

import logging

import google.generativeai as genai

from memocurve.domain.constants import FALLBACK_QUESTION
from memocurve.domain.errors import EnrichmentFailure
from memocurve.domain.ports import QuestionGenerator

logger = logging.getLogger(__name__)

QUESTION_PROMPT = """
Generate a single, short, engaging flashcard question for the learning content: "{content}".

Rules:
1. If it's a single word, ask for its meaning or a synonym context.
2. If it's a phrase, ask for its usage or definition.
3. Do NOT reveal the content "{content}" in the question if possible (use placeholders like 'this word' or '___').
4. Keep it under 20 words.
5. Output ONLY the question text.
"""


def missing_key_question(content: str) -> str:
    return f"Define: {content}"


def fallback_question(content: str) -> str:
    return FALLBACK_QUESTION.format(content=content)


class GeminiQuestionGenerator(QuestionGenerator):
    def __init__(self, api_key: str | None, model: str = "gemini-2.5-flash"):
        self.api_key = api_key
        self.model_name = model
        self._model = None
        if api_key:
            genai.configure(api_key=api_key)

    def _get_model(self):
        if self._model is None:
            self._model = genai.GenerativeModel(
                self.model_name,
                generation_config={"temperature": 0.7, "max_output_tokens": 64},
            )
        return self._model

    async def generate_question(self, content: str) -> str:
        if not self.api_key:
            logger.warning("Gemini API key missing; using templated question")
            return missing_key_question(content)

        try:
            return await self._generate(content)
        except Exception as e:
            logger.warning(f"Gemini generation error for {content!r}: {e}")
            return fallback_question(content)

    async def _generate(self, content: str) -> str:
        response = await self._get_model().generate_content_async(
            QUESTION_PROMPT.format(content=content)
        )
        text = (response.text or "").strip()
        if not text:
            raise EnrichmentFailure("Empty response from Gemini")
        return text


class OfflineQuestionGenerator(QuestionGenerator):
    """Deterministic questions without any network access."""

    async def generate_question(self, content: str) -> str:
        return fallback_question(content)
