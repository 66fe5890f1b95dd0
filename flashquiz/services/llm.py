"""OpenRouter evaluator client (OpenAI-compatible API)."""

import logging
from typing import Optional

import httpx
from openai import OpenAI

from flashquiz.config import settings
from flashquiz.models import Flashcard
from flashquiz.prompts import (
    ASSESS_SESSION,
    ASSESSMENT_SYSTEM,
    CORRECT_THRESHOLD,
    EVALUATOR_SYSTEM,
)
from flashquiz.services.evaluation import build_prompt

log = logging.getLogger(__name__)


class EvaluatorClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        api_key = api_key or settings.OPENROUTER_API_KEY
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY is not set")
        self.client = OpenAI(
            api_key=api_key,
            base_url=settings.OPENROUTER_BASE_URL,
            http_client=httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS),
        )
        self.model = model or settings.EVALUATOR_MODEL

    def _complete(
        self, system: str, prompt: str, temperature: float, max_tokens: int
    ) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
        if not response.choices:
            raise RuntimeError("No response choices received")
        text = response.choices[0].message.content or ""
        log.info(f"Raw AI response: {text[:200]}")
        return text

    def evaluate_answer(self, question: str, correct_answer: str, user_answer: str) -> str:
        """Ask the model to grade one answer. Returns the raw model text."""
        return self._complete(
            EVALUATOR_SYSTEM,
            build_prompt(question, correct_answer, user_answer),
            temperature=settings.EVALUATOR_TEMPERATURE,
            max_tokens=settings.EVALUATOR_MAX_TOKENS,
        )

    def evaluate_session(self, deck_name: str, flashcards: list[Flashcard]) -> str:
        """Ask the model for a whole-session assessment. Returns the raw model text."""
        qa_lines: list[str] = []
        answered = 0
        correct = 0
        for i, card in enumerate(flashcards, 1):
            if card.user_answer is None:
                continue
            answered += 1
            score = card.feedback.correctness_score if card.feedback else 0.0
            if score >= CORRECT_THRESHOLD:
                correct += 1
            qa_lines.append(f"Q{i}: {card.question}")
            qa_lines.append(f"A{i}: {card.answer}")
            qa_lines.append(f"User: {card.user_answer}")
            if card.feedback:
                qa_lines.append(
                    f"AI Score: {card.feedback.correctness_score * 100:.0f}%, "
                    f"Feedback: {card.feedback.explanation[:200]}"
                )
            qa_lines.append("")

        prompt = ASSESS_SESSION.format(
            deck_name=deck_name,
            total=len(flashcards),
            answered=answered,
            correct=correct,
            qa_list="\n".join(qa_lines),
        )
        return self._complete(
            ASSESSMENT_SYSTEM,
            prompt,
            temperature=settings.ASSESSMENT_TEMPERATURE,
            max_tokens=settings.ASSESSMENT_MAX_TOKENS,
        )
