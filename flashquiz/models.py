"""Pydantic models for type safety."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Judgment(BaseModel):
    """Evaluator verdict for a single answer."""
    is_correct: bool
    correctness_score: float
    corrections: List[str] = []
    explanation: str = ""
    suggestions: List[str] = []

    @field_validator("correctness_score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        # Out-of-range scores are a data-quality problem, not a parse error.
        return min(1.0, max(0.0, value))

    @field_validator("corrections", "suggestions", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    def label(self) -> str:
        if self.is_correct:
            return "Correct"
        if self.correctness_score > 0.5:
            return "Partially Correct"
        return "Incorrect"


class EvaluationRequest(BaseModel):
    """One answer sent to the evaluator. Immutable once built."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=1)
    flashcard_index: int = Field(ge=0)
    question: str
    reference_answer: str
    user_answer: str


class OutcomeStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class EvaluationOutcome(BaseModel):
    """Lifecycle of one evaluation request: pending, then exactly one terminal state."""
    model_config = ConfigDict(frozen=True)

    request_id: int
    flashcard_index: int
    status: OutcomeStatus
    judgment: Optional[Judgment] = None
    reason: Optional[str] = None

    @classmethod
    def pending(cls, request: EvaluationRequest) -> "EvaluationOutcome":
        return cls(
            request_id=request.id,
            flashcard_index=request.flashcard_index,
            status=OutcomeStatus.PENDING,
        )

    def success(self, judgment: Judgment) -> "EvaluationOutcome":
        return self._finish(OutcomeStatus.SUCCESS, judgment=judgment)

    def timed_out(self, reason: str) -> "EvaluationOutcome":
        return self._finish(OutcomeStatus.TIMED_OUT, reason=reason)

    def failed(self, reason: str) -> "EvaluationOutcome":
        return self._finish(OutcomeStatus.FAILED, reason=reason)

    def _finish(self, status: OutcomeStatus, **fields) -> "EvaluationOutcome":
        if self.is_terminal:
            raise ValueError(
                f"Outcome for request {self.request_id} is already {self.status.value}"
            )
        return self.model_copy(update={"status": status, **fields})

    @property
    def is_pending(self) -> bool:
        return self.status is OutcomeStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status is not OutcomeStatus.PENDING


class WorkerResult(BaseModel):
    """What the background worker posts back: a raw response or an error."""
    request_id: int
    raw_response: Optional[str] = None
    error: Optional[str] = None


class Flashcard(BaseModel):
    question: str
    answer: str
    id: Optional[str] = None
    user_answer: Optional[str] = None
    feedback: Optional[Judgment] = None


class StoredFlashcard(BaseModel):
    """Flashcard row as persisted inside a session file."""
    id: str
    question: str
    answer: str
    display_order: int
    user_answer: Optional[str] = None
    ai_feedback: Optional[Judgment] = None
    answered_at: Optional[float] = None
    updated_at: float


class SessionAssessment(BaseModel):
    """Whole-session coaching summary produced at the end of a quiz."""
    grade_percentage: float
    mastery_level: str
    overall_feedback: str
    suggestions: List[str] = []
    strengths: List[str] = []
    weaknesses: List[str] = []

    @field_validator("grade_percentage")
    @classmethod
    def _clamp_grade(cls, value: float) -> float:
        return min(100.0, max(0.0, value))


class SessionRecord(BaseModel):
    """Persisted quiz session."""
    id: str
    deck_name: str
    started_at: float
    completed_at: Optional[float] = None
    questions_total: int
    questions_answered: int = 0
    flashcards: List[StoredFlashcard] = []
    assessment: Optional[SessionAssessment] = None
    created_at: float
    updated_at: float


class SessionSummary(BaseModel):
    """Listing row for a stored session."""
    id: str
    deck_name: str
    started_at: float
    completed_at: Optional[float] = None
    questions_total: int
    questions_answered: int
    average_score: Optional[float] = None
