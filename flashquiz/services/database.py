"""Simple JSON-based session persistence with one file per quiz session."""

import json
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from flashquiz.models import (
    Flashcard,
    Judgment,
    SessionAssessment,
    SessionRecord,
    SessionSummary,
    StoredFlashcard,
)

log = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Persistence failed; in-memory session state is unaffected."""


class DatabaseService:
    """Persists quiz sessions, answers and AI feedback under ``data_dir/sessions``."""

    def __init__(self, data_dir: str = "data"):
        self.base_dir = Path(data_dir)
        self.data_dir = self.base_dir / "sessions"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._health_check()

    def _health_check(self):
        """Verify database directory is working."""
        try:
            test_file = self.data_dir / ".health_check"
            test_file.write_text("ok")
            test_file.unlink()
        except OSError as e:
            raise StorageError(f"Database error: {e}") from e
        log.info(f"Database OK: {self.data_dir}")

    def _session_path(self, session_id: str) -> Path:
        return self.data_dir / f"session_{session_id}.json"

    def _load(self, session_id: str) -> SessionRecord:
        path = self._session_path(session_id)
        if not path.exists():
            raise StorageError(f"Unknown session: {session_id}")
        try:
            return SessionRecord.model_validate_json(path.read_text())
        except (OSError, ValidationError) as e:
            raise StorageError(f"Could not read session {session_id}: {e}") from e

    def _save(self, record: SessionRecord) -> None:
        record.updated_at = time.time()
        path = self._session_path(record.id)
        try:
            # Write-then-rename so a crash never leaves a half-written session.
            tmp = path.with_suffix(".tmp")
            tmp.write_text(json.dumps(record.model_dump(mode="json"), indent=2))
            tmp.replace(path)
        except OSError as e:
            raise StorageError(f"Could not save session {record.id}: {e}") from e

    @staticmethod
    def _split_flashcard_id(flashcard_id: str) -> tuple[str, int]:
        session_id, _, order = flashcard_id.rpartition("-")
        if not session_id or not order.isdigit():
            raise StorageError(f"Malformed flashcard id: {flashcard_id}")
        return session_id, int(order)

    def _card(self, record: SessionRecord, order: int) -> StoredFlashcard:
        if order >= len(record.flashcards):
            raise StorageError(f"Unknown flashcard {order} in session {record.id}")
        return record.flashcards[order]

    def create_session(self, deck_name: str, flashcards: list[Flashcard]) -> SessionRecord:
        """Start a session and assign ids to its flashcards (in place)."""
        now = time.time()
        session_id = uuid.uuid4().hex[:8]
        stored = []
        for order, card in enumerate(flashcards):
            card.id = f"{session_id}-{order}"
            stored.append(
                StoredFlashcard(
                    id=card.id,
                    question=card.question,
                    answer=card.answer,
                    display_order=order,
                    updated_at=now,
                )
            )
        record = SessionRecord(
            id=session_id,
            deck_name=deck_name,
            started_at=now,
            questions_total=len(flashcards),
            flashcards=stored,
            created_at=now,
            updated_at=now,
        )
        self._save(record)
        log.info(f"Created session {session_id} for deck {deck_name}")
        return record

    def get_session(self, session_id: str) -> SessionRecord:
        return self._load(session_id)

    def record_answer(self, flashcard_id: str, text: str) -> None:
        session_id, order = self._split_flashcard_id(flashcard_id)
        record = self._load(session_id)
        card = self._card(record, order)
        if card.user_answer is None:
            record.questions_answered += 1
        card.user_answer = text
        card.answered_at = card.updated_at = time.time()
        self._save(record)

    def record_feedback(self, flashcard_id: str, judgment_json: str) -> None:
        session_id, order = self._split_flashcard_id(flashcard_id)
        try:
            judgment = Judgment.model_validate_json(judgment_json)
        except ValidationError as e:
            raise StorageError(f"Invalid feedback for {flashcard_id}: {e}") from e
        record = self._load(session_id)
        card = self._card(record, order)
        card.ai_feedback = judgment
        card.updated_at = time.time()
        self._save(record)

    def record_assessment(self, session_id: str, assessment: SessionAssessment) -> None:
        record = self._load(session_id)
        record.assessment = assessment
        self._save(record)

    def complete_session(self, session_id: str) -> None:
        record = self._load(session_id)
        record.completed_at = time.time()
        self._save(record)
        log.info(f"Completed session {session_id}")

    def list_sessions(self) -> list[SessionSummary]:
        """All stored sessions, newest first. Unreadable files are skipped."""
        summaries = []
        for session_file in self.data_dir.glob("session_*.json"):
            try:
                record = SessionRecord.model_validate_json(session_file.read_text())
            except (OSError, ValidationError) as e:
                log.warning(f"Skipping unreadable session file {session_file.name}: {e}")
                continue
            scores = [
                c.ai_feedback.correctness_score
                for c in record.flashcards
                if c.ai_feedback is not None
            ]
            summaries.append(
                SessionSummary(
                    id=record.id,
                    deck_name=record.deck_name,
                    started_at=record.started_at,
                    completed_at=record.completed_at,
                    questions_total=record.questions_total,
                    questions_answered=record.questions_answered,
                    average_score=sum(scores) / len(scores) if scores else None,
                )
            )
        summaries.sort(key=lambda s: s.started_at, reverse=True)
        return summaries

    def delete_session(self, session_id: str) -> bool:
        """Delete a session file. Returns False when it does not exist."""
        path = self._session_path(session_id)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Could not delete session {session_id}: {e}") from e
        log.info(f"Deleted session {session_id}")
        return True

    def last_session_for(self, deck_name: str) -> Optional[SessionSummary]:
        for summary in self.list_sessions():
            if summary.deck_name == deck_name:
                return summary
        return None
