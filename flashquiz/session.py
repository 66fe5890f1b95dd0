"""Quiz session controller.

Owns every piece of interactive state (flashcards, answer drafts, scroll
offsets, the current evaluation outcome) and is driven from a single loop:
key events go through ``handle_key`` and background results are merged in
by ``poll``. Wrapped lines and the visual cursor are derived on demand from
the current buffer and width, never cached.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from flashquiz.cursor import (
    CursorPosition,
    TextBuffer,
    line_end,
    line_home,
    move_vertical,
    to_visual,
)
from flashquiz.layout import WrappedLine, wrap
from flashquiz.models import (
    EvaluationOutcome,
    Flashcard,
    OutcomeStatus,
    SessionAssessment,
)
from flashquiz.prompts import CORRECT_THRESHOLD
from flashquiz.services.database import DatabaseService, StorageError
from flashquiz.services.evaluation import (
    ParseFailure,
    build_request,
    parse_session_assessment,
)
from flashquiz.services.worker import WorkerSupervisor

log = logging.getLogger(__name__)

SCROLL_LINES_PER_EVENT = 5

# (deck name, flashcards) -> raw assessment text
Assess = Callable[[str, list[Flashcard]], str]


class AppState(str, Enum):
    QUIZ = "quiz"
    QUIT_CONFIRM = "quit_confirm"
    SUMMARY = "summary"
    EXITED = "exited"


class Key(str, Enum):
    CHAR = "char"
    PASTE = "paste"
    ENTER = "enter"
    NEWLINE = "newline"
    BACKSPACE = "backspace"
    DELETE = "delete"
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"
    HOME = "home"
    END = "end"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    ESCAPE = "escape"
    CTRL_C = "ctrl_c"
    CTRL_E = "ctrl_e"
    CTRL_X = "ctrl_x"


@dataclass(frozen=True)
class KeyEvent:
    key: Key
    text: str = ""


class QuizSession:
    def __init__(
        self,
        flashcards: list[Flashcard],
        deck_name: str,
        supervisor: Optional[WorkerSupervisor] = None,
        storage: Optional[DatabaseService] = None,
        session_id: Optional[str] = None,
        assess: Optional[Assess] = None,
        width: int = 80,
    ):
        if not flashcards:
            raise ValueError("A quiz needs at least one flashcard")
        self.flashcards = flashcards
        self.deck_name = deck_name
        self.supervisor = supervisor
        self.storage = storage
        self.session_id = session_id
        self._assess = assess
        self.width = max(1, width)

        self.state = AppState.QUIZ
        self.current_index = 0
        self.showing_answer = flashcards[0].user_answer is not None
        self.questions_answered = sum(1 for c in flashcards if c.user_answer is not None)
        self.input_scroll_y = 0
        self.feedback_scroll_y = 0
        self.outcome: Optional[EvaluationOutcome] = None
        self.warning: Optional[str] = None
        # Unsubmitted answers per flashcard; survive navigation.
        self._drafts: dict[int, TextBuffer] = {}

        self.assessment: Optional[SessionAssessment] = None
        self.assessment_error: Optional[str] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._assessment_future: Optional[Future] = None

    # -- derived state -----------------------------------------------------

    @property
    def ai_enabled(self) -> bool:
        return self.supervisor is not None

    @property
    def current(self) -> Flashcard:
        return self.flashcards[self.current_index]

    @property
    def buffer(self) -> TextBuffer:
        return self._drafts.setdefault(self.current_index, TextBuffer())

    @property
    def lines(self) -> list[WrappedLine]:
        return wrap(self.buffer.text, self.width)

    @property
    def cursor_position(self) -> CursorPosition:
        return to_visual(self.buffer, self.lines)

    @property
    def evaluating(self) -> bool:
        return self.outcome is not None and self.outcome.is_pending

    @property
    def assessment_loading(self) -> bool:
        return self._assessment_future is not None

    def outcome_for_current(self) -> Optional[EvaluationOutcome]:
        if self.outcome is not None and self.outcome.flashcard_index == self.current_index:
            return self.outcome
        return None

    def calculate_stats(self) -> tuple[int, float]:
        """(answered count, mean AI score over evaluated answers)."""
        scores = [c.feedback.correctness_score for c in self.flashcards if c.feedback]
        average = sum(scores) / len(scores) if scores else 0.0
        return self.questions_answered, average

    def correct_count(self) -> int:
        return sum(
            1
            for c in self.flashcards
            if c.feedback and c.feedback.correctness_score >= CORRECT_THRESHOLD
        )

    def resize(self, width: int) -> None:
        self.width = max(1, width)

    def follow_cursor(self, visible_height: int) -> int:
        """Adjust the input scroll so the cursor row stays visible."""
        row = self.cursor_position.row
        visible_height = max(1, visible_height)
        if row < self.input_scroll_y:
            self.input_scroll_y = row
        elif row >= self.input_scroll_y + visible_height:
            self.input_scroll_y = row - visible_height + 1
        return self.input_scroll_y

    # -- input -------------------------------------------------------------

    def handle_key(self, event: KeyEvent) -> None:
        if event.key is Key.CTRL_C:
            self.close()
            return
        if self.state is AppState.QUIT_CONFIRM:
            self._handle_quit_confirm(event)
        elif self.state is AppState.SUMMARY:
            self._handle_summary(event)
        elif self.state is AppState.QUIZ:
            if self.showing_answer:
                self._handle_answer_view(event)
            else:
                self._handle_input(event)

    def _handle_quit_confirm(self, event: KeyEvent) -> None:
        if event.key is Key.CHAR and event.text.lower() == "y":
            self.close()
        elif event.key is Key.ESCAPE or (event.key is Key.CHAR and event.text.lower() == "n"):
            self.state = AppState.QUIZ

    def _handle_summary(self, event: KeyEvent) -> None:
        if event.key in (Key.ENTER, Key.ESCAPE) or (
            event.key is Key.CHAR and event.text.lower() == "q"
        ):
            self.close()
        elif event.key in (Key.PAGE_UP, Key.PAGE_DOWN):
            self._scroll_feedback(event.key)

    def _handle_input(self, event: KeyEvent) -> None:
        buffer = self.buffer
        key = event.key
        if key is Key.ESCAPE:
            self.state = AppState.QUIT_CONFIRM
        elif key is Key.ENTER:
            self.submit_answer()
        elif key is Key.NEWLINE:
            buffer.insert("\n")
        elif key in (Key.CHAR, Key.PASTE):
            buffer.insert(event.text.replace("\r\n", "\n").replace("\r", "\n"))
        elif key is Key.BACKSPACE:
            buffer.delete_backward()
        elif key is Key.DELETE:
            buffer.delete_forward()
        elif key is Key.LEFT:
            buffer.move_left()
        elif key is Key.RIGHT:
            buffer.move_right()
        elif key is Key.HOME:
            line_home(buffer, self.lines)
        elif key is Key.END:
            line_end(buffer, self.lines)
        elif key is Key.UP:
            # At the top row the arrow moves to the previous flashcard.
            if not move_vertical(buffer, self.lines, -1):
                self.navigate(-1)
        elif key is Key.DOWN:
            if not move_vertical(buffer, self.lines, 1):
                self.navigate(1)

    def _handle_answer_view(self, event: KeyEvent) -> None:
        key = event.key
        if key is Key.ESCAPE:
            self.state = AppState.QUIT_CONFIRM
        elif key is Key.UP:
            self.navigate(-1)
        elif key is Key.DOWN:
            self.navigate(1)
        elif key is Key.ENTER:
            if self.current_index < len(self.flashcards) - 1:
                self.navigate(1)
            else:
                self.finish()
        elif key is Key.CTRL_E:
            self.warning = None
            self.request_evaluation(self.current_index)
        elif key is Key.CTRL_X:
            self.cancel_evaluation()
        elif key in (Key.PAGE_UP, Key.PAGE_DOWN):
            self._scroll_feedback(key)

    def _scroll_feedback(self, key: Key) -> None:
        step = SCROLL_LINES_PER_EVENT if key is Key.PAGE_DOWN else -SCROLL_LINES_PER_EVENT
        self.feedback_scroll_y = max(0, self.feedback_scroll_y + step)

    def navigate(self, delta: int) -> None:
        target = self.current_index + delta
        if target < 0 or target >= len(self.flashcards):
            return
        self.current_index = target
        self.showing_answer = self.current.user_answer is not None
        if self.outcome is not None and self.outcome.is_terminal:
            self.outcome = None
        self.warning = None
        self.input_scroll_y = 0
        self.feedback_scroll_y = 0

    # -- answers and evaluation -------------------------------------------

    def _store(self, action: Callable[[], None], what: str) -> None:
        if self.storage is None:
            return
        try:
            action()
        except StorageError as e:
            log.warning(f"Could not save {what}: {e}")
            self.warning = f"Could not save {what}: {e}"

    def submit_answer(self) -> None:
        buffer = self.buffer
        if buffer.is_blank():
            return
        card = self.current
        if card.user_answer is None:
            self.questions_answered += 1
        card.user_answer = buffer.text
        self.warning = None
        if card.id is not None:
            self._store(lambda: self.storage.record_answer(card.id, card.user_answer), "answer")

        # The text now lives on the flashcard; only then drop the draft.
        del self._drafts[self.current_index]
        self.showing_answer = True
        self.feedback_scroll_y = 0
        log.info(f"Answer submitted for flashcard {self.current_index}")
        self.request_evaluation(self.current_index)

    def request_evaluation(self, flashcard_index: int) -> None:
        if self.supervisor is None:
            return
        card = self.flashcards[flashcard_index]
        if not card.user_answer or not card.user_answer.strip():
            return
        request = build_request(card.question, card.answer, card.user_answer, flashcard_index)
        log.info(f"Sending AI request {request.id} for flashcard {flashcard_index}")
        self.outcome = self.supervisor.submit(request)

    def cancel_evaluation(self) -> None:
        if self.supervisor is None or not self.evaluating:
            return
        self.supervisor.cancel()
        self.outcome = self.outcome.failed("Evaluation cancelled")

    def poll(self, wait: float = 0.0) -> bool:
        """Merge finished background work into session state. True if anything changed."""
        changed = False
        if self.supervisor is not None:
            for outcome in self.supervisor.poll(wait):
                self._apply_outcome(outcome)
                changed = True
        if self._assessment_future is not None and self._assessment_future.done():
            self._apply_assessment(self._assessment_future)
            self._assessment_future = None
            changed = True
        return changed

    def _apply_outcome(self, outcome: EvaluationOutcome) -> None:
        if self.outcome is None or outcome.request_id != self.outcome.request_id:
            log.info(f"Ignoring outcome for superseded request {outcome.request_id}")
            return
        self.outcome = outcome
        if outcome.status is OutcomeStatus.SUCCESS:
            card = self.flashcards[outcome.flashcard_index]
            card.feedback = outcome.judgment
            log.info(
                f"Received evaluation for flashcard {outcome.flashcard_index}: "
                f"score {outcome.judgment.correctness_score:.2f}"
            )
            if card.id is not None:
                judgment_json = outcome.judgment.model_dump_json()
                self._store(
                    lambda: self.storage.record_feedback(card.id, judgment_json),
                    "AI feedback",
                )
        else:
            log.info(
                f"Evaluation for flashcard {outcome.flashcard_index} ended "
                f"{outcome.status.value}: {outcome.reason}"
            )

    # -- summary -----------------------------------------------------------

    def finish(self) -> None:
        if self.session_id is not None:
            self._store(lambda: self.storage.complete_session(self.session_id), "session")
        self.state = AppState.SUMMARY
        self.feedback_scroll_y = 0
        if self._assess is not None and self.ai_enabled and self.questions_answered:
            self._executor = ThreadPoolExecutor(max_workers=1)
            cards = [card.model_copy(deep=True) for card in self.flashcards]
            self._assessment_future = self._executor.submit(
                self._run_assessment, self.deck_name, cards
            )

    def _run_assessment(self, deck_name: str, cards: list[Flashcard]) -> SessionAssessment:
        return parse_session_assessment(self._assess(deck_name, cards))

    def _apply_assessment(self, future: Future) -> None:
        try:
            self.assessment = future.result()
        except ParseFailure as e:
            self.assessment_error = f"Could not parse response: {e.reason}"
        except Exception as e:
            self.assessment_error = f"Session assessment failed: {e}"
        if self.assessment_error:
            log.warning(self.assessment_error)
            return
        log.info("Session assessment loaded successfully")
        if self.session_id is not None:
            assessment = self.assessment
            self._store(
                lambda: self.storage.record_assessment(self.session_id, assessment),
                "assessment",
            )

    def close(self) -> None:
        if self.state is AppState.EXITED:
            return
        self.state = AppState.EXITED
        if self.supervisor is not None:
            self.supervisor.shutdown()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
        log.info("Quiz session closed")
