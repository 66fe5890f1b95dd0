"""Background evaluation worker and its supervisor.

The worker is a daemon thread that reads ``EvaluationRequest``s from a
request queue, calls the (slow, network-bound) evaluator and posts a
``WorkerResult`` to a result queue. It never touches session state.

``WorkerSupervisor`` lives on the UI side. It keeps at most one active
request, supersedes older ones, enforces the evaluation timeout, drops
results that no longer match the active request, and respawns the worker
thread when it dies. A worker still stuck on a call nobody waits for is
retired and replaced, so a new request is always sent immediately.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from flashquiz.config import settings
from flashquiz.models import EvaluationOutcome, EvaluationRequest, WorkerResult
from flashquiz.services.evaluation import ParseFailure, parse_response

log = logging.getLogger(__name__)

# (question, reference answer, user answer) -> raw evaluator text
Evaluate = Callable[[str, str, str], str]

TIMEOUT_MESSAGE = "AI evaluation timed out - press Ctrl+E to retry"
CRASH_MESSAGE = "AI worker keeps stopping unexpectedly - press Ctrl+E to retry"


class WorkerState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"
    CRASHED = "crashed"
    STOPPED = "stopped"


def run_worker(
    requests: "queue.Queue[Optional[EvaluationRequest]]",
    results: "queue.Queue[WorkerResult]",
    evaluate: Evaluate,
) -> None:
    """Worker thread body. A ``None`` request asks it to exit."""
    while True:
        request = requests.get()
        if request is None:
            log.info("Worker stop requested, exiting")
            return
        log.info(
            f"Worker received request {request.id} for flashcard {request.flashcard_index}"
        )
        try:
            raw = evaluate(request.question, request.reference_answer, request.user_answer)
        except Exception as e:
            log.warning(f"Worker error for request {request.id}: {e}")
            results.put(
                WorkerResult(request_id=request.id, error=f"AI evaluation failed: {e}")
            )
            continue
        log.info(f"Worker sending evaluation result for request {request.id}")
        results.put(WorkerResult(request_id=request.id, raw_response=raw))


@dataclass
class WorkerHandle:
    """Channels and thread of the current worker, plus restart bookkeeping."""
    results: "queue.Queue[WorkerResult]"
    requests: "Optional[queue.Queue[Optional[EvaluationRequest]]]" = None
    thread: Optional[threading.Thread] = None
    restarts: int = 0
    consecutive_restarts: int = 0
    # Workers left to finish a call nobody waits for any more.
    retired: int = 0

    @property
    def alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()


class WorkerSupervisor:
    def __init__(
        self,
        evaluate: Evaluate,
        timeout: Optional[float] = None,
        max_consecutive_restarts: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._evaluate = evaluate
        self.timeout = (
            settings.EVALUATION_TIMEOUT_SECONDS if timeout is None else timeout
        )
        self.max_consecutive_restarts = (
            settings.MAX_CONSECUTIVE_RESTARTS
            if max_consecutive_restarts is None
            else max_consecutive_restarts
        )
        self._clock = clock
        self.handle = WorkerHandle(results=queue.Queue())
        self.state = WorkerState.IDLE

        self._active: Optional[EvaluationRequest] = None
        self._outcome: Optional[EvaluationOutcome] = None
        self._dispatched_at: Optional[float] = None
        self._in_flight: Optional[int] = None

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        if self.handle.thread is None:
            self._spawn()

    def shutdown(self, wait: float = 0.0) -> None:
        """Ask the worker to exit. A call in progress is not interrupted."""
        if self.state is WorkerState.STOPPED:
            return
        if self.handle.requests is not None:
            self.handle.requests.put(None)
        if wait > 0 and self.handle.thread is not None:
            self.handle.thread.join(timeout=wait)
        self._active = self._outcome = None
        self.state = WorkerState.STOPPED
        log.info("Evaluation worker shut down")

    def _spawn(self) -> None:
        requests: "queue.Queue[Optional[EvaluationRequest]]" = queue.Queue()
        thread = threading.Thread(
            target=run_worker,
            args=(requests, self.handle.results, self._evaluate),
            name="flashquiz-ai-worker",
            daemon=True,
        )
        thread.start()
        self.handle.requests = requests
        self.handle.thread = thread
        self._in_flight = None
        self.state = WorkerState.IDLE

    def _retire(self) -> None:
        """Leave the busy worker to finish its stale call and start a fresh one.

        The old thread exits after that call; its result still lands on the
        shared result queue and is dropped by id.
        """
        if self.handle.requests is not None:
            self.handle.requests.put(None)
        self.handle.retired += 1
        log.info(
            f"Worker still busy with stale request {self._in_flight}, "
            f"starting a fresh worker (retired #{self.handle.retired})"
        )
        self._spawn()

    # -- requests ----------------------------------------------------------

    @property
    def active_request_id(self) -> Optional[int]:
        return self._active.id if self._active else None

    @property
    def outcome(self) -> Optional[EvaluationOutcome]:
        """Pending outcome of the active request, if any."""
        return self._outcome

    def submit(self, request: EvaluationRequest) -> EvaluationOutcome:
        """Make ``request`` the active one and send it right away.

        Any earlier request is superseded. A worker still busy with a
        superseded, cancelled or timed-out call is retired, so the new
        request never waits behind it.
        """
        if self.state is WorkerState.STOPPED:
            raise RuntimeError("Evaluation worker has been shut down")

        self._detect_crash()
        if self._active is not None:
            log.info(f"Request {self._active.id} superseded by request {request.id}")
        self._active = request
        self._outcome = EvaluationOutcome.pending(request)

        if self.handle.thread is None or self.state is WorkerState.CRASHED:
            self._spawn()
        elif self.state is WorkerState.BUSY:
            self._retire()
        self._dispatch(request)
        return self._outcome

    def cancel(self) -> Optional[int]:
        """Forget the active request; its late result will be dropped."""
        if self._active is None:
            return None
        cancelled = self._active.id
        self._active = self._outcome = None
        self._dispatched_at = None
        log.info(f"Evaluation request {cancelled} cancelled")
        return cancelled

    def _dispatch(self, request: EvaluationRequest) -> None:
        if self.handle.requests is None:
            raise RuntimeError("Evaluation worker has not been started")
        self.handle.requests.put(request)
        self._in_flight = request.id
        self._dispatched_at = self._clock()
        self.state = WorkerState.BUSY
        log.info(f"Sent evaluation request {request.id} to worker")

    # -- polling -----------------------------------------------------------

    def poll(self, wait: float = 0.0) -> list[EvaluationOutcome]:
        """Process results, crashes and timeouts. Returns outcomes that finished.

        ``wait`` blocks up to that many seconds for the first result.
        """
        finished: list[EvaluationOutcome] = []
        if self.state is WorkerState.STOPPED:
            return finished

        for result in self._drain(wait):
            self._apply(result, finished)

        if self._detect_crash() and self._outcome is not None:
            self._recover(finished)

        self._check_timeout(finished)
        return finished

    def _drain(self, wait: float) -> list[WorkerResult]:
        drained: list[WorkerResult] = []
        if wait > 0:
            try:
                drained.append(self.handle.results.get(timeout=wait))
            except queue.Empty:
                return drained
        while True:
            try:
                drained.append(self.handle.results.get_nowait())
            except queue.Empty:
                return drained

    def _apply(self, result: WorkerResult, finished: list[EvaluationOutcome]) -> None:
        self.handle.consecutive_restarts = 0
        if result.request_id == self._in_flight:
            self._in_flight = None
            if self.state is WorkerState.BUSY:
                self.state = WorkerState.IDLE

        outcome = self._outcome
        if outcome is None or result.request_id != outcome.request_id:
            log.info(f"Dropping stale result for request {result.request_id}")
            return

        if result.error is not None:
            outcome = outcome.failed(result.error)
        else:
            try:
                outcome = outcome.success(parse_response(result.raw_response or ""))
            except ParseFailure as e:
                log.warning(f"Could not parse response for request {result.request_id}: {e.reason}")
                outcome = outcome.failed(f"Could not parse response: {e.reason}")
        self._finish(outcome, finished)

    def _detect_crash(self) -> bool:
        if self.state in (WorkerState.STOPPED, WorkerState.CRASHED):
            return False
        if self.handle.thread is None or self.handle.thread.is_alive():
            return False
        self.state = WorkerState.CRASHED
        self.handle.restarts += 1
        self.handle.consecutive_restarts += 1
        log.error(
            f"Evaluation worker stopped unexpectedly while handling request "
            f"{self._in_flight} (restart #{self.handle.restarts})"
        )
        self._in_flight = None
        return True

    def _recover(self, finished: list[EvaluationOutcome]) -> None:
        request, outcome = self._active, self._outcome
        if request is None or outcome is None:
            return
        if self.handle.consecutive_restarts > self.max_consecutive_restarts:
            log.error(
                f"Giving up on request {request.id} after "
                f"{self.handle.consecutive_restarts} consecutive worker restarts"
            )
            self._finish(outcome.failed(CRASH_MESSAGE), finished)
            return
        self._spawn()
        self._dispatch(request)

    def _check_timeout(self, finished: list[EvaluationOutcome]) -> None:
        if self._outcome is None or self._dispatched_at is None:
            return
        if self._clock() - self._dispatched_at <= self.timeout:
            return
        log.warning(
            f"AI evaluation timed out after {self.timeout:.0f} seconds "
            f"(request {self._outcome.request_id})"
        )
        self._finish(self._outcome.timed_out(TIMEOUT_MESSAGE), finished)

    def _finish(self, outcome: EvaluationOutcome, finished: list[EvaluationOutcome]) -> None:
        finished.append(outcome)
        self._active = self._outcome = None
        self._dispatched_at = None
