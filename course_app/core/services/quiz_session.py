"""Service for running one timed attempt at a quiz."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import logging
from threading import RLock

from course_app.constants.quiz_constants import TICK_INTERVAL_SECONDS
from course_app.core.models import Quiz, QuizQuestion
from course_app.core.scheduling import Clock, TickHandle, TickScheduler, utc_now
from course_app.core.scoring import ScoreResult, percentage, score_quiz

logger = logging.getLogger(__name__)


class SessionState(Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class CompletionReason(Enum):
    SUBMITTED = "submitted"
    TIMED_OUT = "timed_out"


class SessionEvent(Enum):
    STARTED = "started"
    ANSWER_SELECTED = "answer_selected"
    CURSOR_MOVED = "cursor_moved"
    TICK = "tick"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class SubmitStatus(Enum):
    COMPLETED = "completed"
    NEEDS_CONFIRMATION = "needs_confirmation"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class SubmitOutcome:
    status: SubmitStatus
    unanswered_count: int = 0
    score: ScoreResult | None = None


SessionListener = Callable[["QuizSession", SessionEvent], None]
CompletionHook = Callable[["QuizSession"], None]


def format_countdown(seconds: int) -> str:
    minutes, remaining = divmod(max(0, seconds), 60)
    return f"{minutes}:{remaining:02d}"


class QuizSession:
    """State machine for a single attempt: LOADING -> IN_PROGRESS -> COMPLETED | ABANDONED.

    The countdown is a repeating tick obtained from the injected scheduler and
    is the only autonomous driver of a transition. Reaching COMPLETED cancels
    the tick before scoring, so a timeout can never submit twice.
    """

    def __init__(
        self,
        scheduler: TickScheduler,
        *,
        clock: Clock | None = None,
        tick_interval_seconds: int = TICK_INTERVAL_SECONDS,
        on_completed: CompletionHook | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._clock = clock or utc_now
        self._tick_interval_seconds = tick_interval_seconds
        self._on_completed = on_completed
        self._lock = RLock()
        self._listeners: list[SessionListener] = []

        self._state = SessionState.LOADING
        self._quiz: Quiz | None = None
        self._current_index: int = 0
        self._answers: list[int | None] = []
        self._frozen_answers: tuple[int | None, ...] | None = None
        self._total_seconds: int = 0
        self._time_remaining: int = 0
        self._tick_handle: TickHandle | None = None
        self._started_at: datetime | None = None
        self._completed_at: datetime | None = None
        self._completion_reason: CompletionReason | None = None
        self._score: ScoreResult | None = None

    # --- Lifecycle ---

    def start(self, quiz: Quiz) -> None:
        """Enter IN_PROGRESS with an empty buffer and a running countdown."""
        with self._lock:
            if self._state is not SessionState.LOADING:
                raise RuntimeError(f"Cannot start a session in state {self._state.value}.")
            self._quiz = quiz
            self._current_index = 0
            self._answers = [None] * quiz.question_count
            self._total_seconds = quiz.effective_time_limit_minutes * 60
            self._time_remaining = self._total_seconds
            self._started_at = self._clock()
            self._state = SessionState.IN_PROGRESS
            self._tick_handle = self._scheduler.schedule_repeating(
                self._tick_interval_seconds, self._handle_tick
            )
        logger.info("Quiz session started for %s (%ss)", quiz.id, self._total_seconds)
        self._notify(SessionEvent.STARTED)

    def abandon(self) -> bool:
        """Discard the attempt without a result. Returns False once the session has ended."""
        with self._lock:
            if self._state not in (SessionState.LOADING, SessionState.IN_PROGRESS):
                return False
            self._cancel_tick()
            self._state = SessionState.ABANDONED
            quiz_id = self._quiz.id if self._quiz else None
        logger.info("Quiz session abandoned for %s", quiz_id)
        self._notify(SessionEvent.ABANDONED)
        return True

    def submit(self, confirm_unanswered: bool = False) -> SubmitOutcome:
        """Submit on explicit user action.

        With unanswered questions the session stays open and reports
        NEEDS_CONFIRMATION until called again with ``confirm_unanswered=True``.
        """
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                return SubmitOutcome(SubmitStatus.REJECTED, score=self._score)
            unanswered = self._count_unanswered()
            if unanswered and not confirm_unanswered:
                return SubmitOutcome(SubmitStatus.NEEDS_CONFIRMATION, unanswered_count=unanswered)
            score = self._complete(CompletionReason.SUBMITTED)
        self._finish()
        return SubmitOutcome(SubmitStatus.COMPLETED, unanswered_count=unanswered, score=score)

    def _handle_tick(self) -> None:
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                return
            self._time_remaining = max(0, self._time_remaining - self._tick_interval_seconds)
            timed_out = self._time_remaining == 0
            if timed_out:
                self._complete(CompletionReason.TIMED_OUT)
        if timed_out:
            self._finish()
        else:
            self._notify(SessionEvent.TICK)

    def _complete(self, reason: CompletionReason) -> ScoreResult:
        # Caller holds the lock and has checked IN_PROGRESS.
        self._cancel_tick()
        self._state = SessionState.COMPLETED
        self._completion_reason = reason
        self._completed_at = self._clock()
        self._frozen_answers = tuple(self._answers)
        self._score = score_quiz(self._quiz, self._frozen_answers)
        logger.info(
            "Quiz session for %s completed (%s): score %s%%",
            self._quiz.id,
            reason.value,
            self._score.score,
        )
        return self._score

    def _finish(self) -> None:
        self._notify(SessionEvent.COMPLETED)
        if self._on_completed is not None:
            self._on_completed(self)

    def _cancel_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    # --- Answers and navigation ---

    def select_answer(self, question_index: int, option_index: int) -> bool:
        """Set or overwrite one slot. Out-of-range input is ignored rather than raised."""
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                return False
            if not 0 <= question_index < len(self._answers):
                return False
            if not 0 <= option_index < len(self._quiz.questions[question_index].options):
                return False
            self._answers[question_index] = option_index
        self._notify(SessionEvent.ANSWER_SELECTED)
        return True

    def go_to_next(self) -> int:
        return self.go_to(self._current_index + 1)

    def go_to_previous(self) -> int:
        return self.go_to(self._current_index - 1)

    def go_to(self, index: int) -> int:
        with self._lock:
            if self._state is not SessionState.IN_PROGRESS:
                return self._current_index
            clamped = max(0, min(index, len(self._answers) - 1))
            moved = clamped != self._current_index
            self._current_index = clamped
        if moved:
            self._notify(SessionEvent.CURSOR_MOVED)
        return clamped

    # --- Observers ---

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            listener(self, event)

    # --- Accessors ---

    def get_state(self) -> SessionState:
        return self._state

    def is_in_progress(self) -> bool:
        return self._state is SessionState.IN_PROGRESS

    def get_quiz(self) -> Quiz | None:
        return self._quiz

    def get_current_index(self) -> int:
        return self._current_index

    def get_current_question(self) -> QuizQuestion | None:
        if self._quiz is None:
            return None
        return self._quiz.questions[self._current_index]

    def get_answers(self) -> tuple[int | None, ...]:
        with self._lock:
            if self._frozen_answers is not None:
                return self._frozen_answers
            return tuple(self._answers)

    def get_time_remaining(self) -> int:
        return self._time_remaining

    def get_total_seconds(self) -> int:
        return self._total_seconds

    def get_time_taken_seconds(self) -> int:
        return self._total_seconds - self._time_remaining

    def get_started_at(self) -> datetime | None:
        return self._started_at

    def get_completed_at(self) -> datetime | None:
        return self._completed_at

    def get_completion_reason(self) -> CompletionReason | None:
        return self._completion_reason

    def get_score(self) -> ScoreResult | None:
        return self._score

    def get_unanswered_count(self) -> int:
        with self._lock:
            return self._count_unanswered()

    def get_answered_percentage(self) -> int:
        with self._lock:
            total = len(self._answers)
            return percentage(total - self._count_unanswered(), total)

    def is_answer_correct(self, question_index: int) -> bool:
        """Review helper, only meaningful once the session is completed."""
        if self._state is not SessionState.COMPLETED or self._frozen_answers is None:
            return False
        if not 0 <= question_index < len(self._frozen_answers):
            return False
        return self._quiz.questions[question_index].is_correct(self._frozen_answers[question_index])

    def format_time_remaining(self) -> str:
        return format_countdown(self._time_remaining)

    def _count_unanswered(self) -> int:
        return sum(1 for answer in self._answers if answer is None)
