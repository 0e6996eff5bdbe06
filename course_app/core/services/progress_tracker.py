"""Per-student completion state for every course the student is enrolled in."""

from __future__ import annotations

from collections.abc import Callable
import copy
import logging
from threading import RLock

from course_app.constants.quiz_constants import PROGRESS_WRITE_ATTEMPTS
from course_app.core.errors import (
    AttemptLimitError,
    NotEnrolledError,
    ProgressPersistenceError,
    StoreError,
)
from course_app.core.models import Course, QuizResult, StudentProgress
from course_app.core.scheduling import Clock, utc_now
from course_app.core.scoring import percentage
from course_app.core.stores import CourseStore, ProgressStore

logger = logging.getLogger(__name__)

ProgressListener = Callable[[StudentProgress], None]


class ProgressTracker:
    """Single source of truth for one student's progress.

    Every mutation is applied to the in-memory copy first and then written to
    the progress store. A failed write leaves the course marked as pending:
    the change is never dropped, the caller gets ``ProgressPersistenceError``,
    and the next read retries the write before trusting the store again.
    """

    def __init__(
        self,
        student_id: str,
        course_store: CourseStore,
        progress_store: ProgressStore,
        *,
        clock: Clock | None = None,
        write_attempts: int = PROGRESS_WRITE_ATTEMPTS,
    ) -> None:
        self._student_id = student_id
        self._course_store = course_store
        self._progress_store = progress_store
        self._clock = clock or utc_now
        self._write_attempts = max(1, write_attempts)
        self._lock = RLock()
        self._cache: dict[str, StudentProgress] = {}
        self._pending: set[str] = set()
        self._listeners: list[ProgressListener] = []

    def get_student_id(self) -> str:
        return self._student_id

    # --- Reads ---

    def get_progress(self, course_id: str) -> StudentProgress | None:
        """Return a snapshot of the progress record, or None before enrollment."""
        with self._lock:
            progress = self._load(course_id)
            return copy.deepcopy(progress) if progress is not None else None

    def pending_course_ids(self) -> set[str]:
        with self._lock:
            return set(self._pending)

    def flush(self, course_id: str) -> bool:
        """Retry an unpersisted change. Returns True when nothing is left pending."""
        with self._lock:
            if course_id not in self._pending:
                return True
            return self._persist(course_id) is None

    # --- Mutations ---

    def create_progress(self, course_id: str, enrollment_id: str) -> StudentProgress:
        """Create the record for a new enrollment; returns the existing one if present."""
        with self._lock:
            existing = self._load(course_id)
            if existing is not None:
                return copy.deepcopy(existing)
            self._cache[course_id] = StudentProgress(
                student_id=self._student_id,
                course_id=course_id,
                enrollment_id=enrollment_id,
            )
            error = self._commit(course_id)
            snapshot = copy.deepcopy(self._cache[course_id])
        return self._publish(snapshot, error)

    def mark_lesson_completed(self, course_id: str, lesson_id: str) -> StudentProgress:
        """Add a lesson to the completed set and recompute overall progress.

        Completing a lesson twice is a no-op. When the course's lesson total
        cannot be determined the previous ``overall_progress`` is kept.
        """
        with self._lock:
            progress = self._require(course_id)
            if progress.is_lesson_completed(lesson_id):
                return copy.deepcopy(progress)

            progress.completed_lessons.append(lesson_id)
            progress.current_lesson_id = lesson_id
            total_lessons = self._count_lessons(course_id)
            if total_lessons > 0:
                progress.overall_progress = _clamp_percentage(
                    percentage(len(progress.completed_lessons), total_lessons)
                )
            else:
                logger.warning(
                    "Lesson total unknown for course %s; keeping progress at %s%%",
                    course_id,
                    progress.overall_progress,
                )
            self._update_course_completion(progress, self._fetch_course(course_id))
            error = self._commit(course_id)
            snapshot = copy.deepcopy(progress)
        return self._publish(snapshot, error)

    def record_quiz_result(self, course_id: str, quiz_id: str, result: QuizResult) -> StudentProgress:
        """Append a graded attempt and re-evaluate course completion."""
        if result.quiz_id != quiz_id:
            raise ValueError(f"Result for quiz {result.quiz_id!r} cannot be recorded as {quiz_id!r}.")
        with self._lock:
            progress = self._require(course_id)
            course = self._fetch_course(course_id)
            placement = course.find_quiz(quiz_id) if course is not None else None
            if course is None:
                logger.warning("Attempt cap for quiz %s not checked; course %s is unavailable", quiz_id, course_id)
            if placement is not None:
                allowed = placement.quiz.effective_max_attempts
                if progress.attempt_count(quiz_id) >= allowed:
                    raise AttemptLimitError(
                        f"Quiz {quiz_id!r} already has {allowed} recorded attempt(s)."
                    )

            progress.quiz_results.setdefault(quiz_id, []).append(result)
            progress.time_spent_seconds += max(0, result.time_taken_seconds)
            self._update_course_completion(progress, course)
            error = self._commit(course_id)
            snapshot = copy.deepcopy(progress)
        logger.info(
            "Recorded attempt %s for quiz %s (student %s): %s%%",
            result.attempt_number,
            quiz_id,
            self._student_id,
            result.score,
        )
        return self._publish(snapshot, error)

    # --- Observers ---

    def add_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ProgressListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --- Internals ---

    def _load(self, course_id: str) -> StudentProgress | None:
        if course_id in self._pending:
            error = self._persist(course_id)
            if error is not None:
                logger.warning("Serving unsaved progress for course %s", course_id)
            return self._cache[course_id]

        try:
            stored = self._progress_store.read_progress(self._student_id, course_id)
        except StoreError:
            cached = self._cache.get(course_id)
            if cached is None:
                raise
            logger.warning("Progress read failed for course %s; using cached copy", course_id, exc_info=True)
            return cached

        if stored is None:
            self._cache.pop(course_id, None)
            return None
        total_lessons = self._count_lessons(course_id)
        if total_lessons > 0:
            stored.overall_progress = _clamp_percentage(
                percentage(len(stored.completed_lessons), total_lessons)
            )
        self._cache[course_id] = stored
        return stored

    def _require(self, course_id: str) -> StudentProgress:
        progress = self._load(course_id)
        if progress is None:
            raise NotEnrolledError(
                f"Student {self._student_id!r} has no progress for course {course_id!r}."
            )
        return progress

    def _fetch_course(self, course_id: str) -> Course | None:
        try:
            return self._course_store.get_course(course_id)
        except StoreError:
            logger.warning("Could not load course %s", course_id, exc_info=True)
            return None

    def _count_lessons(self, course_id: str) -> int:
        try:
            lessons = self._course_store.get_lessons_by_course(course_id)
            if lessons:
                return len(lessons)
            course = self._course_store.get_course(course_id)
        except StoreError:
            logger.warning("Could not count lessons for course %s", course_id, exc_info=True)
            return 0
        return len(course.all_lessons()) if course is not None else 0

    @staticmethod
    def _update_course_completion(progress: StudentProgress, course: Course | None) -> None:
        if progress.course_completed or course is None:
            return
        if course.final_quiz is not None:
            progress.course_completed = progress.has_passed(course.final_quiz.id)
        else:
            progress.course_completed = progress.overall_progress >= 100

    def _commit(self, course_id: str) -> ProgressPersistenceError | None:
        self._cache[course_id].last_updated = self._clock()
        self._pending.add(course_id)
        return self._persist(course_id)

    def _persist(self, course_id: str) -> ProgressPersistenceError | None:
        progress = self._cache[course_id]
        for attempt in range(1, self._write_attempts + 1):
            try:
                written = self._progress_store.write_progress(progress)
            except StoreError as exc:
                written = False
                logger.warning(
                    "Progress write %s/%s for course %s failed: %s",
                    attempt,
                    self._write_attempts,
                    course_id,
                    exc,
                )
            if written:
                self._pending.discard(course_id)
                return None
        logger.error("Progress for course %s left unsaved after %s attempt(s)", course_id, self._write_attempts)
        return ProgressPersistenceError(course_id)

    def _publish(self, snapshot: StudentProgress, error: ProgressPersistenceError | None) -> StudentProgress:
        for listener in list(self._listeners):
            listener(copy.deepcopy(snapshot))
        if error is not None:
            error.progress = snapshot
            raise error
        return snapshot


def _clamp_percentage(value: int) -> int:
    return max(0, min(100, value))
