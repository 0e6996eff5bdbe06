"""Business logic for courses and quiz attempts shared between UI and API."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import logging
from threading import Lock

from course_app.constants.quiz_constants import PROGRESS_WRITE_ATTEMPTS, TICK_INTERVAL_SECONDS
from course_app.core.errors import (
    AccessDeniedError,
    AttemptLimitError,
    CourseNotFoundError,
    NoActiveSessionError,
    NotEnrolledError,
    ProgressPersistenceError,
    QuizLoadError,
    QuizNotEligibleError,
    StoreError,
)
from course_app.core.models import AppUser, Course, Enrollment, QuizResult, StudentProgress, UserRole
from course_app.core.scheduling import Clock, ThreadingTickScheduler, TickScheduler, utc_now
from course_app.core.services.course_statistics import (
    CourseStatistics,
    QuizStatistics,
    StudentProgressRow,
    TeacherStatistics,
)
from course_app.core.services.eligibility import EligibilityDecision, EligibilityResolver
from course_app.core.services.enrollment_manager import EnrollmentManager
from course_app.core.services.progress_tracker import ProgressTracker
from course_app.core.services.quiz_session import QuizSession, SubmitOutcome
from course_app.core.stores import CourseStore, EnrollmentStore, ProgressStore, UserDirectory

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Your score may not have been recorded. It will be saved again automatically."


@dataclass(slots=True, frozen=True)
class AttemptOutcome:
    """Graded attempt plus whether the progress store confirmed it."""

    student_id: str
    course_id: str
    result: QuizResult
    saved: bool
    error_message: str | None = None
    course_completed: bool = False


@dataclass(slots=True, frozen=True)
class QuizSubmission:
    submit: SubmitOutcome
    attempt: AttemptOutcome | None = None


@dataclass(slots=True)
class ActiveAttempt:
    student_id: str
    course_id: str
    quiz_id: str
    session: QuizSession
    outcome: AttemptOutcome | None = None


OutcomeListener = Callable[[AttemptOutcome], None]


class CourseManager:
    """Facade over the stores, per-student trackers, enrollment and quiz sessions.

    Each student has at most one attempt at a time. The manager lock only
    guards its own maps; it is never held while calling into a session, since
    sessions call back into the manager when they complete.
    """

    def __init__(
        self,
        course_store: CourseStore,
        progress_store: ProgressStore,
        enrollment_store: EnrollmentStore,
        *,
        user_directory: UserDirectory | None = None,
        clock: Clock | None = None,
        scheduler_factory: Callable[[], TickScheduler] = ThreadingTickScheduler,
        tick_interval_seconds: int = TICK_INTERVAL_SECONDS,
        write_attempts: int = PROGRESS_WRITE_ATTEMPTS,
    ) -> None:
        self._lock = Lock()
        self._clock = clock or utc_now
        self._scheduler_factory = scheduler_factory
        self._tick_interval_seconds = tick_interval_seconds
        self._write_attempts = write_attempts

        # Services
        self._course_store = course_store
        self._progress_store = progress_store
        self._enrollments = EnrollmentManager(course_store, enrollment_store, clock=self._clock)
        self._resolver = EligibilityResolver()
        self._statistics = CourseStatistics(course_store, progress_store, enrollment_store, user_directory)

        self._trackers: dict[str, ProgressTracker] = {}
        self._attempts: dict[str, ActiveAttempt] = {}
        self._outcome_listeners: list[OutcomeListener] = []

    # --- Courses ---

    def list_courses(self) -> list[Course]:
        return self._course_store.list_courses()

    def get_course(self, course_id: str) -> Course:
        course = self._course_store.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(f"Course {course_id!r} does not exist.")
        return course

    # --- Enrollment & progress ---

    def get_tracker(self, student_id: str) -> ProgressTracker:
        with self._lock:
            tracker = self._trackers.get(student_id)
            if tracker is None:
                tracker = ProgressTracker(
                    student_id,
                    self._course_store,
                    self._progress_store,
                    clock=self._clock,
                    write_attempts=self._write_attempts,
                )
                self._trackers[student_id] = tracker
            return tracker

    def enroll(self, user: AppUser, course_id: str) -> Enrollment:
        return self._enrollments.enroll(user, course_id, self.get_tracker(user.id))

    def list_enrollments(self, user: AppUser) -> list[Enrollment]:
        return self._enrollments.list_enrollments(user.id)

    def cancel_enrollment(self, user: AppUser, enrollment_id: str) -> Enrollment:
        return self._enrollments.cancel(enrollment_id, student_id=user.id)

    def get_progress(self, user: AppUser, course_id: str) -> StudentProgress | None:
        return self.get_tracker(user.id).get_progress(course_id)

    def mark_lesson_completed(self, user: AppUser, course_id: str, lesson_id: str) -> StudentProgress:
        course = self.get_course(course_id)
        if lesson_id not in {lesson.id for lesson in course.all_lessons()}:
            raise CourseNotFoundError(f"Lesson {lesson_id!r} is not part of course {course_id!r}.")
        if not self._enrollments.is_enrolled(user.id, course_id):
            raise NotEnrolledError(f"Student {user.id!r} is not enrolled in course {course_id!r}.")
        try:
            progress = self.get_tracker(user.id).mark_lesson_completed(course_id, lesson_id)
        except ProgressPersistenceError as exc:
            self._sync_enrollment(user.id, exc.progress)
            raise
        self._sync_enrollment(user.id, progress)
        return progress

    def retry_pending(self, user: AppUser) -> dict[str, bool]:
        """Retry unsaved progress writes; maps course id to whether it is now saved."""
        tracker = self.get_tracker(user.id)
        results = {}
        for course_id in sorted(tracker.pending_course_ids()):
            results[course_id] = tracker.flush(course_id)
            if results[course_id]:
                self._sync_enrollment(user.id, tracker.get_progress(course_id))
        return results

    def _sync_enrollment(self, student_id: str, progress: StudentProgress | None) -> None:
        if progress is not None and progress.course_completed:
            self._enrollments.mark_completed(student_id, progress.course_id)

    def _enrolled_progress(self, user: AppUser, course_id: str) -> StudentProgress | None:
        # A cancelled enrollment keeps its progress record but no longer grants access.
        if not self._enrollments.is_enrolled(user.id, course_id):
            return None
        return self.get_progress(user, course_id)

    # --- Quiz attempts ---

    def check_quiz_eligibility(self, user: AppUser, course_id: str, quiz_id: str) -> EligibilityDecision:
        course = self.get_course(course_id)
        return self._resolver.check(course, self._enrolled_progress(user, course_id), quiz_id)

    def start_quiz(
        self,
        user: AppUser,
        course_id: str,
        quiz_id: str,
        scheduler: TickScheduler | None = None,
    ) -> QuizSession:
        """Start a timed attempt, abandoning the student's previous one."""
        if user.role is not UserRole.STUDENT:
            raise AccessDeniedError("Only students can take quizzes.")
        course = self.get_course(course_id)
        placement = course.find_quiz(quiz_id)
        if placement is None:
            raise QuizLoadError(f"Quiz {quiz_id!r} is not part of course {course_id!r}.")

        decision = self._resolver.check(course, self._enrolled_progress(user, course_id), quiz_id)
        if not decision.eligible:
            raise QuizNotEligibleError(decision)

        session = QuizSession(
            scheduler or self._scheduler_factory(),
            clock=self._clock,
            tick_interval_seconds=self._tick_interval_seconds,
            on_completed=lambda completed: self._finalize(attempt),
        )
        attempt = ActiveAttempt(student_id=user.id, course_id=course_id, quiz_id=quiz_id, session=session)
        with self._lock:
            previous = self._attempts.get(user.id)
            self._attempts[user.id] = attempt
        if previous is not None and previous.session.abandon():
            logger.info("Abandoned previous attempt at %s for student %s", previous.quiz_id, user.id)

        session.start(placement.quiz)
        return session

    def get_active_attempt(self, user: AppUser) -> ActiveAttempt | None:
        with self._lock:
            return self._attempts.get(user.id)

    def require_session(self, user: AppUser) -> QuizSession:
        attempt = self.get_active_attempt(user)
        if attempt is None:
            raise NoActiveSessionError("No quiz attempt has been started.")
        return attempt.session

    def submit_quiz(self, user: AppUser, confirm_unanswered: bool = False) -> QuizSubmission:
        attempt = self.get_active_attempt(user)
        if attempt is None:
            raise NoActiveSessionError("No quiz attempt has been started.")
        submit = attempt.session.submit(confirm_unanswered)
        return QuizSubmission(submit=submit, attempt=attempt.outcome)

    def abandon_quiz(self, user: AppUser) -> bool:
        """Leave the current attempt without a result and forget it."""
        with self._lock:
            attempt = self._attempts.pop(user.id, None)
        if attempt is None:
            return False
        return attempt.session.abandon()

    def add_outcome_listener(self, listener: OutcomeListener) -> None:
        self._outcome_listeners.append(listener)

    def remove_outcome_listener(self, listener: OutcomeListener) -> None:
        if listener in self._outcome_listeners:
            self._outcome_listeners.remove(listener)

    def _finalize(self, attempt: ActiveAttempt) -> None:
        session = attempt.session
        tracker = self.get_tracker(attempt.student_id)
        try:
            progress = tracker.get_progress(attempt.course_id)
        except StoreError:
            logger.warning(
                "Could not read progress before recording %s; numbering the attempt as 1",
                attempt.quiz_id,
                exc_info=True,
            )
            progress = None
        score = session.get_score()
        result = QuizResult(
            quiz_id=attempt.quiz_id,
            score=score.score,
            passed=score.passed,
            total_questions=score.total_questions,
            correct_answers=score.correct_answers,
            attempt_number=(progress.attempt_count(attempt.quiz_id) if progress else 0) + 1,
            completed_at=session.get_completed_at(),
            time_taken_seconds=session.get_time_taken_seconds(),
            answers=session.get_answers(),
        )

        saved = True
        error_message = None
        course_completed = False
        try:
            updated = tracker.record_quiz_result(attempt.course_id, attempt.quiz_id, result)
            course_completed = updated.course_completed
        except ProgressPersistenceError as exc:
            saved = False
            error_message = SAVE_FAILED_MESSAGE
            course_completed = exc.progress is not None and exc.progress.course_completed
        except (AttemptLimitError, NotEnrolledError, StoreError) as exc:
            logger.error("Attempt at %s for student %s not recorded: %s", attempt.quiz_id, attempt.student_id, exc)
            saved = False
            error_message = str(exc)

        if course_completed:
            self._enrollments.mark_completed(attempt.student_id, attempt.course_id)

        outcome = AttemptOutcome(
            student_id=attempt.student_id,
            course_id=attempt.course_id,
            result=result,
            saved=saved,
            error_message=error_message,
            course_completed=course_completed,
        )
        attempt.outcome = outcome
        for listener in list(self._outcome_listeners):
            listener(outcome)

    # --- Teacher statistics ---

    def get_teacher_statistics(self, user: AppUser) -> TeacherStatistics:
        return self._statistics.teacher_statistics(user)

    def get_course_student_progress(self, user: AppUser, course_id: str) -> list[StudentProgressRow]:
        self._require_course_teacher(user, course_id)
        return self._statistics.course_student_progress(course_id)

    def get_top_students(self, user: AppUser, course_id: str, limit: int = 3) -> list[StudentProgressRow]:
        self._require_course_teacher(user, course_id)
        return self._statistics.top_students(course_id, limit)

    def get_quiz_statistics(self, user: AppUser, course_id: str, quiz_id: str) -> QuizStatistics:
        course = self._require_course_teacher(user, course_id)
        if course.find_quiz(quiz_id) is None:
            raise QuizLoadError(f"Quiz {quiz_id!r} is not part of course {course_id!r}.")
        return self._statistics.quiz_statistics(course_id, quiz_id)

    def _require_course_teacher(self, user: AppUser, course_id: str) -> Course:
        course = self.get_course(course_id)
        if not user.is_teacher or course.teacher_id != user.id:
            raise AccessDeniedError("Only the course's teacher can view its statistics.")
        return course
