"""FastAPI server that exposes the student and teacher endpoints."""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
from threading import Thread

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel
import uvicorn

from course_app.constants.about import APP_VERSION
from course_app.constants.network_constants import API_TITLE, DEFAULT_HOST, DEFAULT_PORT
from course_app.core.course_manager import ActiveAttempt, CourseManager
from course_app.core.errors import (
    AccessDeniedError,
    AttemptLimitError,
    CourseAppError,
    CourseNotFoundError,
    NoActiveSessionError,
    NotEnrolledError,
    ProgressPersistenceError,
    QuizImportError,
    QuizLoadError,
    QuizNotEligibleError,
    QuizValidationError,
    StoreError,
)
from course_app.core.markdown_math_renderer import renderer
from course_app.core.models import AppUser, Course, Enrollment, StudentProgress
from course_app.core.services.eligibility import EligibilityDecision
from course_app.core.services.quiz_session import SessionState
from course_app.core.stores import AuthProvider

_STATUS_BY_ERROR: tuple[tuple[type[CourseAppError], int], ...] = (
    (CourseNotFoundError, 404),
    (QuizLoadError, 404),
    (NoActiveSessionError, 404),
    (AccessDeniedError, 403),
    (NotEnrolledError, 409),
    (AttemptLimitError, 409),
    (QuizNotEligibleError, 409),
    (QuizValidationError, 422),
    (QuizImportError, 422),
    (StoreError, 503),
)


class AnswerPayload(BaseModel):
    """Payload schema for selecting an option."""

    question_index: int
    option_index: int


class NavigatePayload(BaseModel):
    index: int


class SubmitPayload(BaseModel):
    confirm_unanswered: bool = False


def _http_error(exc: CourseAppError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.astimezone(timezone.utc).isoformat()


def _user_payload(user: AppUser) -> dict[str, object]:
    return {
        "id": user.id,
        "role": user.role.value,
        "email": user.email,
        "display_name": user.display_name,
    }


def _course_payload(course: Course) -> dict[str, object]:
    return {
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "teacher_id": course.teacher_id,
        "category": course.category,
        "level": course.level,
        "modules": [
            {
                "id": module.id,
                "title": module.title,
                "lesson_ids": list(module.lesson_ids),
                "quiz_id": module.quiz.id if module.quiz else None,
            }
            for module in course.modules
        ],
        "lessons": [
            {
                "id": lesson.id,
                "title": lesson.title,
                "type": lesson.type.value,
                "duration": lesson.duration,
                "quiz_id": lesson.quiz.id if lesson.quiz else None,
            }
            for lesson in course.all_lessons()
        ],
        "final_quiz_id": course.final_quiz.id if course.final_quiz else None,
    }


def _enrollment_payload(enrollment: Enrollment) -> dict[str, object]:
    return {
        "id": enrollment.id,
        "course_id": enrollment.course_id,
        "status": enrollment.status.value,
        "enrolled_at": _iso(enrollment.enrolled_at),
    }


def _progress_payload(progress: StudentProgress | None) -> dict[str, object] | None:
    if progress is None:
        return None
    return {
        "course_id": progress.course_id,
        "enrollment_id": progress.enrollment_id,
        "completed_lessons": list(progress.completed_lessons),
        "overall_progress": progress.overall_progress,
        "course_completed": progress.course_completed,
        "current_lesson_id": progress.current_lesson_id,
        "time_spent_seconds": progress.time_spent_seconds,
        "last_updated": _iso(progress.last_updated),
        "quiz_results": {
            quiz_id: [
                {
                    "attempt_number": result.attempt_number,
                    "score": result.score,
                    "passed": result.passed,
                    "correct_answers": result.correct_answers,
                    "total_questions": result.total_questions,
                    "completed_at": _iso(result.completed_at),
                }
                for result in results
            ]
            for quiz_id, results in progress.quiz_results.items()
        },
    }


def _decision_payload(decision: EligibilityDecision) -> dict[str, object]:
    return {
        "quiz_id": decision.quiz_id,
        "eligible": decision.eligible,
        "reason": decision.reason.value,
        "missing_lessons": list(decision.missing_lessons),
        "attempts_used": decision.attempts_used,
        "attempts_allowed": decision.attempts_allowed,
        "attempts_left": decision.attempts_left,
    }


def _session_payload(attempt: ActiveAttempt) -> dict[str, object]:
    session = attempt.session
    quiz = session.get_quiz()
    state = session.get_state()
    completed = state is SessionState.COMPLETED
    answers = session.get_answers()
    question = session.get_current_question()
    index = session.get_current_index()
    payload: dict[str, object] = {
        "course_id": attempt.course_id,
        "quiz_id": attempt.quiz_id,
        "quiz_title": quiz.title if quiz else None,
        "state": state.value,
        "current_index": index,
        "question_count": len(answers),
        "question_html": (
            renderer.render_question(question, answers[index], reveal=completed) if question else None
        ),
        "options": list(question.options) if question else [],
        "answers": list(answers),
        "unanswered_count": session.get_unanswered_count(),
        "answered_percentage": session.get_answered_percentage(),
        "time_remaining_seconds": session.get_time_remaining(),
        "countdown": session.format_time_remaining(),
        "total_seconds": session.get_total_seconds(),
        "started_at": _iso(session.get_started_at()),
        "completion_reason": None,
        "score": None,
        "attempt": None,
    }
    if completed:
        score = session.get_score()
        payload["completion_reason"] = session.get_completion_reason().value
        payload["score"] = {
            "score": score.score,
            "passed": score.passed,
            "correct_answers": score.correct_answers,
            "total_questions": score.total_questions,
            "earned_points": score.earned_points,
            "total_points": score.total_points,
        }
    if attempt.outcome is not None:
        payload["attempt"] = {
            "attempt_number": attempt.outcome.result.attempt_number,
            "saved": attempt.outcome.saved,
            "error_message": attempt.outcome.error_message,
            "course_completed": attempt.outcome.course_completed,
        }
    return payload


def _get_course_manager_dependency(course_manager: CourseManager):
    def dependency() -> CourseManager:
        return course_manager

    return dependency


def _get_current_user_dependency(auth: AuthProvider):
    def dependency() -> AppUser:
        user = auth.current_user()
        if user is None:
            raise HTTPException(status_code=401, detail="Not signed in.")
        return user

    return dependency


def create_api_app(course_manager: CourseManager, auth: AuthProvider) -> FastAPI:
    """Create a FastAPI application wired to the provided course manager."""
    app = FastAPI(title=API_TITLE, version=APP_VERSION)
    manager_dep = _get_course_manager_dependency(course_manager)
    user_dep = _get_current_user_dependency(auth)

    def require_attempt(manager: CourseManager, user: AppUser) -> ActiveAttempt:
        attempt = manager.get_active_attempt(user)
        if attempt is None:
            raise HTTPException(status_code=404, detail="No quiz attempt has been started.")
        return attempt

    @app.get("/me")
    def get_me(user: AppUser = Depends(user_dep)) -> dict[str, object]:
        return _user_payload(user)

    @app.get("/courses")
    def list_courses(manager: CourseManager = Depends(manager_dep)) -> list[dict[str, object]]:
        return [_course_payload(course) for course in manager.list_courses()]

    @app.get("/courses/{course_id}")
    def get_course(course_id: str, manager: CourseManager = Depends(manager_dep)) -> dict[str, object]:
        try:
            return _course_payload(manager.get_course(course_id))
        except CourseAppError as exc:
            raise _http_error(exc) from exc

    @app.post("/courses/{course_id}/enroll", status_code=201)
    def enroll(
        course_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            enrollment = manager.enroll(user, course_id)
        except ProgressPersistenceError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        except CourseAppError as exc:
            raise _http_error(exc) from exc
        return _enrollment_payload(enrollment)

    @app.get("/enrollments")
    def list_enrollments(
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        return [_enrollment_payload(enrollment) for enrollment in manager.list_enrollments(user)]

    @app.delete("/enrollments/{enrollment_id}")
    def cancel_enrollment(
        enrollment_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            enrollment = manager.cancel_enrollment(user, enrollment_id)
        except NotEnrolledError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return _enrollment_payload(enrollment)

    @app.get("/courses/{course_id}/progress")
    def get_progress(
        course_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            progress = manager.get_progress(user, course_id)
        except CourseAppError as exc:
            raise _http_error(exc) from exc
        if progress is None:
            raise HTTPException(status_code=404, detail="Not enrolled in this course.")
        return _progress_payload(progress)

    @app.post("/courses/{course_id}/lessons/{lesson_id}/complete")
    def complete_lesson(
        course_id: str,
        lesson_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            progress = manager.mark_lesson_completed(user, course_id, lesson_id)
        except ProgressPersistenceError as exc:
            return {
                "saved": False,
                "error_message": str(exc),
                "progress": _progress_payload(manager.get_progress(user, course_id)),
            }
        except CourseAppError as exc:
            raise _http_error(exc) from exc
        return {"saved": True, "error_message": None, "progress": _progress_payload(progress)}

    @app.post("/progress/retry")
    def retry_pending(
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return {"courses": manager.retry_pending(user)}

    @app.get("/courses/{course_id}/quizzes/{quiz_id}/eligibility")
    def get_eligibility(
        course_id: str,
        quiz_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            return _decision_payload(manager.check_quiz_eligibility(user, course_id, quiz_id))
        except CourseAppError as exc:
            raise _http_error(exc) from exc

    @app.post("/courses/{course_id}/quizzes/{quiz_id}/session", status_code=201)
    def start_session(
        course_id: str,
        quiz_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            manager.start_quiz(user, course_id, quiz_id)
        except QuizNotEligibleError as exc:
            raise HTTPException(status_code=409, detail=_decision_payload(exc.decision)) from exc
        except CourseAppError as exc:
            raise _http_error(exc) from exc
        return _session_payload(require_attempt(manager, user))

    @app.get("/session")
    def get_session(
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _session_payload(require_attempt(manager, user))

    @app.put("/session/answers")
    def select_answer(
        payload: AnswerPayload,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        attempt = require_attempt(manager, user)
        accepted = attempt.session.select_answer(payload.question_index, payload.option_index)
        return {"accepted": accepted, "session": _session_payload(attempt)}

    @app.post("/session/navigate")
    def navigate(
        payload: NavigatePayload,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        attempt = require_attempt(manager, user)
        attempt.session.go_to(payload.index)
        return _session_payload(attempt)

    @app.post("/session/submit")
    def submit_session(
        payload: SubmitPayload,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            submission = manager.submit_quiz(user, payload.confirm_unanswered)
        except CourseAppError as exc:
            raise _http_error(exc) from exc
        attempt = require_attempt(manager, user)
        return {
            "status": submission.submit.status.value,
            "unanswered_count": submission.submit.unanswered_count,
            "saved": submission.attempt.saved if submission.attempt else None,
            "error_message": submission.attempt.error_message if submission.attempt else None,
            "session": _session_payload(attempt),
        }

    @app.delete("/session")
    def abandon_session(
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return {"abandoned": manager.abandon_quiz(user)}

    @app.get("/teacher/statistics")
    def teacher_statistics(
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return asdict(manager.get_teacher_statistics(user))

    @app.get("/teacher/courses/{course_id}/students")
    def course_students(
        course_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        try:
            return [asdict(row) for row in manager.get_course_student_progress(user, course_id)]
        except CourseAppError as exc:
            raise _http_error(exc) from exc

    @app.get("/teacher/courses/{course_id}/top-students")
    def top_students(
        course_id: str,
        limit: int = 3,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        try:
            return [asdict(row) for row in manager.get_top_students(user, course_id, limit)]
        except CourseAppError as exc:
            raise _http_error(exc) from exc

    @app.get("/teacher/courses/{course_id}/quizzes/{quiz_id}/statistics")
    def quiz_statistics(
        course_id: str,
        quiz_id: str,
        user: AppUser = Depends(user_dep),
        manager: CourseManager = Depends(manager_dep),
    ) -> dict[str, object]:
        try:
            return asdict(manager.get_quiz_statistics(user, course_id, quiz_id))
        except CourseAppError as exc:
            raise _http_error(exc) from exc

    return app


def start_api_server(
    course_manager: CourseManager,
    auth: AuthProvider,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    log_level: str = "info",
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(course_manager, auth)
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="CourseApiServer", daemon=True)
    thread.start()
    return thread
