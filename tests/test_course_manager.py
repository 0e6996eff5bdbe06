import pytest

from course_app.core.course_manager import SAVE_FAILED_MESSAGE
from course_app.core.errors import (
    AccessDeniedError,
    CourseNotFoundError,
    NoActiveSessionError,
    NotEnrolledError,
    ProgressPersistenceError,
    QuizLoadError,
    QuizNotEligibleError,
)
from course_app.core.models import EnrollmentStatus
from course_app.core.services.eligibility import EligibilityReason
from course_app.core.services.quiz_session import CompletionReason, SessionState, SubmitStatus


def enroll_with_lessons(manager, user, course_id, lesson_ids):
    manager.enroll(user, course_id)
    for lesson_id in lesson_ids:
        manager.mark_lesson_completed(user, course_id, lesson_id)


def answer_all(session, option_index=0):
    for question_index in range(session.get_quiz().question_count):
        session.select_answer(question_index, option_index)


def test_lesson_completion_updates_progress(manager, student):
    manager.enroll(student, "algebra")
    manager.mark_lesson_completed(student, "algebra", "l1")
    manager.mark_lesson_completed(student, "algebra", "l2")
    assert manager.get_progress(student, "algebra").overall_progress == 50

    progress = manager.mark_lesson_completed(student, "algebra", "l3")

    assert progress.overall_progress == 75


def test_unknown_lesson_or_course_is_rejected(manager, student):
    manager.enroll(student, "algebra")

    with pytest.raises(CourseNotFoundError):
        manager.mark_lesson_completed(student, "algebra", "f1")
    with pytest.raises(CourseNotFoundError):
        manager.get_course("missing")


def test_lesson_completion_without_enrollment_fails(manager, student):
    with pytest.raises(NotEnrolledError):
        manager.mark_lesson_completed(student, "algebra", "l1")


def test_module_quiz_unlocks_after_its_lessons(manager, student):
    enroll_with_lessons(manager, student, "algebra", ["l1"])

    with pytest.raises(QuizNotEligibleError) as excinfo:
        manager.start_quiz(student, "algebra", "m1-quiz")
    assert excinfo.value.decision.reason is EligibilityReason.MODULE_INCOMPLETE

    manager.mark_lesson_completed(student, "algebra", "l2")
    session = manager.start_quiz(student, "algebra", "m1-quiz")

    assert session.get_state() is SessionState.IN_PROGRESS
    assert manager.require_session(student) is session


def test_submitted_attempt_is_recorded(manager, student):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])
    session = manager.start_quiz(student, "algebra", "m1-quiz")
    session.select_answer(0, 0)
    session.select_answer(1, 1)

    submission = manager.submit_quiz(student)

    assert submission.submit.status is SubmitStatus.COMPLETED
    attempt = submission.attempt
    assert attempt.saved
    assert attempt.error_message is None
    assert attempt.result.score == 50
    assert not attempt.result.passed
    assert attempt.result.attempt_number == 1
    assert attempt.result.answers == (0, 1)
    progress = manager.get_progress(student, "algebra")
    assert progress.attempt_count("m1-quiz") == 1
    assert manager.get_active_attempt(student).outcome == attempt


def test_unanswered_questions_need_confirmation(manager, student):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])
    manager.start_quiz(student, "algebra", "m1-quiz")

    submission = manager.submit_quiz(student)

    assert submission.submit.status is SubmitStatus.NEEDS_CONFIRMATION
    assert submission.submit.unanswered_count == 2
    assert submission.attempt is None

    confirmed = manager.submit_quiz(student, confirm_unanswered=True)

    assert confirmed.attempt.result.score == 0


def test_timeout_records_the_partial_attempt(manager, student, scheduler):
    outcomes = []
    manager.add_outcome_listener(outcomes.append)
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2", "l3", "l4"])
    session = manager.start_quiz(student, "algebra", "l3-quiz")
    session.select_answer(0, 0)

    scheduler.advance(60)

    assert session.get_completion_reason() is CompletionReason.TIMED_OUT
    assert len(outcomes) == 1
    outcome = outcomes[0]
    assert outcome.student_id == "student-1"
    assert outcome.result.score == 33
    assert outcome.result.time_taken_seconds == 60
    assert outcome.saved
    assert manager.get_progress(student, "algebra").attempt_count("l3-quiz") == 1


def test_removed_outcome_listener_is_silent(manager, student):
    outcomes = []
    manager.add_outcome_listener(outcomes.append)
    manager.remove_outcome_listener(outcomes.append)
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])
    session = manager.start_quiz(student, "algebra", "m1-quiz")
    answer_all(session)

    manager.submit_quiz(student)

    assert outcomes == []


def test_attempt_numbers_increase_until_the_cap(manager, student):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])

    numbers = []
    for _ in range(2):
        manager.start_quiz(student, "algebra", "m1-quiz")
        numbers.append(manager.submit_quiz(student, confirm_unanswered=True).attempt.result.attempt_number)

    assert numbers == [1, 2]
    decision = manager.check_quiz_eligibility(student, "algebra", "m1-quiz")
    assert decision.reason is EligibilityReason.ATTEMPTS_EXHAUSTED
    with pytest.raises(QuizNotEligibleError):
        manager.start_quiz(student, "algebra", "m1-quiz")


def test_abandoned_attempts_do_not_count(manager, student, scheduler):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])
    session = manager.start_quiz(student, "algebra", "m1-quiz")
    session.select_answer(0, 0)

    assert manager.abandon_quiz(student)

    assert session.get_state() is SessionState.ABANDONED
    assert manager.get_active_attempt(student) is None
    assert manager.abandon_quiz(student) is False
    scheduler.advance(3600)
    assert manager.get_progress(student, "algebra").attempt_count("m1-quiz") == 0
    assert manager.check_quiz_eligibility(student, "algebra", "m1-quiz").attempts_left == 2


def test_starting_a_new_quiz_abandons_the_previous_one(manager, student):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2", "l3", "l4"])
    first = manager.start_quiz(student, "algebra", "m1-quiz")

    second = manager.start_quiz(student, "algebra", "l3-quiz")

    assert first.get_state() is SessionState.ABANDONED
    assert manager.require_session(student) is second
    assert manager.get_active_attempt(student).quiz_id == "l3-quiz"


def test_sessions_are_per_student(manager, student, other_student):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])
    enroll_with_lessons(manager, other_student, "algebra", ["l1", "l2"])

    mine = manager.start_quiz(student, "algebra", "m1-quiz")
    theirs = manager.start_quiz(other_student, "algebra", "m1-quiz")

    assert mine.get_state() is SessionState.IN_PROGRESS
    assert theirs.get_state() is SessionState.IN_PROGRESS


def test_start_quiz_errors(manager, student, teacher):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])

    with pytest.raises(AccessDeniedError):
        manager.start_quiz(teacher, "algebra", "m1-quiz")
    with pytest.raises(QuizLoadError):
        manager.start_quiz(student, "algebra", "missing")
    with pytest.raises(CourseNotFoundError):
        manager.start_quiz(student, "missing", "m1-quiz")
    with pytest.raises(QuizNotEligibleError):
        manager.start_quiz(student, "study-skills", "f1-quiz")


def test_session_operations_need_an_attempt(manager, student):
    with pytest.raises(NoActiveSessionError):
        manager.submit_quiz(student)
    with pytest.raises(NoActiveSessionError):
        manager.require_session(student)


def test_save_failure_is_reported_and_retried(manager, student, progress_store):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2"])
    session = manager.start_quiz(student, "algebra", "m1-quiz")
    answer_all(session)
    progress_store.fail_writes = True

    submission = manager.submit_quiz(student)

    assert not submission.attempt.saved
    assert submission.attempt.error_message == SAVE_FAILED_MESSAGE
    assert manager.retry_pending(student) == {"algebra": False}

    progress_store.fail_writes = False

    assert manager.retry_pending(student) == {"algebra": True}
    assert manager.retry_pending(student) == {}
    assert progress_store.read_progress("student-1", "algebra").attempt_count("m1-quiz") == 1


def test_unsaved_final_quiz_pass_still_completes_the_enrollment(manager, student, progress_store):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2", "l3", "l4"])
    session = manager.start_quiz(student, "algebra", "final")
    answer_all(session)
    progress_store.fail_writes = True

    outcome = manager.submit_quiz(student).attempt

    assert not outcome.saved
    assert outcome.course_completed
    assert manager.list_enrollments(student)[0].status is EnrollmentStatus.COMPLETED

    progress_store.fail_writes = False

    assert manager.retry_pending(student) == {"algebra": True}
    assert progress_store.read_progress("student-1", "algebra").course_completed
    assert manager.list_enrollments(student)[0].status is EnrollmentStatus.COMPLETED


def test_unsaved_last_lesson_still_completes_the_enrollment(manager, student, progress_store):
    enroll_with_lessons(manager, student, "study-skills", ["f1"])
    progress_store.fail_writes = True

    with pytest.raises(ProgressPersistenceError):
        manager.mark_lesson_completed(student, "study-skills", "f2")

    assert manager.list_enrollments(student)[0].status is EnrollmentStatus.COMPLETED
    progress_store.fail_writes = False
    assert manager.retry_pending(student) == {"study-skills": True}


def test_cancelled_enrollment_locks_quizzes_and_lessons(manager, student):
    enrollment = manager.enroll(student, "algebra")
    for lesson_id in ["l1", "l2"]:
        manager.mark_lesson_completed(student, "algebra", lesson_id)
    manager.cancel_enrollment(student, enrollment.id)

    decision = manager.check_quiz_eligibility(student, "algebra", "m1-quiz")
    assert not decision.eligible
    assert decision.reason is EligibilityReason.NOT_ENROLLED
    with pytest.raises(QuizNotEligibleError):
        manager.start_quiz(student, "algebra", "m1-quiz")
    with pytest.raises(NotEnrolledError):
        manager.mark_lesson_completed(student, "algebra", "l3")

    manager.enroll(student, "algebra")

    assert manager.check_quiz_eligibility(student, "algebra", "m1-quiz").eligible


def test_lesson_save_failure_raises(manager, student, progress_store):
    manager.enroll(student, "algebra")
    progress_store.fail_writes = True

    with pytest.raises(ProgressPersistenceError):
        manager.mark_lesson_completed(student, "algebra", "l1")

    assert manager.get_progress(student, "algebra").completed_lessons == ["l1"]


def test_passing_final_quiz_completes_the_enrollment(manager, student):
    enroll_with_lessons(manager, student, "algebra", ["l1", "l2", "l3", "l4"])
    session = manager.start_quiz(student, "algebra", "final")
    answer_all(session)

    outcome = manager.submit_quiz(student).attempt

    assert outcome.result.passed
    assert outcome.course_completed
    assert manager.get_progress(student, "algebra").course_completed
    assert manager.list_enrollments(student)[0].status is EnrollmentStatus.COMPLETED


def test_course_without_final_quiz_completes_through_lessons(manager, student):
    enroll_with_lessons(manager, student, "study-skills", ["f1", "f2"])

    assert manager.get_progress(student, "study-skills").course_completed
    assert manager.list_enrollments(student)[0].status is EnrollmentStatus.COMPLETED


def test_cancel_enrollment(manager, student, other_student):
    enrollment = manager.enroll(student, "algebra")

    with pytest.raises(NotEnrolledError):
        manager.cancel_enrollment(other_student, enrollment.id)

    assert manager.cancel_enrollment(student, enrollment.id).status is EnrollmentStatus.CANCELLED


def test_teacher_views_are_limited_to_own_courses(manager, student, teacher, other_teacher):
    enroll_with_lessons(manager, student, "algebra", ["l1"])

    rows = manager.get_course_student_progress(teacher, "algebra")
    assert [row.student_id for row in rows] == ["student-1"]
    assert rows[0].overall_progress == 25
    assert manager.get_teacher_statistics(teacher).total_students == 1
    assert manager.get_quiz_statistics(teacher, "algebra", "m1-quiz").attempts == 0
    assert len(manager.get_top_students(teacher, "algebra", limit=5)) == 1

    with pytest.raises(AccessDeniedError):
        manager.get_course_student_progress(other_teacher, "algebra")
    with pytest.raises(AccessDeniedError):
        manager.get_top_students(student, "algebra")
    with pytest.raises(QuizLoadError):
        manager.get_quiz_statistics(teacher, "algebra", "missing")
