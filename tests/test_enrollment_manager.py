import pytest

from course_app.core.errors import AccessDeniedError, CourseNotFoundError, NotEnrolledError
from course_app.core.models import EnrollmentStatus
from course_app.core.services.enrollment_manager import EnrollmentManager
from course_app.core.services.progress_tracker import ProgressTracker


@pytest.fixture
def enrollments(course_repository, enrollment_store, scheduler):
    return EnrollmentManager(course_repository, enrollment_store, clock=scheduler.now)


@pytest.fixture
def tracker(course_repository, progress_store):
    return ProgressTracker("student-1", course_repository, progress_store)


def test_enroll_creates_enrollment_and_progress(enrollments, tracker, student):
    enrollment = enrollments.enroll(student, "algebra", tracker)

    assert enrollment.student_id == "student-1"
    assert enrollment.teacher_id == "teacher-1"
    assert enrollment.status is EnrollmentStatus.ACTIVE
    assert tracker.get_progress("algebra").enrollment_id == enrollment.id
    assert enrollments.is_enrolled("student-1", "algebra")


def test_enrolling_twice_reuses_the_enrollment(enrollments, tracker, student):
    first = enrollments.enroll(student, "algebra", tracker)
    second = enrollments.enroll(student, "algebra", tracker)

    assert first.id == second.id
    assert len(enrollments.list_enrollments("student-1")) == 1


def test_only_students_can_enroll(enrollments, course_repository, progress_store, teacher):
    tracker = ProgressTracker(teacher.id, course_repository, progress_store)

    with pytest.raises(AccessDeniedError):
        enrollments.enroll(teacher, "algebra", tracker)


def test_unknown_course_cannot_be_joined(enrollments, tracker, student):
    with pytest.raises(CourseNotFoundError):
        enrollments.enroll(student, "missing", tracker)


def test_tracker_must_belong_to_the_student(enrollments, tracker, other_student):
    with pytest.raises(ValueError):
        enrollments.enroll(other_student, "algebra", tracker)


def test_cancel_only_own_enrollment(enrollments, tracker, student):
    enrollment = enrollments.enroll(student, "algebra", tracker)

    with pytest.raises(NotEnrolledError):
        enrollments.cancel(enrollment.id, student_id="student-2")
    with pytest.raises(NotEnrolledError):
        enrollments.cancel("missing")

    cancelled = enrollments.cancel(enrollment.id, student_id="student-1")

    assert cancelled.status is EnrollmentStatus.CANCELLED
    assert not enrollments.is_enrolled("student-1", "algebra")


def test_mark_completed_updates_the_active_enrollment(enrollments, tracker, student):
    enrollment = enrollments.enroll(student, "algebra", tracker)

    completed = enrollments.mark_completed("student-1", "algebra")

    assert completed.id == enrollment.id
    assert completed.status is EnrollmentStatus.COMPLETED
    assert enrollments.list_course_enrollments("algebra")[0].status is EnrollmentStatus.COMPLETED
    assert enrollments.mark_completed("student-1", "study-skills") is None


def test_teacher_enrollments_follow_course_owner(enrollments, course_repository, progress_store, student, other_student):
    enrollments.enroll(student, "algebra", ProgressTracker(student.id, course_repository, progress_store))
    enrollments.enroll(other_student, "algebra", ProgressTracker(other_student.id, course_repository, progress_store))
    enrollments.enroll(student, "study-skills", ProgressTracker(student.id, course_repository, progress_store))

    assert len(enrollments.list_teacher_enrollments("teacher-1")) == 2
    assert len(enrollments.list_teacher_enrollments("teacher-2")) == 1
