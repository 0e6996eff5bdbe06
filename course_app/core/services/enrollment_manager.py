"""Service for enrolling students in courses."""

from __future__ import annotations

import logging
from uuid import uuid4

from course_app.core.errors import AccessDeniedError, CourseNotFoundError, NotEnrolledError
from course_app.core.models import AppUser, Enrollment, EnrollmentStatus, UserRole
from course_app.core.scheduling import Clock, utc_now
from course_app.core.services.progress_tracker import ProgressTracker
from course_app.core.stores import CourseStore, EnrollmentStore

logger = logging.getLogger(__name__)


class EnrollmentManager:
    """Creates enrollments and the progress record each one owns."""

    def __init__(
        self,
        course_store: CourseStore,
        enrollment_store: EnrollmentStore,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._course_store = course_store
        self._enrollment_store = enrollment_store
        self._clock = clock or utc_now

    def enroll(self, user: AppUser, course_id: str, tracker: ProgressTracker) -> Enrollment:
        """Enroll a student, reusing an existing active enrollment for the same course."""
        if user.role is not UserRole.STUDENT:
            raise AccessDeniedError("Only students can enroll in courses.")
        if tracker.get_student_id() != user.id:
            raise ValueError("Progress tracker belongs to a different student.")
        course = self._course_store.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(f"Course {course_id!r} does not exist.")

        enrollment = self.find_active_enrollment(user.id, course_id)
        if enrollment is None:
            enrollment = self._enrollment_store.create_enrollment(
                Enrollment(
                    id=uuid4().hex,
                    student_id=user.id,
                    course_id=course_id,
                    enrolled_at=self._clock(),
                    status=EnrollmentStatus.ACTIVE,
                    teacher_id=course.teacher_id,
                )
            )
            logger.info("Student %s enrolled in course %s", user.id, course_id)
        tracker.create_progress(course_id, enrollment.id)
        return enrollment

    def find_active_enrollment(self, student_id: str, course_id: str) -> Enrollment | None:
        for enrollment in self._enrollment_store.list_enrollments(student_id):
            if enrollment.course_id == course_id and enrollment.status is not EnrollmentStatus.CANCELLED:
                return enrollment
        return None

    def is_enrolled(self, student_id: str, course_id: str) -> bool:
        return self.find_active_enrollment(student_id, course_id) is not None

    def list_enrollments(self, student_id: str) -> list[Enrollment]:
        return self._enrollment_store.list_enrollments(student_id)

    def list_course_enrollments(self, course_id: str) -> list[Enrollment]:
        return self._enrollment_store.list_course_enrollments(course_id)

    def list_teacher_enrollments(self, teacher_id: str) -> list[Enrollment]:
        return self._enrollment_store.list_teacher_enrollments(teacher_id)

    def cancel(self, enrollment_id: str, *, student_id: str | None = None) -> Enrollment:
        """Cancel an enrollment; with ``student_id`` only that student's own."""
        enrollment = self._enrollment_store.get_enrollment(enrollment_id)
        if enrollment is None or (student_id is not None and enrollment.student_id != student_id):
            raise NotEnrolledError(f"Enrollment {enrollment_id!r} does not exist.")
        enrollment.status = EnrollmentStatus.CANCELLED
        self._enrollment_store.update_enrollment(enrollment)
        logger.info("Enrollment %s cancelled", enrollment_id)
        return enrollment

    def mark_completed(self, student_id: str, course_id: str) -> Enrollment | None:
        """Flag the active enrollment as completed once the course is done."""
        enrollment = self.find_active_enrollment(student_id, course_id)
        if enrollment is None or enrollment.status is EnrollmentStatus.COMPLETED:
            return enrollment
        enrollment.status = EnrollmentStatus.COMPLETED
        self._enrollment_store.update_enrollment(enrollment)
        logger.info("Student %s completed course %s", student_id, course_id)
        return enrollment
