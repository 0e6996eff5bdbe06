"""Interfaces to the backing services, plus in-memory implementations.

The engine only depends on the protocols. The in-memory stores back the
desktop demo and the tests; a hosted backend plugs in by implementing the
same methods and raising ``StoreError`` on transient failures.
"""

from __future__ import annotations

import copy
from threading import Lock
from typing import Protocol

from course_app.core.models import AppUser, Course, Enrollment, Lesson, StudentProgress


class AuthProvider(Protocol):
    def current_user(self) -> AppUser | None: ...


class UserDirectory(Protocol):
    def get_user(self, user_id: str) -> AppUser | None: ...


class CourseStore(Protocol):
    def get_course(self, course_id: str) -> Course | None: ...

    def get_lessons_by_course(self, course_id: str) -> list[Lesson]: ...

    def list_courses_by_teacher(self, teacher_id: str) -> list[Course]: ...

    def list_courses(self) -> list[Course]: ...


class ProgressStore(Protocol):
    def read_progress(self, student_id: str, course_id: str) -> StudentProgress | None: ...

    def write_progress(self, progress: StudentProgress) -> bool: ...

    def list_progress_for_course(self, course_id: str) -> list[StudentProgress]: ...


class EnrollmentStore(Protocol):
    def create_enrollment(self, enrollment: Enrollment) -> Enrollment: ...

    def update_enrollment(self, enrollment: Enrollment) -> None: ...

    def get_enrollment(self, enrollment_id: str) -> Enrollment | None: ...

    def list_enrollments(self, student_id: str) -> list[Enrollment]: ...

    def list_course_enrollments(self, course_id: str) -> list[Enrollment]: ...

    def list_teacher_enrollments(self, teacher_id: str) -> list[Enrollment]: ...


class StaticAuthProvider:
    """Auth provider for a single signed-in user, switchable at runtime."""

    def __init__(self, user: AppUser | None = None) -> None:
        self._user = user

    def current_user(self) -> AppUser | None:
        return self._user

    def sign_in(self, user: AppUser) -> None:
        self._user = user

    def sign_out(self) -> None:
        self._user = None


class InMemoryUserDirectory:
    def __init__(self, users: list[AppUser] | None = None) -> None:
        self._users: dict[str, AppUser] = {user.id: user for user in users or []}

    def add_user(self, user: AppUser) -> None:
        self._users[user.id] = user

    def get_user(self, user_id: str) -> AppUser | None:
        return self._users.get(user_id)


class InMemoryProgressStore:
    """Progress documents keyed by (student_id, course_id); copies on every read and write."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._documents: dict[tuple[str, str], StudentProgress] = {}

    def read_progress(self, student_id: str, course_id: str) -> StudentProgress | None:
        with self._lock:
            document = self._documents.get((student_id, course_id))
            return copy.deepcopy(document) if document is not None else None

    def write_progress(self, progress: StudentProgress) -> bool:
        with self._lock:
            self._documents[(progress.student_id, progress.course_id)] = copy.deepcopy(progress)
        return True

    def list_progress_for_course(self, course_id: str) -> list[StudentProgress]:
        with self._lock:
            return [
                copy.deepcopy(document)
                for (_, document_course_id), document in self._documents.items()
                if document_course_id == course_id
            ]


class InMemoryEnrollmentStore:
    def __init__(self) -> None:
        self._lock = Lock()
        self._enrollments: dict[str, Enrollment] = {}

    def create_enrollment(self, enrollment: Enrollment) -> Enrollment:
        with self._lock:
            self._enrollments[enrollment.id] = copy.copy(enrollment)
            return copy.copy(enrollment)

    def update_enrollment(self, enrollment: Enrollment) -> None:
        with self._lock:
            self._enrollments[enrollment.id] = copy.copy(enrollment)

    def get_enrollment(self, enrollment_id: str) -> Enrollment | None:
        with self._lock:
            enrollment = self._enrollments.get(enrollment_id)
            return copy.copy(enrollment) if enrollment is not None else None

    def list_enrollments(self, student_id: str) -> list[Enrollment]:
        return self._select(lambda enrollment: enrollment.student_id == student_id)

    def list_course_enrollments(self, course_id: str) -> list[Enrollment]:
        return self._select(lambda enrollment: enrollment.course_id == course_id)

    def list_teacher_enrollments(self, teacher_id: str) -> list[Enrollment]:
        return self._select(lambda enrollment: enrollment.teacher_id == teacher_id)

    def _select(self, predicate) -> list[Enrollment]:
        with self._lock:
            matches = [copy.copy(item) for item in self._enrollments.values() if predicate(item)]
        return sorted(matches, key=lambda enrollment: enrollment.enrolled_at)
