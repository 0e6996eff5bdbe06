"""In-memory course catalogue implementing the course store interface."""

from __future__ import annotations

from threading import Lock

from course_app.core.errors import CourseNotFoundError
from course_app.core.models import Course, Lesson


class CourseRepository:
    """Holds published and draft courses and answers lesson lookups."""

    def __init__(self, courses: list[Course] | None = None) -> None:
        self._lock = Lock()
        self._courses: dict[str, Course] = {}
        for course in courses or []:
            self.add_course(course)

    def add_course(self, course: Course) -> None:
        """Add or replace a course after checking its ids are unique."""
        self._validate_course(course)
        with self._lock:
            self._courses[course.id] = course

    def remove_course(self, course_id: str) -> None:
        with self._lock:
            if course_id not in self._courses:
                raise CourseNotFoundError(f"Course {course_id!r} does not exist.")
            del self._courses[course_id]

    def get_course(self, course_id: str) -> Course | None:
        with self._lock:
            return self._courses.get(course_id)

    def require_course(self, course_id: str) -> Course:
        course = self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError(f"Course {course_id!r} does not exist.")
        return course

    def get_lessons_by_course(self, course_id: str) -> list[Lesson]:
        course = self.get_course(course_id)
        if course is None:
            return []
        return course.all_lessons()

    def list_courses(self, include_unpublished: bool = False) -> list[Course]:
        with self._lock:
            courses = list(self._courses.values())
        if not include_unpublished:
            courses = [course for course in courses if course.is_published]
        return sorted(courses, key=lambda course: course.title.lower())

    def list_courses_by_teacher(self, teacher_id: str) -> list[Course]:
        with self._lock:
            courses = [course for course in self._courses.values() if course.teacher_id == teacher_id]
        return sorted(courses, key=lambda course: course.title.lower())

    @staticmethod
    def _validate_course(course: Course) -> None:
        if not course.id.strip():
            raise ValueError("Course id must not be empty.")
        if not course.title.strip():
            raise ValueError("Course title must not be empty.")

        lesson_ids = [lesson.id for lesson in course.all_lessons()]
        module_lesson_count = sum(len(module.lessons) for module in course.modules) + len(course.lessons)
        if len(lesson_ids) != module_lesson_count:
            raise ValueError(f"Course {course.id!r} lists the same lesson more than once.")

        quiz_ids = [placement.quiz.id for placement in course.all_quizzes()]
        if len(quiz_ids) != len(set(quiz_ids)):
            raise ValueError(f"Course {course.id!r} attaches the same quiz id more than once.")
