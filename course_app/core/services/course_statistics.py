"""Service computing teacher-facing course and quiz statistics."""

from __future__ import annotations

from dataclasses import dataclass

from course_app.core.models import AppUser, StudentProgress
from course_app.core.scoring import percentage
from course_app.core.stores import CourseStore, EnrollmentStore, ProgressStore, UserDirectory


@dataclass(slots=True)
class TeacherStatistics:
    total_courses: int = 0
    total_enrollments: int = 0
    total_students: int = 0
    total_lessons: int = 0


@dataclass(slots=True)
class StudentProgressRow:
    """Immutable-by-convention snapshot returned to dashboards."""

    student_id: str
    display_name: str
    overall_progress: int
    completed_lessons: int
    quizzes_passed: int
    course_completed: bool
    average_best_score: float


@dataclass(slots=True)
class QuizStatistics:
    quiz_id: str
    attempts: int
    students: int
    average_score: float
    best_score: int
    pass_rate: int


class CourseStatistics:
    """Aggregates progress documents into dashboard rows."""

    def __init__(
        self,
        course_store: CourseStore,
        progress_store: ProgressStore,
        enrollment_store: EnrollmentStore,
        user_directory: UserDirectory | None = None,
    ) -> None:
        self._course_store = course_store
        self._progress_store = progress_store
        self._enrollment_store = enrollment_store
        self._user_directory = user_directory

    def teacher_statistics(self, user: AppUser | None) -> TeacherStatistics:
        """Totals across a teacher's courses; all zero for anyone who is not a teacher."""
        if user is None or not user.is_teacher:
            return TeacherStatistics()
        courses = self._course_store.list_courses_by_teacher(user.id)
        enrollments = self._enrollment_store.list_teacher_enrollments(user.id)
        return TeacherStatistics(
            total_courses=len(courses),
            total_enrollments=len(enrollments),
            total_students=len({enrollment.student_id for enrollment in enrollments}),
            total_lessons=sum(len(course.all_lessons()) for course in courses),
        )

    def course_student_progress(self, course_id: str) -> list[StudentProgressRow]:
        rows = [self._build_row(progress) for progress in self._progress_store.list_progress_for_course(course_id)]
        return sorted(rows, key=lambda row: row.display_name.lower())

    def top_students(self, course_id: str, limit: int = 3) -> list[StudentProgressRow]:
        """Return the top N students sorted by progress, then by average best quiz score."""
        rows = self.course_student_progress(course_id)
        ranked = sorted(rows, key=lambda row: (-row.overall_progress, -row.average_best_score, row.display_name))
        return ranked[:limit]

    def quiz_statistics(self, course_id: str, quiz_id: str) -> QuizStatistics:
        attempts = []
        students: set[str] = set()
        for progress in self._progress_store.list_progress_for_course(course_id):
            results = progress.attempts_for(quiz_id)
            if results:
                students.add(progress.student_id)
                attempts.extend(results)

        if not attempts:
            return QuizStatistics(quiz_id=quiz_id, attempts=0, students=0, average_score=0.0, best_score=0, pass_rate=0)
        passed = sum(1 for result in attempts if result.passed)
        return QuizStatistics(
            quiz_id=quiz_id,
            attempts=len(attempts),
            students=len(students),
            average_score=round(sum(result.score for result in attempts) / len(attempts), 1),
            best_score=max(result.score for result in attempts),
            pass_rate=percentage(passed, len(attempts)),
        )

    def _build_row(self, progress: StudentProgress) -> StudentProgressRow:
        best_results = [progress.best_result(quiz_id) for quiz_id in progress.quiz_results]
        best_scores = [result.score for result in best_results if result is not None]
        average_best = round(sum(best_scores) / len(best_scores), 1) if best_scores else 0.0
        return StudentProgressRow(
            student_id=progress.student_id,
            display_name=self._display_name(progress.student_id),
            overall_progress=progress.overall_progress,
            completed_lessons=len(progress.completed_lessons),
            quizzes_passed=sum(1 for quiz_id in progress.quiz_results if progress.has_passed(quiz_id)),
            course_completed=progress.course_completed,
            average_best_score=average_best,
        )

    def _display_name(self, student_id: str) -> str:
        if self._user_directory is None:
            return student_id
        user = self._user_directory.get_user(student_id)
        return user.display_name if user is not None else "Unknown Student"
