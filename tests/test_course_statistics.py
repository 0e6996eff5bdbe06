from datetime import datetime, timezone

import pytest

from course_app.core.models import Enrollment, StudentProgress
from course_app.core.services.course_statistics import CourseStatistics, TeacherStatistics
from course_app.core.stores import InMemoryUserDirectory
from factories import make_result


@pytest.fixture
def populated_stores(progress_store, enrollment_store):
    enrolled_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for index, (student_id, course_id, teacher_id) in enumerate(
        [
            ("student-1", "algebra", "teacher-1"),
            ("student-2", "algebra", "teacher-1"),
            ("student-1", "study-skills", "teacher-2"),
        ]
    ):
        enrollment_store.create_enrollment(
            Enrollment(
                id=f"e{index}",
                student_id=student_id,
                course_id=course_id,
                enrolled_at=enrolled_at,
                teacher_id=teacher_id,
            )
        )

    ada = StudentProgress(
        student_id="student-1",
        course_id="algebra",
        enrollment_id="e0",
        completed_lessons=["l1", "l2"],
        overall_progress=50,
    )
    ada.quiz_results["m1-quiz"] = [
        make_result("m1-quiz", 50, False, attempt_number=1),
        make_result("m1-quiz", 100, True, attempt_number=2),
    ]
    alan = StudentProgress(
        student_id="student-2",
        course_id="algebra",
        enrollment_id="e1",
        completed_lessons=["l1", "l2"],
        overall_progress=50,
    )
    alan.quiz_results["m1-quiz"] = [make_result("m1-quiz", 75, True)]
    progress_store.write_progress(ada)
    progress_store.write_progress(alan)
    return progress_store, enrollment_store


@pytest.fixture
def statistics(course_repository, populated_stores, user_directory):
    progress_store, enrollment_store = populated_stores
    return CourseStatistics(course_repository, progress_store, enrollment_store, user_directory)


def test_teacher_totals(statistics, teacher, other_teacher):
    totals = statistics.teacher_statistics(teacher)

    assert totals.total_courses == 1
    assert totals.total_enrollments == 2
    assert totals.total_students == 2
    assert totals.total_lessons == 4
    assert statistics.teacher_statistics(other_teacher).total_enrollments == 1


def test_non_teachers_get_zero_totals(statistics, student):
    assert statistics.teacher_statistics(student) == TeacherStatistics()
    assert statistics.teacher_statistics(None) == TeacherStatistics()


def test_course_rows_are_sorted_by_name(statistics):
    rows = statistics.course_student_progress("algebra")

    assert [row.display_name for row in rows] == ["Ada Lovelace", "Alan Turing"]
    ada = rows[0]
    assert ada.completed_lessons == 2
    assert ada.quizzes_passed == 1
    assert ada.average_best_score == 100.0
    assert not ada.course_completed


def test_top_students_break_ties_on_best_score(statistics):
    top = statistics.top_students("algebra", limit=1)

    assert [row.student_id for row in top] == ["student-1"]
    assert len(statistics.top_students("algebra")) == 2


def test_quiz_statistics(statistics):
    stats = statistics.quiz_statistics("algebra", "m1-quiz")

    assert stats.attempts == 3
    assert stats.students == 2
    assert stats.average_score == 75.0
    assert stats.best_score == 100
    assert stats.pass_rate == 67


def test_quiz_without_attempts_has_empty_statistics(statistics):
    stats = statistics.quiz_statistics("algebra", "final")

    assert stats.attempts == 0
    assert stats.average_score == 0.0
    assert stats.pass_rate == 0


def test_unknown_students_get_a_placeholder_name(course_repository, populated_stores):
    progress_store, enrollment_store = populated_stores

    anonymous = CourseStatistics(course_repository, progress_store, enrollment_store)
    unlisted = CourseStatistics(course_repository, progress_store, enrollment_store, InMemoryUserDirectory())

    assert [row.display_name for row in anonymous.course_student_progress("algebra")] == ["student-1", "student-2"]
    assert {row.display_name for row in unlisted.course_student_progress("algebra")} == {"Unknown Student"}
