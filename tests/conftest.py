import pytest

from course_app.core.course_manager import CourseManager
from course_app.core.models import AppUser, Course, Lesson, Module, UserRole
from course_app.core.scheduling import ManualTickScheduler
from course_app.core.services.course_repository import CourseRepository
from course_app.core.stores import InMemoryEnrollmentStore, InMemoryUserDirectory
from factories import FlakyProgressStore, make_quiz


@pytest.fixture
def module_quiz():
    return make_quiz("m1-quiz", question_count=2, points=10, time_limit_minutes=5, max_attempts=2)


@pytest.fixture
def lesson_quiz():
    return make_quiz("l3-quiz", question_count=3, time_limit_minutes=1, max_attempts=3)


@pytest.fixture
def final_quiz():
    return make_quiz("final", question_count=4, passing_score=75, max_attempts=2)


@pytest.fixture
def course(module_quiz, lesson_quiz, final_quiz):
    # Modules and lessons are listed out of order on purpose.
    return Course(
        id="algebra",
        title="Algebra",
        teacher_id="teacher-1",
        modules=(
            Module(
                id="m2",
                title="Equations",
                order=2,
                lessons=(
                    Lesson(id="l3", title="One-step equations", order=1, quiz=lesson_quiz),
                    Lesson(id="l4", title="Two-step equations", order=2),
                ),
            ),
            Module(
                id="m1",
                title="Expressions",
                order=1,
                lessons=(
                    Lesson(id="l2", title="Like terms", order=2),
                    Lesson(id="l1", title="Variables", order=1),
                ),
                quiz=module_quiz,
            ),
        ),
        final_quiz=final_quiz,
    )


@pytest.fixture
def flat_course():
    return Course(
        id="study-skills",
        title="Study Skills",
        teacher_id="teacher-2",
        lessons=(
            Lesson(id="f1", title="Planning", order=1, quiz=make_quiz("f1-quiz", question_count=2)),
            Lesson(id="f2", title="Notes", order=2),
        ),
    )


@pytest.fixture
def course_repository(course, flat_course):
    return CourseRepository([course, flat_course])


@pytest.fixture
def progress_store():
    return FlakyProgressStore()


@pytest.fixture
def enrollment_store():
    return InMemoryEnrollmentStore()


@pytest.fixture
def scheduler():
    return ManualTickScheduler()


@pytest.fixture
def student():
    return AppUser(
        id="student-1",
        role=UserRole.STUDENT,
        email="ada@example.org",
        first_name="Ada",
        last_name="Lovelace",
    )


@pytest.fixture
def other_student():
    return AppUser(id="student-2", role=UserRole.STUDENT, first_name="Alan", last_name="Turing")


@pytest.fixture
def teacher():
    return AppUser(id="teacher-1", role=UserRole.TEACHER, first_name="Emmy", last_name="Noether")


@pytest.fixture
def other_teacher():
    return AppUser(id="teacher-2", role=UserRole.TEACHER, email="grace@example.org")


@pytest.fixture
def user_directory(student, other_student, teacher, other_teacher):
    return InMemoryUserDirectory([student, other_student, teacher, other_teacher])


@pytest.fixture
def manager(course_repository, progress_store, enrollment_store, user_directory, scheduler):
    return CourseManager(
        course_repository,
        progress_store,
        enrollment_store,
        user_directory=user_directory,
        clock=scheduler.now,
        scheduler_factory=lambda: scheduler,
    )
