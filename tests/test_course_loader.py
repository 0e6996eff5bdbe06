import json
from pathlib import Path

import pytest

from course_app.core import course_loader
from course_app.core.course_loader import course_from_document, load_course_from_file, load_courses_from_file
from course_app.core.errors import QuizValidationError
from course_app.core.models import LessonType
from course_app.core.services.course_repository import CourseRepository

DEMO_FILE = Path(course_loader.__file__).resolve().parent.parent / "data" / "demo_course.json"


def test_demo_data_loads():
    courses = load_courses_from_file(DEMO_FILE)

    assert [course.id for course in courses] == ["algebra-101", "study-skills"]
    algebra = courses[0]
    assert algebra.teacher_id == "teacher-1"
    assert [lesson.id for lesson in algebra.all_lessons()] == ["m1-l1", "m1-l2", "m2-l1", "m2-l2"]
    assert [placement.quiz.id for placement in algebra.all_quizzes()] == ["m1-quiz", "m2-l1-quiz", "algebra-final"]
    assert algebra.final_quiz.passing_score == 75
    assert algebra.all_lessons()[1].type is LessonType.VIDEO
    assert algebra.all_lessons()[1].video_url.endswith(".mp4")
    assert algebra.all_lessons()[0].is_free_preview

    CourseRepository(courses)


def test_single_course_file(tmp_path):
    path = tmp_path / "course.json"
    path.write_text(
        json.dumps(
            {
                "id": 42,
                "title": "Numbers",
                "lessons": [{"id": "a", "title": "Counting", "order": 1}],
            }
        ),
        encoding="utf-8",
    )

    course = load_course_from_file(path)

    assert course.id == "42"
    assert course.final_quiz is None
    assert load_courses_from_file(path)[0].title == "Numbers"


def test_empty_course_list_is_rejected(tmp_path):
    path = tmp_path / "empty.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(QuizValidationError):
        load_course_from_file(path)


def test_quiz_titles_fall_back_to_their_owner():
    course = course_from_document(
        {
            "id": "c",
            "title": "Course",
            "modules": [
                {
                    "id": "m",
                    "title": "Basics",
                    "lessons": [{"id": "l", "title": "Intro"}],
                    "quiz": {
                        "id": "mq",
                        "questions": [{"question": "x", "options": ["a", "b"], "correctAnswer": 0}],
                    },
                }
            ],
        }
    )

    assert course.find_quiz("mq").quiz.title == "Basics quiz"


def test_malformed_course_raises():
    with pytest.raises(QuizValidationError):
        course_from_document({"title": "No id"})
    with pytest.raises(QuizValidationError):
        course_from_document(
            {"id": "c", "title": "Bad lesson", "lessons": [{"id": "l", "title": "t", "type": "podcast"}]}
        )
