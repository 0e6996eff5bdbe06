import pytest

from course_app.core.errors import QuizValidationError
from course_app.core.quiz_normalizer import (
    Difficulty,
    MockQuizGenerator,
    QuizGenerationRequest,
    normalize_quiz,
    parse_generated_quiz,
    quiz_to_document,
)


def test_camel_case_document_is_normalized():
    quiz = normalize_quiz(
        {
            "id": "quiz-1",
            "title": "Photosynthesis",
            "passingScore": 60,
            "timeLimit": 10,
            "maxAttempts": 5,
            "questions": [
                {
                    "id": "a",
                    "question": "What do plants absorb?",
                    "options": [" Light ", "Sound", "Heat", "Noise"],
                    "correctAnswer": 0,
                    "points": 2,
                    "explanation": "",
                }
            ],
        }
    )

    assert quiz.id == "quiz-1"
    assert quiz.passing_score == 60
    assert quiz.time_limit_minutes == 10
    assert quiz.max_attempts == 5
    question = quiz.questions[0]
    assert question.options[0] == "Light"
    assert question.points == 2
    assert question.explanation is None


def test_missing_fields_get_platform_defaults():
    quiz = normalize_quiz(
        {"questions": [{"question": "2 + 2?", "options": ["3", "4"], "correct_answer": 1}]},
        fallback_title="Arithmetic",
    )

    assert quiz.id.startswith("quiz_")
    assert quiz.title == "Arithmetic"
    assert quiz.passing_score == 70
    assert quiz.time_limit_minutes == 30
    assert quiz.max_attempts == 3
    assert quiz.questions[0].id == "q1"
    assert quiz.questions[0].points == 1


def test_zero_passing_score_is_kept():
    quiz = normalize_quiz(
        {"passingScore": 0, "questions": [{"question": "x", "options": ["a", "b"], "correctAnswer": 0}]}
    )

    assert quiz.passing_score == 0


def test_legacy_lettered_options_are_collected():
    quiz = normalize_quiz(
        {
            "questions": [
                {
                    "question": "Pick B",
                    "optionA": "a",
                    "optionB": "b",
                    "optionC": "c",
                    "optionD": "d",
                    "correctAnswer": 1,
                }
            ]
        }
    )

    assert quiz.questions[0].options == ("a", "b", "c", "d")


@pytest.mark.parametrize(
    "payload",
    [
        {"questions": []},
        {"questions": [{"question": "x", "options": ["a", "b"], "correctAnswer": 2}]},
        {"questions": [{"question": "x", "options": ["a", "b"]}]},
        {"questions": "not a list"},
    ],
)
def test_invalid_documents_raise_validation_errors(payload):
    with pytest.raises(QuizValidationError):
        normalize_quiz(payload)


def test_generated_json_may_be_fenced():
    text = """```json
{"title": "Cells", "questions": [{"question": "Unit of life?", "options": ["Cell", "Atom"], "correctAnswer": 0}]}
```"""

    quiz = parse_generated_quiz(text)

    assert quiz.title == "Cells"
    assert quiz.questions[0].options == ("Cell", "Atom")


def test_unparseable_generated_text_raises():
    with pytest.raises(QuizValidationError):
        parse_generated_quiz("Sorry, I cannot help with that.")


def test_mock_generator_scales_points_and_time():
    generator = MockQuizGenerator()

    quiz = generator.generate(QuizGenerationRequest("Fractions", "...", Difficulty.HARD, question_count=6))

    assert quiz.title == "Quiz for Fractions"
    assert quiz.question_count == 6
    assert {question.points for question in quiz.questions} == {3}
    assert quiz.time_limit_minutes == 12
    assert generator.generate(QuizGenerationRequest("Short", "...", question_count=2)).time_limit_minutes == 10

    with pytest.raises(QuizValidationError):
        generator.generate(QuizGenerationRequest("None", "...", question_count=0))


def test_document_round_trip_keeps_the_quiz():
    quiz = MockQuizGenerator().generate(QuizGenerationRequest("Cells", "...", Difficulty.EASY, question_count=2))

    document = quiz_to_document(quiz)

    assert document["questions"][0]["correctAnswer"] == 0
    assert normalize_quiz(document) == quiz
