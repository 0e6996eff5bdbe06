import pytest

from course_app.core.errors import QuizImportError
from course_app.core.quiz_exporter import save_quiz_to_file, serialize_quiz
from course_app.core.quiz_importer import load_quiz_from_file, parse_quiz_text

SAMPLE_QUIZ = """
ID: fractions
TITLE: Fractions
PASSING: 80
TIMELIMIT: 15
ATTEMPTS: 2

---

Q: What is $\\frac{1}{2} + \\frac{1}{4}$?
A: $\\frac{3}{4}$
B: $\\frac{2}{6}$
C: $\\frac{1}{8}$
CORRECT: A
POINTS: 2
EXPLANATION: Use a common denominator.

Q: Which fraction is larger?
Compare carefully.
A: 1/3
B: 1/2
CORRECT: b
"""


def test_parse_header_and_questions():
    quiz = parse_quiz_text(SAMPLE_QUIZ)

    assert quiz.id == "fractions"
    assert quiz.title == "Fractions"
    assert quiz.passing_score == 80
    assert quiz.time_limit_minutes == 15
    assert quiz.max_attempts == 2
    assert [question.id for question in quiz.questions] == ["q1", "q2"]

    first, second = quiz.questions
    assert first.options[0] == "$\\frac{3}{4}$"
    assert first.correct_answer == 0
    assert first.points == 2
    assert first.explanation == "Use a common denominator."
    assert second.question == "Which fraction is larger?\nCompare carefully."
    assert second.correct_answer == 1
    assert second.points == 1
    assert second.explanation is None


def test_header_is_optional():
    quiz = parse_quiz_text("Q: 1 + 1?\nA: 2\nB: 3\nCORRECT: A", default_id="sums", default_title="Sums")

    assert quiz.id == "sums"
    assert quiz.title == "Sums"
    assert quiz.passing_score == 70
    assert quiz.time_limit_minutes is None
    assert quiz.max_attempts is None


@pytest.mark.parametrize(
    "text",
    [
        "",
        "TITLE: Only a header",
        "Q: Missing correct\nA: 1\nB: 2",
        "Q: Bad letter\nA: 1\nB: 2\nCORRECT: C",
        "Q: Gap in options\nA: 1\nC: 2\nCORRECT: A",
        "Q: One option\nA: 1\nCORRECT: A",
        "Q: Bad points\nA: 1\nB: 2\nCORRECT: A\nPOINTS: many",
        "Q: Zero points\nA: 1\nB: 2\nCORRECT: A\nPOINTS: 0",
        "COLOR: blue\n\nQ: x\nA: 1\nB: 2\nCORRECT: A",
        "PASSING: high\n\nQ: x\nA: 1\nB: 2\nCORRECT: A",
        "PASSING: 140\n\nQ: x\nA: 1\nB: 2\nCORRECT: A",
    ],
)
def test_malformed_files_raise_import_errors(text):
    with pytest.raises(QuizImportError):
        parse_quiz_text(text)


def test_load_from_file_uses_the_file_name(tmp_path):
    path = tmp_path / "unit_one.txt"
    path.write_text("Q: 2 * 3?\nA: 5\nB: 6\nCORRECT: B\n", encoding="utf-8")

    imported = load_quiz_from_file(path)

    assert imported.source_path == path
    assert imported.quiz.id == "unit_one"
    assert imported.quiz.title == "unit one"


def test_export_omits_defaults():
    quiz = parse_quiz_text("TITLE: Short\n\nQ: 1 + 1?\nA: 2\nB: 3\nCORRECT: A", default_id="short")

    text = serialize_quiz(quiz)

    assert text == "ID: short\nTITLE: Short\n\n---\n\nQ: 1 + 1?\nA: 2\nB: 3\nCORRECT: A\n"


def test_exported_file_imports_back(tmp_path):
    quiz = parse_quiz_text(SAMPLE_QUIZ)
    path = tmp_path / "nested" / "fractions.txt"

    save_quiz_to_file(path, quiz)

    assert load_quiz_from_file(path).quiz == quiz
