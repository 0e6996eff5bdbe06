"""Utilities for exporting quizzes to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path

from course_app.constants.quiz_constants import DEFAULT_PASSING_SCORE, DEFAULT_QUESTION_POINTS
from course_app.core.models import Quiz, QuizQuestion
from course_app.core.quiz_importer import OPTION_LETTERS


def save_quiz_to_file(file_path: Path, quiz: Quiz) -> None:
    """Persist the quiz to disk in the text import format."""

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(serialize_quiz(quiz), encoding="utf-8")


def serialize_quiz(quiz: Quiz) -> str:
    blocks = [_serialize_header(quiz)]
    blocks.extend(_serialize_question(question) for question in quiz.questions)
    return "\n\n---\n\n".join(blocks) + "\n"


def _serialize_header(quiz: Quiz) -> str:
    lines = [f"ID: {quiz.id}", f"TITLE: {quiz.title}"]
    if quiz.description:
        lines.append(f"DESCRIPTION: {' '.join(quiz.description.split())}")
    if quiz.passing_score != DEFAULT_PASSING_SCORE:
        lines.append(f"PASSING: {quiz.passing_score}")
    if quiz.time_limit_minutes is not None:
        lines.append(f"TIMELIMIT: {quiz.time_limit_minutes}")
    if quiz.max_attempts is not None:
        lines.append(f"ATTEMPTS: {quiz.max_attempts}")
    return "\n".join(lines)


def _serialize_question(question: QuizQuestion) -> str:
    lines: list[str] = []

    question_lines = _text_lines(question.question)
    lines.append(f"Q: {question_lines[0]}")
    lines.extend(question_lines[1:])

    for letter, option_text in zip(OPTION_LETTERS, question.options):
        option_lines = _text_lines(option_text)
        lines.append(f"{letter}: {option_lines[0]}")
        lines.extend(option_lines[1:])

    lines.append(f"CORRECT: {OPTION_LETTERS[question.correct_answer]}")

    if question.points != DEFAULT_QUESTION_POINTS:
        lines.append(f"POINTS: {question.points}")

    if question.explanation:
        explanation_lines = _text_lines(question.explanation)
        lines.append(f"EXPLANATION: {explanation_lines[0]}")
        lines.extend(explanation_lines[1:])

    return "\n".join(lines)


def _text_lines(text: str) -> list[str]:
    # Blank lines separate blocks in the import format.
    return [line for line in text.splitlines() if line.strip()] or [text.strip()]
