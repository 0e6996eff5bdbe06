"""Pure scoring of a quiz answer buffer."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import math

from course_app.core.models import Quiz


@dataclass(slots=True, frozen=True)
class ScoreResult:
    score: int
    passed: bool
    total_points: int
    earned_points: int
    correct_answers: int
    total_questions: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Integer percentage of ``part`` over ``whole``; 0 when ``whole`` is not positive."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def score_quiz(quiz: Quiz, answers: Sequence[int | None]) -> ScoreResult:
    """Score an answer buffer against a quiz.

    Slot ``i`` of ``answers`` holds the selected option index for question
    ``i`` or ``None`` when unanswered. Missing slots count as unanswered, so a
    partial or all-unanswered buffer is always scoreable.
    """
    earned_points = 0
    total_points = 0
    correct_answers = 0
    for index, question in enumerate(quiz.questions):
        total_points += question.points
        selected = answers[index] if index < len(answers) else None
        if question.is_correct(selected):
            earned_points += question.points
            correct_answers += 1

    score = percentage(earned_points, total_points)
    return ScoreResult(
        score=score,
        passed=score >= quiz.passing_score,
        total_points=total_points,
        earned_points=earned_points,
        correct_answers=correct_answers,
        total_questions=quiz.question_count,
    )
