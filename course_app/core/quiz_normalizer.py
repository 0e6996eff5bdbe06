"""Normalize quiz documents from course data or the AI generator into ``Quiz`` objects.

Quizzes reach the engine in two shapes: embedded in lesson and course
documents, or returned by the AI quiz-generation collaborator as JSON. Both
use the platform's camelCase field names and are loose about optional
fields, so they are parsed with pydantic models that fill the platform
defaults before the strict ``Quiz`` dataclass validates the result.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from course_app.constants.quiz_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PASSING_SCORE,
    DEFAULT_QUESTION_POINTS,
    DEFAULT_TIME_LIMIT_MINUTES,
)
from course_app.core.errors import QuizValidationError
from course_app.core.models import Quiz, QuizQuestion

_LEGACY_OPTION_KEYS = ("optionA", "optionB", "optionC", "optionD")


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


class QuestionPayload(BaseModel):
    """One question as stored in documents or produced by the generator."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str | None = None
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: int = Field(alias="correctAnswer")
    explanation: str | None = None
    points: int | None = None

    @model_validator(mode="before")
    @classmethod
    def _collect_legacy_options(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not isinstance(data.get("options"), list):
            legacy = [data.get(key) for key in _LEGACY_OPTION_KEYS]
            if any(option is not None for option in legacy):
                data = dict(data)
                data["options"] = [option or "" for option in legacy]
        return data

    @field_validator("options")
    @classmethod
    def _strip_options(cls, options: list[str]) -> list[str]:
        return [str(option).strip() for option in options]


class QuizPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str | None = None
    title: str | None = None
    description: str | None = None
    questions: list[QuestionPayload] = Field(default_factory=list)
    passing_score: int | None = Field(default=None, alias="passingScore")
    time_limit: int | None = Field(default=None, alias="timeLimit")
    max_attempts: int | None = Field(default=None, alias="maxAttempts")
    created_at: datetime | None = Field(default=None, alias="createdAt")


def normalize_quiz(payload: Mapping[str, Any], *, fallback_title: str = "Quiz") -> Quiz:
    """Build a validated ``Quiz`` from a loosely shaped document."""
    try:
        parsed = QuizPayload.model_validate(payload)
    except ValidationError as exc:
        raise QuizValidationError(f"Quiz document is malformed: {exc}") from exc

    questions = [
        QuizQuestion(
            id=item.id or f"q{index}",
            question=item.question,
            options=tuple(item.options),
            correct_answer=item.correct_answer,
            explanation=item.explanation or None,
            points=item.points or DEFAULT_QUESTION_POINTS,
        )
        for index, item in enumerate(parsed.questions, start=1)
    ]
    title = (parsed.title or "").strip() or fallback_title
    return Quiz(
        id=parsed.id or f"quiz_{uuid4().hex[:12]}",
        title=title,
        description=parsed.description,
        questions=tuple(questions),
        passing_score=parsed.passing_score if parsed.passing_score is not None else DEFAULT_PASSING_SCORE,
        time_limit_minutes=parsed.time_limit or DEFAULT_TIME_LIMIT_MINUTES,
        max_attempts=parsed.max_attempts or DEFAULT_MAX_ATTEMPTS,
        created_at=parsed.created_at,
    )


def parse_generated_quiz(text: str, *, fallback_title: str = "Quiz") -> Quiz:
    """Parse the JSON body returned by the AI quiz generator, tolerating a Markdown code fence."""
    try:
        parsed = QuizPayload.model_validate_json(_strip_code_fence(text))
    except ValidationError as exc:
        raise QuizValidationError(f"Generated quiz could not be parsed: {exc}") from exc
    return normalize_quiz(parsed.model_dump(by_alias=True), fallback_title=fallback_title)


def quiz_to_document(quiz: Quiz) -> dict[str, Any]:
    """Serialize a quiz back into the camelCase document shape."""
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "passingScore": quiz.passing_score,
        "timeLimit": quiz.time_limit_minutes,
        "maxAttempts": quiz.max_attempts,
        "createdAt": quiz.created_at.isoformat() if quiz.created_at else None,
        "questions": [
            {
                "id": question.id,
                "question": question.question,
                "options": list(question.options),
                "correctAnswer": question.correct_answer,
                "explanation": question.explanation,
                "points": question.points,
            }
            for question in quiz.questions
        ],
    }


# --- AI generation collaborator ---


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


_POINTS_BY_DIFFICULTY = {Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3}


@dataclass(slots=True, frozen=True)
class QuizGenerationRequest:
    lesson_title: str
    lesson_content: str
    difficulty: Difficulty = Difficulty.MEDIUM
    question_count: int = 5


class QuizGenerator(Protocol):
    def generate(self, request: QuizGenerationRequest) -> Quiz: ...


class MockQuizGenerator:
    """Offline stand-in for the AI generator producing predictable placeholder questions."""

    def generate(self, request: QuizGenerationRequest) -> Quiz:
        if request.question_count <= 0:
            raise QuizValidationError("A generated quiz needs at least one question.")
        points = _POINTS_BY_DIFFICULTY[request.difficulty]
        payload = {
            "title": f"Quiz for {request.lesson_title}",
            "description": f"Test your knowledge of {request.lesson_title}",
            "passingScore": DEFAULT_PASSING_SCORE,
            "timeLimit": max(10, request.question_count * 2),
            "maxAttempts": DEFAULT_MAX_ATTEMPTS,
            "questions": [
                {
                    "id": f"q{index}",
                    "question": f"Sample question {index} for {request.difficulty.value} difficulty level?",
                    "options": [
                        "Option A - Correct answer",
                        "Option B - Wrong answer",
                        "Option C - Wrong answer",
                        "Option D - Wrong answer",
                    ],
                    "correctAnswer": 0,
                    "explanation": f"Explanation for why option A is correct for question {index}",
                    "points": points,
                }
                for index in range(1, request.question_count + 1)
            ],
        }
        return normalize_quiz(payload, fallback_title=request.lesson_title)
