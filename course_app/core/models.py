"""Domain models for courses, quizzes and student progress."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from course_app.constants.quiz_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PASSING_SCORE,
    DEFAULT_QUESTION_POINTS,
    DEFAULT_TIME_LIMIT_MINUTES,
    MIN_OPTIONS_PER_QUESTION,
)
from course_app.core.errors import QuizValidationError


class UserRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"


class LessonType(str, Enum):
    VIDEO = "video"
    TEXT = "text"
    DOCUMENT = "document"
    QUIZ = "quiz"


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class AppUser:
    """Identity and role of a signed-in user."""

    id: str
    role: UserRole
    email: str = ""
    first_name: str = ""
    last_name: str = ""

    @property
    def display_name(self) -> str:
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email or self.id

    @property
    def is_teacher(self) -> bool:
        return self.role is UserRole.TEACHER


@dataclass(slots=True, frozen=True)
class QuizQuestion:
    """Multiple-choice question; ``correct_answer`` is a zero-based option index."""

    id: str
    question: str
    options: tuple[str, ...]
    correct_answer: int
    points: int = DEFAULT_QUESTION_POINTS
    explanation: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", tuple(self.options))
        if not self.question.strip():
            raise QuizValidationError(f"Question {self.id!r} is missing text.")
        if len(self.options) < MIN_OPTIONS_PER_QUESTION:
            raise QuizValidationError(
                f"Question {self.id!r} must have at least {MIN_OPTIONS_PER_QUESTION} options."
            )
        if isinstance(self.correct_answer, bool) or not isinstance(self.correct_answer, int):
            raise QuizValidationError(f"Question {self.id!r} has a non-integer correct answer.")
        if not 0 <= self.correct_answer < len(self.options):
            raise QuizValidationError(
                f"Question {self.id!r} has correct answer {self.correct_answer} "
                f"outside of its {len(self.options)} options."
            )
        if isinstance(self.points, bool) or not isinstance(self.points, int) or self.points <= 0:
            raise QuizValidationError(f"Question {self.id!r} must be worth a positive number of points.")

    def is_correct(self, option_index: int | None) -> bool:
        return option_index is not None and option_index == self.correct_answer


@dataclass(slots=True, frozen=True)
class Quiz:
    """Immutable quiz definition. Validation runs at construction time."""

    id: str
    title: str
    questions: tuple[QuizQuestion, ...]
    passing_score: int = DEFAULT_PASSING_SCORE
    time_limit_minutes: int | None = None
    max_attempts: int | None = None
    description: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "questions", tuple(self.questions))
        if not self.questions:
            raise QuizValidationError(f"Quiz {self.id!r} must contain at least one question.")
        if not 0 <= self.passing_score <= 100:
            raise QuizValidationError("Passing score must be between 0 and 100.")
        if self.time_limit_minutes is not None and self.time_limit_minutes < 0:
            raise QuizValidationError("Time limit cannot be negative.")
        if self.max_attempts is not None and self.max_attempts < 0:
            raise QuizValidationError("Maximum attempts cannot be negative.")

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    @property
    def effective_time_limit_minutes(self) -> int:
        return self.time_limit_minutes or DEFAULT_TIME_LIMIT_MINUTES

    @property
    def effective_max_attempts(self) -> int:
        return self.max_attempts or DEFAULT_MAX_ATTEMPTS


@dataclass(slots=True, frozen=True)
class Lesson:
    id: str
    title: str
    type: LessonType = LessonType.TEXT
    content: str = ""
    duration: int = 0  # minutes
    order: int = 0
    quiz: Quiz | None = None
    description: str | None = None
    video_url: str | None = None
    document_url: str | None = None
    is_free_preview: bool = False


@dataclass(slots=True, frozen=True)
class Module:
    """Ordered group of lessons, optionally closed by a quiz."""

    id: str
    title: str
    order: int = 0
    lessons: tuple[Lesson, ...] = ()
    quiz: Quiz | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "lessons", tuple(self.lessons))

    @property
    def lesson_ids(self) -> tuple[str, ...]:
        return tuple(lesson.id for lesson in self.lessons)


@dataclass(slots=True, frozen=True)
class QuizPlacement:
    """Where a quiz is attached inside a course."""

    quiz: Quiz
    module: Module | None = None
    lesson: Lesson | None = None
    is_final: bool = False


@dataclass(slots=True, frozen=True)
class Course:
    id: str
    title: str
    teacher_id: str = ""
    description: str = ""
    modules: tuple[Module, ...] = ()
    lessons: tuple[Lesson, ...] = ()  # legacy flat lesson list, outside any module
    final_quiz: Quiz | None = None
    category: str = ""
    level: str = "beginner"
    is_published: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "modules", tuple(sorted(self.modules, key=lambda m: m.order)))
        object.__setattr__(self, "lessons", tuple(self.lessons))

    def all_lessons(self) -> list[Lesson]:
        """Module lessons in module order, followed by the flat lessons, without duplicates."""
        seen: set[str] = set()
        ordered: list[Lesson] = []
        for module in self.modules:
            for lesson in sorted(module.lessons, key=lambda item: item.order):
                if lesson.id not in seen:
                    seen.add(lesson.id)
                    ordered.append(lesson)
        for lesson in sorted(self.lessons, key=lambda item: item.order):
            if lesson.id not in seen:
                seen.add(lesson.id)
                ordered.append(lesson)
        return ordered

    def find_quiz(self, quiz_id: str) -> QuizPlacement | None:
        if self.final_quiz is not None and self.final_quiz.id == quiz_id:
            return QuizPlacement(quiz=self.final_quiz, is_final=True)
        for module in self.modules:
            if module.quiz is not None and module.quiz.id == quiz_id:
                return QuizPlacement(quiz=module.quiz, module=module)
            for lesson in module.lessons:
                if lesson.quiz is not None and lesson.quiz.id == quiz_id:
                    return QuizPlacement(quiz=lesson.quiz, module=module, lesson=lesson)
        for lesson in self.lessons:
            if lesson.quiz is not None and lesson.quiz.id == quiz_id:
                return QuizPlacement(quiz=lesson.quiz, lesson=lesson)
        return None

    def all_quizzes(self) -> list[QuizPlacement]:
        placements: list[QuizPlacement] = []
        for module in self.modules:
            for lesson in module.lessons:
                if lesson.quiz is not None:
                    placements.append(QuizPlacement(quiz=lesson.quiz, module=module, lesson=lesson))
            if module.quiz is not None:
                placements.append(QuizPlacement(quiz=module.quiz, module=module))
        for lesson in self.lessons:
            if lesson.quiz is not None:
                placements.append(QuizPlacement(quiz=lesson.quiz, lesson=lesson))
        if self.final_quiz is not None:
            placements.append(QuizPlacement(quiz=self.final_quiz, is_final=True))
        return placements


@dataclass(slots=True, frozen=True)
class QuizResult:
    """Outcome of one graded attempt. ``answers`` keeps the raw buffer for review."""

    quiz_id: str
    score: int
    passed: bool
    total_questions: int
    correct_answers: int
    attempt_number: int
    completed_at: datetime
    time_taken_seconds: int
    answers: tuple[int | None, ...] = ()


@dataclass(slots=True)
class StudentProgress:
    """Completion state of one student in one course."""

    student_id: str
    course_id: str
    enrollment_id: str
    completed_lessons: list[str] = field(default_factory=list)
    quiz_results: dict[str, list[QuizResult]] = field(default_factory=dict)
    overall_progress: int = 0
    course_completed: bool = False
    current_lesson_id: str | None = None
    time_spent_seconds: int = 0
    last_updated: datetime | None = None

    def is_lesson_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed_lessons

    def attempts_for(self, quiz_id: str) -> list[QuizResult]:
        return list(self.quiz_results.get(quiz_id, []))

    def attempt_count(self, quiz_id: str) -> int:
        return len(self.quiz_results.get(quiz_id, []))

    def best_result(self, quiz_id: str) -> QuizResult | None:
        attempts = self.quiz_results.get(quiz_id)
        if not attempts:
            return None
        return max(attempts, key=lambda result: (result.score, -result.attempt_number))

    def has_passed(self, quiz_id: str) -> bool:
        return any(result.passed for result in self.quiz_results.get(quiz_id, []))


@dataclass(slots=True)
class Enrollment:
    id: str
    student_id: str
    course_id: str
    enrolled_at: datetime
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    teacher_id: str = ""
