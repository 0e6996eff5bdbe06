"""Load course documents (modules, lessons, embedded quizzes) from JSON."""

from __future__ import annotations

from collections.abc import Mapping
import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from course_app.core.errors import QuizValidationError
from course_app.core.models import Course, Lesson, LessonType, Module, Quiz
from course_app.core.quiz_normalizer import normalize_quiz


class LessonDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str
    title: str
    type: LessonType = LessonType.TEXT
    content: str = ""
    duration: int = 0
    order: int = 0
    description: str | None = None
    video_url: str | None = Field(default=None, alias="videoUrl")
    document_url: str | None = Field(default=None, alias="documentUrl")
    is_free_preview: bool = Field(default=False, alias="isFreePreview")
    quiz: dict[str, Any] | None = None


class ModuleDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str
    title: str
    order: int = 0
    description: str | None = None
    lessons: list[LessonDocument] = Field(default_factory=list)
    quiz: dict[str, Any] | None = None


class CourseDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str
    title: str
    teacher_id: str = Field(default="", alias="teacherId")
    description: str = ""
    category: str = ""
    level: str = "beginner"
    is_published: bool = Field(default=True, alias="isPublished")
    modules: list[ModuleDocument] = Field(default_factory=list)
    lessons: list[LessonDocument] = Field(default_factory=list)
    final_quiz: dict[str, Any] | None = Field(default=None, alias="finalQuiz")


def course_from_document(payload: Mapping[str, Any]) -> Course:
    try:
        document = CourseDocument.model_validate(payload)
    except ValidationError as exc:
        raise QuizValidationError(f"Course document is malformed: {exc}") from exc

    return Course(
        id=document.id,
        title=document.title,
        teacher_id=document.teacher_id,
        description=document.description,
        category=document.category,
        level=document.level,
        is_published=document.is_published,
        modules=tuple(_build_module(module) for module in document.modules),
        lessons=tuple(_build_lesson(lesson) for lesson in document.lessons),
        final_quiz=_build_quiz(document.final_quiz, f"{document.title} final quiz"),
    )


def load_course_from_file(file_path: Path) -> Course:
    """Read one course document, or the first of a list of documents."""
    data = json.loads(file_path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        if not data:
            raise QuizValidationError(f"{file_path} does not contain any course.")
        data = data[0]
    return course_from_document(data)


def load_courses_from_file(file_path: Path) -> list[Course]:
    data = json.loads(file_path.read_text(encoding="utf-8"))
    documents = data if isinstance(data, list) else [data]
    return [course_from_document(document) for document in documents]


def _build_module(document: ModuleDocument) -> Module:
    return Module(
        id=document.id,
        title=document.title,
        order=document.order,
        description=document.description,
        lessons=tuple(_build_lesson(lesson) for lesson in sorted(document.lessons, key=lambda item: item.order)),
        quiz=_build_quiz(document.quiz, f"{document.title} quiz"),
    )


def _build_lesson(document: LessonDocument) -> Lesson:
    return Lesson(
        id=document.id,
        title=document.title,
        type=document.type,
        content=document.content,
        duration=document.duration,
        order=document.order,
        description=document.description,
        video_url=document.video_url,
        document_url=document.document_url,
        is_free_preview=document.is_free_preview,
        quiz=_build_quiz(document.quiz, f"Quiz for {document.title}"),
    )


def _build_quiz(payload: dict[str, Any] | None, fallback_title: str) -> Quiz | None:
    if not payload:
        return None
    return normalize_quiz(payload, fallback_title=fallback_title)
