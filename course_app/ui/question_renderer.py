"""Rendering of lessons and quiz questions as full HTML documents for QWebEngineView."""

from __future__ import annotations

from course_app.core.markdown_math_renderer import renderer
from course_app.core.models import Lesson, LessonType, QuizQuestion


def render_question_document(
    question: QuizQuestion,
    selected_index: int | None = None,
    reveal: bool = False,
    font_size: int = 18,
) -> str:
    """Render a quiz question with its options.

    Args:
        question: The question to show (text and options support Markdown and LaTeX)
        selected_index: Option currently chosen by the student, if any
        reveal: Mark the correct option and show the explanation (review mode)
        font_size: Font size in pixels for the document body

    Returns:
        HTML string ready for display in QWebEngineView
    """
    body = renderer.render_question(question, selected_index, reveal=reveal)
    return renderer.wrap_with_mathjax(body, title=question.id, font_size=font_size)


def render_lesson_document(lesson: Lesson, font_size: int = 16) -> str:
    parts = [f"# {lesson.title}"]
    if lesson.description:
        parts.append(f"*{lesson.description}*")
    if lesson.type is LessonType.VIDEO and lesson.video_url:
        parts.append(f"[Watch the video]({lesson.video_url})")
    elif lesson.type is LessonType.DOCUMENT and lesson.document_url:
        parts.append(f"[Open the document]({lesson.document_url})")
    if lesson.content:
        parts.append(lesson.content)
    return renderer.render_full_document("\n\n".join(parts), title=lesson.title, font_size=font_size)
