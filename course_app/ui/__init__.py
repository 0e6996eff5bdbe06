"""Qt UI components for the course application."""

from .dialog_helpers import (
    confirm_leave_quiz,
    confirm_submit_unanswered,
    show_error,
    show_info,
    show_quiz_result,
    show_save_failed,
    show_warning,
)
from .main_window import MainWindow
from .qt_scheduler import QtTickScheduler
from .question_renderer import render_lesson_document, render_question_document

__all__ = [
    "MainWindow",
    "QtTickScheduler",
    "confirm_leave_quiz",
    "confirm_submit_unanswered",
    "show_error",
    "show_info",
    "show_quiz_result",
    "show_save_failed",
    "show_warning",
    "render_lesson_document",
    "render_question_document",
]
