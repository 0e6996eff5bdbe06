"""Helper functions for common dialog patterns in the course UI."""

from __future__ import annotations

from PySide6.QtGui import QFont
from PySide6.QtWidgets import QMessageBox, QWidget

from course_app.constants.ui_constants import RESULT_SAVE_FAILED_MESSAGE
from course_app.core.course_manager import AttemptOutcome


def _apply_optional_font(widget: QWidget, font_point_size: int | None) -> None:
    """Apply font size to a widget when requested."""
    if font_point_size is None or font_point_size <= 0:
        return

    font: QFont = widget.font()
    font.setPointSize(font_point_size)
    widget.setFont(font)


def confirm_submit_unanswered(parent: QWidget, unanswered_count: int) -> bool:
    """Ask before submitting a quiz that still has unanswered questions.

    Args:
        parent: Parent widget for the dialog
        unanswered_count: Number of questions without a selected option

    Returns:
        True if user confirmed, False otherwise
    """
    noun = "question" if unanswered_count == 1 else "questions"
    reply = QMessageBox.question(
        parent,
        "Submit Quiz",
        f"You have {unanswered_count} unanswered {noun}. Unanswered questions score zero. Submit anyway?",
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No,
    )
    return reply == QMessageBox.Yes


def confirm_leave_quiz(parent: QWidget) -> bool:
    """Ask before abandoning a running quiz; the answers given so far are discarded."""
    reply = QMessageBox.question(
        parent,
        "Leave Quiz",
        "Leave this quiz? Your answers will be discarded and no attempt will be recorded.",
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No,
    )
    return reply == QMessageBox.Yes


def show_quiz_result(
    parent: QWidget,
    outcome: AttemptOutcome,
    *,
    timed_out: bool = False,
    font_point_size: int | None = None,
) -> None:
    result = outcome.result
    verdict = "Passed" if result.passed else "Not passed"
    lines = []
    if timed_out:
        lines.append("Time is up. Your quiz was submitted automatically.\n")
    lines.append(f"Score: {result.score}% ({verdict})")
    lines.append(f"Correct answers: {result.correct_answers} of {result.total_questions}")
    lines.append(f"Attempt: {result.attempt_number}")
    if outcome.course_completed:
        lines.append("\nCongratulations, you completed the course!")
    show_info(parent, "Quiz Result", "\n".join(lines), font_point_size=font_point_size)
    if not outcome.saved:
        show_save_failed(parent, outcome.error_message)


def show_save_failed(parent: QWidget, detail: str | None = None) -> None:
    message = RESULT_SAVE_FAILED_MESSAGE
    if detail and detail not in message:
        message = f"{message}\n\n{detail}"
    show_warning(parent, "Result Not Saved", message)


def show_error(parent: QWidget, title: str, message: str) -> None:
    """Show error dialog.

    Args:
        parent: Parent widget for the dialog
        title: Dialog title
        message: Error message
    """
    QMessageBox.critical(parent, title, message)


def show_info(
    parent: QWidget,
    title: str,
    message: str,
    *,
    font_point_size: int | None = None,
) -> None:
    """Show information dialog.

    Args:
        parent: Parent widget for the dialog
        title: Dialog title
        message: Information message
    """
    msg_box = QMessageBox(parent)
    msg_box.setIcon(QMessageBox.Information)
    msg_box.setWindowTitle(title)
    msg_box.setText(message)
    msg_box.setStandardButtons(QMessageBox.Ok)
    _apply_optional_font(msg_box, font_point_size)
    if font_point_size is not None and font_point_size > 0:
        msg_box.setStyleSheet(
            f"QLabel {{ font-size: {font_point_size}pt; }}\n"
            f"QPushButton {{ font-size: {font_point_size}pt; }}"
        )
    msg_box.exec()


def show_warning(parent: QWidget, title: str, message: str) -> None:
    """Show warning dialog."""
    QMessageBox.warning(parent, title, message)
