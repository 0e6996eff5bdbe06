"""Component for taking a timed quiz."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import Signal
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QButtonGroup,
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QRadioButton,
    QVBoxLayout,
    QWidget,
)

from course_app.constants.quiz_constants import TIME_LIMIT_WARNING_WINDOW_SECONDS
from course_app.constants.ui_constants import (
    QUIZ_ANSWERED_TEMPLATE,
    QUIZ_BACK_BUTTON,
    QUIZ_LEAVE_BUTTON,
    QUIZ_LOAD_FAILED_MESSAGE,
    QUIZ_NEXT_BUTTON,
    QUIZ_POSITION_TEMPLATE,
    QUIZ_PREV_BUTTON,
    QUIZ_REVIEW_TEMPLATE,
    QUIZ_SUBMIT_BUTTON,
    QUIZ_TIME_TEMPLATE,
)
from course_app.core.course_manager import AttemptOutcome, CourseManager
from course_app.core.errors import CourseAppError, QuizNotEligibleError
from course_app.core.models import AppUser
from course_app.core.services.quiz_session import (
    CompletionReason,
    QuizSession,
    SessionEvent,
    SessionState,
    SubmitStatus,
)
from course_app.styling.color_palette import ColorPalette
from course_app.styling.styles import Styles
from course_app.ui.dialog_helpers import (
    confirm_leave_quiz,
    confirm_submit_unanswered,
    show_error,
    show_quiz_result,
    show_warning,
)
from course_app.ui.qt_scheduler import QtTickScheduler
from course_app.ui.question_renderer import render_question_document


class QuizPanel(QWidget):
    """UI component running one quiz session for the signed-in student."""

    # Session and outcome callbacks may arrive from API threads; signals
    # queue them onto the GUI thread.
    session_changed = Signal()
    outcome_ready = Signal(object)

    def __init__(
        self,
        course_manager: CourseManager,
        user: AppUser,
        on_finished: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.course_manager = course_manager
        self.user = user
        self.on_finished = on_finished

        self._scheduler = QtTickScheduler(self)
        self._session: QuizSession | None = None
        self._quiz_font_size: int = 18

        self._build_ui()
        self.session_changed.connect(self._refresh_view)
        self.outcome_ready.connect(self._handle_outcome)
        self.course_manager.add_outcome_listener(self._on_outcome)

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        header_row = QHBoxLayout()
        self.title_label = QLabel("", self)
        self.title_label.setStyleSheet(Styles.get_large_label_style())
        header_row.addWidget(self.title_label)
        header_row.addStretch()
        self.time_label = QLabel("", self)
        self.time_label.setStyleSheet(Styles.get_timer_label_style())
        header_row.addWidget(self.time_label)
        layout.addLayout(header_row)

        self.time_progress = QProgressBar(self)
        self.time_progress.setTextVisible(False)
        layout.addWidget(self.time_progress)

        self.question_view = QWebEngineView(self)
        layout.addWidget(self.question_view, stretch=1)

        self.options_layout = QVBoxLayout()
        self.option_group = QButtonGroup(self)
        self.option_group.setExclusive(True)
        self.option_group.idClicked.connect(self._handle_option_selected)
        self.option_buttons: list[QRadioButton] = []
        layout.addLayout(self.options_layout)

        status_row = QHBoxLayout()
        self.position_label = QLabel("", self)
        status_row.addWidget(self.position_label)
        status_row.addStretch()
        self.answered_label = QLabel("", self)
        status_row.addWidget(self.answered_label)
        layout.addLayout(status_row)

        button_row = QHBoxLayout()
        self.prev_button = QPushButton(QUIZ_PREV_BUTTON, self)
        self.prev_button.clicked.connect(self._handle_previous)
        button_row.addWidget(self.prev_button)

        self.next_button = QPushButton(QUIZ_NEXT_BUTTON, self)
        self.next_button.clicked.connect(self._handle_next)
        button_row.addWidget(self.next_button)

        button_row.addStretch()

        self.leave_button = QPushButton(QUIZ_LEAVE_BUTTON, self)
        self.leave_button.clicked.connect(self._handle_leave)
        button_row.addWidget(self.leave_button)

        self.submit_button = QPushButton(QUIZ_SUBMIT_BUTTON, self)
        self.submit_button.clicked.connect(self._handle_submit)
        button_row.addWidget(self.submit_button)

        layout.addLayout(button_row)

    # --- Session lifecycle ---

    def start_quiz(self, course_id: str, quiz_id: str) -> bool:
        """Start an attempt; returns False (after telling the user why) when it cannot start."""
        try:
            session = self.course_manager.start_quiz(self.user, course_id, quiz_id, scheduler=self._scheduler)
        except QuizNotEligibleError as exc:
            show_warning(self, "Quiz locked", str(exc))
            return False
        except CourseAppError as exc:
            show_error(self, "Quiz unavailable", f"{QUIZ_LOAD_FAILED_MESSAGE}\n\n{exc}")
            return False

        self._detach_session()
        self._session = session
        session.add_listener(self._on_session_event)
        self._rebuild_option_buttons()
        self._refresh_view()
        return True

    def has_running_quiz(self) -> bool:
        return self._session is not None and self._session.is_in_progress()

    def leave_quiz(self) -> bool:
        """Leave the running quiz after confirmation. Returns True when the panel may close."""
        if not self.has_running_quiz():
            self._detach_session()
            return True
        if not confirm_leave_quiz(self):
            return False
        self.course_manager.abandon_quiz(self.user)
        self._detach_session()
        return True

    def _detach_session(self) -> None:
        if self._session is not None:
            self._session.remove_listener(self._on_session_event)
        self._session = None

    def _on_session_event(self, session: QuizSession, event: SessionEvent) -> None:
        self.session_changed.emit()

    def _on_outcome(self, outcome: AttemptOutcome) -> None:
        if outcome.student_id == self.user.id:
            self.outcome_ready.emit(outcome)

    def _handle_outcome(self, outcome: AttemptOutcome) -> None:
        if self._session is None or self._session.get_quiz() is None:
            return
        if outcome.result.quiz_id != self._session.get_quiz().id:
            return
        self._refresh_view()
        timed_out = self._session.get_completion_reason() is CompletionReason.TIMED_OUT
        show_quiz_result(self, outcome, timed_out=timed_out, font_point_size=self._quiz_font_size // 2 + 4)

    # --- Handlers ---

    def _handle_option_selected(self, option_index: int) -> None:
        if self._session is None:
            return
        self._session.select_answer(self._session.get_current_index(), option_index)

    def _handle_previous(self) -> None:
        if self._session is not None:
            self._session.go_to_previous()

    def _handle_next(self) -> None:
        if self._session is not None:
            self._session.go_to_next()

    def _handle_submit(self) -> None:
        if self._session is None:
            return
        try:
            submission = self.course_manager.submit_quiz(self.user)
            if submission.submit.status is SubmitStatus.NEEDS_CONFIRMATION:
                if not confirm_submit_unanswered(self, submission.submit.unanswered_count):
                    return
                self.course_manager.submit_quiz(self.user, confirm_unanswered=True)
        except CourseAppError as exc:
            show_error(self, "Submit failed", str(exc))

    def _handle_leave(self) -> None:
        if self.leave_quiz():
            self.on_finished()

    # --- View ---

    def set_font_size(self, font_size: int) -> None:
        self._quiz_font_size = font_size
        self._refresh_view()

    def _rebuild_option_buttons(self) -> None:
        for button in self.option_buttons:
            self.option_group.removeButton(button)
            self.options_layout.removeWidget(button)
            button.deleteLater()
        self.option_buttons = []

        quiz = self._session.get_quiz() if self._session else None
        if quiz is None:
            return
        max_options = max(len(question.options) for question in quiz.questions)
        for index in range(max_options):
            button = QRadioButton(chr(ord("A") + index), self)
            self.option_group.addButton(button, index)
            self.options_layout.addWidget(button)
            self.option_buttons.append(button)

    def _refresh_view(self) -> None:
        session = self._session
        if session is None or session.get_quiz() is None:
            return
        quiz = session.get_quiz()
        question = session.get_current_question()
        index = session.get_current_index()
        answers = session.get_answers()
        total = len(answers)
        state = session.get_state()
        running = state is SessionState.IN_PROGRESS
        completed = state is SessionState.COMPLETED

        self.title_label.setText(quiz.title)
        self.position_label.setText(QUIZ_POSITION_TEMPLATE.format(current=index + 1, total=total))
        self.answered_label.setText(
            QUIZ_ANSWERED_TEMPLATE.format(answered=total - session.get_unanswered_count(), total=total)
        )
        self._update_timer(session)

        self.question_view.setHtml(
            render_question_document(question, answers[index], reveal=completed, font_size=self._quiz_font_size)
        )

        self.option_group.setExclusive(False)
        for option_index, button in enumerate(self.option_buttons):
            visible = option_index < len(question.options)
            button.setVisible(visible)
            button.setChecked(visible and answers[index] == option_index)
            button.setEnabled(running)
        self.option_group.setExclusive(True)

        self.prev_button.setEnabled(index > 0)
        self.next_button.setEnabled(index < total - 1)
        self.submit_button.setEnabled(running)
        self.leave_button.setText(QUIZ_LEAVE_BUTTON if running else QUIZ_BACK_BUTTON)

        if completed:
            score = session.get_score()
            verdict = "passed" if score.passed else "not passed"
            self.answered_label.setText(QUIZ_REVIEW_TEMPLATE.format(score=score.score, verdict=verdict))

    def _update_timer(self, session: QuizSession) -> None:
        remaining = session.get_time_remaining()
        total_seconds = max(1, session.get_total_seconds())
        self.time_label.setText(QUIZ_TIME_TEMPLATE.format(countdown=session.format_time_remaining()))
        self.time_progress.setRange(0, total_seconds)
        self.time_progress.setValue(remaining)
        warning = session.is_in_progress() and remaining <= TIME_LIMIT_WARNING_WINDOW_SECONDS
        color = ColorPalette.ERROR.get(Styles.theme) if warning else ColorPalette.TEXT_PRIMARY.get(Styles.theme)
        self.time_label.setStyleSheet(f"{Styles.get_timer_label_style()} color: {color};")
