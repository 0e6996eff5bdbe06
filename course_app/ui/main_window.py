"""Qt main window switching between course, quiz and statistics modes."""

from __future__ import annotations

from enum import Enum, auto

from PySide6.QtCore import QTimer
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from course_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION, HELP_TEXT
from course_app.constants.ui_constants import (
    MODE_BUTTON_COURSE,
    MODE_BUTTON_STATISTICS,
    PROGRESS_REFRESH_INTERVAL_MS,
    WINDOW_TITLE,
)
from course_app.core.course_manager import CourseManager
from course_app.core.models import AppUser
from course_app.styling.styles import Styles
from course_app.ui.components.course_panel import CoursePanel
from course_app.ui.components.quiz_panel import QuizPanel
from course_app.ui.components.statistics_panel import StatisticsPanel
from course_app.ui.dialog_helpers import show_info, show_warning


class AppMode(Enum):
    """High-level UI mode of the main window."""

    COURSE = auto()
    QUIZ = auto()
    STATISTICS = auto()


class MainWindow(QMainWindow):
    """Main Qt window orchestrating the course, quiz and statistics modes."""

    def __init__(
        self,
        course_manager: CourseManager,
        user: AppUser,
        api_url: str | None = None,
        font_size: int = 16,
    ) -> None:
        super().__init__()
        self.setWindowTitle(f"{WINDOW_TITLE}: {user.display_name}")

        self.course_manager = course_manager
        self.user = user
        self.api_url = api_url
        self._font_size = font_size
        self._mode = AppMode.COURSE

        self._build_ui()
        self._configure_refresh_timer()
        self._apply_styles()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        self._build_mode_buttons(root_layout)

        self.mode_stack = QStackedWidget(self)
        self.course_panel = CoursePanel(self.course_manager, self.user, on_start_quiz=self._start_quiz, parent=self)
        self.quiz_panel = QuizPanel(self.course_manager, self.user, on_finished=self._finish_quiz, parent=self)
        self.mode_stack.addWidget(self.course_panel)
        self.mode_stack.addWidget(self.quiz_panel)

        self.statistics_panel: StatisticsPanel | None = None
        if self.user.is_teacher:
            self.statistics_panel = StatisticsPanel(self.course_manager, self.user, parent=self)
            self.mode_stack.addWidget(self.statistics_panel)

        root_layout.addWidget(self.mode_stack, stretch=1)

        self.api_label = QLabel(f"Student API: {self.api_url}" if self.api_url else "", self)
        self.api_label.setStyleSheet(Styles.get_secondary_label_style(Styles.theme))
        root_layout.addWidget(self.api_label)

        self._set_mode(AppMode.STATISTICS if self.user.is_teacher else AppMode.COURSE)

    def _build_mode_buttons(self, layout: QVBoxLayout) -> None:
        button_row = QHBoxLayout()

        self.course_mode_button = QPushButton(MODE_BUTTON_COURSE, self)
        self.course_mode_button.setCheckable(True)
        self.course_mode_button.clicked.connect(lambda: self._set_mode(AppMode.COURSE))
        button_row.addWidget(self.course_mode_button)

        self.statistics_mode_button = QPushButton(MODE_BUTTON_STATISTICS, self)
        self.statistics_mode_button.setCheckable(True)
        self.statistics_mode_button.setVisible(self.user.is_teacher)
        self.statistics_mode_button.clicked.connect(lambda: self._set_mode(AppMode.STATISTICS))
        button_row.addWidget(self.statistics_mode_button)

        button_row.addStretch()

        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)

        self.help_button = QPushButton("Help", self)
        self.help_button.clicked.connect(self._handle_help)
        button_row.addWidget(self.help_button)

        layout.addLayout(button_row)

    def _configure_refresh_timer(self) -> None:
        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(PROGRESS_REFRESH_INTERVAL_MS)
        self.refresh_timer.timeout.connect(self._refresh_state)
        self.refresh_timer.start()

    def _refresh_state(self) -> None:
        if self._mode == AppMode.COURSE:
            self._retry_unsaved_progress()
            self.course_panel.refresh()
        elif self._mode == AppMode.STATISTICS and self.statistics_panel is not None:
            self.statistics_panel.refresh()

    def _retry_unsaved_progress(self) -> None:
        results = self.course_manager.retry_pending(self.user)
        if results and all(results.values()):
            self.course_panel.status_label.setText("Saved progress that was pending.")

    def _set_mode(self, mode: AppMode) -> None:
        if mode == AppMode.STATISTICS and self.statistics_panel is None:
            mode = AppMode.COURSE
        self._mode = mode
        quiz_mode = mode == AppMode.QUIZ
        self.course_mode_button.setChecked(mode == AppMode.COURSE)
        self.statistics_mode_button.setChecked(mode == AppMode.STATISTICS)
        self.course_mode_button.setEnabled(not quiz_mode)
        self.statistics_mode_button.setEnabled(not quiz_mode)

        if mode == AppMode.COURSE:
            self.mode_stack.setCurrentWidget(self.course_panel)
            self.course_panel.refresh()
        elif mode == AppMode.QUIZ:
            self.mode_stack.setCurrentWidget(self.quiz_panel)
        else:
            self.mode_stack.setCurrentWidget(self.statistics_panel)
            self.statistics_panel.refresh()

    def _start_quiz(self, course_id: str, quiz_id: str) -> None:
        if self.quiz_panel.start_quiz(course_id, quiz_id):
            self._set_mode(AppMode.QUIZ)
        else:
            self.course_panel.refresh()

    def _finish_quiz(self) -> None:
        self._set_mode(AppMode.COURSE)

    def _handle_about(self) -> None:
        details = (
            f"{APP_NAME} v{APP_VERSION}\n"
            f"License: {APP_LICENSE}\n\n"
            f"{APP_ABOUT_TEXT}"
        )
        show_info(self, f"About {APP_NAME}", details)

    def _handle_help(self) -> None:
        show_info(self, f"{APP_NAME} Help", HELP_TEXT)

    def closeEvent(self, event: QCloseEvent) -> None:
        if self.quiz_panel.has_running_quiz() and not self.quiz_panel.leave_quiz():
            event.ignore()
            return
        pending = self.course_manager.retry_pending(self.user)
        if not all(pending.values()):
            show_warning(self, "Unsaved progress", "Some progress could not be saved before closing.")
        event.accept()

    def _apply_styles(self) -> None:
        self.setStyleSheet(Styles.get_main_window_style(Styles.theme))
        self.course_panel.set_font_size(self._font_size)
        self.quiz_panel.set_font_size(self._font_size + 2)
