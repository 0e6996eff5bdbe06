"""Component showing a course's lessons, quizzes and the student's progress."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import Qt
from PySide6.QtGui import QBrush, QColor
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QComboBox,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QProgressBar,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from course_app.constants.ui_constants import (
    COURSE_COMPLETED_LABEL,
    COURSE_ENROLL_BUTTON,
    COURSE_MARK_COMPLETE_BUTTON,
    COURSE_NOT_ENROLLED_MESSAGE,
    COURSE_PROGRESS_TEMPLATE,
    COURSE_START_QUIZ_BUTTON,
    QUIZ_AVAILABLE_TEMPLATE,
    QUIZ_LOCKED_TEMPLATE,
)
from course_app.core.course_manager import CourseManager
from course_app.core.errors import CourseAppError, ProgressPersistenceError
from course_app.core.models import AppUser, Course, StudentProgress
from course_app.core.services.eligibility import EligibilityReason
from course_app.styling.color_palette import ColorPalette
from course_app.styling.styles import Styles
from course_app.ui.dialog_helpers import show_error, show_save_failed
from course_app.ui.question_renderer import render_lesson_document

_REASON_TEXT = {
    EligibilityReason.NOT_ENROLLED: "enroll first",
    EligibilityReason.ATTEMPTS_EXHAUSTED: "no attempts left",
    EligibilityReason.MODULE_INCOMPLETE: "finish the module's lessons",
    EligibilityReason.COURSE_INCOMPLETE: "finish the course",
    EligibilityReason.UNKNOWN_PLACEMENT: "unavailable",
}


class CoursePanel(QWidget):
    """Lesson browser with completion tracking and quiz unlock status."""

    def __init__(
        self,
        course_manager: CourseManager,
        user: AppUser,
        on_start_quiz: Callable[[str, str], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.course_manager = course_manager
        self.user = user
        self.on_start_quiz = on_start_quiz
        self._lesson_font_size: int = 16
        self._enrolled: bool = False

        self._build_ui()
        self.reload_courses()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        header_row = QHBoxLayout()
        self.course_combo = QComboBox(self)
        self.course_combo.currentIndexChanged.connect(self._handle_course_changed)
        header_row.addWidget(self.course_combo, stretch=1)

        self.enroll_button = QPushButton(COURSE_ENROLL_BUTTON, self)
        self.enroll_button.clicked.connect(self._handle_enroll)
        header_row.addWidget(self.enroll_button)
        layout.addLayout(header_row)

        progress_row = QHBoxLayout()
        self.progress_label = QLabel("", self)
        progress_row.addWidget(self.progress_label)
        self.progress_bar = QProgressBar(self)
        self.progress_bar.setRange(0, 100)
        progress_row.addWidget(self.progress_bar, stretch=1)
        self.completed_label = QLabel(COURSE_COMPLETED_LABEL, self)
        self.completed_label.setStyleSheet(f"color: {ColorPalette.SUCCESS.get(Styles.theme)}; font-weight: bold;")
        self.completed_label.setVisible(False)
        progress_row.addWidget(self.completed_label)
        layout.addLayout(progress_row)

        body_row = QHBoxLayout()

        side_column = QVBoxLayout()
        lessons_group = QGroupBox("Lessons", self)
        lessons_layout = QVBoxLayout()
        lessons_group.setLayout(lessons_layout)
        self.lesson_list = QListWidget(self)
        self.lesson_list.currentItemChanged.connect(self._handle_lesson_selected)
        lessons_layout.addWidget(self.lesson_list)
        self.mark_complete_button = QPushButton(COURSE_MARK_COMPLETE_BUTTON, self)
        self.mark_complete_button.clicked.connect(self._handle_mark_complete)
        lessons_layout.addWidget(self.mark_complete_button)
        side_column.addWidget(lessons_group, stretch=2)

        quizzes_group = QGroupBox("Quizzes", self)
        quizzes_layout = QVBoxLayout()
        quizzes_group.setLayout(quizzes_layout)
        self.quiz_list = QListWidget(self)
        self.quiz_list.currentItemChanged.connect(self._update_buttons)
        quizzes_layout.addWidget(self.quiz_list)
        self.start_quiz_button = QPushButton(COURSE_START_QUIZ_BUTTON, self)
        self.start_quiz_button.clicked.connect(self._handle_start_quiz)
        quizzes_layout.addWidget(self.start_quiz_button)
        side_column.addWidget(quizzes_group, stretch=1)

        body_row.addLayout(side_column, stretch=1)

        self.lesson_view = QWebEngineView(self)
        body_row.addWidget(self.lesson_view, stretch=3)
        layout.addLayout(body_row, stretch=1)

        self.status_label = QLabel("", self)
        self.status_label.setStyleSheet(Styles.get_secondary_label_style(Styles.theme))
        layout.addWidget(self.status_label)

    # --- Data ---

    def reload_courses(self) -> None:
        current_id = self.current_course_id()
        self.course_combo.blockSignals(True)
        self.course_combo.clear()
        for course in self.course_manager.list_courses():
            self.course_combo.addItem(course.title, course.id)
        if current_id is not None:
            index = self.course_combo.findData(current_id)
            if index >= 0:
                self.course_combo.setCurrentIndex(index)
        self.course_combo.blockSignals(False)
        self.refresh()

    def current_course_id(self) -> str | None:
        return self.course_combo.currentData()

    def _current_course(self) -> Course | None:
        course_id = self.current_course_id()
        if course_id is None:
            return None
        try:
            return self.course_manager.get_course(course_id)
        except CourseAppError:
            return None

    def refresh(self) -> None:
        """Re-read progress and eligibility; keeps the current selections."""
        course = self._current_course()
        progress = self._read_progress(course)
        self._update_progress(progress)
        self._populate_lessons(course, progress)
        self._populate_quizzes(course)
        self._update_buttons()

    def _read_progress(self, course: Course | None) -> StudentProgress | None:
        if course is None:
            return None
        try:
            return self.course_manager.get_progress(self.user, course.id)
        except CourseAppError as exc:
            self.status_label.setText(str(exc))
            return None

    def _update_progress(self, progress: StudentProgress | None) -> None:
        enrolled = progress is not None
        percent = progress.overall_progress if enrolled else 0
        self.progress_label.setText(
            COURSE_PROGRESS_TEMPLATE.format(percent=percent) if enrolled else COURSE_NOT_ENROLLED_MESSAGE
        )
        self.progress_bar.setValue(percent)
        self.progress_bar.setVisible(enrolled)
        self.completed_label.setVisible(enrolled and progress.course_completed)
        self.enroll_button.setVisible(not enrolled and not self.user.is_teacher)
        self._enrolled = enrolled

    def _populate_lessons(self, course: Course | None, progress: StudentProgress | None) -> None:
        selected_id = self._selected_data(self.lesson_list)
        self.lesson_list.blockSignals(True)
        self.lesson_list.clear()
        lessons = course.all_lessons() if course else []
        for number, lesson in enumerate(lessons, start=1):
            done = progress is not None and progress.is_lesson_completed(lesson.id)
            item = QListWidgetItem(f"{number}. {lesson.title}" + ("  ✓" if done else ""))
            item.setData(Qt.UserRole, lesson.id)
            if done:
                item.setBackground(QBrush(QColor(ColorPalette.LESSON_COMPLETED.get(Styles.theme))))
            self.lesson_list.addItem(item)
            if lesson.id == selected_id:
                self.lesson_list.setCurrentItem(item)
        self.lesson_list.blockSignals(False)
        if self.lesson_list.currentItem() is None and self.lesson_list.count():
            self.lesson_list.setCurrentRow(0)
        elif self.lesson_list.currentItem() is None:
            self.lesson_view.setHtml("")

    def _populate_quizzes(self, course: Course | None) -> None:
        selected_id = self._selected_data(self.quiz_list)
        self.quiz_list.blockSignals(True)
        self.quiz_list.clear()
        for placement in course.all_quizzes() if course else []:
            decision = self.course_manager.check_quiz_eligibility(self.user, course.id, placement.quiz.id)
            if decision.eligible:
                text = QUIZ_AVAILABLE_TEMPLATE.format(
                    title=placement.quiz.title, attempts_left=decision.attempts_left
                )
            else:
                text = QUIZ_LOCKED_TEMPLATE.format(
                    title=placement.quiz.title, reason=_REASON_TEXT.get(decision.reason, decision.reason.value)
                )
            item = QListWidgetItem(text)
            item.setData(Qt.UserRole, placement.quiz.id)
            item.setData(Qt.UserRole + 1, decision.eligible)
            if not decision.eligible:
                item.setForeground(QBrush(QColor(ColorPalette.QUIZ_LOCKED.get(Styles.theme))))
            self.quiz_list.addItem(item)
            if placement.quiz.id == selected_id:
                self.quiz_list.setCurrentItem(item)
        self.quiz_list.blockSignals(False)

    @staticmethod
    def _selected_data(widget: QListWidget) -> str | None:
        item = widget.currentItem()
        return item.data(Qt.UserRole) if item is not None else None

    def _update_buttons(self, *_args) -> None:
        is_student = not self.user.is_teacher
        enrolled = self._enrolled
        lesson_selected = self.lesson_list.currentItem() is not None
        quiz_item = self.quiz_list.currentItem()
        self.mark_complete_button.setEnabled(is_student and enrolled and lesson_selected)
        self.start_quiz_button.setEnabled(
            is_student and quiz_item is not None and bool(quiz_item.data(Qt.UserRole + 1))
        )

    def set_font_size(self, font_size: int) -> None:
        self._lesson_font_size = font_size
        self._handle_lesson_selected(self.lesson_list.currentItem())

    # --- Handlers ---

    def _handle_course_changed(self, _index: int) -> None:
        self.lesson_list.clearSelection()
        self.quiz_list.clearSelection()
        self.refresh()

    def _handle_lesson_selected(self, item: QListWidgetItem | None, _previous=None) -> None:
        course = self._current_course()
        if item is None or course is None:
            return
        lesson_id = item.data(Qt.UserRole)
        lesson = next((lesson for lesson in course.all_lessons() if lesson.id == lesson_id), None)
        if lesson is not None:
            self.lesson_view.setHtml(render_lesson_document(lesson, font_size=self._lesson_font_size))
        self._update_buttons()

    def _handle_enroll(self) -> None:
        course_id = self.current_course_id()
        if course_id is None:
            return
        try:
            self.course_manager.enroll(self.user, course_id)
            self.status_label.setText("Enrolled. Start with the first lesson.")
        except ProgressPersistenceError as exc:
            show_save_failed(self, str(exc))
        except CourseAppError as exc:
            show_error(self, "Enrollment failed", str(exc))
        self.refresh()

    def _handle_mark_complete(self) -> None:
        course_id = self.current_course_id()
        lesson_id = self._selected_data(self.lesson_list)
        if course_id is None or lesson_id is None:
            return
        try:
            progress = self.course_manager.mark_lesson_completed(self.user, course_id, lesson_id)
            self.status_label.setText(COURSE_PROGRESS_TEMPLATE.format(percent=progress.overall_progress))
        except ProgressPersistenceError as exc:
            show_save_failed(self, str(exc))
        except CourseAppError as exc:
            show_error(self, "Could not update progress", str(exc))
        self.refresh()

    def _handle_start_quiz(self) -> None:
        course_id = self.current_course_id()
        quiz_id = self._selected_data(self.quiz_list)
        if course_id is None or quiz_id is None:
            return
        self.on_start_quiz(course_id, quiz_id)
