"""Component for the teacher's course statistics dashboard."""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from course_app.constants.ui_constants import (
    EXPORT_DIALOG_TITLE,
    EXPORT_FILE_FILTER,
    EXPORT_QUIZ_BUTTON,
    STATISTICS_EMPTY_STATE,
    STATISTICS_QUIZ_TEMPLATE,
    STATISTICS_TOP_STUDENTS_TITLE,
    STATISTICS_TOTALS_TEMPLATE,
)
from course_app.core.course_manager import CourseManager
from course_app.core.errors import CourseAppError
from course_app.core.models import AppUser
from course_app.core.quiz_exporter import save_quiz_to_file
from course_app.styling.styles import Styles
from course_app.ui.dialog_helpers import show_error, show_info

_STUDENT_COLUMNS = ("Student", "Progress", "Lessons", "Quizzes passed", "Avg. best score", "Completed")


class StatisticsPanel(QWidget):
    """Totals, per-student progress and quiz results for the teacher's courses."""

    def __init__(
        self,
        course_manager: CourseManager,
        user: AppUser,
        scoreboard_size: int = 3,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.course_manager = course_manager
        self.user = user
        self._scoreboard_size = scoreboard_size
        self._last_export_path: Path | None = None

        self._build_ui()
        self.refresh()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.totals_label = QLabel("", self)
        self.totals_label.setStyleSheet(Styles.get_large_label_style())
        layout.addWidget(self.totals_label)

        course_row = QHBoxLayout()
        self.course_combo = QComboBox(self)
        self.course_combo.currentIndexChanged.connect(self._handle_course_changed)
        course_row.addWidget(self.course_combo, stretch=1)
        layout.addLayout(course_row)

        body_row = QHBoxLayout()
        self.student_table = QTableWidget(0, len(_STUDENT_COLUMNS), self)
        self.student_table.setHorizontalHeaderLabels(list(_STUDENT_COLUMNS))
        self.student_table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.student_table.setEditTriggers(QTableWidget.NoEditTriggers)
        body_row.addWidget(self.student_table, stretch=3)

        self.top_group = QGroupBox(STATISTICS_TOP_STUDENTS_TITLE, self)
        self.top_group.setMinimumWidth(240)
        self.top_layout = QVBoxLayout()
        self.top_layout.setAlignment(Qt.AlignTop)
        self.top_group.setLayout(self.top_layout)
        self.top_labels: list[QLabel] = []
        body_row.addWidget(self.top_group, stretch=1)
        layout.addLayout(body_row, stretch=1)

        self.empty_label = QLabel(STATISTICS_EMPTY_STATE, self)
        self.empty_label.setStyleSheet(Styles.get_secondary_label_style(Styles.theme))
        layout.addWidget(self.empty_label)

        quiz_row = QHBoxLayout()
        self.quiz_combo = QComboBox(self)
        self.quiz_combo.currentIndexChanged.connect(self._refresh_quiz_statistics)
        quiz_row.addWidget(self.quiz_combo, stretch=1)
        self.quiz_stats_label = QLabel("", self)
        quiz_row.addWidget(self.quiz_stats_label, stretch=2)
        self.export_button = QPushButton(EXPORT_QUIZ_BUTTON, self)
        self.export_button.clicked.connect(self._handle_export_quiz)
        quiz_row.addWidget(self.export_button)
        layout.addLayout(quiz_row)

        self._rebuild_top_labels()

    def _rebuild_top_labels(self) -> None:
        for label in self.top_labels:
            self.top_layout.removeWidget(label)
            label.deleteLater()
        self.top_labels = []
        for _ in range(self._scoreboard_size):
            label = QLabel("", self)
            self.top_layout.addWidget(label)
            self.top_labels.append(label)

    # --- Data ---

    def refresh(self) -> None:
        totals = self.course_manager.get_teacher_statistics(self.user)
        self.totals_label.setText(
            STATISTICS_TOTALS_TEMPLATE.format(
                courses=totals.total_courses,
                enrollments=totals.total_enrollments,
                students=totals.total_students,
                lessons=totals.total_lessons,
            )
        )
        self._reload_course_choices()
        self._refresh_course_tables()
        self._refresh_quiz_statistics()

    def _reload_course_choices(self) -> None:
        current_id = self.course_combo.currentData()
        courses = [course for course in self.course_manager.list_courses() if course.teacher_id == self.user.id]
        self.course_combo.blockSignals(True)
        self.course_combo.clear()
        for course in courses:
            self.course_combo.addItem(course.title, course.id)
        index = self.course_combo.findData(current_id) if current_id is not None else -1
        if index >= 0:
            self.course_combo.setCurrentIndex(index)
        self.course_combo.blockSignals(False)
        self._reload_quiz_choices()

    def _reload_quiz_choices(self) -> None:
        current_id = self.quiz_combo.currentData()
        self.quiz_combo.blockSignals(True)
        self.quiz_combo.clear()
        course_id = self.course_combo.currentData()
        if course_id is not None:
            try:
                course = self.course_manager.get_course(course_id)
            except CourseAppError:
                course = None
            for placement in course.all_quizzes() if course else []:
                self.quiz_combo.addItem(placement.quiz.title, placement.quiz.id)
        index = self.quiz_combo.findData(current_id) if current_id is not None else -1
        if index >= 0:
            self.quiz_combo.setCurrentIndex(index)
        self.quiz_combo.blockSignals(False)
        self.export_button.setEnabled(self.quiz_combo.count() > 0)

    def _refresh_course_tables(self) -> None:
        course_id = self.course_combo.currentData()
        rows = []
        top_rows = []
        if course_id is not None:
            try:
                rows = self.course_manager.get_course_student_progress(self.user, course_id)
                top_rows = self.course_manager.get_top_students(self.user, course_id, self._scoreboard_size)
            except CourseAppError as exc:
                self.empty_label.setText(str(exc))

        self.student_table.setRowCount(len(rows))
        for row_index, row in enumerate(rows):
            values = (
                row.display_name,
                f"{row.overall_progress}%",
                str(row.completed_lessons),
                str(row.quizzes_passed),
                f"{row.average_best_score:.1f}%",
                "Yes" if row.course_completed else "No",
            )
            for column, value in enumerate(values):
                self.student_table.setItem(row_index, column, QTableWidgetItem(value))
        self.empty_label.setVisible(not rows)

        for position, label in enumerate(self.top_labels):
            if position < len(top_rows):
                row = top_rows[position]
                label.setText(f"{position + 1}. {row.display_name}: {row.overall_progress}%")
            else:
                label.setText("")

    def _refresh_quiz_statistics(self, *_args) -> None:
        course_id = self.course_combo.currentData()
        quiz_id = self.quiz_combo.currentData()
        if course_id is None or quiz_id is None:
            self.quiz_stats_label.setText("")
            return
        try:
            stats = self.course_manager.get_quiz_statistics(self.user, course_id, quiz_id)
        except CourseAppError as exc:
            self.quiz_stats_label.setText(str(exc))
            return
        self.quiz_stats_label.setText(
            STATISTICS_QUIZ_TEMPLATE.format(
                attempts=stats.attempts,
                students=stats.students,
                average=stats.average_score,
                best=stats.best_score,
                pass_rate=stats.pass_rate,
            )
        )

    # --- Handlers ---

    def _handle_course_changed(self, _index: int) -> None:
        self._reload_quiz_choices()
        self._refresh_course_tables()
        self._refresh_quiz_statistics()

    def _handle_export_quiz(self) -> None:
        course_id = self.course_combo.currentData()
        quiz_id = self.quiz_combo.currentData()
        if course_id is None or quiz_id is None:
            return
        placement = self.course_manager.get_course(course_id).find_quiz(quiz_id)
        if placement is None:
            return

        default_path = self._last_export_path or (Path.cwd() / f"{quiz_id}.txt")
        file_path, _ = QFileDialog.getSaveFileName(
            self,
            EXPORT_DIALOG_TITLE,
            str(default_path),
            EXPORT_FILE_FILTER,
        )
        if not file_path:
            return

        try:
            save_quiz_to_file(Path(file_path), placement.quiz)
        except OSError as exc:
            show_error(self, "Export failed", str(exc))
            return

        self._last_export_path = Path(file_path)
        show_info(self, "Quiz saved", f"Quiz exported to {file_path}.")
