"""Qt UI constants used across widgets."""

WINDOW_TITLE: str = "CourseQt"
PROGRESS_REFRESH_INTERVAL_MS: int = 2000

MODE_BUTTON_COURSE: str = "Course Overview"
MODE_BUTTON_STATISTICS: str = "Statistics"

COURSE_MARK_COMPLETE_BUTTON: str = "Mark Lesson Completed"
COURSE_START_QUIZ_BUTTON: str = "Start Quiz"
COURSE_PROGRESS_TEMPLATE: str = "Course progress: {percent}%"
COURSE_COMPLETED_LABEL: str = "Course completed"
COURSE_NOT_ENROLLED_MESSAGE: str = "You are not enrolled in this course yet."
COURSE_ENROLL_BUTTON: str = "Enroll"

QUIZ_PREV_BUTTON: str = "Previous Question"
QUIZ_NEXT_BUTTON: str = "Next Question"
QUIZ_SUBMIT_BUTTON: str = "Submit Quiz"
QUIZ_LEAVE_BUTTON: str = "Leave Quiz"
QUIZ_POSITION_TEMPLATE: str = "Question {current} of {total}"
QUIZ_ANSWERED_TEMPLATE: str = "{answered} of {total} answered"
QUIZ_TIME_TEMPLATE: str = "Time remaining: {countdown}"

STATISTICS_EMPTY_STATE: str = "No students enrolled yet."
STATISTICS_TOTALS_TEMPLATE: str = (
    "{courses} course(s) · {enrollments} enrollment(s) · "
    "{students} student(s) · {lessons} lesson(s)"
)

RESULT_SAVE_FAILED_MESSAGE: str = (
    "Your quiz was graded, but the result could not be saved. "
    "Your score may not be recorded yet; it will be retried automatically."
)
QUIZ_LOAD_FAILED_MESSAGE: str = "The quiz could not be loaded."

QUIZ_BACK_BUTTON: str = "Back to Course"
QUIZ_LOCKED_TEMPLATE: str = "{title} (locked: {reason})"
QUIZ_AVAILABLE_TEMPLATE: str = "{title} ({attempts_left} attempt(s) left)"
QUIZ_REVIEW_TEMPLATE: str = "Review: {score}% ({verdict})"

STATISTICS_QUIZ_TEMPLATE: str = (
    "{attempts} attempt(s) by {students} student(s) · average {average}% · "
    "best {best}% · pass rate {pass_rate}%"
)
STATISTICS_TOP_STUDENTS_TITLE: str = "Top students"
EXPORT_QUIZ_BUTTON: str = "Export Quiz…"
EXPORT_DIALOG_TITLE: str = "Export quiz"
EXPORT_FILE_FILTER: str = "Text Files (*.txt);;All Files (*)"
