"""Exception hierarchy for the course engine."""

from __future__ import annotations


class CourseAppError(Exception):
    """Base class for errors raised by the course engine."""


class QuizValidationError(CourseAppError, ValueError):
    """Raised when a quiz definition is malformed."""


class QuizImportError(CourseAppError):
    """Raised when a quiz file cannot be parsed."""


class StoreError(CourseAppError):
    """Raised by a backing store on a transient read or write failure."""


class ProgressPersistenceError(CourseAppError):
    """Raised when a progress change could not be written to the store.

    The change is kept in memory and retried on the next read, so the caller
    only has to tell the user that the result may not be recorded yet.
    """

    def __init__(self, course_id: str, message: str | None = None, progress=None) -> None:
        super().__init__(message or f"Progress for course {course_id!r} could not be saved.")
        self.course_id = course_id
        # In-memory state that is still waiting to be written.
        self.progress = progress


class CourseNotFoundError(CourseAppError, LookupError):
    """Raised when a course id does not resolve to a course."""


class QuizLoadError(CourseAppError):
    """Raised when a quiz cannot be loaded, which prevents starting an attempt."""


class NotEnrolledError(CourseAppError):
    """Raised when a student has no progress record for a course."""


class AttemptLimitError(CourseAppError):
    """Raised when recording an attempt beyond the quiz's attempt allowance."""


class QuizNotEligibleError(CourseAppError):
    """Raised when a student tries to start a quiz they may not take yet."""

    def __init__(self, decision) -> None:
        super().__init__(f"Quiz {decision.quiz_id!r} is not available: {decision.reason.value}")
        self.decision = decision


class AccessDeniedError(CourseAppError, PermissionError):
    """Raised when the current user's role does not allow an operation."""


class NoActiveSessionError(CourseAppError):
    """Raised when an operation needs an active quiz session and there is none."""
