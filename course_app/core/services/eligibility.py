"""Gating rules deciding whether a student may start a quiz."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging

from course_app.core.models import Course, StudentProgress

logger = logging.getLogger(__name__)


class EligibilityReason(Enum):
    ELIGIBLE = "eligible"
    NOT_ENROLLED = "not_enrolled"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    MODULE_INCOMPLETE = "module_incomplete"
    COURSE_INCOMPLETE = "course_incomplete"
    UNKNOWN_PLACEMENT = "unknown_placement"


@dataclass(slots=True, frozen=True)
class EligibilityDecision:
    quiz_id: str
    eligible: bool
    reason: EligibilityReason
    missing_lessons: tuple[str, ...] = field(default_factory=tuple)
    attempts_used: int = 0
    attempts_allowed: int = 0

    @property
    def attempts_left(self) -> int:
        return max(0, self.attempts_allowed - self.attempts_used)


class EligibilityResolver:
    """Applies the quiz gating rules in precedence order.

    1. Attempts already recorded must stay below the quiz's allowance.
    2. A module quiz (the module's own or one attached to a module lesson)
       needs every lesson of that module completed.
    3. The final quiz needs a completed course or 100% progress.
    4. Anything else fails closed.

    A student without a progress record is not enrolled and never eligible.
    """

    def check(self, course: Course, progress: StudentProgress | None, quiz_id: str) -> EligibilityDecision:
        placement = course.find_quiz(quiz_id)
        if placement is None:
            return self._deny(quiz_id, EligibilityReason.UNKNOWN_PLACEMENT)

        attempts_allowed = placement.quiz.effective_max_attempts
        if progress is None:
            return self._deny(quiz_id, EligibilityReason.NOT_ENROLLED, attempts_allowed=attempts_allowed)

        attempts_used = progress.attempt_count(quiz_id)
        if attempts_used >= attempts_allowed:
            return self._deny(
                quiz_id,
                EligibilityReason.ATTEMPTS_EXHAUSTED,
                attempts_used=attempts_used,
                attempts_allowed=attempts_allowed,
            )

        if placement.module is not None:
            missing = tuple(
                lesson_id
                for lesson_id in placement.module.lesson_ids
                if not progress.is_lesson_completed(lesson_id)
            )
            if missing:
                return self._deny(
                    quiz_id,
                    EligibilityReason.MODULE_INCOMPLETE,
                    missing_lessons=missing,
                    attempts_used=attempts_used,
                    attempts_allowed=attempts_allowed,
                )
            return self._allow(quiz_id, attempts_used, attempts_allowed)

        if placement.is_final:
            if progress.course_completed or progress.overall_progress >= 100:
                return self._allow(quiz_id, attempts_used, attempts_allowed)
            missing = tuple(
                lesson.id for lesson in course.all_lessons() if not progress.is_lesson_completed(lesson.id)
            )
            return self._deny(
                quiz_id,
                EligibilityReason.COURSE_INCOMPLETE,
                missing_lessons=missing,
                attempts_used=attempts_used,
                attempts_allowed=attempts_allowed,
            )

        return self._deny(
            quiz_id,
            EligibilityReason.UNKNOWN_PLACEMENT,
            attempts_used=attempts_used,
            attempts_allowed=attempts_allowed,
        )

    def can_take_quiz(self, course: Course, progress: StudentProgress | None, quiz_id: str) -> bool:
        return self.check(course, progress, quiz_id).eligible

    @staticmethod
    def _allow(quiz_id: str, attempts_used: int, attempts_allowed: int) -> EligibilityDecision:
        return EligibilityDecision(
            quiz_id=quiz_id,
            eligible=True,
            reason=EligibilityReason.ELIGIBLE,
            attempts_used=attempts_used,
            attempts_allowed=attempts_allowed,
        )

    @staticmethod
    def _deny(quiz_id: str, reason: EligibilityReason, **details) -> EligibilityDecision:
        logger.debug("Quiz %s not eligible: %s", quiz_id, reason.value)
        return EligibilityDecision(quiz_id=quiz_id, eligible=False, reason=reason, **details)
