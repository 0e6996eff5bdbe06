import pytest

from course_app.core.models import StudentProgress
from course_app.core.services.eligibility import EligibilityReason, EligibilityResolver
from factories import make_result


@pytest.fixture
def resolver():
    return EligibilityResolver()


def make_progress(completed=(), overall=0, course_completed=False):
    return StudentProgress(
        student_id="student-1",
        course_id="algebra",
        enrollment_id="enrollment-1",
        completed_lessons=list(completed),
        overall_progress=overall,
        course_completed=course_completed,
    )


def test_module_quiz_needs_every_module_lesson(resolver, course):
    decision = resolver.check(course, make_progress(["l1"]), "m1-quiz")

    assert not decision.eligible
    assert decision.reason is EligibilityReason.MODULE_INCOMPLETE
    assert decision.missing_lessons == ("l2",)

    decision = resolver.check(course, make_progress(["l1", "l2"]), "m1-quiz")

    assert decision.eligible
    assert decision.reason is EligibilityReason.ELIGIBLE
    assert decision.attempts_left == 2


def test_lesson_quiz_inside_a_module_uses_the_module_rule(resolver, course):
    assert not resolver.can_take_quiz(course, make_progress(["l3"]), "l3-quiz")
    assert resolver.can_take_quiz(course, make_progress(["l3", "l4"]), "l3-quiz")


def test_missing_progress_means_not_enrolled(resolver, course):
    decision = resolver.check(course, None, "m1-quiz")

    assert not decision.eligible
    assert decision.reason is EligibilityReason.NOT_ENROLLED


def test_exhausted_attempts_win_over_completed_lessons(resolver, course):
    progress = make_progress(["l1", "l2"])
    progress.quiz_results["m1-quiz"] = [
        make_result("m1-quiz", 10, False, attempt_number=1),
        make_result("m1-quiz", 20, False, attempt_number=2),
    ]

    decision = resolver.check(course, progress, "m1-quiz")

    assert not decision.eligible
    assert decision.reason is EligibilityReason.ATTEMPTS_EXHAUSTED
    assert decision.attempts_used == 2
    assert decision.attempts_left == 0


def test_attempts_below_the_cap_continue_evaluation(resolver, course):
    progress = make_progress(["l1", "l2"])
    progress.quiz_results["m1-quiz"] = [make_result("m1-quiz", 10, False)]

    decision = resolver.check(course, progress, "m1-quiz")

    assert decision.eligible
    assert decision.attempts_left == 1


def test_final_quiz_needs_the_whole_course(resolver, course):
    decision = resolver.check(course, make_progress(["l1", "l2", "l3"], overall=75), "final")

    assert not decision.eligible
    assert decision.reason is EligibilityReason.COURSE_INCOMPLETE
    assert decision.missing_lessons == ("l4",)

    assert resolver.can_take_quiz(course, make_progress(["l1", "l2", "l3", "l4"], overall=100), "final")
    assert resolver.can_take_quiz(course, make_progress(course_completed=True), "final")


def test_undeterminable_owner_fails_closed(resolver, course, flat_course):
    assert resolver.check(course, make_progress(), "missing").reason is EligibilityReason.UNKNOWN_PLACEMENT

    decision = resolver.check(flat_course, make_progress(["f1", "f2"], overall=100), "f1-quiz")

    assert not decision.eligible
    assert decision.reason is EligibilityReason.UNKNOWN_PLACEMENT
