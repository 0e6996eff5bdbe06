from datetime import datetime, timezone

from course_app.core.errors import StoreError
from course_app.core.models import Quiz, QuizQuestion, QuizResult
from course_app.core.stores import InMemoryProgressStore


class FlakyProgressStore(InMemoryProgressStore):
    """Progress store whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False
        self.reject_writes = False
        self.write_calls = 0

    def write_progress(self, progress):
        self.write_calls += 1
        if self.fail_writes:
            raise StoreError("progress backend unavailable")
        if self.reject_writes:
            return False
        return super().write_progress(progress)


def make_question(question_id, correct=0, points=1, option_count=4):
    return QuizQuestion(
        id=question_id,
        question=f"Question {question_id}?",
        options=tuple(f"Option {index}" for index in range(option_count)),
        correct_answer=correct,
        points=points,
        explanation=f"Because of {question_id}.",
    )


def make_quiz(quiz_id, question_count=4, points=1, **kwargs):
    questions = tuple(make_question(f"q{index}", points=points) for index in range(1, question_count + 1))
    return Quiz(id=quiz_id, title=f"Quiz {quiz_id}", questions=questions, **kwargs)


def make_result(quiz_id, score, passed, attempt_number=1, time_taken_seconds=30):
    return QuizResult(
        quiz_id=quiz_id,
        score=score,
        passed=passed,
        total_questions=4,
        correct_answers=score * 4 // 100,
        attempt_number=attempt_number,
        completed_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        time_taken_seconds=time_taken_seconds,
    )
