"""Utilities for importing quizzes from a human-friendly text file.

File format: an optional header block, then question blocks, separated by
blank lines or '---':

    TITLE: Fractions
    PASSING: 70        (percentage, optional)
    TIMELIMIT: 15      (minutes, optional)
    ATTEMPTS: 3        (optional)
    ---
    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    A: First option
    B: Second option   (two to six options, lettered A-F)
    CORRECT: B
    POINTS: 2          (optional, defaults to 1)
    EXPLANATION: Shown when reviewing the attempt (optional)

The header block is recognised by not containing a ``Q:`` line.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from course_app.constants.quiz_constants import (
    DEFAULT_PASSING_SCORE,
    DEFAULT_QUESTION_POINTS,
    MAX_OPTIONS_PER_QUESTION,
)
from course_app.core.errors import QuizImportError, QuizValidationError
from course_app.core.models import Quiz, QuizQuestion

OPTION_LETTERS = tuple("ABCDEF"[:MAX_OPTIONS_PER_QUESTION])
_HEADER_KEYS = ("ID", "TITLE", "DESCRIPTION", "PASSING", "TIMELIMIT", "ATTEMPTS")


@dataclass(slots=True)
class ImportedQuiz:
    """Container for the imported quiz and where it came from."""

    source_path: Path
    quiz: Quiz


def load_quiz_from_file(file_path: Path) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    quiz = parse_quiz_text(text, default_id=file_path.stem, default_title=file_path.stem.replace("_", " "))
    return ImportedQuiz(source_path=file_path, quiz=quiz)


def parse_quiz_text(text: str, *, default_id: str = "quiz", default_title: str = "Quiz") -> Quiz:
    blocks = _split_blocks(text)
    header: dict[str, str] = {}
    if blocks and not any(line.strip().upper().startswith("Q:") for line in blocks[0].splitlines()):
        header = _parse_header(blocks.pop(0))

    questions = [_parse_block(block, index) for index, block in enumerate(blocks, start=1)]
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")

    try:
        return Quiz(
            id=header.get("ID") or default_id,
            title=header.get("TITLE") or default_title,
            description=header.get("DESCRIPTION"),
            questions=tuple(questions),
            passing_score=_parse_int(header, "PASSING", DEFAULT_PASSING_SCORE),
            time_limit_minutes=_parse_int(header, "TIMELIMIT", None),
            max_attempts=_parse_int(header, "ATTEMPTS", None),
        )
    except QuizValidationError as exc:
        raise QuizImportError(str(exc)) from exc


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---" or not stripped:
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        current_block.append(raw_line)
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _parse_header(block: str) -> dict[str, str]:
    header: dict[str, str] = {}
    for raw_line in block.splitlines():
        line = raw_line.strip()
        key, separator, value = line.partition(":")
        key = key.strip().upper()
        if not separator or key not in _HEADER_KEYS:
            raise QuizImportError(f"Encountered text outside of a known header field: '{line}'.")
        header[key] = value.strip()
    return header


def _parse_int(header: dict[str, str], key: str, default: int | None) -> int | None:
    raw_value = header.get(key)
    if raw_value is None or raw_value == "":
        return default
    try:
        return int(raw_value)
    except ValueError as exc:
        raise QuizImportError(f"{key} must be an integer.") from exc


def _parse_block(block: str, position: int) -> QuizQuestion:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    explanation_lines: list[str] = []
    correct_letter: str | None = None
    points = DEFAULT_QUESTION_POINTS
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        upper = line.upper()

        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if upper.startswith("POINTS:"):
            raw_value = line.split(":", 1)[1].strip()
            try:
                points = int(raw_value)
            except ValueError as exc:
                raise QuizImportError("POINTS must be a positive integer.") from exc
            current_section = None
            continue

        if upper.startswith("EXPLANATION:"):
            explanation_lines = [line.split(":", 1)[1].strip()]
            current_section = "EXPLANATION"
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "EXPLANATION":
            explanation_lines.append(line)
        elif current_section in OPTION_LETTERS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(f"Encountered text outside of a known section: '{line}'.")

    if not question_lines:
        raise QuizImportError("Question text missing (Q: ...)")

    letters = list(OPTION_LETTERS[: len(options)])
    if sorted(options) != letters:
        raise QuizImportError("Options must be lettered consecutively starting at A.")

    if correct_letter is None:
        raise QuizImportError("Each question needs a CORRECT line.")
    if correct_letter not in options:
        raise QuizImportError(f"CORRECT must be one of {', '.join(letters)}.")

    explanation = "\n".join(explanation_lines).strip() or None
    try:
        return QuizQuestion(
            id=f"q{position}",
            question="\n".join(question_lines).strip(),
            options=tuple(options[letter].strip() for letter in letters),
            correct_answer=letters.index(correct_letter),
            points=points,
            explanation=explanation,
        )
    except QuizValidationError as exc:
        raise QuizImportError(str(exc)) from exc
