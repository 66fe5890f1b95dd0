"""Helpers for the terminal UI.

Everything here returns plain ``(style, text)`` lines so the content can be
tested without a terminal; ``flashquiz.tui`` turns them into rich renderables.
"""

from __future__ import annotations

from typing import Optional

from flashquiz.layout import wrap_paragraphs
from flashquiz.models import EvaluationOutcome, Flashcard, SessionAssessment

StyledLine = tuple[str, str]

INPUT_PLACEHOLDER = "[Type your answer here...]"
EVALUATING_MESSAGE = "AI is evaluating your answer..."
ASSESSING_MESSAGE = "Analyzing session..."


def truncate_string(s: str, max_len: int) -> str:
    """Shorten ``s`` to ``max_len`` characters, ending with '...' when cut."""
    if len(s) <= max_len:
        return s
    if max_len <= 3:
        return s[:max_len]
    return s[: max_len - 3] + "..."


def progress_text(current_index: int, total: int, deck_name: str) -> str:
    return f"Question {current_index + 1} / {total} - {deck_name}"


def grade_style(percentage: float) -> str:
    if percentage >= 70:
        return "green"
    if percentage >= 40:
        return "yellow"
    return "red"


def answer_view_lines(
    card: Flashcard,
    outcome: Optional[EvaluationOutcome],
    ai_enabled: bool,
) -> list[StyledLine]:
    """Reference answer, the submitted answer and the evaluation state."""
    lines: list[StyledLine] = [("bold green", "Correct Answer:"), ("", "")]
    lines.extend(("", part) for part in card.answer.split("\n"))
    if card.user_answer is not None:
        lines += [("", ""), ("bold yellow", "Your Answer:")]
        lines.extend(("", part) for part in card.user_answer.split("\n"))

    pending = outcome is not None and outcome.is_pending
    failed = outcome is not None and outcome.is_terminal and outcome.reason

    if card.feedback is not None:
        feedback = card.feedback
        lines += [
            ("", ""),
            ("bold", "AI Evaluation:"),
            ("", f"Score: {feedback.correctness_score * 100:.0f}% - {feedback.label()}"),
        ]
        if feedback.corrections:
            lines += [("", ""), ("", "Corrections:")]
            lines.extend(("", f"• {c}") for c in feedback.corrections)
        lines += [("", ""), ("", "Explanation:")]
        lines.extend(("", part) for part in feedback.explanation.split("\n"))
        if feedback.suggestions:
            lines += [("", ""), ("", "Suggestions:")]
            lines.extend(("", f"• {s}") for s in feedback.suggestions)

    if failed:
        lines += [("", ""), ("red", outcome.reason)]
    elif pending and ai_enabled:
        lines += [("", ""), ("italic", EVALUATING_MESSAGE)]
    return lines


def summary_lines(
    answered: int,
    average_score: float,
    assessment: Optional[SessionAssessment],
    loading: bool,
    error: Optional[str],
) -> list[StyledLine]:
    lines: list[StyledLine] = [
        ("", f"Answered: {answered}  |  Avg Score: {average_score * 100:.0f}%"),
        ("", ""),
    ]
    if loading:
        lines.append(("bold yellow", ASSESSING_MESSAGE))
        return lines
    if error:
        lines += [("red", "Analysis unavailable"), ("", ""), ("red", error)]
        return lines
    if assessment is None:
        return lines

    style = grade_style(assessment.grade_percentage)
    lines += [
        (f"bold {style}", f"Grade: {assessment.grade_percentage:.0f}%  |  {assessment.mastery_level}"),
        ("", ""),
        ("bold cyan", "Feedback:"),
    ]
    lines.extend(("", part) for part in assessment.overall_feedback.split("\n"))
    lines.append(("", ""))
    if assessment.strengths:
        lines.append(("bold green", "Strengths:"))
        lines.extend(("", f"  ✓ {s}") for s in assessment.strengths)
        lines.append(("", ""))
    if assessment.weaknesses:
        lines.append(("bold red", "Areas to Improve:"))
        lines.extend(("", f"  ✗ {w}") for w in assessment.weaknesses)
        lines.append(("", ""))
    if assessment.suggestions:
        lines.append(("bold cyan", "Suggestions:"))
        lines.extend(("", f"  {i}. {s}") for i, s in enumerate(assessment.suggestions, 1))
    return lines


def wrap_styled(lines: list[StyledLine], width: int) -> list[StyledLine]:
    """Wrap each styled line to ``width`` so scrolling counts visual rows."""
    wrapped: list[StyledLine] = []
    for style, text in lines:
        wrapped.extend((style, row) for row in wrap_paragraphs([text], width))
    return wrapped


def calculate_max_scroll(content_height: int, visible_height: int) -> int:
    return max(0, content_height - max(1, visible_height))


def visible_window(lines: list, scroll: int, height: int) -> tuple[list, int]:
    """Slice ``lines`` for display; returns the slice and the clamped scroll."""
    scroll = min(max(0, scroll), calculate_max_scroll(len(lines), height))
    return lines[scroll : scroll + max(1, height)], scroll
