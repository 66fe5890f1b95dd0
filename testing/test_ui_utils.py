"""Tests for UI helper utilities."""

from flashquiz.models import EvaluationOutcome, Flashcard, Judgment, SessionAssessment
from flashquiz.services.evaluation import build_request
from flashquiz.ui_utils import (
    EVALUATING_MESSAGE,
    answer_view_lines,
    calculate_max_scroll,
    summary_lines,
    truncate_string,
    visible_window,
    wrap_styled,
)


def texts(lines):
    return [text for _, text in lines]


def test_truncate_string():
    assert truncate_string("Short string", 20) == "Short string"
    assert truncate_string("This is a very long string that should be truncated", 20) == (
        "This is a very lo..."
    )
    assert truncate_string("", 20) == ""
    assert truncate_string("abcdef", 2) == "ab"


def test_answer_view_shows_feedback():
    card = Flashcard(
        question="Q",
        answer="Each value has one owner",
        user_answer="one owner",
        feedback=Judgment(
            is_correct=False,
            correctness_score=0.6,
            corrections=["Mention drop"],
            explanation="Almost.",
        ),
    )

    lines = texts(answer_view_lines(card, None, ai_enabled=True))

    assert "Correct Answer:" in lines
    assert "one owner" in lines
    assert "Score: 60% - Partially Correct" in lines
    assert "• Mention drop" in lines
    assert "Suggestions:" not in lines


def test_answer_view_pending_and_failed_outcomes():
    card = Flashcard(question="Q", answer="A", user_answer="a")
    pending = EvaluationOutcome.pending(build_request("Q", "A", "a"))

    assert EVALUATING_MESSAGE in texts(answer_view_lines(card, pending, ai_enabled=True))
    assert EVALUATING_MESSAGE not in texts(answer_view_lines(card, None, ai_enabled=True))

    failed = pending.timed_out("AI evaluation timed out - press Ctrl+E to retry")
    lines = answer_view_lines(card, failed, ai_enabled=True)
    assert lines[-1] == ("red", "AI evaluation timed out - press Ctrl+E to retry")


def test_summary_lines_with_assessment():
    assessment = SessionAssessment(
        grade_percentage=82,
        mastery_level="Advanced",
        overall_feedback="Great work.",
        strengths=["Ownership"],
        weaknesses=["Lifetimes"],
        suggestions=["Practice traits"],
    )

    lines = summary_lines(3, 0.75, assessment, loading=False, error=None)

    assert lines[0][1] == "Answered: 3  |  Avg Score: 75%"
    assert ("bold green", "Grade: 82%  |  Advanced") in lines
    assert "  ✗ Lifetimes" in texts(lines)
    assert "  1. Practice traits" in texts(lines)


def test_summary_lines_loading_and_error():
    assert texts(summary_lines(1, 0.0, None, loading=True, error=None))[-1] == "Analyzing session..."
    assert "boom" in texts(summary_lines(1, 0.0, None, loading=False, error="boom"))


def test_wrap_styled_keeps_style_per_row():
    assert wrap_styled([("bold", "hello world")], 5) == [("bold", "hello"), ("bold", "world")]


def test_visible_window_clamps_scroll():
    rows = list(range(10))

    assert calculate_max_scroll(10, 4) == 6
    assert visible_window(rows, 99, 4) == ([6, 7, 8, 9], 6)
    assert visible_window(rows, -3, 4) == ([0, 1, 2, 3], 0)
    assert visible_window(rows[:2], 5, 4) == ([0, 1], 0)
