"""Tests for session history helpers."""

from flashquiz.models import SessionSummary
from flashquiz.services.session_history import summarize_sessions


def test_summarize_sessions_returns_stats_and_rows():
    sessions = [
        SessionSummary(
            id="bbbb2222",
            deck_name="rust",
            started_at=1_800_000_000.0,
            completed_at=1_800_000_600.0,
            questions_total=10,
            questions_answered=10,
            average_score=0.8,
        ),
        SessionSummary(
            id="cccc3333",
            deck_name="python",
            started_at=1_799_990_000.0,
            questions_total=5,
            questions_answered=1,
        ),
        SessionSummary(
            id="aaaa1111",
            deck_name="rust",
            started_at=1_799_900_000.0,
            completed_at=1_799_900_600.0,
            questions_total=10,
            questions_answered=8,
            average_score=0.5,
        ),
    ]

    summary = summarize_sessions(sessions)

    assert len(summary["rows"]) == 3
    assert summary["rows"][0]["Status"] == "completed"
    assert summary["rows"][1]["Status"] == "in progress"
    assert summary["rows"][1]["Score"] == "-"
    assert summary["rows"][2]["Answered"] == "8/10"
    assert summary["rows"][0]["Score"] == "80%"
    assert summary["stats"]["best"] == 0.8
    assert summary["stats"]["worst"] == 0.5
    assert round(summary["stats"]["trend"], 4) == 0.3
    assert summary["best"].id == "bbbb2222"


def test_summarize_sessions_empty():
    summary = summarize_sessions([])

    assert summary == {"rows": [], "stats": None, "best": None}
