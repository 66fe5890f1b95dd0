"""Session history summarization for the command line listing."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from flashquiz.models import SessionSummary


def _timestamp(value: float | None) -> str:
    if value is None:
        return ""
    return datetime.fromtimestamp(value).isoformat(sep=" ", timespec="seconds")


def summarize_sessions(sessions: list[SessionSummary]) -> dict[str, Any]:
    """Rows for display plus aggregate score statistics."""
    rows: list[dict[str, Any]] = []
    scores: list[float] = []
    for idx, session in enumerate(sessions, 1):
        rows.append(
            {
                "#": idx,
                "ID": session.id,
                "Deck": session.deck_name,
                "Started": _timestamp(session.started_at),
                "Status": "completed" if session.completed_at else "in progress",
                "Answered": f"{session.questions_answered}/{session.questions_total}",
                "Score": (
                    f"{session.average_score * 100:.0f}%"
                    if session.average_score is not None
                    else "-"
                ),
            }
        )
        if session.average_score is not None:
            scores.append(session.average_score)

    stats = None
    if scores:
        # Sessions arrive newest first, so the trend runs oldest -> newest.
        stats = {
            "best": max(scores),
            "worst": min(scores),
            "avg": sum(scores) / len(scores),
            "trend": scores[0] - scores[-1],
        }

    best = None
    scored = [s for s in sessions if s.average_score is not None]
    if scored:
        best = max(scored, key=lambda s: s.average_score)

    return {"rows": rows, "stats": stats, "best": best}
