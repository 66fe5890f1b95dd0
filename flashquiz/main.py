#!/usr/bin/env python3
"""Interactive flashcard quiz.

Usage:
    python -m flashquiz.main                          # List available decks
    python -m flashquiz.main flashcards/rust.csv      # Run a deck
    python -m flashquiz.main rust --shuffle           # Deck name from FLASHCARDS_DIR
    python -m flashquiz.main rust --no-ai             # Skip AI evaluation
    python -m flashquiz.main --list-sessions          # Show past sessions
    python -m flashquiz.main --delete-session ID      # Remove a stored session
"""

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from flashquiz.config import settings
from flashquiz.services.database import DatabaseService, StorageError
from flashquiz.services.deck import deck_name, list_decks, load_deck
from flashquiz.services.llm import EvaluatorClient
from flashquiz.services.session_history import summarize_sessions
from flashquiz.services.worker import WorkerSupervisor
from flashquiz.session import QuizSession
from flashquiz.tui import QuizApp

log = logging.getLogger(__name__)
console = Console()


def resolve_deck(value: str) -> Optional[Path]:
    """Accept a CSV path or a deck name inside FLASHCARDS_DIR."""
    path = Path(value)
    if path.is_file():
        return path
    for candidate in (
        Path(settings.FLASHCARDS_DIR) / value,
        Path(settings.FLASHCARDS_DIR) / f"{value}.csv",
    ):
        if candidate.is_file():
            return candidate
    return None


def print_decks(db: Optional[DatabaseService]) -> None:
    decks = list_decks(settings.FLASHCARDS_DIR)
    if not decks:
        console.print(f"No decks found in {settings.FLASHCARDS_DIR}/")
        return
    table = Table(title="Available decks")
    table.add_column("Deck")
    table.add_column("Cards", justify="right")
    table.add_column("Last session")
    for path in decks:
        try:
            count = str(len(load_deck(path)))
        except (OSError, UnicodeDecodeError) as e:
            log.warning(f"Could not read deck {path}: {e}")
            count = "?"
        last = db.last_session_for(deck_name(path)) if db is not None else None
        if last is None:
            status = "never"
        elif last.completed_at:
            status = f"completed ({last.questions_answered}/{last.questions_total})"
        else:
            status = f"in progress ({last.questions_answered}/{last.questions_total})"
        table.add_row(deck_name(path), count, status)
    console.print(table)


def print_sessions(db: DatabaseService) -> None:
    summary = summarize_sessions(db.list_sessions())
    if not summary["rows"]:
        console.print("No sessions recorded yet.")
        return

    table = Table(title=f"Session history ({len(summary['rows'])} sessions)")
    for column in summary["rows"][0]:
        table.add_column(column)
    for row in summary["rows"]:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)

    stats = summary["stats"]
    if stats:
        console.print("\nStatistics:")
        console.print(f"  Best score:  {stats['best'] * 100:.0f}%")
        console.print(f"  Worst score: {stats['worst'] * 100:.0f}%")
        console.print(f"  Average:     {stats['avg'] * 100:.0f}%")
        trend = stats["trend"] * 100
        direction = "improving" if trend > 0 else "declining" if trend < 0 else "flat"
        console.print(f"  Trend:       {trend:+.0f} points ({direction})")
    best = summary["best"]
    if best is not None:
        console.print(f"\nBest session: {best.id} ({best.deck_name})")


def run_quiz(db: Optional[DatabaseService], path: Path, args: argparse.Namespace) -> int:
    flashcards = load_deck(path)
    if not flashcards:
        console.print(f"[red]Deck {path} has no usable flashcards[/red]")
        return 1
    if args.shuffle:
        random.shuffle(flashcards)
    name = deck_name(path)

    session_id = None
    if db is not None:
        try:
            session_id = db.create_session(name, flashcards).id
        except StorageError as e:
            log.error(f"Could not create session: {e}")
            console.print(f"[yellow]Warning: progress will not be saved ({e})[/yellow]")
            db = None

    ai_enabled = settings.ai_enabled and not args.no_ai
    supervisor = None
    assess = None
    if ai_enabled:
        client = EvaluatorClient()
        supervisor = WorkerSupervisor(client.evaluate_answer)
        supervisor.start()
        assess = client.evaluate_session
    log.info(
        f"Config: deck={name}, cards={len(flashcards)}, ai={ai_enabled}, "
        f"model={settings.EVALUATOR_MODEL if ai_enabled else '-'}"
    )

    session = QuizSession(
        flashcards,
        name,
        supervisor=supervisor,
        storage=db,
        session_id=session_id,
        assess=assess,
    )
    QuizApp(session).run()

    answered, average = session.calculate_stats()
    console.print(
        f"Answered {answered}/{len(flashcards)} questions"
        + (f", average score {average * 100:.0f}%" if ai_enabled and answered else "")
    )
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Interactive flashcard quiz")
    parser.add_argument(
        "deck",
        nargs="?",
        default=None,
        help=f"CSV file or deck name in {settings.FLASHCARDS_DIR}/ (omit to list decks)",
    )
    parser.add_argument("--no-ai", action="store_true", help="Disable AI evaluation")
    parser.add_argument("--shuffle", action="store_true", help="Shuffle the deck")
    parser.add_argument(
        "--list-sessions", action="store_true", help="Show stored quiz sessions"
    )
    parser.add_argument(
        "--delete-session", type=str, default=None, metavar="ID", help="Delete a stored session"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        filename=settings.LOG_FILE,
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        db: Optional[DatabaseService] = DatabaseService(settings.DATA_DIR)
    except (StorageError, OSError) as e:
        log.error(f"Storage unavailable: {e}")
        if args.list_sessions or args.delete_session:
            console.print(f"[red]Storage unavailable: {e}[/red]")
            return 1
        db = None

    if args.list_sessions:
        print_sessions(db)
        return 0
    if args.delete_session:
        try:
            deleted = db.delete_session(args.delete_session)
        except StorageError as e:
            log.error(str(e))
            console.print(f"[red]{e}[/red]")
            return 1
        if deleted:
            console.print(f"Deleted session {args.delete_session}")
            return 0
        console.print(f"[red]No session with id {args.delete_session}[/red]")
        return 1

    if args.deck is None:
        print_decks(db)
        return 0

    path = resolve_deck(args.deck)
    if path is None:
        console.print(f"[red]Deck not found: {args.deck}[/red]")
        return 1
    return run_quiz(db, path, args)


if __name__ == "__main__":
    sys.exit(main())
