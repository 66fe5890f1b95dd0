"""Flashcard decks stored as two-column CSV files (question, answer)."""

from __future__ import annotations

import csv
import logging
from pathlib import Path

from flashquiz.models import Flashcard

log = logging.getLogger(__name__)


def list_decks(directory: str | Path) -> list[Path]:
    """CSV files in ``directory``, sorted by name. Missing directory -> []."""
    path = Path(directory)
    if not path.is_dir():
        return []
    return sorted(p for p in path.iterdir() if p.suffix == ".csv")


def parse_csv_line(line: str) -> tuple[str, str]:
    """Split one CSV record into (question, answer); quoted commas are kept."""
    fields = next(csv.reader([line]), [])
    question = fields[0] if fields else ""
    # Extra unquoted commas belong to the answer.
    answer = ",".join(fields[1:])
    return question, answer


def load_deck(path: str | Path) -> list[Flashcard]:
    """Load flashcards, skipping rows with an empty question or answer."""
    deck_path = Path(path)
    flashcards: list[Flashcard] = []
    with deck_path.open(newline="", encoding="utf-8") as f:
        for row in csv.reader(f):
            if len(row) < 2:
                continue
            question, answer = row[0], ",".join(row[1:])
            if not question.strip() or not answer.strip():
                continue
            flashcards.append(Flashcard(question=question, answer=answer))
    log.info(f"Loaded {len(flashcards)} flashcards from {deck_path.name}")
    return flashcards


def deck_name(path: str | Path) -> str:
    return Path(path).stem
