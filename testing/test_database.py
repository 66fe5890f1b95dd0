"""Tests for JSON session persistence."""

import itertools

import pytest

from flashquiz.models import Flashcard, Judgment, SessionAssessment
from flashquiz.services.database import DatabaseService, StorageError


def make_cards():
    return [
        Flashcard(question="What is ownership?", answer="Each value has one owner"),
        Flashcard(question="What is borrowing?", answer="Referencing without owning"),
    ]


def test_create_session_assigns_flashcard_ids(tmp_path):
    db = DatabaseService(data_dir=str(tmp_path))
    cards = make_cards()

    record = db.create_session("rust", cards)

    assert cards[0].id == f"{record.id}-0"
    assert cards[1].id == f"{record.id}-1"
    stored = db.get_session(record.id)
    assert stored.deck_name == "rust"
    assert stored.questions_total == 2
    assert [c.display_order for c in stored.flashcards] == [0, 1]


def test_answers_and_feedback_round_trip(tmp_path):
    db = DatabaseService(data_dir=str(tmp_path))
    cards = make_cards()
    record = db.create_session("rust", cards)
    judgment = Judgment(is_correct=True, correctness_score=0.8, explanation="Right")

    db.record_answer(cards[0].id, "one owner")
    db.record_answer(cards[0].id, "one owner, dropped at scope end")
    db.record_feedback(cards[0].id, judgment.model_dump_json())

    stored = db.get_session(record.id)
    assert stored.questions_answered == 1
    assert stored.flashcards[0].user_answer == "one owner, dropped at scope end"
    assert stored.flashcards[0].answered_at is not None
    assert stored.flashcards[0].ai_feedback == judgment
    assert stored.flashcards[1].user_answer is None


def test_complete_and_assessment(tmp_path):
    db = DatabaseService(data_dir=str(tmp_path))
    record = db.create_session("rust", make_cards())
    assessment = SessionAssessment(
        grade_percentage=75, mastery_level="Intermediate", overall_feedback="Solid"
    )

    db.complete_session(record.id)
    db.record_assessment(record.id, assessment)

    stored = db.get_session(record.id)
    assert stored.completed_at is not None
    assert stored.assessment.mastery_level == "Intermediate"


def test_list_sessions_newest_first_with_average(tmp_path, monkeypatch):
    db = DatabaseService(data_dir=str(tmp_path))
    ticks = itertools.count(100)
    monkeypatch.setattr("flashquiz.services.database.time.time", lambda: float(next(ticks)))

    older_cards = make_cards()
    older = db.create_session("rust", older_cards)
    newer = db.create_session("python", make_cards())
    db.record_feedback(
        older_cards[0].id,
        Judgment(is_correct=True, correctness_score=0.6).model_dump_json(),
    )

    sessions = db.list_sessions()

    assert [s.id for s in sessions] == [newer.id, older.id]
    assert sessions[0].average_score is None
    assert sessions[1].average_score == pytest.approx(0.6)
    assert db.last_session_for("rust").id == older.id
    assert db.last_session_for("go") is None


def test_list_sessions_skips_corrupt_files(tmp_path):
    db = DatabaseService(data_dir=str(tmp_path))
    db.create_session("rust", make_cards())
    (tmp_path / "sessions" / "session_broken.json").write_text("{not json")

    assert len(db.list_sessions()) == 1


def test_delete_session(tmp_path):
    db = DatabaseService(data_dir=str(tmp_path))
    record = db.create_session("rust", make_cards())

    assert db.delete_session(record.id)
    assert not db.delete_session(record.id)
    with pytest.raises(StorageError):
        db.get_session(record.id)


def test_bad_ids_raise_storage_error(tmp_path):
    db = DatabaseService(data_dir=str(tmp_path))
    record = db.create_session("rust", make_cards())

    with pytest.raises(StorageError):
        db.record_answer("no-dash-number", "x")
    with pytest.raises(StorageError):
        db.record_answer(f"{record.id}-9", "x")
    with pytest.raises(StorageError):
        db.record_feedback(f"{record.id}-0", '{"score": 1}')
