"""Tests for CSV deck loading."""

from flashquiz.services.deck import deck_name, list_decks, load_deck, parse_csv_line


def test_parse_csv_line_handles_quotes_and_extra_commas():
    assert parse_csv_line('"What is 1,000 + 1?","1,001"') == ("What is 1,000 + 1?", "1,001")
    assert parse_csv_line("Capital of Italy?,Rome, Italy") == ("Capital of Italy?", "Rome, Italy")
    assert parse_csv_line("only a question") == ("only a question", "")


def test_load_deck_skips_blank_rows(tmp_path):
    path = tmp_path / "rust.csv"
    path.write_text(
        "What is ownership?,Each value has one owner\n"
        "\n"
        "   ,missing question\n"
        "missing answer,  \n"
        '"Multi\nline?","yes"\n',
        encoding="utf-8",
    )

    cards = load_deck(path)

    assert [c.question for c in cards] == ["What is ownership?", "Multi\nline?"]
    assert cards[0].answer == "Each value has one owner"
    assert all(c.user_answer is None for c in cards)


def test_list_decks_sorted_csv_only(tmp_path):
    (tmp_path / "b.csv").write_text("q,a\n")
    (tmp_path / "a.csv").write_text("q,a\n")
    (tmp_path / "notes.txt").write_text("ignore me")

    assert [p.name for p in list_decks(tmp_path)] == ["a.csv", "b.csv"]
    assert list_decks(tmp_path / "missing") == []


def test_deck_name_is_file_stem():
    assert deck_name("flashcards/rust_basics.csv") == "rust_basics"
