"""Tests for the text buffer and cursor mapping over wrapped lines."""

import pytest

from flashquiz.cursor import (
    CursorPosition,
    TextBuffer,
    from_visual,
    line_end,
    line_home,
    move_vertical,
    to_visual,
)
from flashquiz.layout import wrap

TEXTS = [
    "",
    "hello world",
    "a   b",
    "abcdefghijkl",
    "ab\ncd",
    "ab\n",
    "ab      cd",
    "  leading spaces before a longword",
    "the quick brown fox\n\njumps over the lazy dog ",
    "héllo 🙂 wörld",
]


@pytest.mark.parametrize("width", [1, 2, 4, 5, 7, 40])
def test_every_offset_round_trips_through_visual_position(width):
    for text in TEXTS:
        lines = wrap(text, width)
        for offset in range(len(text) + 1):
            position = to_visual(offset, lines)
            assert 0 <= position.row < len(lines)
            assert from_visual(position, lines) == offset, (text, width, offset)


def test_offset_on_wrap_point_belongs_to_next_line():
    lines = wrap("hello world", 5)

    assert to_visual(5, lines) == CursorPosition(0, 5)
    assert to_visual(6, lines) == CursorPosition(1, 0)
    assert to_visual(11, lines) == CursorPosition(1, 5)


def test_offset_at_segment_end_stays_on_that_line():
    lines = wrap("ab\ncd", 10)

    assert to_visual(2, lines) == CursorPosition(0, 2)
    assert to_visual(3, lines) == CursorPosition(1, 0)


def test_cursor_inside_indentation_line_round_trips():
    lines = wrap("  abcdef", 4)

    assert to_visual(0, lines) == CursorPosition(0, 0)
    assert to_visual(1, lines) == CursorPosition(0, 1)
    assert to_visual(2, lines) == CursorPosition(1, 0)
    for offset in range(len("  abcdef") + 1):
        assert from_visual(to_visual(offset, lines), lines) == offset


def test_cursor_after_trailing_newline_is_on_empty_line():
    lines = wrap("ab\n", 10)

    assert to_visual(3, lines) == CursorPosition(1, 0)


def test_from_visual_clamps_row_and_column():
    lines = wrap("hello world", 5)

    assert from_visual(CursorPosition(0, 99), lines) == 5
    assert from_visual(CursorPosition(1, 99), lines) == 11
    assert from_visual(CursorPosition(7, 0), lines) == 6
    assert from_visual(CursorPosition(-2, -2), lines) == 0


def test_buffer_accepts_buffer_or_offset():
    lines = wrap("hello world", 5)
    buffer = TextBuffer("hello world", cursor=8)

    assert to_visual(buffer, lines) == to_visual(8, lines) == CursorPosition(1, 2)


def test_insert_moves_cursor_past_text():
    buffer = TextBuffer("helld")
    buffer.move_to(3)

    buffer.insert("lo wor")

    assert buffer.text == "hello world"
    assert buffer.cursor == 9


def test_insert_at_keeps_cursor_on_its_character():
    buffer = TextBuffer("hello", cursor=2)

    buffer.insert_at(4, "XX")
    assert buffer.cursor == 2

    buffer.insert_at(0, ">>")
    assert buffer.text == ">>hellXXo"
    assert buffer.cursor == 4


def test_delete_and_clamping():
    buffer = TextBuffer("abc", cursor=10)
    assert buffer.cursor == 3

    buffer.delete_forward()
    assert buffer.text == "abc"
    buffer.delete_backward()
    assert buffer.text == "ab"
    assert buffer.cursor == 2

    buffer.move_to(0)
    buffer.delete_backward()
    buffer.delete_forward()
    assert buffer.text == "b"
    assert buffer.cursor == 0

    buffer.move_left()
    assert buffer.cursor == 0


def test_move_vertical_keeps_column_and_reports_edges():
    text = "hello world"
    lines = wrap(text, 5)
    buffer = TextBuffer(text, cursor=2)

    assert move_vertical(buffer, lines, 1)
    assert buffer.cursor == 8
    assert not move_vertical(buffer, lines, 1)
    assert buffer.cursor == 8
    assert move_vertical(buffer, lines, -1)
    assert buffer.cursor == 2
    assert not move_vertical(buffer, lines, -1)


def test_move_vertical_clamps_to_shorter_line():
    text = "abcdef\nab"
    lines = wrap(text, 10)
    buffer = TextBuffer(text, cursor=5)

    assert move_vertical(buffer, lines, 1)
    assert buffer.cursor == 9


def test_line_home_and_end_on_wrapped_line():
    text = "hello world"
    lines = wrap(text, 5)
    buffer = TextBuffer(text, cursor=8)

    line_home(buffer, lines)
    assert buffer.cursor == 6

    buffer.move_to(1)
    line_end(buffer, lines)
    assert buffer.cursor == 5
