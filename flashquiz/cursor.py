"""Answer text buffer and the mapping between cursor offsets and wrapped rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from flashquiz.layout import WrappedLine


@dataclass(frozen=True)
class CursorPosition:
    row: int
    column: int


class TextBuffer:
    """Raw answer text plus a cursor counted in code points."""

    def __init__(self, text: str = "", cursor: int | None = None):
        self._text = text
        self._cursor = len(text) if cursor is None else self._clamp(cursor)

    @property
    def text(self) -> str:
        return self._text

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._text)

    def is_blank(self) -> bool:
        return not self._text.strip()

    def _clamp(self, offset: int) -> int:
        return max(0, min(offset, len(self._text)))

    def move_to(self, offset: int) -> None:
        self._cursor = self._clamp(offset)

    def move_left(self) -> None:
        self.move_to(self._cursor - 1)

    def move_right(self) -> None:
        self.move_to(self._cursor + 1)

    def insert(self, text: str) -> None:
        """Insert at the cursor and move the cursor past the new text."""
        self._text = self._text[: self._cursor] + text + self._text[self._cursor :]
        self._cursor += len(text)

    def insert_at(self, offset: int, text: str) -> None:
        """Insert elsewhere; the cursor follows its character if pushed right."""
        offset = self._clamp(offset)
        self._text = self._text[:offset] + text + self._text[offset:]
        if offset < self._cursor:
            self._cursor += len(text)

    def delete_backward(self) -> None:
        if self._cursor == 0:
            return
        self._text = self._text[: self._cursor - 1] + self._text[self._cursor :]
        self._cursor -= 1

    def delete_forward(self) -> None:
        if self._cursor >= len(self._text):
            return
        self._text = self._text[: self._cursor] + self._text[self._cursor + 1 :]

    def clear(self) -> None:
        self._text = ""
        self._cursor = 0

    def __repr__(self) -> str:
        return f"TextBuffer({self._text!r}, cursor={self._cursor})"


def _offset_of(buffer_or_offset: TextBuffer | int) -> int:
    if isinstance(buffer_or_offset, TextBuffer):
        return buffer_or_offset.cursor
    return buffer_or_offset


def _last_column(line: WrappedLine) -> int:
    # The end offset of a soft line belongs to the start of the next line.
    span = line.end - line.start
    return span - 1 if line.soft else span


def to_visual(
    buffer_or_offset: TextBuffer | int, lines: Sequence[WrappedLine]
) -> CursorPosition:
    """Locate a cursor offset in wrapped output.

    An offset sitting exactly on a wrap point is shown at the start of the
    following line; at the end of a segment it stays on the segment's last line.
    """
    offset = _offset_of(buffer_or_offset)
    if not lines:
        return CursorPosition(0, 0)
    for row, line in enumerate(lines):
        if line.start <= offset < line.end or (offset == line.end and not line.soft):
            return CursorPosition(row, offset - line.start)
    if offset < lines[0].start:
        return CursorPosition(0, 0)
    last = lines[-1]
    return CursorPosition(len(lines) - 1, last.end - last.start)


def from_visual(position: CursorPosition, lines: Sequence[WrappedLine]) -> int:
    """Offset for a visual position, clamping past-the-end columns to the line end."""
    if not lines:
        return 0
    row = max(0, min(position.row, len(lines) - 1))
    line = lines[row]
    column = max(0, min(position.column, _last_column(line)))
    return line.start + column


def move_vertical(
    buffer: TextBuffer, lines: Sequence[WrappedLine], delta: int
) -> bool:
    """Move the cursor ``delta`` rows, keeping the column. Returns False at an edge."""
    position = to_visual(buffer, lines)
    target = position.row + delta
    if target < 0 or target >= len(lines):
        return False
    buffer.move_to(from_visual(CursorPosition(target, position.column), lines))
    return True


def line_home(buffer: TextBuffer, lines: Sequence[WrappedLine]) -> None:
    row = to_visual(buffer, lines).row
    buffer.move_to(from_visual(CursorPosition(row, 0), lines))


def line_end(buffer: TextBuffer, lines: Sequence[WrappedLine]) -> None:
    row = to_visual(buffer, lines).row
    if not lines:
        return
    line = lines[row]
    # Park after the visible content rather than inside trimmed whitespace.
    column = min(line.width, _last_column(line))
    buffer.move_to(from_visual(CursorPosition(row, column), lines))
