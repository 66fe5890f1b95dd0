"""Word wrapping for the answer editor and feedback views.

Text is split on explicit line breaks and each segment is packed greedily
into lines of at most ``max_width`` code points. Whitespace keeps its real
width inside a line. Whitespace that sits on a wrap point is consumed by the
line that ends there but is not displayed, so every visual line produced by a
wrap starts on a non-space character. Indentation at the start of a segment
is not a wrap point and stays visible, even when it ends up on a line of its
own. Words longer than the width are cut at code point boundaries.

Each ``WrappedLine`` records the slice of the source it covers, so the lines
partition the source exactly and a cursor offset can always be located.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_TOKEN = re.compile(r"\s+|\S+")


class LayoutError(ValueError):
    """Raised for invalid layout arguments (caller error)."""


@dataclass(frozen=True)
class WrappedLine:
    content: str
    start: int
    end: int
    # Whitespace consumed at a wrap point and not displayed.
    trimmed: str = ""
    # True when the line ends at a wrap point rather than at an explicit
    # break or at the end of the text.
    soft: bool = False

    @property
    def source_range(self) -> tuple[int, int]:
        return (self.start, self.end)

    @property
    def width(self) -> int:
        return len(self.content)


def wrap(text: str, max_width: int) -> list[WrappedLine]:
    """Wrap ``text`` into display lines no wider than ``max_width``."""
    if max_width < 1:
        raise LayoutError(f"max_width must be at least 1, got {max_width}")

    lines: list[WrappedLine] = []
    seg_start = 0
    for segment in text.split("\n"):
        seg_end = seg_start + len(segment)
        _wrap_segment(text, seg_start, seg_end, max_width, lines)
        seg_start = seg_end + 1
    return lines


def _wrap_segment(
    text: str, seg_start: int, seg_end: int, max_width: int, out: list[WrappedLine]
) -> None:
    line_start = seg_start
    # End of the last non-whitespace token on the line. Anything between this
    # and the wrap point is trailing whitespace.
    content_end = seg_start
    width = 0

    for match in _TOKEN.finditer(text, seg_start, seg_end):
        tok_start, tok_end = match.span()
        tok_len = tok_end - tok_start
        is_space = match.group().isspace()

        if width + tok_len <= max_width:
            width += tok_len
            if not is_space:
                content_end = tok_end
            continue

        if width > 0:
            if is_space:
                # The whitespace run is the wrap point: it belongs to this line.
                out.append(_soft_line(text, line_start, content_end, tok_end))
                line_start = content_end = tok_end
                width = 0
                continue
            if content_end == line_start:
                # Only indentation so far: it stays visible on its own line.
                content_end = tok_start
            out.append(_soft_line(text, line_start, content_end, tok_start))
            line_start = content_end = tok_start
            width = 0

        # Token starts an empty line; cut it while it does not fit.
        while tok_len > max_width:
            cut = tok_start + max_width
            out.append(WrappedLine(text[tok_start:cut], tok_start, cut, soft=True))
            tok_start = cut
            tok_len -= max_width
        line_start = tok_start
        content_end = tok_start if is_space else tok_end
        width = tok_len

    # Segment end is not a wrap point, so trailing whitespace stays visible.
    out.append(WrappedLine(text[line_start:seg_end], line_start, seg_end))


def _soft_line(text: str, start: int, content_end: int, end: int) -> WrappedLine:
    return WrappedLine(
        content=text[start:content_end],
        start=start,
        end=end,
        trimmed=text[content_end:end],
        soft=True,
    )


def unwrap(lines: list[WrappedLine]) -> str:
    """Rebuild the source text from wrapped lines."""
    parts: list[str] = []
    last = len(lines) - 1
    for index, line in enumerate(lines):
        parts.append(line.content)
        parts.append(line.trimmed)
        if not line.soft and index < last:
            parts.append("\n")
    return "".join(parts)


def wrap_paragraphs(paragraphs: list[str], max_width: int) -> list[str]:
    """Wrap several blocks of text and return the display strings."""
    rendered: list[str] = []
    for paragraph in paragraphs:
        rendered.extend(line.content for line in wrap(paragraph, max_width))
    return rendered
