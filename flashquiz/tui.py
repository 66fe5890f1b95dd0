"""Full-screen quiz display.

prompt_toolkit owns the terminal, the key bindings and the event loop; each
frame is composed with rich and handed over as an ANSI string. The display
keeps no quiz state of its own: it forwards keys to ``QuizSession`` and
draws whatever the session holds after each key or background poll.
"""

from __future__ import annotations

import asyncio
import logging
from io import StringIO

from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout.containers import Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.layout import Layout
from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from flashquiz.session import AppState, Key, KeyEvent, QuizSession
from flashquiz.ui_utils import (
    INPUT_PLACEHOLDER,
    answer_view_lines,
    progress_text,
    summary_lines,
    visible_window,
    wrap_styled,
)

log = logging.getLogger(__name__)

HEADER_HEIGHT = 3
HELP_HEIGHT = 4
MIN_PANEL_HEIGHT = 3
# Border plus one column of padding on each side.
PANEL_CHROME = 4


class RichRenderer:
    """Renders Rich content to ANSI strings for prompt_toolkit."""

    def __init__(self, width: int = 80, height: int = 24):
        self.width = width
        self.height = height

    def resize(self, width: int, height: int) -> None:
        self.width, self.height = width, height

    def render(self, renderable) -> str:
        buffer = StringIO()
        console = Console(
            file=buffer,
            width=self.width,
            height=self.height,
            force_terminal=True,
            color_system="truecolor",
        )
        console.print(renderable, end="")
        return buffer.getvalue()


def _styled_text(lines: list[tuple[str, str]]) -> Text:
    text = Text(no_wrap=True, overflow="crop")
    for i, (style, content) in enumerate(lines):
        if i:
            text.append("\n")
        text.append(content, style=style or None)
    return text


def _key_hints(*pairs: tuple[str, str]) -> Text:
    text = Text()
    for i, (key, label) in enumerate(pairs):
        if i:
            text.append("  ")
        text.append(key, style="bold cyan")
        text.append(f" {label}")
    return text


class QuizApp:
    def __init__(self, session: QuizSession, poll_interval: float = 0.1):
        self.session = session
        self.poll_interval = poll_interval
        self._renderer = RichRenderer()
        self._app = Application(
            layout=Layout(
                Window(
                    content=FormattedTextControl(self._get_content, show_cursor=False),
                    wrap_lines=False,
                )
            ),
            key_bindings=self._build_key_bindings(),
            full_screen=True,
            mouse_support=False,
        )

    # -- input -------------------------------------------------------------

    def _dispatch(self, event, key: Key, text: str = "") -> None:
        self.session.handle_key(KeyEvent(key, text))
        if self.session.state is AppState.EXITED:
            event.app.exit()

    def _build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()
        named = {
            "enter": Key.ENTER,
            "c-j": Key.NEWLINE,
            "backspace": Key.BACKSPACE,
            "delete": Key.DELETE,
            "left": Key.LEFT,
            "right": Key.RIGHT,
            "up": Key.UP,
            "down": Key.DOWN,
            "home": Key.HOME,
            "end": Key.END,
            "pageup": Key.PAGE_UP,
            "pagedown": Key.PAGE_DOWN,
            "escape": Key.ESCAPE,
            "c-c": Key.CTRL_C,
            "c-e": Key.CTRL_E,
            "c-x": Key.CTRL_X,
        }
        for binding, key in named.items():
            kb.add(binding)(lambda event, key=key: self._dispatch(event, key))

        @kb.add("escape", "enter")
        def _(event):
            # Alt+Enter for terminals that send the same code for Enter and Ctrl+J.
            self._dispatch(event, Key.NEWLINE)

        @kb.add(Keys.BracketedPaste)
        def _(event):
            self._dispatch(event, Key.PASTE, event.data)

        @kb.add(Keys.Any)
        def _(event):
            if event.data and event.data.isprintable():
                self._dispatch(event, Key.CHAR, event.data)

        return kb

    # -- polling -----------------------------------------------------------

    async def _poll_loop(self) -> None:
        while self.session.state is not AppState.EXITED:
            await asyncio.sleep(self.poll_interval)
            if self.session.poll():
                self._app.invalidate()

    def _start_polling(self) -> None:
        self._app.create_background_task(self._poll_loop())

    def run(self) -> None:
        log.info("Starting quiz display")
        try:
            self._app.run(pre_run=self._start_polling)
        finally:
            self.session.close()

    # -- rendering ---------------------------------------------------------

    def _get_content(self):
        size = self._app.output.get_size()
        self._renderer.resize(size.columns, size.rows)
        return ANSI(self._renderer.render(self.render(size.columns, size.rows)))

    def render(self, width: int, height: int):
        state = self.session.state
        if state is AppState.QUIT_CONFIRM:
            return self._quit_confirm_view()
        if state is AppState.SUMMARY:
            return self._summary_view(width, height)
        return self._quiz_view(width, height)

    def _quiz_view(self, width: int, height: int) -> Group:
        session = self.session
        card = session.current
        inner_width = max(1, width - PANEL_CHROME)

        header = Panel(
            Align.center(
                Text(
                    progress_text(session.current_index, len(session.flashcards), session.deck_name),
                    style="bold cyan",
                )
            ),
            height=HEADER_HEIGHT,
        )

        question_rows = wrap_styled([("", card.question)], inner_width)
        spare = max(MIN_PANEL_HEIGHT * 2, height - HEADER_HEIGHT - HELP_HEIGHT)
        question_height = max(MIN_PANEL_HEIGHT, min(len(question_rows) + 2, spare // 3))
        answer_height = max(MIN_PANEL_HEIGHT, spare - question_height)
        question = Panel(
            _styled_text(question_rows[: question_height - 2]),
            title="Question",
            height=question_height,
            padding=(0, 1),
        )

        visible = answer_height - 2
        if session.showing_answer:
            rows = wrap_styled(
                answer_view_lines(card, session.outcome_for_current(), session.ai_enabled),
                inner_width,
            )
            window, session.feedback_scroll_y = visible_window(rows, session.feedback_scroll_y, visible)
            body = _styled_text(window)
            title = "Answer"
        else:
            session.resize(inner_width)
            body = self._input_text(visible, inner_width)
            title = "Your Answer"
        answer = Panel(
            body,
            title=title,
            subtitle=Text(session.warning, style="red") if session.warning else None,
            height=answer_height,
            padding=(0, 1),
        )

        return Group(header, question, answer, self._quiz_help())

    def _input_text(self, visible: int, inner_width: int) -> Text:
        session = self.session
        if not session.buffer.text:
            text = Text(no_wrap=True, overflow="crop")
            text.append(INPUT_PLACEHOLDER[:1], style="reverse")
            text.append(INPUT_PLACEHOLDER[1:], style="dim")
            return text

        lines = session.lines
        position = session.cursor_position
        top = session.follow_cursor(visible)
        text = Text(no_wrap=True, overflow="crop")
        for row in range(top, min(len(lines), top + visible)):
            if row > top:
                text.append("\n")
            content = lines[row].content
            if row != position.row:
                text.append(content)
                continue
            # Cursors inside a trimmed whitespace run are drawn at the edge.
            column = min(position.column, inner_width - 1)
            content = content.ljust(column + 1)
            text.append(content[:column])
            text.append(content[column], style="reverse")
            text.append(content[column + 1 :])
        return text

    def _quiz_help(self) -> Panel:
        session = self.session
        basic = []
        if not session.showing_answer:
            basic.append(("Enter", "Submit"))
            basic.append(("Ctrl+J", "New line"))
        else:
            basic.append(("Enter", "Next"))
        basic += [("↑/↓", "Navigate"), ("Esc", "Quit")]
        ctrl = [("Ctrl+C", "Exit App")]
        if session.ai_enabled:
            ctrl += [("Ctrl+E", "Re-evaluate"), ("Ctrl+X", "Cancel")]
        if session.showing_answer:
            ctrl.append(("PgUp/PgDn", "Scroll"))
        return Panel(
            Align.center(Group(Align.center(_key_hints(*basic)), Align.center(_key_hints(*ctrl)))),
            height=HELP_HEIGHT,
        )

    def _quit_confirm_view(self) -> Group:
        help_text = Text()
        help_text.append("y", style="bold green")
        help_text.append(" Yes (Quit)  ")
        help_text.append("n", style="bold red")
        help_text.append(" No (Continue Quiz)  ")
        help_text.append("Ctrl+C", style="bold cyan")
        help_text.append(" Exit App")
        return Group(
            Panel(Align.center(Text("Quit", style="bold yellow"))),
            Panel(Align.center(Text("Leave this quiz? Your answers so far are saved."))),
            Panel(Align.center(help_text)),
        )

    def _summary_view(self, width: int, height: int) -> Group:
        session = self.session
        answered, average = session.calculate_stats()
        rows = wrap_styled(
            summary_lines(
                answered,
                average,
                session.assessment,
                session.assessment_loading,
                session.assessment_error,
            ),
            max(1, width - PANEL_CHROME),
        )
        content_height = max(MIN_PANEL_HEIGHT, height - HEADER_HEIGHT - HELP_HEIGHT)
        window, session.feedback_scroll_y = visible_window(
            rows, session.feedback_scroll_y, content_height - 2
        )
        return Group(
            Panel(
                Align.center(Text(f"Session Summary - {session.deck_name}", style="bold cyan")),
                height=HEADER_HEIGHT,
            ),
            Panel(_styled_text(window), height=content_height, padding=(0, 1)),
            Panel(
                Align.center(_key_hints(("Enter", "Exit"), ("PgUp/PgDn", "Scroll"))),
                height=HELP_HEIGHT - 1,
            ),
        )
