"""Modal single-line editor.

``LineEditor`` owns the edit buffer for one line read. It interprets key
bytes through the current mode's key table, mutates the buffer and the
tracked cursor, and repaints the whole line after every key so the screen
never drifts from the buffer.

Typical use::

    from eazyinput import read_line

    line = read_line(b"> ")
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable

from eazyinput.errors import (
    ModeRestoreError,
    NoUserInputError,
    NotATerminalError,
    UnsupportedTerminalError,
)
from eazyinput.keybindings import EditMode, EditorAction, EditorKeybindingsManager
from eazyinput.line_buffer import DEFAULT_CAPACITY, LineBuffer
from eazyinput.terminal import ProcessTerminal, Terminal
from eazyinput.terminal_mode import TerminalDimensions
from eazyinput.vt import CursorPosition, Display, is_unsupported_terminal

logger = logging.getLogger(__name__)

_NEWLINE = b"\r\n"


class KeyOutcome(enum.Enum):
    HANDLED = "handled"
    # Key has no meaning in the current mode
    IGNORED = "ignored"
    NOT_IMPLEMENTED = "not-implemented"


@dataclass
class EditorOptions:
    """Per-session settings passed explicitly to :class:`LineEditor`."""

    capacity: int = DEFAULT_CAPACITY
    keybindings: EditorKeybindingsManager | None = None


@dataclass
class EditorState:
    buffer: LineBuffer
    # Derived from initial_cursor_pos and index on every repaint
    cursor_pos: CursorPosition
    initial_cursor_pos: CursorPosition
    max_cursor_pos: CursorPosition
    terminal_dims: TerminalDimensions
    index: int = 0
    mode: EditMode = EditMode.NORMAL
    done: bool = False
    # Finished with the accept key rather than aborted
    accepted: bool = False


# ---------------------------------------------------------------------------
# Screen geometry
# ---------------------------------------------------------------------------


def position_of(
    origin: CursorPosition, offset: int, dims: TerminalDimensions
) -> CursorPosition:
    """Screen cell *offset* bytes after *origin*.

    Past the bottom row the terminal parks the cursor in the last cell with
    a wrap pending, so that is where the position is clamped to.
    """
    cells = origin.column - 1 + offset
    row = origin.row + cells // dims.width
    if row > dims.height:
        return CursorPosition(row=dims.height, column=dims.width)
    return CursorPosition(row=row, column=cells % dims.width + 1)


# ---------------------------------------------------------------------------
# Editor
# ---------------------------------------------------------------------------


class LineEditor:
    """Reads one line from a terminal with vi-style Normal/Insert modes."""

    def __init__(
        self,
        terminal: Terminal,
        options: EditorOptions | None = None,
    ) -> None:
        self._terminal = terminal
        self._display = Display(terminal)
        self._options = options or EditorOptions()
        self._keybindings = self._options.keybindings or EditorKeybindingsManager()
        self.state: EditorState | None = None

        self._actions: dict[EditorAction, Callable[[EditorState], None]] = {
            "cursorLeft": self._cursor_left,
            "cursorRight": self._cursor_right,
            "cursorUp": self._cursor_vertical,
            "cursorDown": self._cursor_vertical,
            "enterInsert": self._enter_insert,
            "enterNormal": self._enter_normal,
            "accept": self._accept,
            "abort": self._abort,
        }
        # What a key without a binding does, per mode
        self._unbound: dict[EditMode, Callable[[EditorState, int], KeyOutcome]] = {
            EditMode.NORMAL: self._unbound_normal,
            EditMode.INSERT: self._unbound_insert,
            EditMode.VISUAL: self._unbound_visual,
        }

    # -- session ------------------------------------------------------------

    def read_line(self, prompt: bytes) -> bytes:
        """Show *prompt*, edit until accept or abort, return the line.

        Raw mode is held only for the duration of the call and is always
        released, whatever the outcome.
        """
        if not self._terminal.isatty():
            raise NotATerminalError("input is not a terminal")
        if is_unsupported_terminal():
            raise UnsupportedTerminalError("terminal type does not support line editing")

        settings = self._terminal.enter_raw_mode()
        try:
            return self._edit(prompt)
        finally:
            try:
                self._terminal.restore_mode(settings)
            except ModeRestoreError:
                logger.warning("failed to restore terminal mode", exc_info=True)

    def _edit(self, prompt: bytes) -> bytes:
        self._terminal.write(prompt)
        start = self._display.query_cursor_position()
        state = EditorState(
            buffer=LineBuffer(self._options.capacity),
            cursor_pos=start,
            initial_cursor_pos=start,
            max_cursor_pos=start,
            terminal_dims=self._terminal.window_size(),
        )
        self.state = state

        while not state.done:
            self.handle_key(self._terminal.read_byte())

        # Leave the cursor below the line for whatever the caller prints next
        self._display.set_cursor_position(state.max_cursor_pos)
        self._terminal.write(_NEWLINE)

        line = state.buffer.contents()
        if not line and not state.accepted:
            raise NoUserInputError("aborted before any input")
        return line

    # -- key dispatch -------------------------------------------------------

    def handle_key(self, byte: int) -> KeyOutcome:
        """Apply one key byte to the current state and repaint."""
        state = self.state
        if state is None:
            raise RuntimeError("handle_key() called outside read_line()")

        # No resize notification; poll the size on every key
        state.terminal_dims = self._terminal.window_size()

        action = self._keybindings.action_for(state.mode, byte)
        if action is not None:
            self._actions[action](state)
            outcome = KeyOutcome.HANDLED
        else:
            outcome = self._unbound[state.mode](state, byte)

        logger.debug(
            "mode=%s key=%#04x action=%s outcome=%s",
            state.mode.value,
            byte,
            action,
            outcome.value,
        )

        if outcome is KeyOutcome.NOT_IMPLEMENTED:
            logger.info("key %#04x is not implemented in %s mode", byte, state.mode.value)
            self._display.beep()
        elif outcome is KeyOutcome.IGNORED:
            self._display.beep()

        if not state.done:
            self._repaint(state)
        return outcome

    def _unbound_insert(self, state: EditorState, byte: int) -> KeyOutcome:
        self._insert(state, byte)
        return KeyOutcome.HANDLED

    def _unbound_normal(self, state: EditorState, byte: int) -> KeyOutcome:
        return KeyOutcome.IGNORED

    def _unbound_visual(self, state: EditorState, byte: int) -> KeyOutcome:
        return KeyOutcome.NOT_IMPLEMENTED

    # -- actions ------------------------------------------------------------

    def _cursor_left(self, state: EditorState) -> None:
        if state.index > 0:
            state.index -= 1

    def _cursor_right(self, state: EditorState) -> None:
        if state.index < state.buffer.length:
            state.index += 1

    def _cursor_vertical(self, state: EditorState) -> None:
        # A single line has nowhere to go vertically
        pass

    def _enter_insert(self, state: EditorState) -> None:
        state.mode = EditMode.INSERT

    def _enter_normal(self, state: EditorState) -> None:
        state.mode = EditMode.NORMAL

    def _accept(self, state: EditorState) -> None:
        state.accepted = True
        state.done = True

    def _abort(self, state: EditorState) -> None:
        state.done = True

    def _insert(self, state: EditorState, byte: int) -> None:
        if not state.buffer.insert(state.index, byte):
            logger.debug("line buffer full at %d bytes", state.buffer.capacity)
            return
        state.index += 1

    # -- drawing ------------------------------------------------------------

    def _repaint(self, state: EditorState) -> None:
        """Erase everything after the prompt and redraw the whole buffer."""
        display = self._display
        display.set_cursor_position(state.initial_cursor_pos)
        display.erase_to_end_of_display()
        self._terminal.write(state.buffer.contents())
        state.max_cursor_pos = display.query_cursor_position()
        self._reconcile(state)
        display.set_cursor_position(state.cursor_pos)

    def _reconcile(self, state: EditorState) -> None:
        """Check the reported end of line against the buffer and fix up scrolling.

        Writing past the bottom row scrolls the screen, which moves the
        prompt up. The row the last byte should be on, compared to the row
        the terminal reports, tells how far.
        """
        dims = state.terminal_dims
        length = state.buffer.length
        if length:
            origin = state.initial_cursor_pos
            last_row = origin.row + (origin.column - 1 + length - 1) // dims.width
            scrolled = last_row - state.max_cursor_pos.row
            if scrolled > 0:
                logger.debug("screen scrolled by %d rows", scrolled)
                state.initial_cursor_pos = CursorPosition(
                    row=max(origin.row - scrolled, 1), column=origin.column
                )
        state.cursor_pos = position_of(state.initial_cursor_pos, state.index, dims)


def read_line(
    prompt: bytes | str,
    *,
    terminal: Terminal | None = None,
    options: EditorOptions | None = None,
) -> bytes:
    """Read one line interactively and return it as a new ``bytes`` object.

    Raises :class:`NotATerminalError`, :class:`UnsupportedTerminalError`,
    :class:`NoUserInputError`, :class:`ProtocolError` or
    :class:`ReadFailureError`.
    """
    if isinstance(prompt, str):
        prompt = prompt.encode("utf-8")
    editor = LineEditor(terminal or ProcessTerminal(), options)
    return editor.read_line(prompt)
