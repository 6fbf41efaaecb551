"""VT100 display and cursor position report protocol.

Emits cursor motion and erase sequences, and implements the device status
report round trip used to read back the cursor position. Sequence reference:
https://vt100.net/docs/vt100-ug/chapter3.html
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping

from eazyinput.errors import MalformedResponseError, ResponseNotFoundError
from eazyinput.terminal import Terminal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Control characters and escape sequences
# ---------------------------------------------------------------------------

BELL = b"\x07"
ESC = b"\x1b"
CSI = b"\x1b["

_ERASE_TO_END_OF_LINE = b"\x1b[0K"
_ERASE_TO_START_OF_LINE = b"\x1b[1K"
_ERASE_LINE = b"\x1b[2K"
_ERASE_TO_END_OF_DISPLAY = b"\x1b[0J"
_ERASE_TO_START_OF_DISPLAY = b"\x1b[1J"
_ERASE_DISPLAY = b"\x1b[2J"
_CURSOR_HOME = b"\x1b[H"
_CURSOR_UP_FMT = b"\x1b[%dA"
_CURSOR_DOWN_FMT = b"\x1b[%dB"
_CURSOR_FORWARD_FMT = b"\x1b[%dC"
_CURSOR_BACKWARD_FMT = b"\x1b[%dD"
_SET_CURSOR_POSITION_FMT = b"\x1b[%d;%dH"
_DEVICE_STATUS_REPORT = b"\x1b[6n"

_REPORT_TERMINATOR = ord("R")

# Report fields are unsigned machine words on the terminals we talk to
MAX_POSITION = 2**64 - 1
_MAX_POSITION_DIGITS = len(str(MAX_POSITION))

# ESC [ row ; col R
RESPONSE_BUFFER_SIZE = _MAX_POSITION_DIGITS * 2 + 4

_REPORT_RE = re.compile(rb"\A\x1b\[(\d+);(\d+)\Z")

UNSUPPORTED_TERMS = frozenset({"dumb", "cons25", "emacs"})


@dataclass(frozen=True)
class CursorPosition:
    """1-based screen position."""

    row: int
    column: int


def is_unsupported_terminal(environ: Mapping[str, str] | None = None) -> bool:
    """Return ``True`` if ``TERM`` is unset or names an incapable terminal."""
    env = os.environ if environ is None else environ
    term = env.get("TERM")
    if term is None:
        return True
    return term in UNSUPPORTED_TERMS


def parse_cursor_position_report(response: bytes) -> CursorPosition:
    """Parse ``ESC [ row ; col`` (the report minus its ``R`` terminator)."""
    if not response.startswith(CSI):
        raise MalformedResponseError(response, "missing control sequence introducer")
    if b";" not in response:
        raise MalformedResponseError(response, "missing row/column separator")

    match = _REPORT_RE.match(response)
    if match is None:
        raise MalformedResponseError(response, "row and column must be decimal digits")

    row, column = (int(group) for group in match.groups())
    if row > MAX_POSITION or column > MAX_POSITION:
        raise MalformedResponseError(response, "position out of range")
    return CursorPosition(row=row, column=column)


class Display:
    """Cursor motion, erase primitives, and position queries on a terminal."""

    def __init__(self, terminal: Terminal) -> None:
        self._terminal = terminal

    # -- relative cursor motion --------------------------------------------

    # A zero count would be read by the terminal as the default of 1.

    def cursor_up(self, n: int) -> None:
        self._move(_CURSOR_UP_FMT, n)

    def cursor_down(self, n: int) -> None:
        self._move(_CURSOR_DOWN_FMT, n)

    def cursor_forward(self, n: int) -> None:
        self._move(_CURSOR_FORWARD_FMT, n)

    def cursor_backward(self, n: int) -> None:
        self._move(_CURSOR_BACKWARD_FMT, n)

    def _move(self, fmt: bytes, n: int) -> None:
        if n < 0:
            raise ValueError(f"cursor motion count must be non-negative, got {n}")
        if n:
            self._terminal.write(fmt % n)

    # -- absolute positioning ----------------------------------------------

    def set_cursor_position(self, pos: CursorPosition) -> None:
        """Move to *pos*; the terminal clamps it to the visible screen."""
        self._terminal.write(_SET_CURSOR_POSITION_FMT % (pos.row, pos.column))

    def cursor_home(self) -> None:
        self._terminal.write(_CURSOR_HOME)

    def clear_screen(self) -> None:
        self.cursor_home()
        self.erase_display()

    # -- erasing -----------------------------------------------------------

    def erase_to_end_of_line(self) -> None:
        self._terminal.write(_ERASE_TO_END_OF_LINE)

    def erase_to_start_of_line(self) -> None:
        self._terminal.write(_ERASE_TO_START_OF_LINE)

    def erase_line(self) -> None:
        self._terminal.write(_ERASE_LINE)

    def erase_to_end_of_display(self) -> None:
        self._terminal.write(_ERASE_TO_END_OF_DISPLAY)

    def erase_to_start_of_display(self) -> None:
        self._terminal.write(_ERASE_TO_START_OF_DISPLAY)

    def erase_display(self) -> None:
        self._terminal.write(_ERASE_DISPLAY)

    def beep(self) -> None:
        self._terminal.write_error(BELL)

    # -- cursor position report --------------------------------------------

    def query_cursor_position(self) -> CursorPosition:
        """Ask the terminal where the cursor is and wait for the answer.

        Bytes are read one at a time until the ``R`` terminator. Anything
        before the last ``ESC`` seen is discarded. There is no timeout: a
        terminal that never answers blocks here.
        """
        self._terminal.write(_DEVICE_STATUS_REPORT)

        response = bytearray()
        esc_index = 0
        for i in range(RESPONSE_BUFFER_SIZE):
            byte = self._terminal.read_byte()
            response.append(byte)
            if byte == ESC[0]:
                esc_index = i
            elif byte == _REPORT_TERMINATOR:
                pos = parse_cursor_position_report(bytes(response[esc_index:i]))
                logger.debug("cursor at row %d column %d", pos.row, pos.column)
                return pos

        raise ResponseNotFoundError(
            f"no cursor position report within {RESPONSE_BUFFER_SIZE} bytes: "
            f"{bytes(response)!r}"
        )

    def cursor_row(self) -> int:
        return self.query_cursor_position().row

    def cursor_column(self) -> int:
        return self.query_cursor_position().column
