"""Terminal mode controller.

Saves and restores the line discipline of a terminal file descriptor,
switches it into raw mode, and reports the window size. Raw mode is a
process-wide device resource: every :func:`enter_raw_mode` must be paired
with exactly one :func:`restore_mode`, which :func:`raw_mode` does for you.
"""

from __future__ import annotations

import contextlib
import logging
import os
import termios
from dataclasses import dataclass
from typing import Iterator

from eazyinput.errors import ModeRestoreError, NotATerminalError, TerminalModeError

logger = logging.getLogger(__name__)

# Indices into the list returned by termios.tcgetattr()
_IFLAG = 0
_OFLAG = 1
_CFLAG = 2
_LFLAG = 3
_ISPEED = 4
_OSPEED = 5
_CC = 6

DEFAULT_WIDTH = 80
DEFAULT_HEIGHT = 24


@dataclass(frozen=True)
class TerminalSettings:
    """Snapshot of a terminal's attributes, as returned by ``tcgetattr``."""

    fd: int
    attributes: list


@dataclass(frozen=True)
class TerminalDimensions:
    width: int
    height: int


FALLBACK_DIMENSIONS = TerminalDimensions(width=DEFAULT_WIDTH, height=DEFAULT_HEIGHT)


def make_raw(attributes: list) -> list:
    """Return a raw-mode copy of *attributes*.

    Equivalent to ``cfmakeraw(3)``: no input translation, no output
    post-processing, no echo, no canonical line editing, no signal keys,
    8-bit characters, and reads that return as soon as one byte arrives.
    """
    raw = list(attributes)
    raw[_CC] = list(attributes[_CC])

    raw[_IFLAG] &= ~(
        termios.IGNBRK
        | termios.BRKINT
        | termios.PARMRK
        | termios.ISTRIP
        | termios.INLCR
        | termios.IGNCR
        | termios.ICRNL
        | termios.IXON
    )
    raw[_OFLAG] &= ~termios.OPOST
    raw[_LFLAG] &= ~(
        termios.ECHO | termios.ECHONL | termios.ICANON | termios.ISIG | termios.IEXTEN
    )
    raw[_CFLAG] &= ~(termios.CSIZE | termios.PARENB)
    raw[_CFLAG] |= termios.CS8
    raw[_CC][termios.VMIN] = 1
    raw[_CC][termios.VTIME] = 0
    return raw


def enter_raw_mode(fd: int) -> TerminalSettings:
    """Put *fd* into raw mode and return the settings it had before.

    Raises :class:`NotATerminalError` without touching the device when *fd*
    is not a terminal.
    """
    if not os.isatty(fd):
        raise NotATerminalError(f"file descriptor {fd} is not a terminal")

    try:
        original = termios.tcgetattr(fd)
        termios.tcsetattr(fd, termios.TCSAFLUSH, make_raw(original))
    except termios.error as e:
        raise TerminalModeError(f"cannot enable raw mode on fd {fd}: {e}") from e

    logger.debug("raw mode enabled on fd %d", fd)
    return TerminalSettings(fd=fd, attributes=original)


def restore_mode(settings: TerminalSettings) -> None:
    """Reapply a snapshot taken by :func:`enter_raw_mode`."""
    try:
        termios.tcsetattr(settings.fd, termios.TCSAFLUSH, settings.attributes)
    except (termios.error, OSError) as e:
        raise ModeRestoreError(
            f"cannot restore terminal mode on fd {settings.fd}: {e}"
        ) from e
    logger.debug("terminal mode restored on fd %d", settings.fd)


@contextlib.contextmanager
def raw_mode(fd: int) -> Iterator[TerminalSettings]:
    """Scope raw mode to a ``with`` block.

    A restore failure on the way out is logged and dropped so it never
    replaces an exception raised inside the block.
    """
    settings = enter_raw_mode(fd)
    try:
        yield settings
    finally:
        try:
            restore_mode(settings)
        except ModeRestoreError:
            logger.warning("failed to restore terminal mode", exc_info=True)


def query_window_size(fd: int) -> TerminalDimensions:
    """Return the window size of *fd*, or 80x24 when it cannot be determined."""
    try:
        size = os.get_terminal_size(fd)
    except (ValueError, OSError):
        return FALLBACK_DIMENSIONS
    if size.columns == 0:
        return FALLBACK_DIMENSIONS
    return TerminalDimensions(width=size.columns, height=size.lines)


# ---------------------------------------------------------------------------
# Line discipline control
# ---------------------------------------------------------------------------


def drain(fd: int) -> None:
    """Block until all output written to *fd* has been transmitted."""
    try:
        termios.tcdrain(fd)
    except termios.error as e:
        raise TerminalModeError(f"tcdrain failed on fd {fd}: {e}") from e


def flush(fd: int, queue: int = termios.TCIOFLUSH) -> None:
    """Discard pending input and/or output (``TCIFLUSH``/``TCOFLUSH``/``TCIOFLUSH``)."""
    try:
        termios.tcflush(fd, queue)
    except termios.error as e:
        raise TerminalModeError(f"tcflush failed on fd {fd}: {e}") from e


def flow(fd: int, action: int) -> None:
    """Suspend or resume transmission (``TCOOFF``/``TCOON``/``TCIOFF``/``TCION``)."""
    try:
        termios.tcflow(fd, action)
    except termios.error as e:
        raise TerminalModeError(f"tcflow failed on fd {fd}: {e}") from e


def send_break(fd: int) -> None:
    # duration is implementation defined, 0 is the only portable value
    try:
        termios.tcsendbreak(fd, 0)
    except termios.error as e:
        raise TerminalModeError(f"tcsendbreak failed on fd {fd}: {e}") from e


def input_speed(settings: TerminalSettings) -> int:
    return settings.attributes[_ISPEED]


def output_speed(settings: TerminalSettings) -> int:
    return settings.attributes[_OSPEED]


def with_speeds(settings: TerminalSettings, ispeed: int, ospeed: int) -> list:
    """Return a copy of the snapshot's attributes with new baud rates.

    The result is ready for ``termios.tcsetattr``; *settings* is left as is.
    """
    attributes = list(settings.attributes)
    attributes[_CC] = list(settings.attributes[_CC])
    attributes[_ISPEED] = ispeed
    attributes[_OSPEED] = ospeed
    return attributes
