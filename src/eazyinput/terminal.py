"""Terminal abstraction for byte-level stdin/stdout interaction.

Provides a ``Terminal`` protocol and a concrete ``ProcessTerminal``
implementation that reads single bytes from an input file descriptor, writes
to output and error descriptors, and delegates raw-mode handling and window
size queries to :mod:`eazyinput.terminal_mode`.
"""

from __future__ import annotations

import logging
import os
from typing import Protocol

from eazyinput import terminal_mode
from eazyinput.errors import ReadFailureError
from eazyinput.terminal_mode import TerminalDimensions, TerminalSettings

logger = logging.getLogger(__name__)

WRITE_LOG_ENV = "EAZYINPUT_WRITE_LOG"


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for the device a line read talks to."""

    def isatty(self) -> bool: ...

    def enter_raw_mode(self) -> TerminalSettings: ...

    def restore_mode(self, settings: TerminalSettings) -> None: ...

    def read_byte(self) -> int:
        """Block until one byte is available and return it.

        Raises :class:`ReadFailureError` on end of input or device error.
        """
        ...

    def write(self, data: bytes) -> None: ...

    def write_error(self, data: bytes) -> None: ...

    def window_size(self) -> TerminalDimensions: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal backed by the process's standard file descriptors.

    Output is written unbuffered with :func:`os.write` so escape sequences
    reach the device before the next blocking read.
    """

    def __init__(
        self,
        input_fd: int = 0,
        output_fd: int = 1,
        error_fd: int = 2,
    ) -> None:
        self._input_fd = input_fd
        self._output_fd = output_fd
        self._error_fd = error_fd
        self._write_log_path: str = os.environ.get(WRITE_LOG_ENV, "")

    @property
    def input_fd(self) -> int:
        return self._input_fd

    # -- mode ---------------------------------------------------------------

    def isatty(self) -> bool:
        return os.isatty(self._input_fd)

    def enter_raw_mode(self) -> TerminalSettings:
        return terminal_mode.enter_raw_mode(self._input_fd)

    def restore_mode(self, settings: TerminalSettings) -> None:
        terminal_mode.restore_mode(settings)

    def window_size(self) -> TerminalDimensions:
        return terminal_mode.query_window_size(self._output_fd)

    # -- input --------------------------------------------------------------

    def read_byte(self) -> int:
        try:
            data = os.read(self._input_fd, 1)
        except OSError as e:
            raise ReadFailureError(f"read from fd {self._input_fd} failed: {e}") from e
        if not data:
            raise ReadFailureError("unexpected end of input")
        return data[0]

    # -- output -------------------------------------------------------------

    def write(self, data: bytes) -> None:
        """Write data to the output fd and optionally to the write log."""
        _write_all(self._output_fd, data)

        if self._write_log_path:
            try:
                with open(self._write_log_path, "ab") as f:
                    f.write(data)
            except OSError:
                logger.debug("cannot append to %s", self._write_log_path)

    def write_error(self, data: bytes) -> None:
        _write_all(self._error_fd, data)


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]
