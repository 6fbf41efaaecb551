"""Exception hierarchy for eazyinput.

Every failure a line read can end with derives from :class:`EazyInputError`,
so callers that only care about "did I get a line" can catch one type.
"""

from __future__ import annotations


class EazyInputError(Exception):
    """Base class for all eazyinput errors."""


class NotATerminalError(EazyInputError):
    """The input file descriptor is not an interactive terminal."""


class UnsupportedTerminalError(EazyInputError):
    """``TERM`` is unset or names a terminal that cannot run the editor."""


class NoUserInputError(EazyInputError):
    """The session was aborted before anything was typed."""


class ReadFailureError(EazyInputError):
    """Reading from the terminal failed or hit end of input."""


class TerminalModeError(EazyInputError):
    """A termios call on the terminal failed."""


class ModeRestoreError(TerminalModeError):
    """The saved terminal settings could not be reapplied."""


# ---------------------------------------------------------------------------
# Cursor position report protocol
# ---------------------------------------------------------------------------


class ProtocolError(EazyInputError):
    """The terminal's cursor position report was missing or malformed."""


class ResponseNotFoundError(ProtocolError):
    """No report terminator arrived within the response buffer."""


class MalformedResponseError(ProtocolError):
    """The report did not have the shape ``ESC [ row ; col``."""

    def __init__(self, response: bytes, reason: str) -> None:
        super().__init__(f"{reason}: {response!r}")
        self.response = response
        self.reason = reason
