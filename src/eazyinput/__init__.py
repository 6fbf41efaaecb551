"""eazyinput: modal line editing for POSIX terminals."""

# Line editor
from eazyinput.editor import (
    EditorOptions,
    EditorState,
    KeyOutcome,
    LineEditor,
    read_line,
)

# Errors
from eazyinput.errors import (
    EazyInputError,
    MalformedResponseError,
    ModeRestoreError,
    NoUserInputError,
    NotATerminalError,
    ProtocolError,
    ReadFailureError,
    ResponseNotFoundError,
    TerminalModeError,
    UnsupportedTerminalError,
)

# Keybindings
from eazyinput.keybindings import (
    DEFAULT_EDITOR_KEYBINDINGS,
    EditMode,
    EditorAction,
    EditorKeybindingsManager,
)

# Edit buffer
from eazyinput.line_buffer import LineBuffer

# Terminal interface and implementations
from eazyinput.terminal import ProcessTerminal, Terminal

# Terminal mode control
from eazyinput.terminal_mode import (
    TerminalDimensions,
    TerminalSettings,
    enter_raw_mode,
    query_window_size,
    raw_mode,
    restore_mode,
)

# VT100 display and cursor position reports
from eazyinput.vt import (
    CursorPosition,
    Display,
    is_unsupported_terminal,
    parse_cursor_position_report,
)

__all__ = [
    # Line editor
    "EditorOptions",
    "EditorState",
    "KeyOutcome",
    "LineEditor",
    "read_line",
    # Errors
    "EazyInputError",
    "MalformedResponseError",
    "ModeRestoreError",
    "NoUserInputError",
    "NotATerminalError",
    "ProtocolError",
    "ReadFailureError",
    "ResponseNotFoundError",
    "TerminalModeError",
    "UnsupportedTerminalError",
    # Keybindings
    "DEFAULT_EDITOR_KEYBINDINGS",
    "EditMode",
    "EditorAction",
    "EditorKeybindingsManager",
    # Edit buffer
    "LineBuffer",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    # Terminal mode control
    "TerminalDimensions",
    "TerminalSettings",
    "enter_raw_mode",
    "query_window_size",
    "raw_mode",
    "restore_mode",
    # VT100
    "CursorPosition",
    "Display",
    "is_unsupported_terminal",
    "parse_cursor_position_report",
]
