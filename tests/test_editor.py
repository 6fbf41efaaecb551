"""Tests for the LineEditor state machine and read_line.

Sessions run against the VirtualTerminal, which answers cursor position
queries from its own screen model, so repaints and wrapping are checked
against what a VT100 would actually show.
"""

from __future__ import annotations

import logging

import pytest

from eazyinput.editor import (
    EditorOptions,
    EditorState,
    KeyOutcome,
    LineEditor,
    position_of,
    read_line,
)
from eazyinput.errors import (
    MalformedResponseError,
    NoUserInputError,
    NotATerminalError,
    ReadFailureError,
    UnsupportedTerminalError,
)
from eazyinput.keybindings import EditMode, EditorKeybindingsManager
from eazyinput.line_buffer import LineBuffer
from eazyinput.terminal_mode import TerminalDimensions
from eazyinput.vt import CursorPosition

from .virtual_terminal import VirtualTerminal

CTRL_C = b"\x03"
CTRL_D = b"\x04"


@pytest.fixture(autouse=True)
def _capable_term(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TERM", "xterm-256color")


def run(
    keys: bytes,
    prompt: bytes = b"prompt",
    options: EditorOptions | None = None,
    **term_kwargs,
) -> tuple[bytes, LineEditor, VirtualTerminal]:
    term = VirtualTerminal(keys=keys, **term_kwargs)
    editor = LineEditor(term, options)
    return editor.read_line(prompt), editor, term


def start_session(term: VirtualTerminal, capacity: int = 4096) -> LineEditor:
    """Build an editor with a live state, as if the prompt had just been shown."""
    editor = LineEditor(term, EditorOptions(capacity=capacity))
    start = CursorPosition(*term.cursor)
    editor.state = EditorState(
        buffer=LineBuffer(capacity),
        cursor_pos=start,
        initial_cursor_pos=start,
        max_cursor_pos=start,
        terminal_dims=term.window_size(),
    )
    return editor


# ---------------------------------------------------------------------------
# Whole sessions
# ---------------------------------------------------------------------------


class TestReadLine:
    def test_insert_then_abort_returns_line(self) -> None:
        line, _, term = run(b"ihi" + CTRL_C)
        assert line == b"hi"
        assert term.line(1) == "prompthi"

    def test_abort_before_typing_is_no_user_input(self) -> None:
        term = VirtualTerminal(keys=CTRL_C)
        with pytest.raises(NoUserInputError):
            read_line(b"prompt", terminal=term)
        assert term.restores == 1

    def test_accept_empty_line(self) -> None:
        line, _, _ = run(b"\r")
        assert line == b""

    def test_accept_from_insert_mode(self) -> None:
        line, editor, _ = run(b"iok\r")
        assert line == b"ok"
        assert editor.state.accepted is True

    def test_str_prompt(self) -> None:
        term = VirtualTerminal(keys=b"ix" + CTRL_C)
        assert read_line("prompt", terminal=term) == b"x"
        assert term.output.startswith(b"prompt\x1b[6n")

    def test_result_is_independent_bytes(self) -> None:
        line, editor, _ = run(b"iab" + CTRL_C)
        assert isinstance(line, bytes)
        assert line == editor.state.buffer.contents()

    def test_escape_traffic(self) -> None:
        _, _, term = run(b"ihi" + CTRL_C)
        out = term.output
        assert out.startswith(b"prompt\x1b[6n")
        # Full repaint after the second character
        assert b"\x1b[1;7H\x1b[0Jhi\x1b[6n\x1b[1;9H" in out
        # Cursor parked after the line, then a fresh line
        assert out.endswith(b"\x1b[1;9H\r\n")

    def test_raw_mode_released(self) -> None:
        _, _, term = run(b"ihi" + CTRL_C)
        assert term.raw_mode_entries == 1
        assert term.restores == 1
        assert term.raw is False

    def test_custom_keybindings(self) -> None:
        kb = EditorKeybindingsManager({EditMode.INSERT: {"enterNormal": "escape"}})
        line, _, _ = run(b"iac\x1bhib" + CTRL_C, options=EditorOptions(keybindings=kb))
        assert line == b"abc"


class TestReadLineRefusals:
    def test_not_a_terminal(self) -> None:
        term = VirtualTerminal(keys=b"ihi" + CTRL_C, tty=False)
        with pytest.raises(NotATerminalError):
            read_line(b"prompt", terminal=term)
        assert term.raw_mode_entries == 0
        assert term.output == b""

    @pytest.mark.parametrize("value", ["dumb", "cons25", "emacs"])
    def test_unsupported_terminal(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("TERM", value)
        term = VirtualTerminal(keys=CTRL_C)
        with pytest.raises(UnsupportedTerminalError):
            read_line(b"prompt", terminal=term)
        assert term.raw_mode_entries == 0

    def test_missing_term(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("TERM")
        with pytest.raises(UnsupportedTerminalError):
            read_line(b"prompt", terminal=VirtualTerminal(keys=CTRL_C))


class TestReadLineFailures:
    def test_end_of_input_is_read_failure(self) -> None:
        term = VirtualTerminal(keys=b"ihi")
        with pytest.raises(ReadFailureError):
            read_line(b"prompt", terminal=term)
        assert term.restores == 1
        assert term.raw is False

    def test_malformed_initial_report(self) -> None:
        term = VirtualTerminal(keys=b"ihi" + CTRL_C)
        term.report_override = b"\x1b[1:7R"
        with pytest.raises(MalformedResponseError):
            read_line(b"prompt", terminal=term)
        assert term.restores == 1

    def test_restore_failure_is_logged_not_raised(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        term = VirtualTerminal(keys=b"ihi" + CTRL_C)
        term.fail_restore = True
        with caplog.at_level(logging.WARNING, logger="eazyinput.editor"):
            assert read_line(b"prompt", terminal=term) == b"hi"
        assert "failed to restore terminal mode" in caplog.text

    def test_restore_failure_does_not_mask_read_failure(self) -> None:
        term = VirtualTerminal(keys=b"i")
        term.fail_restore = True
        with pytest.raises(ReadFailureError):
            read_line(b"prompt", terminal=term)
        assert term.restores == 1


# ---------------------------------------------------------------------------
# Cursor motion and insertion
# ---------------------------------------------------------------------------


class TestMotion:
    def test_insert_in_middle(self) -> None:
        line, editor, term = run(b"iac" + CTRL_D + b"hib" + CTRL_C)
        assert line == b"abc"
        assert editor.state.index == 2
        assert term.line(1) == "promptabc"

    def test_left_stops_at_start(self) -> None:
        line, editor, _ = run(b"hhhix" + CTRL_D + b"hhh" + CTRL_C)
        assert line == b"x"
        assert editor.state.index == 0
        assert editor.state.cursor_pos == CursorPosition(1, 7)

    def test_right_stops_at_end(self) -> None:
        _, editor, _ = run(b"ia" + CTRL_D + b"lll" + CTRL_C)
        assert editor.state.index == 1
        assert editor.state.cursor_pos == CursorPosition(1, 8)

    def test_vertical_motion_is_noop(self) -> None:
        term = VirtualTerminal()
        term.write(b"> ")
        editor = start_session(term)
        before = (editor.state.index, editor.state.cursor_pos)
        assert editor.handle_key(ord("j")) is KeyOutcome.HANDLED
        assert editor.handle_key(ord("k")) is KeyOutcome.HANDLED
        assert (editor.state.index, editor.state.cursor_pos) == before

    def test_mode_switches(self) -> None:
        editor = start_session(VirtualTerminal())
        assert editor.state.mode is EditMode.NORMAL
        editor.handle_key(ord("i"))
        assert editor.state.mode is EditMode.INSERT
        editor.handle_key(CTRL_D[0])
        assert editor.state.mode is EditMode.NORMAL

    def test_index_stays_in_bounds(self) -> None:
        editor = start_session(VirtualTerminal())
        for key in b"lhilx" + CTRL_D + b"llhhhhlll":
            editor.handle_key(key)
            state = editor.state
            assert 0 <= state.index <= state.buffer.length


class TestInsertion:
    def test_full_buffer_saturates(self) -> None:
        line, editor, _ = run(b"iabcde" + CTRL_C, options=EditorOptions(capacity=3))
        assert line == b"abc"
        assert editor.state.index == 3

    def test_full_buffer_keeps_cursor(self) -> None:
        editor = start_session(VirtualTerminal(), capacity=1)
        editor.handle_key(ord("i"))
        editor.handle_key(ord("a"))
        pos = editor.state.cursor_pos
        assert editor.handle_key(ord("b")) is KeyOutcome.HANDLED
        assert editor.state.cursor_pos == pos
        assert editor.state.buffer.contents() == b"a"

    def test_control_bytes_are_text_in_insert_mode(self) -> None:
        line, _, _ = run(b"i\x01" + CTRL_C)
        assert line == b"\x01"


class TestUnboundKeys:
    def test_normal_mode_rings_bell(self) -> None:
        line, _, term = run(b"ia" + CTRL_D + b"x" + CTRL_C)
        assert line == b"a"
        assert term.errors == b"\x07"

    def test_visual_mode_is_not_implemented(self, caplog: pytest.LogCaptureFixture) -> None:
        term = VirtualTerminal()
        editor = start_session(term)
        editor.state.mode = EditMode.VISUAL
        with caplog.at_level(logging.INFO, logger="eazyinput.editor"):
            assert editor.handle_key(ord("v")) is KeyOutcome.NOT_IMPLEMENTED
        assert term.errors == b"\x07"
        assert "not implemented" in caplog.text
        assert editor.state.buffer.length == 0

    def test_visual_mode_abort(self) -> None:
        editor = start_session(VirtualTerminal())
        editor.state.mode = EditMode.VISUAL
        assert editor.handle_key(CTRL_C[0]) is KeyOutcome.HANDLED
        assert editor.state.done is True

    def test_handle_key_without_session(self) -> None:
        editor = LineEditor(VirtualTerminal())
        with pytest.raises(RuntimeError):
            editor.handle_key(ord("i"))


# ---------------------------------------------------------------------------
# Wrapping, scrolling and resizing
# ---------------------------------------------------------------------------


class TestWrapping:
    def test_line_wraps_at_width(self) -> None:
        line, editor, term = run(
            b"iabcdefghij" + CTRL_C, prompt=b"> ", rows=5, columns=10
        )
        assert line == b"abcdefghij"
        assert term.line(1) == "> abcdefgh"
        assert term.line(2) == "ij"
        assert editor.state.cursor_pos == CursorPosition(2, 3)
        assert editor.state.max_cursor_pos == CursorPosition(2, 3)

    def test_left_motion_crosses_wrap(self) -> None:
        _, editor, _ = run(
            b"i123456789" + CTRL_D + b"hh" + CTRL_C, prompt=b"> ", rows=5, columns=10
        )
        assert editor.state.index == 7
        assert editor.state.cursor_pos == CursorPosition(1, 10)

    def test_scrolling_moves_prompt_origin(self) -> None:
        term = VirtualTerminal(keys=b"iabcdefghijkl" + CTRL_C, rows=3, columns=10)
        term.move_to(3, 1)
        editor = LineEditor(term)
        assert editor.read_line(b"> ") == b"abcdefghijkl"
        assert editor.state.initial_cursor_pos == CursorPosition(2, 3)
        assert editor.state.cursor_pos == CursorPosition(3, 5)
        # The final newline scrolled once more
        assert term.line(1) == "> abcdefgh"
        assert term.line(2) == "ijkl"

    def test_line_ending_at_bottom_right_corner(self) -> None:
        term = VirtualTerminal(keys=b"iabcdefgh" + CTRL_C, rows=3, columns=10)
        term.move_to(3, 1)
        editor = LineEditor(term)
        assert editor.read_line(b"> ") == b"abcdefgh"
        assert editor.state.index == 8
        assert editor.state.initial_cursor_pos == CursorPosition(3, 3)
        # Not back over the prompt on the same row
        assert editor.state.cursor_pos == CursorPosition(3, 10)

    def test_cursor_after_last_byte_on_bottom_row(self) -> None:
        term = VirtualTerminal(rows=3, columns=10)
        term.move_to(3, 1)
        term.write(b"> ")
        editor = start_session(term)
        for key in b"iabcdefgh":
            editor.handle_key(key)
        assert term.line(3) == "> abcdefgh"
        assert term.cursor == (3, 10)
        assert editor.state.cursor_pos == CursorPosition(*term.cursor)

    def test_dimensions_refreshed_every_key(self) -> None:
        term = VirtualTerminal(rows=24, columns=80)
        editor = start_session(term)
        term.resize(rows=10, columns=40)
        editor.handle_key(ord("i"))
        assert editor.state.terminal_dims == TerminalDimensions(width=40, height=10)


class TestGeometry:
    dims = TerminalDimensions(width=10, height=3)

    def test_within_row(self) -> None:
        origin = CursorPosition(1, 3)
        assert position_of(origin, 0, self.dims) == CursorPosition(1, 3)
        assert position_of(origin, 7, self.dims) == CursorPosition(1, 10)

    def test_wraps_to_next_row(self) -> None:
        origin = CursorPosition(1, 3)
        assert position_of(origin, 8, self.dims) == CursorPosition(2, 1)
        assert position_of(origin, 20, self.dims) == CursorPosition(3, 3)

    def test_past_last_row_parks_in_last_cell(self) -> None:
        assert position_of(CursorPosition(3, 3), 8, self.dims) == CursorPosition(3, 10)
        assert position_of(CursorPosition(1, 3), 30, self.dims) == CursorPosition(3, 10)

    def test_last_row_before_wrap(self) -> None:
        assert position_of(CursorPosition(3, 3), 7, self.dims) == CursorPosition(3, 10)
        assert position_of(CursorPosition(3, 3), 6, self.dims) == CursorPosition(3, 9)
