"""Per-mode key tables for the line editor.

In insert mode every byte without a binding is text, so the bound keys are
the only ones that cannot be typed: ctrl+c, ctrl+d, and Enter (CR and LF,
which accept the line instead of inserting a newline).
"""

from __future__ import annotations

import enum
from typing import Literal

KeyId = str


class EditMode(enum.Enum):
    NORMAL = "normal"
    INSERT = "insert"
    VISUAL = "visual"


EditorAction = Literal[
    # Cursor movement
    "cursorLeft",
    "cursorRight",
    "cursorUp",
    "cursorDown",
    # Mode switches
    "enterInsert",
    "enterNormal",
    # Finishing the line
    "accept",
    "abort",
]

EditorKeybindingsConfig = dict[EditMode, dict[EditorAction, KeyId | list[KeyId]]]

DEFAULT_EDITOR_KEYBINDINGS: EditorKeybindingsConfig = {
    EditMode.NORMAL: {
        "cursorLeft": "h",
        "cursorRight": "l",
        # Reserved for multi-line editing; no-ops on a single line
        "cursorDown": "j",
        "cursorUp": "k",
        "enterInsert": "i",
        "accept": ["enter", "ctrl+j"],
        "abort": "ctrl+c",
    },
    EditMode.INSERT: {
        "enterNormal": "ctrl+d",
        "accept": ["enter", "ctrl+j"],
        "abort": "ctrl+c",
    },
    EditMode.VISUAL: {
        "accept": ["enter", "ctrl+j"],
        "abort": "ctrl+c",
    },
}

_NAMED_KEYS: dict[str, int] = {
    "enter": 0x0D,
    "tab": 0x09,
    "escape": 0x1B,
    "esc": 0x1B,
    "space": 0x20,
    "backspace": 0x7F,
}


def key_byte(key_id: KeyId) -> int:
    """Translate a key identifier to the byte a raw-mode terminal sends.

    Accepts single characters (``"h"``), named keys (``"enter"``) and
    control combinations (``"ctrl+c"``).
    """
    if len(key_id) == 1:
        return ord(key_id)
    if key_id in _NAMED_KEYS:
        return _NAMED_KEYS[key_id]
    if key_id.startswith("ctrl+") and len(key_id) == 6:
        code = ord(key_id[-1].lower())
        if ord("a") <= code <= ord("z") or key_id[-1] in "@[\\]^_":
            return code & 0x1F
    raise ValueError(f"unknown key: {key_id!r}")


class EditorKeybindingsManager:
    """Maps ``(mode, byte)`` to an editor action."""

    def __init__(self, config: EditorKeybindingsConfig | None = None) -> None:
        self._byte_to_action: dict[EditMode, dict[int, EditorAction]] = {}
        self._action_to_keys: dict[EditMode, dict[EditorAction, list[KeyId]]] = {}
        self._build_maps(config or {})

    def _build_maps(self, config: EditorKeybindingsConfig) -> None:
        self._byte_to_action.clear()
        self._action_to_keys.clear()

        for mode in EditMode:
            actions: dict[EditorAction, list[KeyId]] = {}
            for action, keys in DEFAULT_EDITOR_KEYBINDINGS.get(mode, {}).items():
                actions[action] = list(keys) if isinstance(keys, list) else [keys]
            # Override with user config
            for action, keys in config.get(mode, {}).items():
                actions[action] = list(keys) if isinstance(keys, list) else [keys]

            table: dict[int, EditorAction] = {}
            for action, key_ids in actions.items():
                for key_id in key_ids:
                    table[key_byte(key_id)] = action
            self._action_to_keys[mode] = actions
            self._byte_to_action[mode] = table

    def action_for(self, mode: EditMode, byte: int) -> EditorAction | None:
        """Return the action bound to *byte* in *mode*, if any."""
        return self._byte_to_action[mode].get(byte)

    def get_keys(self, mode: EditMode, action: EditorAction) -> list[KeyId]:
        """Get keys bound to an action in a mode."""
        return self._action_to_keys[mode].get(action, [])

    def set_config(self, config: EditorKeybindingsConfig) -> None:
        """Update configuration."""
        self._build_maps(config)
