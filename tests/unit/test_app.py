"""Unit tests for the Textual key mapping."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from gadget.tui.app import key_name


class TestKeyName:
    @pytest.mark.parametrize("key,character,expected", [
        ("a", "a", "a"),
        ("A", "A", "A"),
        ("space", " ", " "),
        ("colon", ":", ":"),
        ("enter", "\r", "enter"),
        ("escape", "\x1b", "escape"),
        ("backspace", "\x7f", "backspace"),
        ("ctrl+c", "\x03", "ctrl+c"),
        ("up", None, "up"),
    ])
    def test_mapping(self, key, character, expected):
        assert key_name(SimpleNamespace(key=key, character=character)) == expected
