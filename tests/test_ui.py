"""
Tests for the prompt_toolkit REPL front end.
Terminal output and the prompt session are replaced with recorders.
"""

from __future__ import annotations

import contextlib
from types import SimpleNamespace

import pytest
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys

import irbridge.ui as ui_mod
from irbridge.ui import PromptToolkitUI


class FakeSession:
    def __init__(self, answers: list[str]) -> None:
        self.answers = answers
        self.messages: list[str] = []

    def prompt(self, message) -> str:
        self.messages.append(message.value)
        return self.answers.pop(0)


class FakeRenderer:
    def __init__(self) -> None:
        self.clears = 0

    def clear(self) -> None:
        self.clears += 1


class FakeApp:
    def __init__(self) -> None:
        self.renderer = FakeRenderer()
        self.invalidations = 0

    def invalidate(self) -> None:
        self.invalidations += 1


@pytest.fixture
def printed(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    calls: list[tuple[str, str]] = []

    def _print(text, style=None, end="\n"):
        calls.append((text.value, end))

    monkeypatch.setattr(ui_mod, "print_formatted_text", _print)
    monkeypatch.setattr(ui_mod, "patch_stdout", contextlib.nullcontext)
    return calls


def test_toolbar_shows_kernel_name():
    ui = PromptToolkitUI("ir")

    assert ui.session is None
    assert ui._bottom_toolbar() == [("class:irbridge.toolbar", " kernel: ir ")]


# ----------------------------------------------------------------
# write / read
# ----------------------------------------------------------------


def test_write_empty_text_prints_nothing(printed):
    ui = PromptToolkitUI()

    ui.write("")

    assert printed == []
    assert ui._needs_newline_before_prompt is False


def test_write_tracks_missing_trailing_newline(printed):
    ui = PromptToolkitUI()

    ui.write("[1] 2")
    assert ui._needs_newline_before_prompt is True

    ui.write("done\n")
    assert ui._needs_newline_before_prompt is False

    assert printed == [("[1] 2", ""), ("done\n", "")]


def test_read_emits_pending_newline_once(printed):
    ui = PromptToolkitUI()
    ui.session = FakeSession(["1 + 1", "q()"])

    ui.write("partial")
    assert ui.read("ir>") == "1 + 1"
    assert ui.read("ir>") == "q()"

    assert printed == [("partial", ""), ("\n", "")]
    assert ui.session.messages == ["ir> ", "ir> "]
    assert ui._needs_newline_before_prompt is False


def test_read_without_pending_output_prints_nothing(printed):
    ui = PromptToolkitUI()
    ui.session = FakeSession(["x"])

    assert ui.read("ir>") == "x"
    assert printed == []


# ----------------------------------------------------------------
# Key bindings / clear
# ----------------------------------------------------------------


def test_ctrl_l_clears_screen_and_redraws():
    kb = PromptToolkitUI().build_key_bindings()

    assert isinstance(kb, KeyBindings)
    assert len(kb.bindings) == 1
    binding = kb.bindings[0]
    assert binding.keys == (Keys.ControlL,)

    app = FakeApp()
    binding.handler(SimpleNamespace(app=app))

    assert app.renderer.clears == 1
    assert app.invalidations == 1


def test_clear_delegates_to_prompt_toolkit(monkeypatch: pytest.MonkeyPatch):
    calls: list[bool] = []
    monkeypatch.setattr(ui_mod, "pt_clear", lambda: calls.append(True))

    PromptToolkitUI().clear()

    assert calls == [True]
