# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

from __future__ import annotations

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.shortcuts import clear as pt_clear
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style


def _default_style() -> Style:
    return Style.from_dict({
        "bottom-toolbar": "bg:#0b0b0b #d0d0d0",
        "irbridge.toolbar": "bg:#0b0b0b #a0a0a0",
    })


class PromptToolkitUI:
    """
    Terminal-friendly UI for the R REPL:
      - keeps normal terminal scrollback
      - Ctrl+L clears the screen
      - bottom toolbar shows the kernel name
    """

    def __init__(self, kernel_name: str = "ir") -> None:
        self.kernel_name = kernel_name
        self.session: PromptSession[str] | None = None
        self._style = _default_style()

        # Track whether we ended on a newline (to prevent prompt mangling)
        self._needs_newline_before_prompt = False

    def _bottom_toolbar(self):
        return [("class:irbridge.toolbar", f" kernel: {self.kernel_name} ")]

    def build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("c-l")
        def _(event):
            event.app.renderer.clear()
            event.app.invalidate()

        return kb

    def _ensure_session(self) -> None:
        if self.session is not None:
            return
        self.session = PromptSession(
            history=InMemoryHistory(),
            key_bindings=self.build_key_bindings(),
            style=self._style,
            bottom_toolbar=self._bottom_toolbar,
        )

    # ---------- public API ----------

    def read(self, prompt: str) -> str:
        self._ensure_session()
        assert self.session is not None

        if self._needs_newline_before_prompt:
            print_formatted_text(ANSI("\n"), style=self._style, end="")
            self._needs_newline_before_prompt = False

        with patch_stdout():
            return self.session.prompt(ANSI(prompt + " "))

    def write(self, text: str) -> None:
        """Write exactly what we receive (no extra newline)."""
        if not text:
            return
        print_formatted_text(ANSI(text), style=self._style, end="")
        self._needs_newline_before_prompt = not text.endswith("\n")

    def clear(self) -> None:
        pt_clear()
