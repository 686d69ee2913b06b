# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Result context handed to the host for an R session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .utils import format_table


@dataclass
class RContext:
    """Per-session rendering limits plus the host's hook registry."""

    max_result: int = 1000
    hooks: dict[str, str] = field(default_factory=dict)

    def show_table(self, headers: list[str], rows: list[list[Any]]) -> str:
        """Render at most max_result rows."""
        shown = rows[:self.max_result]
        table = format_table(headers, shown)
        if len(rows) > len(shown):
            table += (
                f"\n[Results are limited by {self.max_result} rows, "
                f"{len(rows)} in total]"
            )
        return table

    def register_hook(self, event: str, code: str) -> None:
        self.hooks[event] = code

    def get_hook(self, event: str) -> str | None:
        return self.hooks.get(event)

    def unregister_hook(self, event: str) -> None:
        self.hooks.pop(event, None)
