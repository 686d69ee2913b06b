# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Utility functions for IRBridge.
"""

from __future__ import annotations

from typing import Any

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


def parse_bool(value: Any, default: bool = False) -> bool:
    """Interpret a property value as a boolean.

    Unrecognised strings fall back to ``default``.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return default
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    return default


def format_table(
    headers: list[str],
    rows: list[list[Any]],
    title: str = ""
) -> str:
    """
    Format rows as a plain text table with left-aligned columns.

    Args:
        headers: Column header names
        rows: Row values; short rows leave trailing columns empty
        title: Optional line printed above the header

    Returns:
        Formatted table, or "" when there are no rows
    """
    if not rows:
        return ""

    str_headers = [str(h) for h in headers]
    str_rows = [[str(val) for val in row] for row in rows]

    widths = [len(h) for h in str_headers]
    for row in str_rows:
        for i, val in enumerate(row[:len(widths)]):
            widths[i] = max(widths[i], len(val))

    def _line(values: list[str]) -> str:
        cells = [val.ljust(widths[i]) for i, val in enumerate(values[:len(widths)])]
        return "  ".join(cells).rstrip()

    lines = []
    if title:
        lines.append(title)
    lines.append(_line(str_headers))
    for row in str_rows:
        lines.append(_line(row))

    return "\n".join(lines)
