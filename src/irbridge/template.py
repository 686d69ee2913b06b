# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Bootstrap script templating.

Placeholders use the ``${name}`` form. Substitution is literal string
replacement: values are inserted as-is and are never re-scanned as patterns.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

PLACEHOLDER_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class TemplateError(ValueError):
    """Raised by strict rendering when placeholders stay unresolved."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            f"Missing substitutions for placeholders: {', '.join(missing)}"
        )
        self.missing = missing


def find_placeholders(template: str) -> list[str]:
    """Return placeholder names in order of first appearance (unique)."""
    seen: list[str] = []
    for name in PLACEHOLDER_PATTERN.findall(template):
        if name not in seen:
            seen.append(name)
    return seen


def unresolved_placeholders(
    text: str, substitutions: Mapping[str, str] | None = None
) -> list[str]:
    """Names that would survive rendering with the given substitutions."""
    subs = substitutions or {}
    return [name for name in find_placeholders(text) if name not in subs]


def render(
    template: str,
    substitutions: Mapping[str, str],
    strict: bool = False,
) -> str:
    """Substitute ``${key}`` tokens with their values.

    Placeholders without a matching key are left verbatim unless
    ``strict`` is set, in which case TemplateError is raised before any
    substitution happens.
    """
    if strict:
        missing = unresolved_placeholders(template, substitutions)
        if missing:
            raise TemplateError(missing)

    result = template
    for key, value in substitutions.items():
        result = result.replace("${" + key + "}", str(value))
    return result
