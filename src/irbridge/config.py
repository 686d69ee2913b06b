# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Interpreter properties and data root resolution for IRBridge.

Handles:
- Property keys and their defaults
- Packaged YAML defaults loading (irbridge/defaults/*.yaml)
- User override file (IRBRIDGE_CONFIG) merged over the defaults
- Data root resolution (IRBRIDGE_DATA_HOME, ~/.local/share)
- Prompt coloring constants
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

try:
    # Py3.9+
    from importlib import resources as importlib_resources
except Exception:  # pragma: no cover
    import importlib_resources  # type: ignore

from .utils import parse_bool

# -----------------------
# Property keys
# -----------------------

CONNECTION_TIMEOUT_KEY = "spark.r.backendConnectionTimeout"
DEFAULT_CONNECTION_TIMEOUT = "6000"

MAX_RESULT_KEY = "zeppelin.r.maxResult"
DEFAULT_MAX_RESULT = 1000

STARTUP_TIMEOUT_KEY = "irbridge.kernel.startup_timeout"
DEFAULT_STARTUP_TIMEOUT = 60

BACKEND_PORT_KEY = "irbridge.backend.port"
DEFAULT_BACKEND_PORT = 0

OUTPUT_MAX_BYTES_KEY = "irbridge.output.max_bytes"
DEFAULT_OUTPUT_MAX_BYTES = 256_000

ANSI_COLORS: dict[str, str] = {
    "cyan": "\033[38;5;69;1m",
    "pink": "\033[38;5;169;1m",
    "reset": "\033[0m",
    "red": "\033[31m",
}


# -----------------------
# Property wrapper
# -----------------------


def _to_property_string(value: Any) -> str:
    # YAML gives real booleans; the host stores them as lowercase strings.
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class InterpreterConfig:
    """Flat property store implementing the PropertyResolver protocol."""

    def __init__(self, properties: Mapping[str, Any] | None = None):
        self._properties: dict[str, Any] = dict(properties or {})

    def get(self, name: str, default: str) -> str:
        """Return the property as a string; absent keys yield default."""
        value = self._properties.get(name)
        if value is None:
            return default
        return _to_property_string(value)

    def get_int(self, name: str, default: int) -> int:
        """Integer lookup; raises ValueError on a non-numeric value."""
        return int(self.get(name, str(default)).strip())

    def get_bool(self, name: str, default: bool) -> bool:
        return parse_bool(self._properties.get(name), default)

    def get_path(self, path: str, default: Any = None) -> Any:
        """
        Lookup for keys kept as nested mappings.
        Example: get_path("irbridge.kernel", {}) -> {"startup_timeout": 60}

        A flat key with the exact dotted name wins over nesting.
        """
        if not path:
            return default
        if path in self._properties:
            return self._properties[path]

        cur: Any = self._properties
        for part in path.split("."):
            if not isinstance(cur, dict) or part not in cur:
                return default
            cur = cur[part]
        return cur

    def with_overrides(self, overrides: Mapping[str, Any]) -> InterpreterConfig:
        merged = dict(self._properties)
        merged.update(overrides)
        return InterpreterConfig(merged)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._properties)

    def __contains__(self, name: object) -> bool:
        return name in self._properties


# -----------------------
# Data root
# -----------------------


def get_data_root() -> Path:
    """Get the data root directory for IRBridge.

    Resolution order:
    1. IRBRIDGE_DATA_HOME environment variable (if set)
    2. ~/.local/share
    """
    data_home = os.getenv("IRBRIDGE_DATA_HOME")
    if data_home:
        root = Path(data_home)
    else:
        root = Path.home() / ".local" / "share"

    root.mkdir(parents=True, exist_ok=True)
    return root


def logs_dir(data_root: Path) -> Path:
    """<data_root>/irbridge/logs"""
    return data_root / "irbridge" / "logs"


# -----------------------
# YAML loading
# -----------------------


def package_path(*parts: str) -> Path:
    """Installed path of a data file shipped inside the irbridge package."""
    return Path(
        importlib_resources.files("irbridge").joinpath(*parts)
    )  # type: ignore[arg-type]


def _flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat


def load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Load a YAML file that must hold a mapping; nested keys are flattened."""
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config YAML {path} must load to a mapping/dict.")
    return _flatten(data)


def load_defaults_yaml(filename: str = "interpreter.yaml") -> dict[str, Any]:
    """
    Load a YAML file from irbridge/defaults/.
    """
    path = package_path("defaults", filename)
    if not path.exists():
        raise FileNotFoundError(
            f"Missing defaults YAML: {filename} (looked in {path.parent})"
        )
    return load_yaml_mapping(path)


def load_interpreter_config(
    overrides: Mapping[str, Any] | None = None,
) -> InterpreterConfig:
    """
    Build the effective properties: packaged defaults, then the file named
    by IRBRIDGE_CONFIG (if any), then explicit overrides.
    """
    properties = load_defaults_yaml()

    user_file = os.getenv("IRBRIDGE_CONFIG")
    if user_file:
        properties.update(load_yaml_mapping(Path(user_file).expanduser()))

    if overrides:
        properties.update(overrides)
    return InterpreterConfig(properties)
