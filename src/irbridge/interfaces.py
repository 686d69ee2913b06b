# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Protocol definitions for dependency injection.

These interfaces keep the bootstrap logic independent from the kernel
transport, the property storage and the shared backend implementation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class ExecuteStatus(Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class ExecuteRequest:
    """Code to run; timeout (seconds) bounds the wait for the reply."""

    code: str
    timeout: float | None = None


@dataclass(frozen=True)
class ExecuteResponse:
    """Terminal result of a blocking execute call."""

    status: ExecuteStatus
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ExecuteStatus.SUCCESS


# Blocking execute call used by the bootstrap handshake.
ExecuteFn = Callable[[ExecuteRequest], ExecuteResponse]


class PropertyResolver(Protocol):
    """Protocol for named configuration lookup."""

    def get(self, name: str, default: str) -> str:
        """Return the property value as a string, or default if absent."""
        ...


class Backend(Protocol):
    """Protocol for the shared communication backend."""

    def is_started(self) -> bool:
        """Return whether the backend accepts connections."""
        ...

    def ensure_started(self, secret_enabled: bool) -> None:
        """Initialise and start the backend exactly once."""
        ...

    def port(self) -> int:
        """Listening port (valid once started)."""
        ...

    def socket_secret(self) -> str | None:
        """Authentication secret (valid once started)."""
        ...


class KernelClient(Protocol):
    """Protocol for a kernel process plus its execute channel."""

    def start(self) -> None:
        """Launch the kernel process and wait until it is ready."""
        ...

    def is_alive(self) -> bool:
        """Return whether the kernel process is running."""
        ...

    def block_execute(self, request: ExecuteRequest) -> ExecuteResponse:
        """Execute code and block until the kernel replies."""
        ...

    def shutdown(self) -> None:
        """Stop the kernel process."""
        ...
