# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Exception hierarchy for IRBridge.

Every failure of the open sequence surfaces as an InterpreterError (or a
subclass) and aborts session creation.
"""

from __future__ import annotations


class InterpreterError(Exception):
    """Base failure of an interpreter session."""


class BackendInitError(InterpreterError):
    """The shared R backend could not be initialised or started."""


class KernelBootstrapError(InterpreterError):
    """The bootstrap handshake with the R kernel did not succeed.

    ``output`` keeps the kernel-side diagnostic text.
    """

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output
