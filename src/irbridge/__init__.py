# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
IRBridge core package.

Runs R code in an IRkernel process for a host notebook engine, with all
sessions of the process sharing one communication backend.
"""
from .backend import RBackend as RBackend  # noqa: F401 (re-export)
from .interpreter import IRInterpreter as IRInterpreter  # noqa: F401 (re-export)
