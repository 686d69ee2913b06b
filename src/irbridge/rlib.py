# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Location of the SparkR library loaded by the bootstrap script.
"""

from __future__ import annotations

import os
from pathlib import Path

from .config import package_path
from .errors import InterpreterError


def get_spark_r_lib(spark_supported: bool) -> str:
    """Resolve the directory holding the SparkR package.

    Resolution order:
    1. $SPARK_HOME/R/lib
    2. $IRBRIDGE_HOME/interpreter/<r|spark>/R/lib
    3. the R/lib directory shipped with irbridge

    Raises InterpreterError if the resolved directory does not exist.
    """
    spark_home = os.getenv("SPARK_HOME")
    irbridge_home = os.getenv("IRBRIDGE_HOME")

    if spark_home:
        lib = Path(spark_home) / "R" / "lib"
    elif irbridge_home:
        flavor = "spark" if spark_supported else "r"
        lib = Path(irbridge_home) / "interpreter" / flavor / "R" / "lib"
    else:
        lib = package_path("R", "lib")

    if not lib.is_dir():
        raise InterpreterError(f"SparkR lib {lib} doesn't exist")
    return lib.as_posix()
