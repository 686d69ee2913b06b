# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
IRBridge CLI entry point and REPL loop.

Design:
- CLI owns process startup, logging setup and config loading.
- IRInterpreter is the session engine (config injected).
- UI is a prompt_toolkit PromptSession unless IRBRIDGE_LEGACY_UI=1.
"""

from __future__ import annotations

import logging
import os
import sys
import traceback
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from . import config
from .errors import InterpreterError
from .interpreter import IRInterpreter, spark_r_interpreter

logger = logging.getLogger(__name__)

CLEAR_COMMANDS = {"cls", "\x0c"}
EXIT_COMMANDS = {"q()", "quit()", "exit"}


class ReplUI(Protocol):
    def read(self, prompt: str) -> str: ...

    def write(self, text: str) -> None: ...

    def clear(self) -> None: ...


def write_crash_log(error: Exception, code: str = "", kernel: str = "") -> None:
    """Append an entry to <data_root>/irbridge/logs/crash.log.

    Only creates the log directory when actually needed.
    """
    try:
        log_dir = config.logs_dir(config.get_data_root())
        log_dir.mkdir(parents=True, exist_ok=True)

        lines = [datetime.now().isoformat(), f"kernel={kernel}"]
        if code:
            lines.append(f"code={code}")
        lines.append(f"error={type(error).__name__}: {error}")
        lines.append("traceback:")
        lines.append(traceback.format_exc())
        lines.append("----")

        with (log_dir / "crash.log").open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")
    except OSError:
        # Already reporting a failure; the crash log is best-effort.
        logger.debug("Could not write crash log", exc_info=True)


def prompt_for(kernel_name: str) -> str:
    colors = config.ANSI_COLORS
    return f"{colors['cyan']}{kernel_name}{colors['pink']}>{colors['reset']}"


def run_repl(
    interpreter: IRInterpreter,
    ui: ReplUI | None = None,
    input_fn: Callable[[str], str] = input,
    output_fn: Callable[[str], None] = print,
) -> None:
    """Read R code line by line and run it in the interpreter."""
    prompt = prompt_for(interpreter.get_kernel_name())

    def _write(text: str) -> None:
        if ui is not None:
            ui.write(text)
        else:
            output_fn(text)

    while True:
        try:
            if ui is not None:
                line = ui.read(prompt)
            else:
                line = input_fn(prompt + " ")
        except (KeyboardInterrupt, EOFError):
            _write("\nBye!\n")
            break

        raw = line or ""
        line = raw.strip()
        if raw in CLEAR_COMMANDS or line in CLEAR_COMMANDS:
            if ui is not None:
                ui.clear()
            else:
                output_fn("\033[2J\033[H")
            continue

        if not line:
            continue
        if line in EXIT_COMMANDS:
            _write("Bye!\n")
            break

        try:
            response = interpreter.interpret(line)
        except Exception as e:
            write_crash_log(
                e, code=line, kernel=interpreter.get_kernel_name()
            )
            _write(f"[ERROR] Unhandled exception: {type(e).__name__}: {e}\n")
            continue

        if response.output:
            if response.ok:
                _write(response.output)
            else:
                red, reset = config.ANSI_COLORS["red"], config.ANSI_COLORS["reset"]
                _write(f"{red}{response.output}{reset}")


def configure_logging() -> None:
    level = os.environ.get("IRBRIDGE_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main() -> None:
    """Main entry point for the irbridge CLI."""
    configure_logging()

    use_spark = len(sys.argv) > 1 and sys.argv[1] == "spark"
    cfg = config.load_interpreter_config()
    interpreter = (
        spark_r_interpreter(cfg) if use_spark else IRInterpreter(cfg)
    )

    try:
        interpreter.open()
    except InterpreterError as e:
        write_crash_log(e, kernel=interpreter.get_kernel_name())
        print(f"[ERROR] {e}", file=sys.stderr)
        interpreter.close()
        sys.exit(1)

    try:
        if os.environ.get("IRBRIDGE_LEGACY_UI") == "1":
            run_repl(interpreter)
        else:
            from .ui import PromptToolkitUI

            run_repl(interpreter, ui=PromptToolkitUI(
                interpreter.get_kernel_name()
            ))
    finally:
        interpreter.close()
