# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
jupyter_client-backed implementation of the KernelClient protocol.

This module provides:
- start(): launch the kernel process and wait for it to become ready
- block_execute(): run code and collect its output into one ExecuteResponse
- shutdown(): stop channels and the kernel process

Output is captured up to max_output_bytes; anything past that is dropped
and a truncation notice is appended.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from jupyter_client import KernelManager

from .errors import InterpreterError
from .interfaces import ExecuteRequest, ExecuteResponse, ExecuteStatus

logger = logging.getLogger(__name__)

TRUNCATION_NOTICE = "\n[output truncated]\n"


class _CappedBuffer:
    """Accumulates text up to a byte budget."""

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max(0, int(max_bytes))
        self.parts: list[str] = []
        self.total_bytes = 0
        self.truncated = False

    def append(self, text: str) -> None:
        raw = text.encode("utf-8", errors="replace")
        remaining = self.max_bytes - self.total_bytes
        self.total_bytes += len(raw)
        if remaining <= 0:
            self.truncated = True
            return
        if len(raw) > remaining:
            # Keep a byte-safe slice of the chunk.
            self.parts.append(raw[:remaining].decode("utf-8", errors="ignore"))
            self.truncated = True
            return
        self.parts.append(text)

    def getvalue(self) -> str:
        text = "".join(self.parts)
        if self.truncated:
            text += TRUNCATION_NOTICE
        return text


def _msg_type(msg: dict[str, Any]) -> str:
    return msg.get("msg_type") or msg.get("header", {}).get("msg_type", "")


def _collect_output(buf: _CappedBuffer, msg: dict[str, Any]) -> None:
    content = msg.get("content", {})
    kind = _msg_type(msg)
    if kind == "stream":
        buf.append(content.get("text", ""))
    elif kind in ("execute_result", "display_data"):
        text = content.get("data", {}).get("text/plain")
        if text:
            buf.append(text if text.endswith("\n") else text + "\n")
    elif kind == "error":
        buf.append("\n".join(content.get("traceback", [])) + "\n")


class JupyterKernelClient:
    """Owns one kernel process and its blocking client."""

    def __init__(
        self,
        kernel_name: str = "ir",
        startup_timeout: float = 60,
        max_output_bytes: int = 256_000,
        manager_factory: Callable[..., Any] = KernelManager,
    ):
        """
        Args:
            kernel_name: Jupyter kernelspec to launch
            startup_timeout: seconds to wait for the kernel to be ready
            max_output_bytes: cap on captured output per execute call
            manager_factory: builds the kernel manager (KernelManager)
        """
        self.kernel_name = kernel_name
        self.startup_timeout = startup_timeout
        self.max_output_bytes = max_output_bytes
        self.manager_factory = manager_factory

        self.manager: Any = None
        self.client: Any = None
        # The shell channel is not safe for concurrent execute calls.
        self._execute_lock = threading.Lock()

    def start(self) -> None:
        if self.client is not None:
            return
        try:
            manager = self.manager_factory(kernel_name=self.kernel_name)
            manager.start_kernel()
        except Exception as e:
            raise InterpreterError(
                f"Fail to launch kernel '{self.kernel_name}': {e}"
            ) from e

        client = manager.client()
        client.start_channels()
        try:
            client.wait_for_ready(timeout=self.startup_timeout)
        except RuntimeError as e:
            client.stop_channels()
            manager.shutdown_kernel(now=True)
            raise InterpreterError(
                f"Kernel '{self.kernel_name}' did not become ready "
                f"within {self.startup_timeout} seconds"
            ) from e

        self.manager = manager
        self.client = client
        logger.info("Started kernel '%s'", self.kernel_name)

    def is_alive(self) -> bool:
        return self.manager is not None and bool(self.manager.is_alive())

    def block_execute(self, request: ExecuteRequest) -> ExecuteResponse:
        """Execute request.code and wait for the reply.

        When request.timeout expires the running cell is interrupted and
        TimeoutError is raised; the client stays usable afterwards.
        """
        if self.client is None:
            raise InterpreterError("Kernel client is not started")

        buf = _CappedBuffer(self.max_output_bytes)
        with self._execute_lock:
            try:
                reply = self.client.execute_interactive(
                    request.code,
                    timeout=request.timeout,
                    store_history=False,
                    output_hook=lambda msg: _collect_output(buf, msg),
                )
            except TimeoutError:
                logger.warning(
                    "Execute on kernel '%s' timed out after %ss, interrupting",
                    self.kernel_name,
                    request.timeout,
                )
                if self.manager is not None:
                    self.manager.interrupt_kernel()
                raise

        content = reply.get("content", {})
        if content.get("status") == "ok":
            return ExecuteResponse(ExecuteStatus.SUCCESS, buf.getvalue())

        if not buf.total_bytes and content.get("ename"):
            buf.append(f"{content['ename']}: {content.get('evalue', '')}\n")
        return ExecuteResponse(ExecuteStatus.ERROR, buf.getvalue())

    def shutdown(self) -> None:
        client, manager = self.client, self.manager
        self.client = None
        self.manager = None
        if client is not None:
            client.stop_channels()
        if manager is not None:
            manager.shutdown_kernel(now=False)
            logger.info("Stopped kernel '%s'", self.kernel_name)
