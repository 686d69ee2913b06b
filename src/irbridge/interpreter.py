# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
R interpreter session.

Open sequence:
1. start this session's IRkernel process
2. make sure the process-wide RBackend is started (once, under its lock)
3. run the bootstrap handshake so the kernel connects back to the backend

Important boundary:
- The interpreter never stops the shared backend; close() only shuts
  down this session's kernel.
- Properties, backend, capabilities and kernel client are all injected;
  defaults are built only when an argument is omitted.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Mapping
from typing import Any

from .backend import RBackend
from .bootstrap import (
    R_CAPABILITIES,
    SPARK_R_CAPABILITIES,
    KernelBootstrapper,
    KernelCapabilities,
)
from .config import (
    BACKEND_PORT_KEY,
    DEFAULT_BACKEND_PORT,
    DEFAULT_MAX_RESULT,
    DEFAULT_OUTPUT_MAX_BYTES,
    DEFAULT_STARTUP_TIMEOUT,
    MAX_RESULT_KEY,
    OUTPUT_MAX_BYTES_KEY,
    STARTUP_TIMEOUT_KEY,
    InterpreterConfig,
    load_interpreter_config,
)
from .context import RContext
from .errors import InterpreterError
from .interfaces import Backend, ExecuteRequest, ExecuteResponse, KernelClient
from .jupyter import JupyterKernelClient

logger = logging.getLogger(__name__)


class IRInterpreter:
    """R interpreter running on IRkernel, sharing one backend per process."""

    KERNEL_NAME = "ir"

    def __init__(
        self,
        properties: Mapping[str, Any] | InterpreterConfig | None = None,
        backend: Backend | None = None,
        capabilities: KernelCapabilities = R_CAPABILITIES,
        client: KernelClient | None = None,
    ):
        if isinstance(properties, InterpreterConfig):
            self.config = properties
        else:
            self.config = load_interpreter_config(properties)

        self.capabilities = capabilities
        self.backend = backend
        self.client = client
        self.bootstrapper = KernelBootstrapper(capabilities)
        self.opened = False

    def get_kernel_name(self) -> str:
        return self.KERNEL_NAME

    def _default_backend(self) -> Backend:
        port = self.config.get_int(BACKEND_PORT_KEY, DEFAULT_BACKEND_PORT)
        return RBackend.get(port)

    def _default_client(self) -> KernelClient:
        return JupyterKernelClient(
            kernel_name=self.get_kernel_name(),
            startup_timeout=self.config.get_int(
                STARTUP_TIMEOUT_KEY, DEFAULT_STARTUP_TIMEOUT
            ),
            max_output_bytes=self.config.get_int(
                OUTPUT_MAX_BYTES_KEY, DEFAULT_OUTPUT_MAX_BYTES
            ),
        )

    # -----------------------
    # Session
    # -----------------------

    def open(self) -> None:
        """Start the kernel and the shared backend, then run the handshake.

        Calling open() on an already open session is a no-op.
        """
        if self.opened:
            return

        if self.client is None:
            self.client = self._default_client()
        self.client.start()

        if self.backend is None:
            self.backend = self._default_backend()
        # Shared across sessions: only the first caller initialises it.
        self.backend.ensure_started(self.capabilities.secret_supported)

        try:
            self.bootstrapper.bootstrap(
                self.backend, self.config, self.client.block_execute
            )
        except OSError as e:
            raise InterpreterError(
                "Fail to init IR Kernel:\n" + traceback.format_exc()
            ) from e

        self.opened = True

    def interpret(self, code: str) -> ExecuteResponse:
        if not self.opened or self.client is None:
            raise InterpreterError("Interpreter is not open")
        return self.client.block_execute(ExecuteRequest(code=code))

    def close(self) -> None:
        if self.client is not None:
            self.client.shutdown()
        self.opened = False

    def build_context(self) -> RContext:
        return RContext(
            max_result=self.config.get_int(MAX_RESULT_KEY, DEFAULT_MAX_RESULT)
        )


def spark_r_interpreter(
    properties: Mapping[str, Any] | InterpreterConfig | None = None,
    backend: Backend | None = None,
    client: KernelClient | None = None,
) -> IRInterpreter:
    """IRInterpreter whose kernel also sets up SparkR."""
    return IRInterpreter(
        properties,
        backend=backend,
        capabilities=SPARK_R_CAPABILITIES,
        client=client,
    )
