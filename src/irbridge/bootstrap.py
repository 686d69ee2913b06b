# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
IRkernel bootstrap handshake.

Configures a freshly started R kernel to connect back to the shared
backend by executing the templated script R/zeppelin_isparkr.R in it.

Steps:
- resolve the connection timeout property
- build the substitutions (port, version, lib path, timeout, flags, secret)
- load and render the script
- run it through a blocking execute call bounded by a deadline
- fail with KernelBootstrapError unless the kernel reports SUCCESS

No retries: a failed handshake aborts the session's open sequence.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from .config import (
    CONNECTION_TIMEOUT_KEY,
    DEFAULT_CONNECTION_TIMEOUT,
    package_path,
)
from .errors import InterpreterError, KernelBootstrapError
from .interfaces import (
    Backend,
    ExecuteFn,
    ExecuteRequest,
    ExecuteResponse,
    PropertyResolver,
)
from .rlib import get_spark_r_lib
from .template import render, unresolved_placeholders

logger = logging.getLogger(__name__)

BOOTSTRAP_SCRIPT = ("R", "zeppelin_isparkr.R")

# Extra seconds the caller waits past the deadline for the execute call
# to report its own timeout.
DEADLINE_GRACE_S = 2.0


@dataclass(frozen=True)
class KernelCapabilities:
    """What the R side supports.

    spark_supported: create a Spark session on top of the backend channel
    spark_version: encoded as major*10000 + minor*100 + patch
    secret_supported: backend connections must authenticate
    """

    spark_supported: bool = False
    spark_version: int = 20403
    secret_supported: bool = True


R_CAPABILITIES = KernelCapabilities()
SPARK_R_CAPABILITIES = KernelCapabilities(spark_supported=True)


def load_bootstrap_script() -> str:
    """Read the raw bootstrap template shipped with the package.

    OSError propagates; the interpreter's open sequence reports it.
    """
    return package_path(*BOOTSTRAP_SCRIPT).read_text(encoding="utf-8")


def _r_string(value: object) -> str:
    return '"' + str(value) + '"'


def call_with_deadline(
    execute_fn: ExecuteFn, request: ExecuteRequest, deadline_s: float
) -> ExecuteResponse:
    """Run a blocking execute call, giving up after deadline_s seconds.

    The deadline travels in request.timeout so the kernel client can stop
    waiting itself (and raise TimeoutError). The worker thread is only a
    backstop for execute functions that ignore it; such a worker is a
    daemon and is abandoned after DEADLINE_GRACE_S extra seconds.
    """
    result: dict[str, object] = {}

    def _worker() -> None:
        try:
            result["response"] = execute_fn(request)
        except BaseException as e:  # re-raised in the caller thread
            result["error"] = e

    worker = threading.Thread(
        target=_worker, name="irbridge-bootstrap", daemon=True
    )
    worker.start()
    worker.join(timeout=deadline_s + DEADLINE_GRACE_S)

    expired = KernelBootstrapError(
        f"Bootstrap script did not finish within {deadline_s:g} seconds"
    )
    if worker.is_alive():
        raise expired
    error = result.get("error")
    if isinstance(error, TimeoutError):
        raise expired from error
    if error is not None:
        raise InterpreterError(
            "Fail to execute bootstrap script"
        ) from error  # type: ignore[misc]
    return result["response"]  # type: ignore[return-value]


class KernelBootstrapper:
    """Performs the one-shot handshake for a single kernel."""

    def __init__(
        self,
        capabilities: KernelCapabilities = R_CAPABILITIES,
        script_loader: Callable[[], str] = load_bootstrap_script,
        lib_resolver: Callable[[bool], str] = get_spark_r_lib,
    ):
        self.capabilities = capabilities
        self.script_loader = script_loader
        self.lib_resolver = lib_resolver

    def resolve_timeout(self, config: PropertyResolver) -> str:
        timeout = config.get(
            CONNECTION_TIMEOUT_KEY, DEFAULT_CONNECTION_TIMEOUT
        ).strip()
        if not (timeout.isascii() and timeout.isdigit()) or int(timeout) < 1:
            raise InterpreterError(
                f"{CONNECTION_TIMEOUT_KEY} must be a positive whole number "
                f"of seconds, got {timeout!r}"
            )
        return timeout

    def build_context(self, backend: Backend, timeout: str) -> dict[str, str]:
        """Substitutions for the bootstrap template (R literals)."""
        caps = self.capabilities
        secret = backend.socket_secret() if caps.secret_supported else None
        return {
            "Port": str(backend.port()),
            "version": str(caps.spark_version),
            "libPath": _r_string(self.lib_resolver(caps.spark_supported)),
            "timeout": timeout,
            "isSparkSupported": _r_string(
                "true" if caps.spark_supported else "false"
            ),
            "authSecret": _r_string(secret or ""),
        }

    def render_script(self, backend: Backend, timeout: str) -> str:
        context = self.build_context(backend, timeout)
        code = render(self.script_loader(), context)

        leftover = unresolved_placeholders(code)
        if leftover:
            logger.warning(
                "Bootstrap script still has unresolved placeholders: %s",
                ", ".join(leftover),
            )
        return code

    def bootstrap(
        self,
        backend: Backend,
        config: PropertyResolver,
        execute_fn: ExecuteFn,
    ) -> None:
        """Run the handshake; raise KernelBootstrapError on failure."""
        timeout = self.resolve_timeout(config)
        code = self.render_script(backend, timeout)
        logger.info("Init IRKernel via script:\n%s", code)

        deadline_s = float(timeout)
        request = ExecuteRequest(code=code, timeout=deadline_s)
        response = call_with_deadline(execute_fn, request, deadline_s)

        if not response.ok:
            raise KernelBootstrapError(
                "Fail to setup JVMGateway\n" + response.output,
                output=response.output,
            )
