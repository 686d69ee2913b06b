# IRBridge — R Kernel Bootstrap for Notebook Engines
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Shared communication backend for R kernels.

One RBackend is shared by every interpreter session of the process. It
listens on a local TCP port; each R kernel connects back to it during the
bootstrap handshake and authenticates by sending the socket secret as its
first line.

Lifecycle:
- init(): bind the listening socket, generate the secret
- start(): run the accept loop, mark the handle started
- ensure_started(): check-then-act of both under the handle's own lock

Once started, port and secret never change and the handle never goes back
to "not started" for the lifetime of the process.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import socket
import threading

from .errors import BackendInitError

logger = logging.getLogger(__name__)

MAX_AUTH_LINE_BYTES = 4096


class RBackend:
    """Shared TCP endpoint implementing the Backend protocol."""

    # Process-wide backends keyed by requested port (0 = OS-assigned).
    _shared: dict[int, RBackend] = {}
    _shared_lock = threading.Lock()

    def __init__(
        self, host: str = "127.0.0.1", port: int = 0,
        auth_timeout: float = 10.0
    ):
        """Create an unstarted backend.

        Args:
            host: interface to listen on
            port: port to bind; 0 lets the OS pick a free one
            auth_timeout: seconds a new connection has to send its secret
        """
        self.host = host
        self.requested_port = port
        self.auth_timeout = auth_timeout

        # Guards the check-then-act in ensure_started().
        self.lock = threading.Lock()

        self._started = False
        self._port: int | None = None
        self._secret: str | None = None
        self._server_sock: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None

        self._clients_lock = threading.Lock()
        self._clients: list[socket.socket] = []
        self.connection_count = 0

    @classmethod
    def get(cls, port: int = 0) -> RBackend:
        """Return the process-wide backend for port, creating it on first use.

        Every caller asking for the same port gets the same handle, so a
        fixed port is bound once no matter how many sessions use it.
        """
        with cls._shared_lock:
            backend = cls._shared.get(port)
            if backend is None:
                backend = cls(port=port)
                cls._shared[port] = backend
            return backend

    # -----------------------
    # Lifecycle
    # -----------------------

    def is_started(self) -> bool:
        return self._started

    def init(self, secret_enabled: bool) -> None:
        """Bind the listening socket and generate the secret.

        Must be called with ``lock`` held and only while not started.
        """
        if self._started:
            raise BackendInitError("SparkRBackend is already started")

        self._release_socket()

        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.bind((self.host, self.requested_port))
            sock.listen(16)
        except OSError as e:
            sock.close()
            raise BackendInitError(
                f"Fail to init SparkRBackend on "
                f"{self.host}:{self.requested_port}: {e}"
            ) from e

        self._server_sock = sock
        self._port = sock.getsockname()[1]
        self._secret = secrets.token_hex(32) if secret_enabled else None

    def start(self) -> None:
        """Start accepting kernel connections. Requires a successful init()."""
        if self._server_sock is None:
            raise BackendInitError(
                "SparkRBackend must be initialised before it is started"
            )

        thread = threading.Thread(
            target=self._accept_loop,
            args=(self._server_sock,),
            name=f"irbridge-backend-{self._port}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError as e:
            self._release_socket()
            raise BackendInitError(f"Fail to start SparkRBackend: {e}") from e

        self._accept_thread = thread
        self._started = True
        logger.info("SparkRBackend listening on %s:%s", self.host, self._port)

    def ensure_started(self, secret_enabled: bool) -> None:
        """Initialise and start the backend unless another caller already did."""
        with self.lock:
            if self._started:
                return
            self.init(secret_enabled)
            self.start()

    # -----------------------
    # Connection parameters
    # -----------------------

    def port(self) -> int:
        if not self._started or self._port is None:
            raise BackendInitError("SparkRBackend is not started")
        return self._port

    def socket_secret(self) -> str | None:
        """Secret kernels must present, or None when auth is disabled."""
        if not self._started:
            raise BackendInitError("SparkRBackend is not started")
        return self._secret

    @property
    def active_connections(self) -> int:
        with self._clients_lock:
            return len(self._clients)

    # -----------------------
    # Accept loop
    # -----------------------

    def _release_socket(self) -> None:
        if self._server_sock is not None:
            try:
                self._server_sock.close()
            except OSError:
                pass
        self._server_sock = None
        self._port = None
        self._secret = None

    def _accept_loop(self, server_sock: socket.socket) -> None:
        while True:
            try:
                conn, addr = server_sock.accept()
            except OSError:
                # Listening socket closed.
                break
            threading.Thread(
                target=self._handle_connection,
                args=(conn, addr),
                daemon=True,
            ).start()

    def _read_line(self, conn: socket.socket) -> str:
        buf = b""
        while not buf.endswith(b"\n"):
            chunk = conn.recv(1)
            if not chunk:
                break
            buf += chunk
            if len(buf) > MAX_AUTH_LINE_BYTES:
                raise ValueError("authentication line too long")
        return buf.decode("utf-8", errors="replace").strip()

    def _authenticate(self, presented: str) -> bool:
        if self._secret is None:
            return True
        return hmac.compare_digest(presented.encode(), self._secret.encode())

    def _handle_connection(self, conn: socket.socket, addr) -> None:
        try:
            conn.settimeout(self.auth_timeout)
            presented = self._read_line(conn)
            if not self._authenticate(presented):
                logger.warning("Rejected backend connection from %s:%s", *addr)
                conn.sendall(b"DENIED\n")
                conn.close()
                return
            conn.sendall(b"OK\n")
            conn.settimeout(None)
        except (OSError, ValueError) as e:
            logger.debug("Backend connection from %s failed: %s", addr, e)
            conn.close()
            return

        with self._clients_lock:
            self._clients.append(conn)
            self.connection_count += 1
        logger.debug("R kernel connected from %s:%s", *addr)

        # Hold the channel until the kernel hangs up.
        try:
            while conn.recv(4096):
                pass
        except OSError:
            pass
        finally:
            with self._clients_lock:
                if conn in self._clients:
                    self._clients.remove(conn)
            conn.close()
