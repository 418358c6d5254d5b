# webembed/server/http_server.py
from __future__ import annotations

import logging
import socket
import sys
import threading
import time
from enum import Enum
from typing import Any, List, Optional, Set

from webembed.assets.store import AssetStore
from webembed.core.errors import ServerStartError
from .mime import content_type_for
from .request import normalize_target, parse_request_line
from .response import Response, method_not_allowed, not_found, ok, server_error
from ._internal.acceptor import AcceptorThread
from ._internal.connection import ConnectionWorker


class ServerState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    LISTENING = "listening"
    STOPPING = "stopping"


class HttpFileServer:
    """
    Minimal loopback HTTP server for a bundled web app.

    - one acceptor thread, one worker thread per connection
    - GET only, request line only, one response per connection
    - no keep-alive, no per-connection timeout
    """

    RECV_BUFFER_SIZE = 4096

    def __init__(
        self,
        store: AssetStore,
        *,
        host: str = "127.0.0.1",
        root_namespace: str = "flutter/",
        index_document: str = "index.html",
        grace_period_s: float = 1.0,
        reject_non_get: bool = False,
        ready_timeout_s: Optional[float] = None,
        backlog: int = 64,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.host = host
        self.root_namespace = root_namespace
        self.index_document = index_document
        self.grace_period_s = float(grace_period_s)
        self.reject_non_get = bool(reject_non_get)
        self.ready_timeout_s = ready_timeout_s
        self.backlog = int(backlog)

        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._state = ServerState.STOPPED
        self._running = threading.Event()
        self._listener: Optional[socket.socket] = None
        self._acceptor: Optional[AcceptorThread] = None
        self._port: Optional[int] = None

        self._workers_lock = threading.Lock()
        self._workers: Set[ConnectionWorker] = set()

    # ---------------- State ----------------
    @property
    def state(self) -> ServerState:
        with self._lock:
            return self._state

    @property
    def running(self) -> bool:
        return self._running.is_set()

    @property
    def port(self) -> Optional[int]:
        """Bound port (resolved when started with port=0), None while stopped."""
        return self._port

    @property
    def active_connections(self) -> int:
        with self._workers_lock:
            return len(self._workers)

    def _set_state(self, state: ServerState) -> None:
        with self._lock:
            self._state = state

    # ---------------- Lifecycle ----------------
    def start(self, port: int = 8088) -> None:
        with self._lock:
            if self._state is not ServerState.STOPPED:
                raise ServerStartError(
                    "HTTP server is already running.",
                    details={"state": self._state.value, "port": self._port},
                )
            self._state = ServerState.STARTING

        # Preload-backed stores gate serving until their cache is complete.
        if not self.store.wait_ready(self.ready_timeout_s):
            self._set_state(ServerState.STOPPED)
            self._log.error("SERVER_START_ABORTED reason=store_not_ready store=%s", self.store.describe())
            raise ServerStartError(
                "Asset store did not become ready.",
                hint="Preload has not completed; check the asset source.",
                details={"store": self.store.describe(), "timeout_s": self.ready_timeout_s},
            )

        sock: Optional[socket.socket] = None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            if sys.platform != "win32":
                # Windows treats SO_REUSEADDR as "share a bound port"; skip it there.
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, int(port)))
            sock.listen(self.backlog)
        except (OSError, OverflowError) as e:
            if sock is not None:
                sock.close()
            self._set_state(ServerState.STOPPED)
            self._log.error("PORT_BIND_FAILED host=%s port=%s err=%s", self.host, port, e)
            raise ServerStartError(
                f"Could not bind {self.host}:{port}.",
                hint=str(e),
                details={"host": self.host, "port": int(port)},
            ) from None

        self._listener = sock
        self._port = sock.getsockname()[1]
        self._running.set()

        self._acceptor = AcceptorThread(self, sock)
        self._acceptor.start()

        self._set_state(ServerState.LISTENING)
        self._log.info("SERVER_LISTENING url=http://localhost:%d/ store=%s", self._port, self.store.describe())

    def stop(self) -> None:
        with self._lock:
            if self._state is not ServerState.LISTENING:
                return
            self._state = ServerState.STOPPING

        deadline = time.monotonic() + self.grace_period_s
        self._running.clear()

        acceptor = self._acceptor
        if acceptor is not None:
            acceptor.stop()

        # Closing the listener is what unblocks accept(); shutdown() is needed on Linux.
        listener = self._listener
        self._listener = None
        if listener is not None:
            try:
                listener.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            listener.close()

        if acceptor is not None:
            acceptor.join(timeout=max(0.0, deadline - time.monotonic()))
            if acceptor.is_alive():
                self._log.warning("ACCEPTOR_JOIN_TIMEOUT")
        self._acceptor = None

        for worker in self._snapshot_workers():
            worker.join(timeout=max(0.0, deadline - time.monotonic()))

        stragglers = self._snapshot_workers()
        for worker in stragglers:
            worker.force_close()
        if stragglers:
            self._log.warning("FORCE_CLOSED_CONNECTIONS count=%d", len(stragglers))

        port = self._port
        self._port = None
        self._set_state(ServerState.STOPPED)
        self._log.info("SERVER_STOPPED port=%s", port)

    def __enter__(self) -> "HttpFileServer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ---------------- Workers ----------------
    def _spawn_worker(self, conn: socket.socket, peer: Any) -> None:
        worker = ConnectionWorker(self, conn, peer)
        with self._workers_lock:
            self._workers.add(worker)
        try:
            worker.start()
        except Exception:
            self._forget_worker(worker)
            raise

    def _forget_worker(self, worker: ConnectionWorker) -> None:
        with self._workers_lock:
            self._workers.discard(worker)

    def _snapshot_workers(self) -> List[ConnectionWorker]:
        with self._workers_lock:
            return list(self._workers)

    # ---------------- Request handling ----------------
    def _handle_connection(self, conn: socket.socket, peer: Any) -> None:
        raw = conn.recv(self.RECV_BUFFER_SIZE)

        request = parse_request_line(raw)
        if request is None:
            self._log.debug("REQUEST_MALFORMED peer=%s len=%d", peer, len(raw))
            return

        if request.method != "GET":
            self._log.debug("REQUEST_METHOD_REJECTED peer=%s method=%s", peer, request.method)
            if self.reject_non_get:
                conn.sendall(method_not_allowed(request.method).encode())
            return

        path = normalize_target(request.target, self.root_namespace, self.index_document)
        response = self._build_response(path)

        conn.sendall(response.head())
        if response.body:
            conn.sendall(response.body)

        self._log.debug("GET path=%s status=%d bytes=%d", path, response.status, len(response.body))

    def _build_response(self, path: str) -> Response:
        try:
            data = self.store.get(path)
            if data is None:
                self._log.warning("ASSET_NOT_FOUND path=%s", path)
                return not_found(path)
            return ok(data, content_type_for(path))
        except Exception:
            self._log.exception("ASSET_SERVE_FAILED path=%s", path)
            return server_error()
