# webembed/server/_internal/acceptor.py
from __future__ import annotations

import socket
import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from webembed.server.http_server import HttpFileServer


class AcceptorThread(threading.Thread):
    """Thread that blocks in accept() and hands each connection to HttpFileServer."""

    def __init__(self, server: "HttpFileServer", listener: socket.socket):
        super().__init__(daemon=True, name="http-acceptor")
        self.server = server
        self.listener = listener
        self._stop_event = threading.Event()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                conn, addr = self.listener.accept()
            except OSError:
                if self._stop_event.is_set() or not self.server.running:
                    break
                self.server._log.exception("ACCEPT_FAILED port=%s", self.server.port)
                self._stop_event.wait(0.01)
                continue

            if self._stop_event.is_set():
                conn.close()
                break

            try:
                self.server._spawn_worker(conn, addr)
            except Exception:
                self.server._log.exception("WORKER_SPAWN_FAILED peer=%s", addr)
                conn.close()

    def stop(self) -> None:
        self._stop_event.set()
