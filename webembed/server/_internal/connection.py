# webembed/server/_internal/connection.py
from __future__ import annotations

import socket
import threading
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from webembed.server.http_server import HttpFileServer


class ConnectionWorker(threading.Thread):
    """Serves exactly one accepted connection, then closes it."""

    def __init__(self, server: "HttpFileServer", conn: socket.socket, peer: Any):
        super().__init__(daemon=True, name=f"http-conn-{peer}")
        self.server = server
        self.conn = conn
        self.peer = peer

    def run(self) -> None:
        try:
            self.server._handle_connection(self.conn, self.peer)
        except Exception:
            self.server._log.exception("CONNECTION_FAILED peer=%s", self.peer)
        finally:
            self._close()
            self.server._forget_worker(self)

    def force_close(self) -> None:
        """Unblock a worker stuck in recv()/send() (used on server stop)."""
        try:
            self.conn.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._close()

    def _close(self) -> None:
        try:
            self.conn.close()
        except OSError:
            pass
