# webembed/server/response.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

REASONS: Dict[int, str] = {
    200: "OK",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}


@dataclass(frozen=True)
class Response:
    status: int
    content_type: str
    body: bytes
    extra_headers: Tuple[Tuple[str, str], ...] = ()

    @property
    def reason(self) -> str:
        return REASONS.get(self.status, "Unknown")

    def head(self) -> bytes:
        """Status line + headers + blank line."""
        lines = [
            f"HTTP/1.1 {self.status} {self.reason}",
            f"Content-Type: {self.content_type}",
            f"Content-Length: {len(self.body)}",
            "Access-Control-Allow-Origin: *",
            "Connection: close",
        ]
        lines.extend(f"{k}: {v}" for k, v in self.extra_headers)
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")

    def encode(self) -> bytes:
        return self.head() + self.body


def ok(body: bytes, content_type: str) -> Response:
    return Response(200, content_type, body)


def not_found(path: str) -> Response:
    return Response(404, "text/plain; charset=utf-8", f"404 - File Not Found: {path}".encode("utf-8"))


def method_not_allowed(method: str) -> Response:
    return Response(
        405,
        "text/plain; charset=utf-8",
        f"405 - Method Not Allowed: {method}".encode("utf-8"),
        extra_headers=(("Allow", "GET"),),
    )


def server_error() -> Response:
    return Response(500, "text/plain; charset=utf-8", b"500 - Internal Server Error")
