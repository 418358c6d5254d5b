# webembed/server/request.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Request:
    """Request line of an inbound HTTP request. Headers and body are never parsed."""
    method: str
    target: str


def parse_request_line(raw: bytes) -> Optional[Request]:
    """
    Parse 'METHOD TARGET [VERSION]' from the first line of `raw`.

    Returns None if the line has fewer than two space-separated parts.
    """
    text = raw.decode("utf-8", errors="replace")
    first = text.split("\n", 1)[0].rstrip("\r")
    parts = first.split(" ")
    if len(parts) < 2 or not parts[0]:
        return None
    return Request(method=parts[0], target=parts[1])


def normalize_target(target: str, root_namespace: str = "flutter/", index_document: str = "index.html") -> str:
    """
    Map a raw request target to a logical asset path.

    - one leading '/' is removed
    - everything from '?' onward is dropped
    - "" and the root namespace (with or without trailing '/') map to the
      namespace index document
    """
    path = target[1:] if target.startswith("/") else target

    q = path.find("?")
    if q >= 0:
        path = path[:q]

    ns = root_namespace.strip("/")
    if path == "" or (ns and path in (ns, ns + "/")):
        return f"{ns}/{index_document}" if ns else index_document
    return path
