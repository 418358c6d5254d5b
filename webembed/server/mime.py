# webembed/server/mime.py
from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: Dict[str, str] = {
    ".html": "text/html; charset=utf-8",
    ".js": "application/javascript; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".json": "application/json; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".wasm": "application/wasm",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
}


def content_type_for(path: str) -> str:
    """Content-Type by file extension only (case-insensitive)."""
    ext = PurePosixPath(path).suffix.lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)
