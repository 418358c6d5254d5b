# server/__init__.py

from .http_server import HttpFileServer, ServerState
from .mime import CONTENT_TYPES, DEFAULT_CONTENT_TYPE, content_type_for
from .request import Request, normalize_target, parse_request_line
from .response import Response

__all__ = [
    "HttpFileServer", "ServerState",
    "CONTENT_TYPES", "DEFAULT_CONTENT_TYPE", "content_type_for",
    "Request", "normalize_target", "parse_request_line",
    "Response",
]
