# webembed/core/errors.py
from __future__ import annotations


class WebEmbedError(Exception):
    """
    Base class for all expected operational errors in webembed.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, host APIs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / setup errors (nothing started yet)
# ---------------------------------------------------------------------------

class ConfigError(WebEmbedError):
    """
    Configuration file or values are invalid.

    Examples:
      - config file missing or not valid YAML
      - unknown asset mode
      - wrong value type (port as string, preload_paths not a list)
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Server lifecycle errors
# ---------------------------------------------------------------------------

class ServerStartError(WebEmbedError):
    """
    HTTP server could not reach the Listening state.

    Examples:
      - port already in use
      - permission denied for a privileged port
      - server already running
    """
    code = "server_start_error"


# ---------------------------------------------------------------------------
# Asset errors
# ---------------------------------------------------------------------------

class AssetReadError(WebEmbedError):
    """
    Asset exists but its bytes could not be read.

    Examples:
      - permission denied on the bundle file
      - path resolves to a directory
    """
    code = "asset_read_error"


# ---------------------------------------------------------------------------
# Bridge errors
# ---------------------------------------------------------------------------

class BridgeDecodeError(WebEmbedError):
    """
    Inbound bridge text could not be decoded into a command.

    Examples:
      - not valid JSON
      - missing 'action'
      - payload field of the wrong type
    """
    code = "bridge_decode_error"
