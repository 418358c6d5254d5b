# bridge/__init__.py

from .message import BridgeCommand, BridgePayload, MessageKind, PAYLOAD_FIELDS
from .channel import BridgeChannel, ScriptTransport
from .bootstrap import render_bootstrap_script
from .widgets import WidgetController

__all__ = [
    "BridgeCommand", "BridgePayload", "MessageKind", "PAYLOAD_FIELDS",
    "BridgeChannel", "ScriptTransport",
    "render_bootstrap_script",
    "WidgetController",
]
