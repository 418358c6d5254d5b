# webembed/bridge/codec.py
from __future__ import annotations

import json
import math
from typing import Any, Dict, Optional

from webembed.core.errors import BridgeDecodeError
from .message import BridgeCommand, BridgePayload, MessageKind

# Wire keys as read by the bundled web app.
KEY_KIND = "type"
KEY_ACTION = "action"
KEY_PAYLOAD = "data"
KEY_TIMESTAMP = "timestamp"


def to_wire(cmd: BridgeCommand) -> Dict[str, Any]:
    return {
        KEY_KIND: cmd.kind.value,
        KEY_ACTION: cmd.action,
        KEY_PAYLOAD: cmd.payload.to_dict(),
        KEY_TIMESTAMP: cmd.timestamp_ms,
    }


def encode(cmd: BridgeCommand) -> str:
    return json.dumps(to_wire(cmd), separators=(",", ":"))


def script_call(function: str, wire_text: str) -> str:
    """
    Script that hands `wire_text` to `function` in the renderer.

    The JSON text is passed as a JS string literal (json.dumps output is valid
    JS and escapes quotes, backticks stay inert, U+2028/2029 are escaped).
    """
    return f"{function}({json.dumps(wire_text)});"


def strip_marker(raw: str, marker: str) -> Optional[str]:
    """Remainder after `marker`, or None if raw does not start with it."""
    if not raw.startswith(marker):
        return None
    return raw[len(marker):]


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"unsupported JSON constant {name}")


def decode(text: str) -> BridgeCommand:
    """
    Parse wire text into a BridgeCommand.

    Raises BridgeDecodeError for anything that is not a well-formed message.
    Unknown top-level keys and unknown payload fields are ignored.
    """
    try:
        obj = json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError, RecursionError) as e:
        raise BridgeDecodeError("Bridge message is not valid JSON.", hint=str(e)) from None

    if not isinstance(obj, dict):
        raise BridgeDecodeError(
            "Bridge message must be a JSON object.",
            details={"got": type(obj).__name__},
        )

    action = obj.get(KEY_ACTION)
    if not isinstance(action, str) or not action:
        raise BridgeDecodeError("Bridge message is missing 'action'.", details={"keys": sorted(obj.keys())})

    kind_raw = obj.get(KEY_KIND, MessageKind.EVENT.value)
    try:
        kind = MessageKind(kind_raw)
    except ValueError:
        raise BridgeDecodeError(
            f"Unknown bridge message type {kind_raw!r}.",
            hint=f"Valid types: {[k.value for k in MessageKind]}",
        ) from None

    ts = obj.get(KEY_TIMESTAMP, 0)
    if isinstance(ts, bool) or not isinstance(ts, (int, float)):
        raise BridgeDecodeError("Bridge message 'timestamp' must be a number.", details={"timestamp": ts})
    if isinstance(ts, float) and not math.isfinite(ts):
        raise BridgeDecodeError("Bridge message 'timestamp' must be finite.", details={"timestamp": str(ts)})

    data = obj.get(KEY_PAYLOAD)
    if data is not None and not isinstance(data, dict):
        raise BridgeDecodeError("Bridge message 'data' must be an object.", details={"got": type(data).__name__})

    try:
        payload = BridgePayload.from_mapping(data, strict=True)
    except TypeError as e:
        raise BridgeDecodeError("Bridge message payload is invalid.", hint=str(e)) from None

    return BridgeCommand(action=action, payload=payload, kind=kind, timestamp_ms=int(ts))
