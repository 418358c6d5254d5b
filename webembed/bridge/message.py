# webembed/bridge/message.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

PAYLOAD_FIELDS: Tuple[str, ...] = ("target", "visible", "animation", "message", "value")
_STRING_FIELDS: Tuple[str, ...] = ("target", "animation", "message", "value")


class MessageKind(str, Enum):
    COMMAND = "command"
    EVENT = "event"


@dataclass(frozen=True)
class BridgePayload:
    """
    Closed set of optional payload fields carried by a bridge message.

    Anything outside PAYLOAD_FIELDS cannot be represented and is dropped by
    from_mapping().
    """
    target: Optional[str] = None
    visible: Optional[bool] = None
    animation: Optional[str] = None
    message: Optional[str] = None
    value: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], *, strict: bool = False) -> "BridgePayload":
        """
        Build a payload from a loose mapping.

        strict=False (host side): string fields are coerced with str().
        strict=True (wire side): string fields must already be str.
        `visible` must be a bool in both modes. None values count as absent.
        """
        if not data:
            return cls()

        kwargs: Dict[str, Any] = {}
        for name in _STRING_FIELDS:
            v = data.get(name)
            if v is None:
                continue
            if not isinstance(v, str):
                if strict:
                    raise TypeError(f"payload field '{name}' must be a string, got {type(v).__name__}")
                v = str(v)
            kwargs[name] = v

        visible = data.get("visible")
        if visible is not None:
            if not isinstance(visible, bool):
                raise TypeError(f"payload field 'visible' must be a bool, got {type(visible).__name__}")
            kwargs["visible"] = visible

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Only the fields that are set, in canonical order."""
        out: Dict[str, Any] = {}
        for name in PAYLOAD_FIELDS:
            v = getattr(self, name)
            if v is not None:
                out[name] = v
        return out


def unrepresentable_keys(data: Optional[Mapping[str, Any]]) -> Tuple[str, ...]:
    if not data:
        return ()
    return tuple(k for k in data.keys() if k not in PAYLOAD_FIELDS)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class BridgeCommand:
    action: str
    payload: BridgePayload = field(default_factory=BridgePayload)
    kind: MessageKind = MessageKind.COMMAND
    timestamp_ms: int = 0

    @classmethod
    def create(
        cls,
        action: str,
        payload: Union[BridgePayload, Mapping[str, Any], None] = None,
        *,
        kind: MessageKind = MessageKind.COMMAND,
        clock: Callable[[], int] = now_ms,
    ) -> "BridgeCommand":
        if not action:
            raise ValueError("action must be a non-empty string")
        if not isinstance(payload, BridgePayload):
            payload = BridgePayload.from_mapping(payload)
        return cls(action=str(action), payload=payload, kind=MessageKind(kind), timestamp_ms=int(clock()))
