# webembed/bridge/widgets.py
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from .channel import BridgeChannel
from .message import BridgeCommand, BridgePayload, unrepresentable_keys

ACTION_TOGGLE_WIDGET = "toggleWidget"
ACTION_CHANGE_STYLE = "changeStyle"


class WidgetController:
    """
    Host-side helpers for showing, hiding and styling widgets in the page.

    Visibility is tracked per widget id; unknown widgets start hidden.
    """

    def __init__(self, channel: BridgeChannel, *, logger: Optional[logging.Logger] = None):
        self.channel = channel
        self._log = logger or logging.getLogger(__name__)
        # shares the channel lock: one lock order, re-entrant from transport callbacks
        self._lock = channel.lock
        self._visible: Dict[str, bool] = {}

    def is_visible(self, widget_id: str) -> bool:
        with self._lock:
            return self._visible.get(widget_id, False)

    def toggle_widget(self, widget_id: str, animation: str = "fade") -> BridgeCommand:
        with self._lock:
            new_state = not self._visible.get(widget_id, False)
            self._visible[widget_id] = new_state
            return self.channel.send(
                ACTION_TOGGLE_WIDGET,
                BridgePayload(target=widget_id, visible=new_state, animation=animation),
            )

    def set_widget_visibility(self, widget_id: str, visible: bool, animation: str = "fade") -> BridgeCommand:
        with self._lock:
            self._visible[widget_id] = bool(visible)
            return self.channel.send(
                ACTION_TOGGLE_WIDGET,
                BridgePayload(target=widget_id, visible=bool(visible), animation=animation),
            )

    def change_widget_style(self, widget_id: str, styles: Mapping[str, Any]) -> BridgeCommand:
        data: Dict[str, Any] = dict(styles)
        # the widget id wins over a "target" style key
        data["target"] = widget_id

        dropped = unrepresentable_keys(data)
        if dropped:
            self._log.warning("STYLE_KEYS_DROPPED target=%s keys=%s", widget_id, list(dropped))

        return self.channel.send(ACTION_CHANGE_STYLE, BridgePayload.from_mapping(data))
