# webembed/interfaces/transport_adapter.py
from __future__ import annotations

from typing import Callable, Protocol


class TransportAdapter(Protocol):
    """
    The embedded renderer as seen by the host.

    - evaluate(script): run script text in the page, fire-and-forget
    - on_message(cb): cb(raw_text) for every message the page posts
    - on_content_loaded(cb): cb(url) each time a page finishes loading
    """
    def evaluate(self, script: str) -> None: ...
    def on_message(self, callback: Callable[[str], None]) -> None: ...
    def on_content_loaded(self, callback: Callable[[str], None]) -> None: ...
