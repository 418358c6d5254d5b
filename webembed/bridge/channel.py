# webembed/bridge/channel.py
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Mapping, Optional, Protocol as TypingProtocol, Union

from webembed.core.errors import BridgeDecodeError
from . import codec
from .message import BridgeCommand, BridgePayload, MessageKind, now_ms


class ScriptTransport(TypingProtocol):
    """Minimal renderer interface for BridgeChannel (fire-and-forget)."""
    def evaluate(self, script: str) -> None: ...


class BridgeChannel:
    """
    Ordered host -> renderer command channel with buffering.

    While not ready (or with no transport attached) every command is queued.
    set_ready(True) drains the queue in FIFO order; set_ready(False) goes back
    to buffering. All state changes and dispatches run under one re-entrant
    lock, so an enqueue never interleaves with a drain.
    """

    def __init__(
        self,
        *,
        receiver_function: str = "window.receiveFromUnity",
        marker: str = "bridge:",
        on_message: Optional[Callable[[BridgeCommand], None]] = None,
        clock: Callable[[], int] = now_ms,
        logger: Optional[logging.Logger] = None,
    ):
        self.receiver_function = receiver_function
        self.marker = marker
        self.on_message = on_message
        self._clock = clock

        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._ready = False
        self._draining = False
        self._transport: Optional[ScriptTransport] = None
        self._queue: Deque[str] = deque()

    # ---------------- State ----------------
    @property
    def is_ready(self) -> bool:
        with self._lock:
            return self._ready

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    @property
    def lock(self) -> "threading.RLock":
        """Re-entrant lock guarding the queue and readiness; hold it to make a state change atomic with a send."""
        return self._lock

    @property
    def transport(self) -> Optional[ScriptTransport]:
        with self._lock:
            return self._transport

    def attach(self, transport: ScriptTransport) -> None:
        with self._lock:
            self._transport = transport
            self._log.info("BRIDGE_ATTACHED transport=%s", type(transport).__name__)
            self._drain()

    def detach(self) -> None:
        """Drop the transport reference and go back to buffering."""
        with self._lock:
            self._transport = None
            self._ready = False
            self._log.info("BRIDGE_DETACHED pending=%d", len(self._queue))

    def set_ready(self, ready: bool) -> None:
        ready = bool(ready)
        with self._lock:
            if ready == self._ready:
                return
            self._ready = ready
            self._log.info("BRIDGE_READY ready=%s pending=%d", ready, len(self._queue))
            if ready:
                self._drain()

    # ---------------- Outbound ----------------
    def enqueue(self, command: BridgeCommand) -> None:
        script = codec.script_call(self.receiver_function, codec.encode(command))
        with self._lock:
            self._queue.append(script)
            if self._can_dispatch():
                self._drain()
            else:
                self._log.debug("BRIDGE_QUEUED action=%s pending=%d", command.action, len(self._queue))

    def send(
        self,
        action: str,
        payload: Union[BridgePayload, Mapping[str, Any], None] = None,
        *,
        kind: MessageKind = MessageKind.COMMAND,
    ) -> BridgeCommand:
        """Build a timestamped command and enqueue it."""
        cmd = BridgeCommand.create(action, payload, kind=kind, clock=self._clock)
        self.enqueue(cmd)
        return cmd

    def _can_dispatch(self) -> bool:
        return self._ready and self._transport is not None and not self._draining

    def _drain(self) -> None:
        # Re-entrant calls (a transport calling back into enqueue) just append;
        # the outer loop picks their scripts up in order.
        if not self._can_dispatch():
            return
        self._draining = True
        try:
            while self._queue and self._ready and self._transport is not None:
                script = self._queue.popleft()
                self._dispatch(self._transport, script)
        finally:
            self._draining = False

    def _dispatch(self, transport: ScriptTransport, script: str) -> None:
        try:
            transport.evaluate(script)
        except Exception:
            self._log.exception("BRIDGE_DISPATCH_FAILED script_len=%d", len(script))

    # ---------------- Inbound ----------------
    def receive(self, raw: str) -> Optional[BridgeCommand]:
        """
        Decode one marker-prefixed inbound message.

        Never raises and never touches channel state. Returns the decoded
        command, or None if the text was discarded.
        """
        if not isinstance(raw, str):
            self._log.warning("BRIDGE_PARSE_FAILED err=non-text message type=%s", type(raw).__name__)
            return None

        text = codec.strip_marker(raw, self.marker)
        if text is None:
            self._log.warning("BRIDGE_PARSE_FAILED err=missing marker %r raw=%.200s", self.marker, raw)
            return None

        try:
            cmd = codec.decode(text)
        except BridgeDecodeError as e:
            self._log.warning("BRIDGE_PARSE_FAILED err=%s raw=%.200s", e.message, raw)
            return None

        self._log.debug("BRIDGE_RECEIVED kind=%s action=%s", cmd.kind.value, cmd.action)

        handler = self.on_message
        if handler is not None:
            try:
                handler(cmd)
            except Exception:
                self._log.exception("BRIDGE_HANDLER_ERROR action=%s", cmd.action)

        return cmd
