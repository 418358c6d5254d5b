from __future__ import annotations

import json
import logging
import threading

from webembed.bridge.channel import BridgeChannel
from webembed.bridge.message import BridgeCommand, BridgePayload, MessageKind


class FakeTransport:
    """Records every evaluated script."""
    def __init__(self):
        self.scripts: list[str] = []
        self.raise_on_evaluate: Exception | None = None

    def evaluate(self, script: str) -> None:
        if self.raise_on_evaluate:
            raise self.raise_on_evaluate
        self.scripts.append(script)

    def actions(self) -> list[str]:
        return [_wire(s)["action"] for s in self.scripts]


def _wire(script: str) -> dict:
    inner = script[script.index("(") + 1:script.rindex(")")]
    return json.loads(json.loads(inner))


def _channel(**kwargs) -> BridgeChannel:
    return BridgeChannel(clock=lambda: 1000, logger=logging.getLogger("test"), **kwargs)


def _cmd(action: str, **payload) -> BridgeCommand:
    return BridgeCommand.create(action, payload, clock=lambda: 1000)


# -----------------------------
# Ordering / buffering
# -----------------------------

def test_enqueue_while_not_ready_never_dispatches():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)

    ch.enqueue(_cmd("a"))
    ch.enqueue(_cmd("b"))

    assert t.scripts == []
    assert ch.pending_count == 2


def test_show_hide_dispatched_in_order_after_ready():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)

    ch.enqueue(_cmd("show", target="t1", visible=True))
    ch.enqueue(_cmd("hide", target="t1", visible=False))
    ch.set_ready(True)

    assert len(t.scripts) == 2
    first, second = (_wire(s) for s in t.scripts)
    assert first["action"] == "show" and first["data"] == {"target": "t1", "visible": True}
    assert second["action"] == "hide" and second["data"] == {"target": "t1", "visible": False}
    assert ch.pending_count == 0


def test_ready_dispatches_immediately():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)
    ch.set_ready(True)

    ch.enqueue(_cmd("now"))

    assert t.actions() == ["now"]


def test_ready_without_transport_keeps_queue_until_attach():
    ch = _channel()
    ch.set_ready(True)
    ch.enqueue(_cmd("a"))
    ch.enqueue(_cmd("b"))
    assert ch.pending_count == 2

    t = FakeTransport()
    ch.attach(t)

    assert t.actions() == ["a", "b"]


def test_not_ready_again_reverts_to_buffering():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)
    ch.set_ready(True)
    ch.enqueue(_cmd("a"))

    ch.set_ready(False)
    ch.enqueue(_cmd("b"))
    assert t.actions() == ["a"]

    ch.set_ready(True)
    ch.enqueue(_cmd("c"))
    assert t.actions() == ["a", "b", "c"]


def test_set_ready_is_idempotent():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)
    ch.enqueue(_cmd("a"))

    ch.set_ready(True)
    ch.set_ready(True)
    ch.set_ready(False)
    ch.set_ready(False)

    assert t.actions() == ["a"]
    assert ch.is_ready is False


def test_detach_reverts_to_not_ready():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)
    ch.set_ready(True)

    ch.detach()
    ch.enqueue(_cmd("later"))

    assert ch.is_ready is False
    assert ch.transport is None
    assert ch.pending_count == 1
    assert t.scripts == []


def test_reentrant_enqueue_during_drain_keeps_order():
    ch = _channel()

    class EchoTransport(FakeTransport):
        def evaluate(self, script: str) -> None:
            super().evaluate(script)
            if _wire(script)["action"] == "a":
                ch.enqueue(_cmd("from-callback"))

    t = EchoTransport()
    ch.attach(t)
    ch.enqueue(_cmd("a"))
    ch.enqueue(_cmd("b"))
    ch.set_ready(True)

    assert t.actions() == ["a", "b", "from-callback"]


def test_transport_failure_is_logged_and_not_retried():
    ch = _channel()
    t = FakeTransport()
    t.raise_on_evaluate = RuntimeError("renderer gone")
    ch.attach(t)
    ch.enqueue(_cmd("a"))

    ch.set_ready(True)

    assert ch.pending_count == 0
    t.raise_on_evaluate = None
    ch.enqueue(_cmd("b"))
    assert t.actions() == ["b"]


def test_send_builds_timestamped_command():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)
    ch.set_ready(True)

    cmd = ch.send("notify", {"message": "hi"}, kind=MessageKind.EVENT)

    assert cmd.timestamp_ms == 1000
    assert _wire(t.scripts[0]) == {"type": "event", "action": "notify", "data": {"message": "hi"}, "timestamp": 1000}
    assert t.scripts[0].startswith("window.receiveFromUnity(")


def test_concurrent_enqueue_and_ready_toggle_never_lose_or_duplicate():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)

    per_thread = 200
    writers = 4

    def writer(n: int) -> None:
        for i in range(per_thread):
            ch.enqueue(_cmd(f"w{n}-{i}"))

    def toggler() -> None:
        for i in range(200):
            ch.set_ready(i % 2 == 0)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(writers)]
    threads.append(threading.Thread(target=toggler))
    for th in threads:
        th.start()
    for th in threads:
        th.join(timeout=10)

    ch.set_ready(True)

    actions = t.actions()
    assert len(actions) == per_thread * writers
    assert len(set(actions)) == len(actions)
    # per-writer order is preserved
    for n in range(writers):
        mine = [a for a in actions if a.startswith(f"w{n}-")]
        assert mine == [f"w{n}-{i}" for i in range(per_thread)]


# -----------------------------
# Inbound
# -----------------------------

def test_receive_decodes_and_calls_handler():
    seen = []
    ch = _channel(on_message=seen.append)

    cmd = ch.receive('bridge:{"type":"event","action":"tapped","data":{"target":"btn"},"timestamp":7}')

    assert cmd == BridgeCommand(action="tapped", payload=BridgePayload(target="btn"), kind=MessageKind.EVENT, timestamp_ms=7)
    assert seen == [cmd]


def test_receive_malformed_never_raises_nor_changes_state():
    ch = _channel()
    t = FakeTransport()
    ch.attach(t)
    ch.enqueue(_cmd("queued"))

    malformed = [
        "bridge:{not json",
        "bridge:",
        '{"action":"no-marker"}',
        "bridge:[]",
        'bridge:{"action":"a","timestamp":Infinity}',
        'bridge:{"action":"a","timestamp":NaN}',
        'bridge:{"action":"a","timestamp":1e400}',
        "bridge:" + "[" * 100000,
        None,
        42,
    ]
    for raw in malformed:
        assert ch.receive(raw) is None  # type: ignore[arg-type]

    assert ch.is_ready is False
    assert ch.pending_count == 1
    assert t.scripts == []


def test_receive_handler_error_is_contained():
    def boom(_cmd):
        raise RuntimeError("handler failed")

    ch = _channel(on_message=boom)
    assert ch.receive('bridge:{"action":"x"}') is not None


def test_receive_uses_configured_marker():
    ch = _channel(marker="host:")
    assert ch.receive('host:{"action":"x"}').action == "x"
    assert ch.receive('bridge:{"action":"x"}') is None
