# webembed/bridge/bootstrap.py
from __future__ import annotations

import json
from string import Template

_TEMPLATE = Template(
    """
(function () {
    // host -> page: parse the JSON text and re-dispatch as a DOM event
    $receiver = function (message) {
        try {
            const parsed = JSON.parse(message);
            window.dispatchEvent(new CustomEvent($event, { detail: parsed }));
        } catch (e) {
            console.error('Error parsing host message:', e);
        }
    };

    // page -> host: marker-prefixed JSON through whichever native channel exists
    $sender = function (message) {
        try {
            const text = $marker + JSON.stringify(message);
            if (window.Unity && window.Unity.call) {
                window.Unity.call(text);
            } else if (window.webkit && window.webkit.messageHandlers && window.webkit.messageHandlers[$handler]) {
                window.webkit.messageHandlers[$handler].postMessage(text);
            } else {
                console.warn('No host bridge available');
            }
        } catch (e) {
            console.error('Error sending to host:', e);
        }
    };

    console.log('Host bridge initialized');
})();
"""
)


def render_bootstrap_script(
    *,
    receiver_function: str = "window.receiveFromUnity",
    sender_function: str = "window.sendToUnity",
    event_name: str = "unityMessage",
    marker: str = "bridge:",
    native_handler: str = "unityControl",
) -> str:
    """
    Script evaluated once per page load, before the channel is marked ready.

    Function names are emitted verbatim (they are assignment targets); the
    event name, marker and handler name are emitted as JS string literals.
    """
    return _TEMPLATE.substitute(
        receiver=receiver_function,
        sender=sender_function,
        event=json.dumps(event_name),
        marker=json.dumps(marker),
        handler=json.dumps(native_handler),
    ).strip() + "\n"
