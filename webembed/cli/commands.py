# webembed/cli/commands.py
from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Optional

from webembed.app.config import WebEmbedConfig
from webembed.app.host import WebEmbedHost, build_preload_source
from webembed.assets.store import PreloadAssetStore
from webembed.bridge.codec import encode, script_call
from webembed.bridge.message import BridgeCommand, BridgePayload, MessageKind

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ---------------- Logging ----------------

def configure_logging(*, verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """
    Console handler on the root logger, plus an optional file handler
    (idempotent). Kept in CLI (presentation-layer concern).
    """
    root = logging.getLogger()
    level = logging.DEBUG if verbose else logging.INFO

    if not any(type(h) is logging.StreamHandler for h in root.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(sh)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        target = str(log_file.resolve())
        if not any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target
            for h in root.handlers
        ):
            fh = logging.FileHandler(log_file, encoding="utf-8", delay=True)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(fh)

    root.setLevel(level)


# ---------------- Commands ----------------

def cmd_serve(args: argparse.Namespace, cfg: WebEmbedConfig) -> int:
    host = WebEmbedHost(cfg)
    host.start()
    try:
        print(f"Serving:   {host.store.describe()}")
        print(f"Load URL:  {host.load_url}")
        if host.preload_result is not None:
            r = host.preload_result
            print(f"Preload:   ok={r.success_count} failed={r.fail_count}")

        t0 = time.time()
        try:
            while args.secs is None or time.time() - t0 < args.secs:
                time.sleep(0.2)
        except KeyboardInterrupt:
            print("Interrupted.")
        return 0
    finally:
        host.stop()


def cmd_assets(args: argparse.Namespace, cfg: WebEmbedConfig) -> int:
    store = PreloadAssetStore(build_preload_source(cfg))
    result = store.preload(cfg.assets.preload_paths).result()

    print(f"Source:    {store.describe()}")
    print(f"Preload:   ok={result.success_count} failed={result.fail_count}")
    for path in result.failed_paths:
        print(f"  missing: {path}")

    return 0 if result.fail_count == 0 else 1


def cmd_script(args: argparse.Namespace, cfg: WebEmbedConfig) -> int:
    payload = BridgePayload(
        target=args.target,
        visible=args.visible,
        animation=args.animation,
        message=args.message,
        value=args.value,
    )
    cmd = BridgeCommand.create(args.action, payload, kind=MessageKind(args.kind))
    print(script_call(cfg.bridge.receiver_function, encode(cmd)))
    return 0
