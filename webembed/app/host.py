# webembed/app/host.py
from __future__ import annotations

import logging
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Optional

from webembed.app.config import WebEmbedConfig
from webembed.assets.sources import AssetSource, DirectorySource, ZipArchiveSource
from webembed.assets.store import AssetStore, DirectAssetStore, PreloadAssetStore, PreloadResult
from webembed.bridge.bootstrap import render_bootstrap_script
from webembed.bridge.channel import BridgeChannel
from webembed.bridge.message import BridgeCommand
from webembed.bridge.widgets import WidgetController
from webembed.core.errors import ServerStartError
from webembed.interfaces.transport_adapter import TransportAdapter
from webembed.server.http_server import HttpFileServer


def build_preload_source(cfg: WebEmbedConfig) -> AssetSource:
    if cfg.assets.archive:
        return ZipArchiveSource(cfg.assets.archive, prefix=cfg.assets.archive_prefix)
    return DirectorySource(cfg.assets.root)


def build_asset_store(cfg: WebEmbedConfig, *, logger: Optional[logging.Logger] = None) -> AssetStore:
    """Pick the store variant from configuration (not from the platform)."""
    if cfg.assets.mode == "preload":
        return PreloadAssetStore(build_preload_source(cfg), logger=logger)
    return DirectAssetStore(cfg.assets.root)


class WebEmbedHost:
    """
    Owns one asset store, one HTTP server and one bridge channel.

    Lifecycle:
      start()              -> preload (if configured) + start serving
      attach_transport()   -> route renderer callbacks into the bridge
      renderer_reloading() -> buffer commands until the next content-loaded
      stop()               -> stop serving, release the bridge
    """

    def __init__(
        self,
        cfg: WebEmbedConfig,
        *,
        store: Optional[AssetStore] = None,
        on_message: Optional[Callable[[BridgeCommand], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.cfg = cfg
        self._log = logger or logging.getLogger(__name__)

        self.store = store or build_asset_store(cfg, logger=self._log)
        self.server = HttpFileServer(
            self.store,
            root_namespace=cfg.server.root_namespace,
            index_document=cfg.server.index_document,
            grace_period_s=cfg.server.stop_grace_s,
            reject_non_get=cfg.server.reject_non_get,
            logger=self._log,
        )
        self.channel = BridgeChannel(
            receiver_function=cfg.bridge.receiver_function,
            marker=cfg.bridge.marker,
            on_message=on_message,
            logger=self._log,
        )
        self.widgets = WidgetController(self.channel, logger=self._log)

        self._transport: Optional[TransportAdapter] = None
        self.preload_result: Optional[PreloadResult] = None

    @property
    def load_url(self) -> str:
        port = self.server.port if self.server.port is not None else self.cfg.server.port
        return f"http://localhost:{port}/{self.cfg.server.root_namespace.lstrip('/')}"

    # ---------------- Lifecycle ----------------
    def start(self, *, preload_timeout_s: Optional[float] = None) -> None:
        if isinstance(self.store, PreloadAssetStore) and not self.store.ready:
            future = self.store.preload(self.cfg.assets.preload_paths)
            try:
                self.preload_result = future.result(timeout=preload_timeout_s)
            except FutureTimeout:
                raise ServerStartError(
                    "Asset preload did not finish in time.",
                    hint="Check the asset source or raise the preload timeout.",
                    details={"store": self.store.describe(), "timeout_s": preload_timeout_s},
                ) from None
            if self.preload_result.fail_count:
                self._log.warning(
                    "PRELOAD_INCOMPLETE failed=%d paths=%s",
                    self.preload_result.fail_count,
                    list(self.preload_result.failed_paths),
                )

        self.server.start(self.cfg.server.port)

    def stop(self) -> None:
        try:
            self.server.stop()
        except Exception:
            self._log.exception("Failed to stop HTTP server")
        self.channel.detach()
        self._transport = None

    def __enter__(self) -> "WebEmbedHost":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ---------------- Renderer wiring ----------------
    def attach_transport(self, transport: TransportAdapter) -> None:
        """
        Register renderer callbacks. The channel only becomes ready on the
        transport's next content-loaded signal.
        """
        self._transport = transport
        transport.on_message(self._on_renderer_message)
        transport.on_content_loaded(self._on_content_loaded)

    def renderer_reloading(self) -> None:
        self.channel.set_ready(False)

    def _on_renderer_message(self, raw: str) -> None:
        if not isinstance(raw, str) or not raw.startswith(self.cfg.bridge.marker):
            self._log.debug("RENDERER_MESSAGE %.200s", raw)
            return
        self.channel.receive(raw)

    def _on_content_loaded(self, url: str) -> None:
        transport = self._transport
        if transport is None:
            return
        self._log.info("CONTENT_LOADED url=%s", url)

        b = self.cfg.bridge
        script = render_bootstrap_script(
            receiver_function=b.receiver_function,
            sender_function=b.sender_function,
            event_name=b.event_name,
            marker=b.marker,
            native_handler=b.native_handler,
        )
        try:
            transport.evaluate(script)
        except Exception:
            self._log.exception("BRIDGE_BOOTSTRAP_FAILED url=%s", url)
            return

        self.channel.attach(transport)
        self.channel.set_ready(True)
