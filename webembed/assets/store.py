# webembed/assets/store.py
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from webembed.core.errors import AssetReadError
from .sources import AssetSource, resolve_under


@dataclass(frozen=True)
class PreloadResult:
    success_count: int
    fail_count: int
    failed_paths: Tuple[str, ...] = ()

    def as_tuple(self) -> Tuple[int, int]:
        return self.success_count, self.fail_count


class AssetStore(ABC):
    """
    Resolves a logical asset path (e.g. "flutter/main.dart.js") to bytes.

    Contract:
      - get(path) returns the full payload or None when the path is unknown.
        It never returns partial data.
      - wait_ready(timeout) blocks until the store may serve traffic.
    """

    @abstractmethod
    def get(self, path: str) -> Optional[bytes]: ...

    @abstractmethod
    def wait_ready(self, timeout: Optional[float] = None) -> bool: ...

    @abstractmethod
    def describe(self) -> str: ...


class DirectAssetStore(AssetStore):
    """Reads from the bundle root on every call. No caching, no readiness gate."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def get(self, path: str) -> Optional[bytes]:
        full = resolve_under(self.root, path)
        if full is None or not full.is_file():
            return None
        try:
            return full.read_bytes()
        except FileNotFoundError:
            # removed between the check and the read
            return None
        except OSError as e:
            raise AssetReadError(
                f"Failed to read asset '{path}'.",
                hint=str(e),
                details={"path": path, "file": str(full)},
            ) from None

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return True

    def describe(self) -> str:
        return f"direct:{self.root}"


class PreloadAssetStore(AssetStore):
    """
    In-memory store filled once by preload() from an AssetSource.

    get() only ever consults the cache. Entries are write-once: a path that is
    already cached is never overwritten.
    """

    def __init__(self, source: AssetSource, *, logger: Optional[logging.Logger] = None):
        self._source = source
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.Lock()
        self._cache: Dict[str, bytes] = {}
        self._ready = threading.Event()

    # ---------------- Public API ----------------
    def get(self, path: str) -> Optional[bytes]:
        with self._lock:
            data = self._cache.get(path)
        if data is None:
            self._log.debug("ASSET_NOT_CACHED path=%s", path)
        return data

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        return self._ready.wait(timeout)

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    def cached_paths(self) -> List[str]:
        with self._lock:
            return sorted(self._cache.keys())

    def describe(self) -> str:
        return f"preload:{self._source.describe()}"

    def preload(self, paths: Iterable[str]) -> "Future[PreloadResult]":
        """
        Fetch `paths` into memory on a background thread.

        The returned Future resolves to a PreloadResult; the ready signal is
        set once the pass completes, whatever the failure count.
        """
        todo = list(paths)
        future: "Future[PreloadResult]" = Future()
        thread = threading.Thread(
            target=self._run_preload,
            args=(todo, future),
            name="asset-preload",
            daemon=True,
        )
        thread.start()
        return future

    # ---------------- Internal ----------------
    def _run_preload(self, paths: List[str], future: "Future[PreloadResult]") -> None:
        self._log.info("PRELOAD_STARTED source=%s count=%d", self._source.describe(), len(paths))
        failed: List[str] = []
        ok = 0

        try:
            with self._source:
                for path in paths:
                    if self._fetch_one(path):
                        ok += 1
                    else:
                        failed.append(path)
        except Exception:
            # source could not be opened: whatever was not fetched counts as failed
            self._log.exception("PRELOAD_SOURCE_ERROR source=%s", self._source.describe())
            done = set(failed)
            with self._lock:
                done.update(p for p in paths if p in self._cache)
            failed.extend(p for p in paths if p not in done)
            ok = len(paths) - len(failed)

        result = PreloadResult(success_count=ok, fail_count=len(failed), failed_paths=tuple(failed))
        self._ready.set()
        self._log.info("PRELOAD_COMPLETE success=%d failed=%d", result.success_count, result.fail_count)
        future.set_result(result)

    def _fetch_one(self, path: str) -> bool:
        try:
            data = self._source.read(path)
        except Exception as e:
            self._log.error("PRELOAD_FAILED path=%s err=%s", path, e)
            return False

        self._put(path, bytes(data))
        return True

    def _put(self, path: str, data: bytes) -> None:
        with self._lock:
            if path in self._cache:
                self._log.debug("PRELOAD_KEEP_EXISTING path=%s", path)
                return
            self._cache[path] = data
