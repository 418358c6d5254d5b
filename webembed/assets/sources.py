# webembed/assets/sources.py
from __future__ import annotations

import threading
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional


def resolve_under(root: Path, path: str) -> Optional[Path]:
    """
    Join a logical asset path onto root.

    Returns None when the result would escape root (e.g. '../secret').
    """
    base = root.resolve()
    full = (base / path.lstrip("/")).resolve()
    try:
        full.relative_to(base)
    except ValueError:
        return None
    return full


class AssetSource(ABC):
    """
    Where preload reads bundle bytes from.

    Contract:
      - open()/close() bracket one preload pass.
      - read(path) returns the full payload for a logical path, or raises
        FileNotFoundError when the path is not part of the bundle. Any other
        exception counts as a failed fetch.
    """

    def open(self) -> None:
        return None

    def close(self) -> None:
        return None

    @abstractmethod
    def read(self, path: str) -> bytes: ...

    @abstractmethod
    def describe(self) -> str: ...

    def __enter__(self) -> "AssetSource":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()


class DirectorySource(AssetSource):
    """Reads bundle files from a directory on disk."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def read(self, path: str) -> bytes:
        full = resolve_under(self.root, path)
        if full is None or not full.is_file():
            raise FileNotFoundError(f"Not in bundle: {path}")
        return full.read_bytes()

    def describe(self) -> str:
        return f"dir:{self.root}"


class ZipArchiveSource(AssetSource):
    """
    Reads bundle files out of a zip archive (e.g. an application package
    where the bundle is not addressable as plain files).

    `prefix` is prepended to every logical path to form the member name,
    e.g. prefix="assets/" maps "flutter/index.html" -> "assets/flutter/index.html".
    """

    def __init__(self, archive: str | Path, prefix: str = ""):
        self.archive = Path(archive)
        self.prefix = prefix
        self._zf: Optional[zipfile.ZipFile] = None
        self._lock = threading.Lock()

    def open(self) -> None:
        with self._lock:
            if self._zf is None:
                self._zf = zipfile.ZipFile(self.archive, "r")

    def close(self) -> None:
        with self._lock:
            if self._zf is not None:
                try:
                    self._zf.close()
                finally:
                    self._zf = None

    def read(self, path: str) -> bytes:
        name = self.prefix + path.lstrip("/")
        with self._lock:
            if self._zf is None:
                raise OSError(f"archive not open: {self.archive}")
            try:
                return self._zf.read(name)
            except KeyError:
                raise FileNotFoundError(f"Not in archive: {name}") from None

    def describe(self) -> str:
        return f"zip:{self.archive}!{self.prefix}"
