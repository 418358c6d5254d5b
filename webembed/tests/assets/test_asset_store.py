from __future__ import annotations

import logging
import zipfile
from pathlib import Path

import pytest

from webembed.assets.sources import AssetSource, DirectorySource, ZipArchiveSource
from webembed.assets.store import DirectAssetStore, PreloadAssetStore, PreloadResult
from webembed.core.errors import AssetReadError


def _write(root: Path, rel: str, data: bytes) -> None:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)


class FakeSource(AssetSource):
    """In-memory source that records open/close and can fail per path."""
    def __init__(self, files: dict, fail: tuple = ()):
        self.files = dict(files)
        self.fail = set(fail)
        self.opened = 0
        self.closed = 0
        self.reads: list[str] = []

    def open(self) -> None:
        self.opened += 1

    def close(self) -> None:
        self.closed += 1

    def read(self, path: str) -> bytes:
        self.reads.append(path)
        if path in self.fail:
            raise OSError(f"io error on {path}")
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def describe(self) -> str:
        return "fake"


# -----------------------------
# Direct mode
# -----------------------------

def test_direct_get_returns_file_bytes(tmp_path: Path) -> None:
    _write(tmp_path, "flutter/index.html", b"<html>1</html>")
    store = DirectAssetStore(tmp_path)

    assert store.get("flutter/index.html") == b"<html>1</html>"


def test_direct_get_reads_fresh_on_every_call(tmp_path: Path) -> None:
    _write(tmp_path, "a.js", b"v1")
    store = DirectAssetStore(tmp_path)
    assert store.get("a.js") == b"v1"

    _write(tmp_path, "a.js", b"v2")
    assert store.get("a.js") == b"v2"


def test_direct_missing_and_directory_are_not_found(tmp_path: Path) -> None:
    (tmp_path / "flutter").mkdir()
    store = DirectAssetStore(tmp_path)

    assert store.get("flutter/nope.js") is None
    assert store.get("flutter") is None


def test_direct_path_escaping_root_is_not_found(tmp_path: Path) -> None:
    root = tmp_path / "bundle"
    root.mkdir()
    _write(tmp_path, "secret.txt", b"top secret")
    store = DirectAssetStore(root)

    assert store.get("../secret.txt") is None


def test_direct_read_error_raises_asset_read_error(tmp_path: Path, monkeypatch) -> None:
    _write(tmp_path, "a.js", b"x")
    store = DirectAssetStore(tmp_path)

    def boom(self):
        raise PermissionError("denied")

    monkeypatch.setattr(Path, "read_bytes", boom)

    with pytest.raises(AssetReadError):
        store.get("a.js")


def test_direct_store_is_always_ready(tmp_path: Path) -> None:
    assert DirectAssetStore(tmp_path).wait_ready(0) is True


# -----------------------------
# Preload mode
# -----------------------------

def test_preload_counts_success_and_failures() -> None:
    src = FakeSource({"a.js": b"A", "b.css": b"B"}, fail=("c.png",))
    store = PreloadAssetStore(src, logger=logging.getLogger("test"))

    result = store.preload(["a.js", "b.css", "c.png", "missing.html"]).result(timeout=2)

    assert isinstance(result, PreloadResult)
    assert result.as_tuple() == (2, 2)
    assert set(result.failed_paths) == {"c.png", "missing.html"}
    assert src.opened == 1 and src.closed == 1


def test_preload_get_only_serves_cached_paths() -> None:
    src = FakeSource({"a.js": b"A", "b.js": b"B"})
    store = PreloadAssetStore(src)
    store.preload(["a.js"]).result(timeout=2)

    assert store.get("a.js") == b"A"
    # present in the source but never preloaded
    assert store.get("b.js") is None
    assert store.cached_paths() == ["a.js"]


def test_preload_sets_ready_only_after_completion() -> None:
    src = FakeSource({"a.js": b"A"})
    store = PreloadAssetStore(src)

    assert store.wait_ready(0) is False
    store.preload(["a.js"]).result(timeout=2)
    assert store.wait_ready(0) is True
    assert store.ready is True


def test_preload_entries_are_write_once() -> None:
    src = FakeSource({"a.js": b"first"})
    store = PreloadAssetStore(src)
    store.preload(["a.js"]).result(timeout=2)

    src.files["a.js"] = b"second"
    result = store.preload(["a.js"]).result(timeout=2)

    assert result.success_count == 1
    assert store.get("a.js") == b"first"


def test_preload_source_open_failure_marks_all_failed() -> None:
    class BrokenSource(FakeSource):
        def open(self) -> None:
            raise OSError("cannot open")

    store = PreloadAssetStore(BrokenSource({"a.js": b"A"}))
    result = store.preload(["a.js", "b.js"]).result(timeout=2)

    assert result.as_tuple() == (0, 2)
    assert store.ready is True


# -----------------------------
# Sources
# -----------------------------

def test_directory_source_reads_and_rejects_missing(tmp_path: Path) -> None:
    _write(tmp_path, "flutter/main.dart.js", b"main()")
    src = DirectorySource(tmp_path)

    assert src.read("flutter/main.dart.js") == b"main()"
    with pytest.raises(FileNotFoundError):
        src.read("flutter/other.js")


def test_zip_source_preloads_with_prefix(tmp_path: Path) -> None:
    archive = tmp_path / "app.apk"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("assets/flutter/index.html", b"<html>zip</html>")
        zf.writestr("assets/flutter/main.dart.js", b"js")

    store = PreloadAssetStore(ZipArchiveSource(archive, prefix="assets/"))
    result = store.preload(["flutter/index.html", "flutter/main.dart.js", "flutter/gone.js"]).result(timeout=2)

    assert result.as_tuple() == (2, 1)
    assert store.get("flutter/index.html") == b"<html>zip</html>"


def test_zip_source_read_before_open_raises(tmp_path: Path) -> None:
    archive = tmp_path / "b.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("x.txt", b"x")

    src = ZipArchiveSource(archive)
    with pytest.raises(OSError):
        src.read("x.txt")

    with src:
        assert src.read("x.txt") == b"x"
