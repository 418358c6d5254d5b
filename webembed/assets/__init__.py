# assets/__init__.py

from .sources import AssetSource, DirectorySource, ZipArchiveSource
from .store import AssetStore, DirectAssetStore, PreloadAssetStore, PreloadResult
from .manifest import DEFAULT_PRELOAD_PATHS

__all__ = [
    "AssetSource", "DirectorySource", "ZipArchiveSource",
    "AssetStore", "DirectAssetStore", "PreloadAssetStore", "PreloadResult",
    "DEFAULT_PRELOAD_PATHS",
]
