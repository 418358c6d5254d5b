# webembed/assets/manifest.py
from __future__ import annotations

from typing import Tuple

# Files the bundled web app actually requests on startup.
DEFAULT_PRELOAD_PATHS: Tuple[str, ...] = (
    "flutter/index.html",
    "flutter/flutter_bootstrap.js",
    "flutter/main.dart.js",
    "flutter/favicon.png",
    "flutter/assets/assets/lion.png",
    "flutter/assets/packages/wakelock_plus/assets/no_sleep.js",
    "flutter/assets/AssetManifest.bin.json",
    "flutter/assets/FontManifest.json",
    "flutter/assets/fonts/MaterialIcons-Regular.otf",
    "flutter/canvaskit/chromium/canvaskit.js",
    "flutter/canvaskit/chromium/canvaskit.wasm",
)
