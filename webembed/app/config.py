# webembed/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from webembed.assets.manifest import DEFAULT_PRELOAD_PATHS
from webembed.core.errors import ConfigError

ASSET_MODES = ("direct", "preload")


@dataclass(frozen=True)
class ServerSettings:
    port: int = 8088
    root_namespace: str = "flutter/"
    index_document: str = "index.html"
    stop_grace_s: float = 1.0
    reject_non_get: bool = False


@dataclass(frozen=True)
class AssetSettings:
    mode: str = "direct"
    root: str = "StreamingAssets"
    archive: Optional[str] = None
    archive_prefix: str = ""
    preload_paths: Tuple[str, ...] = DEFAULT_PRELOAD_PATHS


@dataclass(frozen=True)
class BridgeSettings:
    marker: str = "bridge:"
    receiver_function: str = "window.receiveFromUnity"
    sender_function: str = "window.sendToUnity"
    event_name: str = "unityMessage"
    native_handler: str = "unityControl"


@dataclass(frozen=True)
class WebEmbedConfig:
    server: ServerSettings = field(default_factory=ServerSettings)
    assets: AssetSettings = field(default_factory=AssetSettings)
    bridge: BridgeSettings = field(default_factory=BridgeSettings)


# Expected value type per setting.
_SCHEMA: Dict[str, Dict[str, str]] = {
    "server": {
        "port": "int",
        "root_namespace": "str",
        "index_document": "str",
        "stop_grace_s": "float",
        "reject_non_get": "bool",
    },
    "assets": {
        "mode": "str",
        "root": "str",
        "archive": "optional_str",
        "archive_prefix": "str",
        "preload_paths": "str_list",
    },
    "bridge": {
        "marker": "str",
        "receiver_function": "str",
        "sender_function": "str",
        "event_name": "str",
        "native_handler": "str",
    },
}

_SECTIONS = {
    "server": ServerSettings,
    "assets": AssetSettings,
    "bridge": BridgeSettings,
}


def load_config(path: str | Path | None = None) -> WebEmbedConfig:
    """
    Load a YAML config file. Missing sections/keys keep their defaults;
    path=None returns the defaults.
    """
    if path is None:
        return WebEmbedConfig()

    full_path = Path(path)
    if not full_path.exists():
        raise ConfigError(
            f"Missing config file: {full_path}",
            hint="Pass --config with an existing YAML file, or omit it to use defaults.",
            details={"path": str(full_path)},
        )

    try:
        with open(full_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(
            "Failed to parse config file.",
            hint=str(e),
            details={"path": str(full_path)},
        ) from None

    return config_from_mapping(data, source=str(full_path))


def config_from_mapping(data: Any, *, source: str = "<mapping>") -> WebEmbedConfig:
    if not isinstance(data, dict):
        raise ConfigError(
            "Config root must be a mapping.",
            details={"source": source, "got": type(data).__name__},
        )

    unknown = sorted(str(k) for k in data if k not in _SECTIONS)
    if unknown:
        raise ConfigError(
            f"Unknown config section(s): {unknown}",
            hint=f"Valid sections: {sorted(_SECTIONS)}",
            details={"source": source},
        )

    built: Dict[str, Any] = {}
    for section, cls in _SECTIONS.items():
        raw = data.get(section) or {}
        if not isinstance(raw, dict):
            raise ConfigError(
                f"Config section '{section}' must be a mapping.",
                details={"source": source, "section": section},
            )
        built[section] = cls(**_resolve_section(section, raw, source))

    cfg = WebEmbedConfig(**built)
    _validate(cfg, source)
    return cfg


def _resolve_section(section: str, raw: Mapping[str, Any], source: str) -> Dict[str, Any]:
    schema = _SCHEMA[section]
    resolved: Dict[str, Any] = {}

    for key in raw:
        if key not in schema:
            raise ConfigError(
                f"Unknown setting '{section}.{key}'.",
                hint=f"Valid settings: {sorted(schema.keys())}",
                details={"source": source, "section": section, "key": key},
            )

    for name, type_name in schema.items():
        if name not in raw:
            continue
        value = raw[name]
        try:
            resolved[name] = _cast_value(value, type_name)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                f"Invalid value for '{section}.{name}'.",
                hint=str(e),
                details={"source": source, "value": value, "expected_type": type_name},
            ) from None

    return resolved


def _cast_value(value: Any, type_name: str) -> Any:
    if type_name == "optional_str":
        if value is None:
            return None
        type_name = "str"

    if type_name == "str":
        if not isinstance(value, str):
            raise TypeError(f"Expected str, got {type(value).__name__}")
        return value

    if type_name == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"Expected int, got {type(value).__name__}")
        return value

    if type_name == "float":
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"Expected float, got {type(value).__name__}")
        return float(value)

    if type_name == "bool":
        if isinstance(value, bool):
            return value
        raise TypeError(f"Expected bool, got {type(value).__name__}")

    if type_name == "str_list":
        if not isinstance(value, (list, tuple)):
            raise TypeError(f"Expected a list of paths, got {type(value).__name__}")
        for item in value:
            if not isinstance(item, str):
                raise TypeError(f"Expected str entries, got {type(item).__name__}")
        return tuple(value)

    raise TypeError(f"Unknown schema type '{type_name}'")


def _validate(cfg: WebEmbedConfig, source: str) -> None:
    if not 0 <= cfg.server.port <= 65535:
        raise ConfigError(
            f"Port out of range: {cfg.server.port}",
            hint="Use 0..65535 (0 picks a free port).",
            details={"source": source},
        )

    if cfg.server.stop_grace_s < 0:
        raise ConfigError("server.stop_grace_s must be >= 0.", details={"source": source})

    if cfg.assets.mode not in ASSET_MODES:
        raise ConfigError(
            f"Unknown asset mode '{cfg.assets.mode}'.",
            hint=f"Valid modes: {list(ASSET_MODES)}",
            details={"source": source},
        )

    if not cfg.bridge.marker:
        raise ConfigError("bridge.marker must not be empty.", details={"source": source})

