"""Settings loading for typedconf (.typedconf.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

SETTINGS_FILE_NAME = ".typedconf.yml"


class ConfigError(RuntimeError):
    """Raised when the settings file cannot be parsed."""


@dataclass
class ToolchainSettings:
    """Controls how scripts are rewritten and how mypy checks them."""

    placeholder: str = "$CONFIG"
    type_name: str = "Config"
    global_name: str = "config"
    python_version: Optional[Tuple[int, int]] = None
    strict: bool = False
    cache_dir: Optional[Path] = None


@dataclass
class ProjectSettings:
    """Represents the settings defined in .typedconf.yml."""

    root: Path
    schema: Optional[Path] = None
    files: List[Path] = field(default_factory=list)
    toolchain: ToolchainSettings = field(default_factory=ToolchainSettings)


def load_settings(settings_path: Path) -> ProjectSettings:
    """Load settings from disk."""
    settings_file = _resolve_settings_path(settings_path)
    root = settings_file.parent.resolve()

    if not settings_file.exists():
        return ProjectSettings(root=root)

    data = _read_settings(settings_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{SETTINGS_FILE_NAME} must contain a mapping at the root")

    schema_str = _as_str(data.get("schema"))
    schema = _resolve_path(root, schema_str) if schema_str else None
    files = [_resolve_path(root, item) for item in _as_str_list(data.get("files"))]

    toolchain = ToolchainSettings()
    toolchain_data = _as_dict(data.get("toolchain"))
    if toolchain_data:
        placeholder = _as_str(toolchain_data.get("placeholder"))
        if placeholder:
            toolchain.placeholder = placeholder
        toolchain.type_name = _as_identifier(
            toolchain_data.get("type_name"), "type_name", toolchain.type_name
        )
        toolchain.global_name = _as_identifier(
            toolchain_data.get("global_name"), "global_name", toolchain.global_name
        )
        toolchain.python_version = _as_version(toolchain_data.get("python_version"))
        toolchain.strict = _as_bool(toolchain_data.get("strict")) or False
        cache_dir = _as_str(toolchain_data.get("cache_dir"))
        toolchain.cache_dir = _resolve_path(root, cache_dir) if cache_dir else None

    return ProjectSettings(root=root, schema=schema, files=files, toolchain=toolchain)


def _resolve_settings_path(settings_path: Path) -> Path:
    settings_path = settings_path.expanduser()
    if settings_path.is_dir():
        return (settings_path / SETTINGS_FILE_NAME).resolve()
    return settings_path.resolve()


def _resolve_path(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = root / path
    return path


def _read_settings(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_identifier(value: Any, key: str, default: str) -> str:
    text = _as_str(value)
    if text is None:
        return default
    if not text.isidentifier():
        raise ConfigError(f"toolchain.{key} must be a valid Python identifier, got {text!r}")
    return text


def _as_version(value: Any) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    # YAML reads an unquoted 3.10 as the float 3.1
    if isinstance(value, float):
        raise ConfigError("toolchain.python_version must be quoted, e.g. \"3.11\"")
    parts = str(value).strip().split(".")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        raise ConfigError(f"toolchain.python_version must look like '3.11', got {value!r}")
    return int(parts[0]), int(parts[1])


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
