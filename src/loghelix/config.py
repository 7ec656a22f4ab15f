"""Configuration loading (YAML/JSON files) and store location resolution."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from .layout import LayoutConfig
from .store import DEFAULT_STORAGE_KEY

_STORE_ENV = "LOGHELIX_STORE"
_DEFAULT_STORE_DIR = Path("~/.loghelix")

LOGGER = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when a configuration file is invalid."""


@dataclass(frozen=True)
class HighlightConfig:
    threshold: float = 2.0
    active_opacity: float = 1.0
    dimmed_opacity: float = 0.1
    idle_opacity: float = 0.5


@dataclass(frozen=True)
class StoreConfig:
    directory: Optional[Path] = None
    key: str = DEFAULT_STORAGE_KEY


@dataclass(frozen=True)
class HelixConfig:
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    highlight: HighlightConfig = field(default_factory=HighlightConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


def _section(cls, payload: Any, name: str):
    if payload is None:
        return cls()
    if not isinstance(payload, Mapping):
        raise ConfigError(f"'{name}' section must be a mapping")
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(payload) - allowed)
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {', '.join(unknown)}")
    try:
        return cls(**dict(payload))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid '{name}' section: {exc}") from exc


def config_from_mapping(payload: Mapping[str, Any]) -> HelixConfig:
    unknown = sorted(set(payload) - {"layout", "highlight", "store"})
    if unknown:
        raise ConfigError(f"Unknown top-level keys: {', '.join(unknown)}")
    layout_payload = payload.get("layout")
    if isinstance(layout_payload, Mapping):
        try:
            layout_payload = {key: float(value) for key, value in layout_payload.items()}
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Layout values must be numeric: {exc}") from exc
    store_payload = payload.get("store")
    if isinstance(store_payload, Mapping) and store_payload.get("directory") is not None:
        store_payload = dict(store_payload)
        store_payload["directory"] = Path(str(store_payload["directory"])).expanduser()
    return HelixConfig(
        layout=_section(LayoutConfig, layout_payload, "layout"),
        highlight=_section(HighlightConfig, payload.get("highlight"), "highlight"),
        store=_section(StoreConfig, store_payload, "store"),
    )


def load_config(path: str | Path) -> HelixConfig:
    """Load a :class:`HelixConfig` from a ``.yaml``/``.yml`` or ``.json`` file."""

    source = Path(path).expanduser()
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config {source}: {exc}") from exc
    try:
        if source.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse config {source}: {exc}") from exc
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ConfigError(f"Config {source} must contain a mapping")
    LOGGER.debug("load_config path=%s keys=%s", source, sorted(payload))
    return config_from_mapping(payload)


def resolve_store_dir(preferred: str | Path | None, config: HelixConfig | None = None) -> Path:
    """CLI flag, then config file, then ``LOGHELIX_STORE``, then ``~/.loghelix``."""

    if preferred:
        return Path(preferred).expanduser()
    if config is not None and config.store.directory is not None:
        return config.store.directory
    env_value = os.getenv(_STORE_ENV)
    if env_value and env_value.strip():
        return Path(env_value.strip()).expanduser()
    return _DEFAULT_STORE_DIR.expanduser()


__all__ = [
    "ConfigError",
    "HelixConfig",
    "HighlightConfig",
    "StoreConfig",
    "config_from_mapping",
    "load_config",
    "resolve_store_dir",
    "_STORE_ENV",
]
