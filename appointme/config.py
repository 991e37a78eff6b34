"""Configuration management for the AppointMe roster console."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .storage import DEFAULT_STORAGE_KEY, resolve_database_path

STORAGE_BACKENDS = ("sqlite", "memory")


@dataclass(frozen=True)
class StorageConfig:
    """Where the serialized roster is persisted."""

    backend: str = "sqlite"
    path: Path = field(default_factory=lambda: resolve_database_path(None))
    key: str = DEFAULT_STORAGE_KEY

    @staticmethod
    def from_dict(data: Mapping[str, Any], base_path: Path | None = None) -> "StorageConfig":
        backend = str(data.get("backend", "sqlite")).strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend '{backend}'; expected one of: {', '.join(STORAGE_BACKENDS)}"
            )

        raw_path = data.get("path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            path = candidate.resolve(strict=False)
        else:
            path = resolve_database_path(None)

        key = str(data.get("key") or DEFAULT_STORAGE_KEY).strip()
        if not key:
            raise ValueError("Storage key must not be empty")

        return StorageConfig(backend=backend, path=path, key=key)


@dataclass(frozen=True)
class AutoSaveConfig:
    enabled: bool = True
    interval_seconds: float = 30.0

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "AutoSaveConfig":
        try:
            interval = float(data.get("interval_seconds", 30.0))
        except (TypeError, ValueError) as exc:
            raise ValueError("autosave.interval_seconds must be a number") from exc
        if interval <= 0:
            raise ValueError("autosave.interval_seconds must be positive")
        return AutoSaveConfig(enabled=bool(data.get("enabled", True)), interval_seconds=interval)


@dataclass(frozen=True)
class AppConfig:
    """Top-level settings for the roster application."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    autosave: AutoSaveConfig = field(default_factory=AutoSaveConfig)
    debug: bool = False

    @staticmethod
    def from_dict(data: Mapping[str, Any], base_path: Path | None = None) -> "AppConfig":
        storage_raw = data.get("storage") or {}
        autosave_raw = data.get("autosave") or {}
        if not isinstance(storage_raw, Mapping) or not isinstance(autosave_raw, Mapping):
            raise ValueError("The 'storage' and 'autosave' sections must be mappings")
        return AppConfig(
            storage=StorageConfig.from_dict(storage_raw, base_path=base_path),
            autosave=AutoSaveConfig.from_dict(autosave_raw),
            debug=bool(data.get("debug", False)),
        )


def load_config(config_path: Path, *, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load settings from a YAML file, falling back to defaults when it is absent."""

    raw: Dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")

    config = AppConfig.from_dict(raw, base_path=config_path.parent)

    env = os.environ if environ is None else environ
    db_override = env.get("APPOINTME_DB_PATH")
    if db_override:
        config = replace(config, storage=replace(config.storage, path=resolve_database_path(db_override)))
    return config


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "appointme.yaml").resolve(strict=False)
    return candidate


__all__ = [
    "AppConfig",
    "AutoSaveConfig",
    "STORAGE_BACKENDS",
    "StorageConfig",
    "load_config",
    "resolve_config_path",
]
