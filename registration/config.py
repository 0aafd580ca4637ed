"""Configuration management for the registration service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .database import Database, resolve_database_path
from .storage import JSONFileSlotStorage, MemorySlotStorage, SlotStorage
from .store import DEFAULT_STORAGE_KEY

STORAGE_BACKENDS = ("memory", "file", "sqlite")


@dataclass(frozen=True)
class ServiceSettings:
    """Runtime settings for the registration service."""

    storage_backend: str = "sqlite"
    storage_path: Optional[Path] = None
    storage_key: str = DEFAULT_STORAGE_KEY
    success_banner_seconds: float = 3.0
    title: str = "User Registration"

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "ServiceSettings":
        """Create :class:`ServiceSettings` from raw dictionary data."""

        unknown = set(data.keys()) - {
            "storage_backend",
            "storage_path",
            "storage_key",
            "success_banner_seconds",
            "title",
        }
        if unknown:
            raise ValueError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        backend = str(data.get("storage_backend", "sqlite")).strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"storage_backend must be one of {', '.join(STORAGE_BACKENDS)}; got '{backend}'"
            )

        raw_path = data.get("storage_path")
        storage_path: Optional[Path]
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            storage_path = candidate.resolve(strict=False)
        else:
            storage_path = None

        key = str(data.get("storage_key", DEFAULT_STORAGE_KEY)).strip()
        if not key:
            raise ValueError("storage_key must not be empty")

        try:
            seconds = float(data.get("success_banner_seconds", 3.0))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError("success_banner_seconds must be a number") from exc
        if seconds < 0:
            raise ValueError("success_banner_seconds must not be negative")

        return ServiceSettings(
            storage_backend=backend,
            storage_path=storage_path,
            storage_key=key,
            success_banner_seconds=seconds,
            title=str(data.get("title", "User Registration")),
        )


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "registration.yaml").resolve(
            strict=False
        )
    return candidate


def load_settings_file(config_path: Path) -> ServiceSettings:
    """Load settings from a YAML file."""
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    section = raw.get("registration", raw)
    if not isinstance(section, dict):
        raise ValueError("The 'registration' section must be a mapping")
    return ServiceSettings.from_dict(section, base_path=config_path.parent)


def _apply_environment(settings: ServiceSettings, environ: Mapping[str, str]) -> ServiceSettings:
    overrides: Dict[str, object] = {
        "storage_backend": settings.storage_backend,
        "storage_key": settings.storage_key,
        "success_banner_seconds": settings.success_banner_seconds,
        "title": settings.title,
    }
    if settings.storage_path is not None:
        overrides["storage_path"] = str(settings.storage_path)

    backend = environ.get("REGISTRATION_STORAGE_BACKEND")
    if backend:
        overrides["storage_backend"] = backend
    path = environ.get("REGISTRATION_STORAGE_PATH")
    if path:
        overrides["storage_path"] = path
    key = environ.get("REGISTRATION_STORAGE_KEY")
    if key:
        overrides["storage_key"] = key
    seconds = environ.get("REGISTRATION_SUCCESS_SECONDS")
    if seconds:
        overrides["success_banner_seconds"] = seconds

    return ServiceSettings.from_dict(overrides)


def load_settings(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> ServiceSettings:
    """Load settings from the optional YAML file, then apply environment overrides."""

    env = os.environ if environ is None else environ
    path = config_path or resolve_config_path(env.get("REGISTRATION_CONFIG"))
    if path.exists():
        settings = load_settings_file(path)
    else:
        settings = ServiceSettings()
    return _apply_environment(settings, env)


def build_storage(settings: ServiceSettings) -> SlotStorage:
    """Instantiate the slot backend described by ``settings``."""

    if settings.storage_backend == "memory":
        return MemorySlotStorage()
    if settings.storage_backend == "file":
        path = settings.storage_path or (
            Path(__file__).resolve().parent.parent / "data" / "registration.json"
        )
        return JSONFileSlotStorage(path)

    database = Database(
        resolve_database_path(str(settings.storage_path) if settings.storage_path else None)
    )
    database.initialize()
    return database


__all__ = [
    "STORAGE_BACKENDS",
    "ServiceSettings",
    "build_storage",
    "load_settings",
    "load_settings_file",
    "resolve_config_path",
]
