from __future__ import annotations

from pathlib import Path

import pytest

from registration.config import ServiceSettings, build_storage, load_settings, load_settings_file
from registration.database import Database
from registration.storage import JSONFileSlotStorage, MemorySlotStorage


def test_defaults_without_file_or_environment(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "missing.yaml", environ={})

    assert settings == ServiceSettings()
    assert settings.storage_key == "registeredUsers"
    assert settings.success_banner_seconds == 3.0


def test_yaml_file_is_loaded_relative_to_its_directory(tmp_path: Path) -> None:
    config_path = tmp_path / "registration.yaml"
    config_path.write_text(
        "registration:\n"
        "  storage_backend: file\n"
        "  storage_path: data/slots.json\n"
        "  storage_key: people\n"
        "  success_banner_seconds: 5\n",
        encoding="utf-8",
    )

    settings = load_settings_file(config_path)

    assert settings.storage_backend == "file"
    assert settings.storage_path == (tmp_path / "data" / "slots.json").resolve()
    assert settings.storage_key == "people"
    assert settings.success_banner_seconds == 5.0


def test_environment_overrides_file(tmp_path: Path) -> None:
    config_path = tmp_path / "registration.yaml"
    config_path.write_text("storage_backend: file\nstorage_key: people\n", encoding="utf-8")

    settings = load_settings(
        config_path,
        environ={
            "REGISTRATION_STORAGE_BACKEND": "memory",
            "REGISTRATION_SUCCESS_SECONDS": "1.5",
        },
    )

    assert settings.storage_backend == "memory"
    assert settings.storage_key == "people"
    assert settings.success_banner_seconds == 1.5


def test_config_path_from_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "custom.yaml"
    config_path.write_text("title: Sign up\n", encoding="utf-8")

    settings = load_settings(environ={"REGISTRATION_CONFIG": str(config_path)})

    assert settings.title == "Sign up"


@pytest.mark.parametrize(
    "data",
    [
        {"storage_backend": "redis"},
        {"storage_key": " "},
        {"success_banner_seconds": "soon"},
        {"success_banner_seconds": -1},
        {"unexpected": True},
    ],
)
def test_invalid_settings_are_rejected(data: dict) -> None:
    with pytest.raises(ValueError):
        ServiceSettings.from_dict(data)


def test_build_storage_selects_backend(tmp_path: Path) -> None:
    assert isinstance(build_storage(ServiceSettings(storage_backend="memory")), MemorySlotStorage)

    file_storage = build_storage(
        ServiceSettings(storage_backend="file", storage_path=tmp_path / "slots.json")
    )
    assert isinstance(file_storage, JSONFileSlotStorage)

    database = build_storage(
        ServiceSettings(storage_backend="sqlite", storage_path=tmp_path / "registration.sqlite3")
    )
    assert isinstance(database, Database)
    assert database.load("registeredUsers") is None
