from __future__ import annotations

import json
from pathlib import Path

import pytest

from registration.database import Database, resolve_database_path
from registration.models import UserRecord
from registration.storage import JSONFileSlotStorage, MemorySlotStorage, StorageError
from registration.store import RegistrationStore


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db_path = tmp_path / "registration.sqlite3"
    db = Database(db_path)
    db.initialize()
    return db


def test_database_round_trips_slot_values(database: Database) -> None:
    assert database.load("registeredUsers") is None

    database.save("registeredUsers", "[]")
    database.save("registeredUsers", '[{"id": "1"}]')

    assert database.load("registeredUsers") == '[{"id": "1"}]'
    assert database.load("other") is None


def test_database_initialize_is_repeatable(database: Database) -> None:
    database.save("slot", "value")
    database.initialize()
    assert database.load("slot") == "value"


def test_database_reports_failures_as_storage_errors(tmp_path: Path) -> None:
    db = Database(tmp_path / "uninitialised.sqlite3")
    with pytest.raises(StorageError):
        db.load("registeredUsers")


def test_resolve_database_path_prefers_explicit_value(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.sqlite3"
    assert resolve_database_path(str(explicit)) == explicit.resolve()
    assert resolve_database_path(None).name == "registration.sqlite3"


def test_json_file_storage_persists_between_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "slots.json"
    JSONFileSlotStorage(path).save("registeredUsers", "[]")
    JSONFileSlotStorage(path).save("other", "x")

    reopened = JSONFileSlotStorage(path)
    assert reopened.load("registeredUsers") == "[]"
    assert json.loads(path.read_text(encoding="utf-8")) == {"registeredUsers": "[]", "other": "x"}
    assert not [item for item in path.parent.iterdir() if item.name.startswith(".slots-")]


def test_json_file_storage_treats_corrupt_file_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "slots.json"
    path.write_text("not json", encoding="utf-8")

    storage = JSONFileSlotStorage(path)
    assert storage.load("registeredUsers") is None

    storage.save("registeredUsers", "[]")
    assert storage.load("registeredUsers") == "[]"


def test_json_file_storage_treats_deeply_nested_file_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "slots.json"
    path.write_text("[" * 200000, encoding="utf-8")

    assert JSONFileSlotStorage(path).load("registeredUsers") is None


def test_memory_storage_copies_initial_slots() -> None:
    initial = {"a": "1"}
    storage = MemorySlotStorage(initial)
    storage.save("a", "2")

    assert storage.load("a") == "2"
    assert initial == {"a": "1"}


def test_store_survives_restart_on_sqlite(database: Database) -> None:
    store = RegistrationStore(database)
    record = UserRecord(
        id="1760000000000",
        full_name="Grace Hopper",
        email="grace@example.com",
        phone="(555) 010-0199",
        date_of_birth="1985-12-09",
        registered_at="2026-06-15T09:30:00.000Z",
    )
    store.append(record)

    assert RegistrationStore(database).load_all() == [record]
