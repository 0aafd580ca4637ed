"""Tests for the registration store and its persisted slot."""

from __future__ import annotations

import json
import unittest
from datetime import datetime, timezone

from registration.models import RegistrationInput, UserRecord
from registration.storage import MemorySlotStorage
from registration.store import (
    DEFAULT_STORAGE_KEY,
    RegistrationRejected,
    RegistrationStore,
    format_timestamp,
)

FIXED_NOW = datetime(2026, 6, 15, 9, 30, 0, 123000, tzinfo=timezone.utc)


def _record(record_id: str, name: str = "Ada Lovelace") -> UserRecord:
    return UserRecord(
        id=record_id,
        full_name=name,
        email="ada@example.com",
        phone="+44 20 7946 0958",
        date_of_birth="1990-12-10",
        registered_at="2026-06-15T09:30:00.123Z",
    )


def _valid_input() -> RegistrationInput:
    return RegistrationInput(
        full_name="Jo",
        email="a@b.com",
        password="Abcdef1!",
        confirm_password="Abcdef1!",
        phone="1234567890",
        date_of_birth="2000-01-01",
    )


class RegistrationStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = MemorySlotStorage()
        self.store = RegistrationStore(self.storage, clock=lambda: FIXED_NOW)

    def _persisted(self) -> list:
        raw = self.storage.load(DEFAULT_STORAGE_KEY)
        self.assertIsNotNone(raw)
        return json.loads(raw)

    def test_starts_empty_without_persisted_slot(self) -> None:
        self.assertEqual(self.store.load_all(), [])
        self.assertEqual(len(self.store), 0)
        self.assertIsNone(self.storage.load(DEFAULT_STORAGE_KEY))

    def test_append_preserves_order_and_persists_full_list(self) -> None:
        self.store.append(_record("1", "Ada"))
        self.store.append(_record("2", "Grace"))

        self.assertEqual([record.id for record in self.store.load_all()], ["1", "2"])
        persisted = self._persisted()
        self.assertEqual([item["id"] for item in persisted], ["1", "2"])
        self.assertEqual(persisted[1]["fullName"], "Grace")
        self.assertNotIn("password", persisted[0])

    def test_append_rejects_duplicate_identifier(self) -> None:
        self.store.append(_record("1"))
        with self.assertRaises(ValueError):
            self.store.append(_record("1"))
        self.assertEqual(len(self._persisted()), 1)

    def test_remove_by_id_is_idempotent(self) -> None:
        self.store.append(_record("1"))
        self.store.append(_record("2"))

        self.assertTrue(self.store.remove_by_id("1"))
        once = self.store.load_all()
        self.assertFalse(self.store.remove_by_id("1"))

        self.assertEqual(self.store.load_all(), once)
        self.assertEqual([item["id"] for item in self._persisted()], ["2"])

    def test_remove_unknown_identifier_does_not_write(self) -> None:
        self.assertFalse(self.store.remove_by_id("missing"))
        self.assertIsNone(self.storage.load(DEFAULT_STORAGE_KEY))

    def test_load_all_returns_a_copy(self) -> None:
        self.store.append(_record("1"))
        snapshot = self.store.load_all()
        snapshot.clear()
        self.assertEqual(len(self.store.load_all()), 1)

    def test_round_trip_through_persisted_slot(self) -> None:
        record = self.store.register(_valid_input())

        reopened = RegistrationStore(self.storage)
        self.assertIn(record, reopened.load_all())

    def test_register_builds_record_without_password(self) -> None:
        record = self.store.register(_valid_input())

        self.assertEqual(record.id, str(int(FIXED_NOW.timestamp() * 1000)))
        self.assertEqual(record.full_name, "Jo")
        self.assertEqual(record.registered_at, "2026-06-15T09:30:00.123Z")
        self.assertNotIn("password", json.dumps(self._persisted()).lower())

    def test_register_issues_unique_ids_within_same_millisecond(self) -> None:
        first = self.store.register(_valid_input())
        second = self.store.register(_valid_input())

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(int(second.id), int(first.id) + 1)

    def test_register_rejects_invalid_input(self) -> None:
        invalid = RegistrationInput(
            full_name="Jo",
            email="a@b.com",
            password="abcdefgh",
            confirm_password="abcdefgh",
            phone="1234567890",
            date_of_birth="2000-01-01",
        )
        with self.assertRaises(RegistrationRejected) as ctx:
            self.store.register(invalid)

        self.assertEqual(
            ctx.exception.errors,
            {"password": "Password must contain an uppercase letter"},
        )
        self.assertEqual(self.store.load_all(), [])

    def test_get_and_reload(self) -> None:
        self.store.append(_record("7"))
        self.assertEqual(self.store.get("7"), _record("7"))
        self.assertIsNone(self.store.get("8"))

        self.storage.save(DEFAULT_STORAGE_KEY, json.dumps([_record("8").to_dict()]))
        self.assertEqual([record.id for record in self.store.reload()], ["8"])

    def test_custom_key_is_used(self) -> None:
        store = RegistrationStore(self.storage, key="people")
        store.append(_record("1"))
        self.assertIsNotNone(self.storage.load("people"))
        self.assertIsNone(self.storage.load(DEFAULT_STORAGE_KEY))

    def test_empty_key_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            RegistrationStore(self.storage, key="  ")


class PersistedSlotParsingTests(unittest.TestCase):
    def _store_with(self, raw: str) -> RegistrationStore:
        storage = MemorySlotStorage({DEFAULT_STORAGE_KEY: raw})
        with self.assertLogs("registration.store", level="WARNING"):
            return RegistrationStore(storage)

    def test_unparsable_slot_falls_back_to_empty_list(self) -> None:
        self.assertEqual(self._store_with("{not json").load_all(), [])

    def test_non_list_slot_falls_back_to_empty_list(self) -> None:
        self.assertEqual(self._store_with(json.dumps({"id": "1"})).load_all(), [])

    def test_deeply_nested_slot_falls_back_to_empty_list(self) -> None:
        for raw in ("[" * 200000, "[" * 200000 + "]" * 200000):
            with self.subTest(length=len(raw)):
                self.assertEqual(self._store_with(raw).load_all(), [])

    def test_reload_survives_deeply_nested_slot(self) -> None:
        storage = MemorySlotStorage()
        store = RegistrationStore(storage)
        store.append(_record("1"))
        storage.save(DEFAULT_STORAGE_KEY, "[" * 200000)

        with self.assertLogs("registration.store", level="WARNING"):
            self.assertEqual(store.reload(), [])

    def test_malformed_entries_are_skipped(self) -> None:
        raw = json.dumps([_record("1").to_dict(), {"id": "2"}, "junk", _record("1").to_dict()])
        store = self._store_with(raw)
        self.assertEqual([record.id for record in store.load_all()], ["1"])


def test_format_timestamp_uses_utc_with_milliseconds() -> None:
    naive = datetime(2026, 1, 2, 3, 4, 5, 678901)
    assert format_timestamp(naive) == "2026-01-02T03:04:05.678Z"


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
