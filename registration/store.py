"""Ordered registration list mirrored to a persistent slot."""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .models import RegistrationInput, UserRecord
from .storage import SlotStorage
from .validation import validate_registration

logger = logging.getLogger("registration.store")

DEFAULT_STORAGE_KEY = "registeredUsers"


class RegistrationRejected(ValueError):
    """Raised when a registration is attempted with invalid input."""

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Registration rejected; invalid fields: {fields}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render ``value`` as an ISO 8601 UTC timestamp with millisecond precision."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def _decode_records(raw: Optional[str], key: str) -> List[UserRecord]:
    if raw is None:
        return []
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        logger.warning("Stored slot '%s' is not valid JSON; starting with an empty list", key)
        return []
    if not isinstance(payload, list):
        logger.warning("Stored slot '%s' does not hold a list; starting with an empty list", key)
        return []

    records: List[UserRecord] = []
    seen: set[str] = set()
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            logger.warning("Skipping stored entry %s in '%s': not an object", index, key)
            continue
        try:
            record = UserRecord.from_dict(item)
        except ValueError as exc:
            logger.warning("Skipping stored entry %s in '%s': %s", index, key, exc)
            continue
        if record.id in seen:
            logger.warning("Skipping stored entry %s in '%s': duplicate id %s", index, key, record.id)
            continue
        seen.add(record.id)
        records.append(record)
    return records


class RegistrationStore:
    """In-memory list of :class:`UserRecord` persisted through a slot backend."""

    def __init__(
        self,
        storage: SlotStorage,
        *,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not key.strip():
            raise ValueError("Storage key must not be empty")
        self._storage = storage
        self._key = key
        self._clock = clock
        self._lock = threading.Lock()
        self._last_issued_id: Optional[int] = None
        self._records: List[UserRecord] = _decode_records(storage.load(key), key)

    @property
    def key(self) -> str:
        return self._key

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def load_all(self) -> List[UserRecord]:
        with self._lock:
            return list(self._records)

    def get(self, record_id: str) -> Optional[UserRecord]:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record
        return None

    def reload(self) -> List[UserRecord]:
        """Discard the in-memory list and read it again from the slot."""

        records = _decode_records(self._storage.load(self._key), self._key)
        with self._lock:
            self._records = records
            return list(records)

    def append(self, record: UserRecord) -> UserRecord:
        with self._lock:
            if any(existing.id == record.id for existing in self._records):
                raise ValueError(f"A user record with id '{record.id}' already exists")
            updated = [*self._records, record]
            self._persist(updated)
            self._records = updated
        logger.info("Stored user record %s", record.id)
        return record

    def remove_by_id(self, record_id: str) -> bool:
        """Remove the record with ``record_id``; returns whether one was removed."""

        with self._lock:
            updated = [record for record in self._records if record.id != record_id]
            if len(updated) == len(self._records):
                return False
            self._persist(updated)
            self._records = updated
        logger.info("Removed user record %s", record_id)
        return True

    def register(
        self, data: RegistrationInput, *, now: Optional[datetime] = None
    ) -> UserRecord:
        """Validate ``data`` and append a new record built from it."""

        timestamp = now or self._clock()
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        errors = validate_registration(data, today=timestamp.astimezone().date())
        if errors:
            raise RegistrationRejected(errors)

        with self._lock:
            record_id = self._next_id(timestamp)
        record = UserRecord.from_input(
            data,
            record_id=record_id,
            registered_at=format_timestamp(timestamp),
        )
        return self.append(record)

    def _next_id(self, timestamp: datetime) -> str:
        candidate = int(timestamp.timestamp() * 1000)
        if self._last_issued_id is not None and candidate <= self._last_issued_id:
            candidate = self._last_issued_id + 1
        existing = {record.id for record in self._records}
        while str(candidate) in existing:
            candidate += 1
        self._last_issued_id = candidate
        return str(candidate)

    def _persist(self, records: List[UserRecord]) -> None:
        payload = json.dumps([record.to_dict() for record in records])
        self._storage.save(self._key, payload)


__all__ = [
    "DEFAULT_STORAGE_KEY",
    "RegistrationRejected",
    "RegistrationStore",
    "format_timestamp",
]
