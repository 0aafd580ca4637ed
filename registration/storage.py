"""Key-value slot backends used to persist the registration list."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import suppress
from pathlib import Path
from typing import Dict, Optional, Protocol

logger = logging.getLogger("registration.storage")


class StorageError(RuntimeError):
    """Raised when a storage backend cannot read or write a slot."""


class SlotStorage(Protocol):
    """Minimal interface for persisting string values under named keys."""

    def load(self, key: str) -> Optional[str]:
        ...

    def save(self, key: str, value: str) -> None:
        ...


class MemorySlotStorage:
    """Slots kept in a dictionary for the lifetime of the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._slots: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._slots.get(key)

    def save(self, key: str, value: str) -> None:
        with self._lock:
            self._slots[key] = value


class JSONFileSlotStorage:
    """Slots stored together in a single JSON object on disk."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f"Unable to read storage file {self._path}: {exc}") from exc

        try:
            payload = json.loads(raw) if raw.strip() else {}
        except (json.JSONDecodeError, RecursionError):
            logger.warning("Storage file %s is not valid JSON; treating it as empty", self._path)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Storage file %s does not contain an object; treating it as empty", self._path)
            return {}
        return {str(key): value for key, value in payload.items() if isinstance(value, str)}

    def _write(self, slots: Dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".slots-", dir=str(self._path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(slots, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                with suppress(FileNotFoundError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Unable to write storage file {self._path}: {exc}") from exc

    def load(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def save(self, key: str, value: str) -> None:
        with self._lock:
            slots = self._read()
            slots[key] = value
            self._write(slots)


__all__ = ["JSONFileSlotStorage", "MemorySlotStorage", "SlotStorage", "StorageError"]
