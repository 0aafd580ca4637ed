"""Registration form validation, storage and web service."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_path
from .models import RegistrationInput, UserRecord
from .storage import JSONFileSlotStorage, MemorySlotStorage, SlotStorage, StorageError
from .store import RegistrationRejected, RegistrationStore
from .validation import validate_field, validate_registration


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the combined web + API application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


def create_api_app(*args: Any, **kwargs: Any):
    """Factory function for the API-only application."""

    from .service import create_api_app as _create_api_app

    return _create_api_app(*args, **kwargs)


def create_web_app(*args: Any, **kwargs: Any):
    """Factory function for the web-only application."""

    from .service import create_web_app as _create_web_app

    return _create_web_app(*args, **kwargs)


__all__ = [
    "Database",
    "JSONFileSlotStorage",
    "MemorySlotStorage",
    "RegistrationInput",
    "RegistrationRejected",
    "RegistrationStore",
    "SlotStorage",
    "StorageError",
    "UserRecord",
    "create_api_app",
    "create_app",
    "create_web_app",
    "resolve_database_path",
    "validate_field",
    "validate_registration",
]
