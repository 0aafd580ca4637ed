"""Application factory for the registration page and its JSON API."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI

from .api import register_api_routes
from .config import ServiceSettings, build_storage, load_settings
from .store import RegistrationStore
from .web import register_ui_routes

logger = logging.getLogger("registration.service")

API_PREFIX = "/api"


def create_app(
    *,
    settings: Optional[ServiceSettings] = None,
    store: Optional[RegistrationStore] = None,
    include_api: bool = True,
    include_web: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application for the registration service."""

    resolved = settings or load_settings()
    if store is None:
        storage = build_storage(resolved)
        store = RegistrationStore(storage, key=resolved.storage_key)
        logger.info(
            "Loaded %s registered user(s) from %s storage",
            len(store),
            resolved.storage_backend,
        )

    app = FastAPI(
        title=resolved.title,
        version="0.1.0",
        description="Registration form with field validation and a local user list.",
    )
    app.state.settings = resolved
    app.state.store = store

    if include_api:
        register_api_routes(app, store, prefix=API_PREFIX)
    if include_web:
        register_ui_routes(
            app,
            store,
            title=resolved.title,
            success_duration=timedelta(seconds=resolved.success_banner_seconds),
            validate_url=f"{API_PREFIX}/validate" if include_api else None,
        )

    return app


def create_api_app(
    *,
    settings: Optional[ServiceSettings] = None,
    store: Optional[RegistrationStore] = None,
) -> FastAPI:
    """Return an application exposing only the JSON API."""

    return create_app(settings=settings, store=store, include_api=True, include_web=False)


def create_web_app(
    *,
    settings: Optional[ServiceSettings] = None,
    store: Optional[RegistrationStore] = None,
) -> FastAPI:
    """Return an application exposing only the registration page."""

    return create_app(settings=settings, store=store, include_api=False, include_web=True)


__all__ = ["API_PREFIX", "create_app", "create_api_app", "create_web_app"]
