# Overview: Picks the storage backend once at start-up and hands it to services.

from __future__ import annotations

import os

from flask import Flask, current_app

from .base import StoragePort
from .local import LocalStorage
from .null import UnconfiguredStorage
from .sql import SqlStorage

EXTENSION_KEY = "cladstock.storage"

BACKENDS = ("sql", "local", "none")


def build_storage(app: Flask) -> StoragePort:
    """
    STORAGE_BACKEND wins when set; otherwise a DATABASE_URL means SQL and its
    absence means the local JSON file.
    """
    backend = (app.config.get("STORAGE_BACKEND") or "").strip().lower()
    if not backend:
        backend = "sql" if app.config.get("DATABASE_URL") else "local"
    if backend not in BACKENDS:
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend!r} (expected one of {', '.join(BACKENDS)})")

    if backend == "sql":
        return SqlStorage()
    if backend == "local":
        path = app.config.get("LOCAL_STORAGE_PATH") or "cladstock.json"
        if not os.path.isabs(path):
            path = os.path.join(app.instance_path, path)
        return LocalStorage(path)
    return UnconfiguredStorage()


def init_storage(app: Flask) -> StoragePort:
    storage = build_storage(app)
    app.extensions[EXTENSION_KEY] = storage
    app.logger.info("Storage backend: %s", storage.name)
    return storage


def get_storage() -> StoragePort:
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "StoragePort", "SqlStorage", "LocalStorage", "UnconfiguredStorage",
    "build_storage", "init_storage", "get_storage",
]
