# zapp_core/storage/__init__.py
from __future__ import annotations

from .models import DeviceRecord, IdentityRecord
from .provider import KeyStore
from .providers.memory_provider import InMemoryKeyStore
from .providers.sqlite_provider import SQLiteKeyStore
from zapp_core.constants import DEFAULT_DB_PATH, DEFAULT_STORAGE_PROVIDER
import os


def load_key_store(config: dict | None = None) -> KeyStore:
    """
    Factory resolver for selecting the runtime key store backend.

    For now:
        - sqlite (default)
        - memory
    """
    config = config or {}
    provider = config.get("provider") or os.getenv("ZAPP_STORAGE_PROVIDER", DEFAULT_STORAGE_PROVIDER)

    if provider == "memory":
        return InMemoryKeyStore()

    if provider == "sqlite":
        db_path = config.get("sqlite_path") or os.getenv("ZAPP_DB_PATH", DEFAULT_DB_PATH)
        return SQLiteKeyStore(db_path)

    raise ValueError(f"Unknown storage provider: {provider}")


__all__ = [
    "DeviceRecord",
    "IdentityRecord",
    "KeyStore",
    "InMemoryKeyStore",
    "SQLiteKeyStore",
    "load_key_store",
]
