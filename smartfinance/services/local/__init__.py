"""
Local Store Package

On-device persistence of state and preferences. The JSON file store is
the production implementation; the in-memory store backs tests.
"""

from smartfinance.services.local.interface import (
    AUTH_KEY,
    LANGUAGE_KEY,
    STATE_KEY,
    THEME_KEY,
    CorruptStoreError,
    LocalStoreInterface,
    StoreError,
)
from smartfinance.services.local.json_file import JsonFileStore
from smartfinance.services.local.memory import InMemoryStore

__all__ = [
    # Interface
    "LocalStoreInterface",
    "AUTH_KEY",
    "LANGUAGE_KEY",
    "STATE_KEY",
    "THEME_KEY",
    # Exceptions
    "CorruptStoreError",
    "StoreError",
    # Implementations
    "InMemoryStore",
    "JsonFileStore",
]
