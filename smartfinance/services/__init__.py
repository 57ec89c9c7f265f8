"""Services package."""

from smartfinance.services.local import (
    CorruptStoreError,
    InMemoryStore,
    JsonFileStore,
    LocalStoreInterface,
    StoreError,
)
from smartfinance.services.sync import (
    AuthorizationError,
    InMemoryRemote,
    InMemorySyncGateway,
    NetworkError,
    QuotaError,
    Subscription,
    SyncError,
    SyncGateway,
    UnsupportedOperationError,
)

__all__ = [
    # Local store
    "CorruptStoreError",
    "InMemoryStore",
    "JsonFileStore",
    "LocalStoreInterface",
    "StoreError",
    # Sync gateways
    "AuthorizationError",
    "InMemoryRemote",
    "InMemorySyncGateway",
    "NetworkError",
    "QuotaError",
    "Subscription",
    "SyncError",
    "SyncGateway",
    "UnsupportedOperationError",
]
