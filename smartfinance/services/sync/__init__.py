"""
Sync Gateway Package

Remote snapshot stores behind one interface. Firestore and Google Sheets
modules import their SDKs, so they are loaded on demand by the factory.
"""

from smartfinance.services.sync.interface import (
    AuthorizationError,
    NetworkError,
    QuotaError,
    Subscription,
    SyncError,
    SyncGateway,
    UnsupportedOperationError,
)
from smartfinance.services.sync.memory import InMemoryRemote, InMemorySyncGateway

__all__ = [
    # Interface
    "SyncGateway",
    "Subscription",
    # Exceptions
    "SyncError",
    "AuthorizationError",
    "NetworkError",
    "QuotaError",
    "UnsupportedOperationError",
    # Implementations
    "InMemoryRemote",
    "InMemorySyncGateway",
]
