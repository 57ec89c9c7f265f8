"""
Data Models Package

This package contains all Pydantic models used by Smart Finance.
Everything persisted, exported or synchronized conforms to these schemas.
"""

from smartfinance.models.state import (
    DEFAULT_CATEGORIES,
    DEFAULT_CURRENCY,
    AppState,
    Category,
    Transaction,
    TransactionDraft,
    TransactionType,
    default_state,
)
from smartfinance.models.backup import (
    FORMAT_VERSION,
    BackupData,
    BackupMetadata,
    BackupSettings,
    FullEnvelope,
    Language,
    LegacyEnvelope,
    StateDocument,
    Theme,
)
from smartfinance.models.events import (
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
    SyncSeverity,
)

__all__ = [
    # State models
    "DEFAULT_CATEGORIES",
    "DEFAULT_CURRENCY",
    "AppState",
    "Category",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "default_state",
    # Backup models
    "FORMAT_VERSION",
    "BackupData",
    "BackupMetadata",
    "BackupSettings",
    "FullEnvelope",
    "Language",
    "LegacyEnvelope",
    "StateDocument",
    "Theme",
    # Event models
    "SyncEvent",
    "SyncEventBuilder",
    "SyncEventType",
    "SyncSeverity",
]
