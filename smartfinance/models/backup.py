"""
Backup Envelope Models

Two document shapes exist in the wild:

1. FULL ENVELOPE (current, format version "1.1"):
   {"appState": {...}, "settings": {"lang", "isDark"}, "metadata": {...}}
2. LEGACY ENVELOPE (import only, never emitted):
   {"transactions": [...], "categories": [...], "currency": "..."}

DESIGN DECISION: The two shapes are distinct schemas. Decoding tries the
full envelope first, then the legacy one, instead of reading fields off
one loosely-typed blob. See smartfinance.backup.codec for the algorithm.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from smartfinance.models.state import AppState, Category, Transaction


FORMAT_VERSION = "1.1"


class Language(str, Enum):
    """UI languages the app ships translations for."""
    ENGLISH = "en"
    MYANMAR = "my"


class Theme(str, Enum):
    """Theme flag as persisted on the device."""
    LIGHT = "light"
    DARK = "dark"


class BackupSettings(BaseModel):
    """
    User preferences carried inside a full backup.

    Both fields are optional on import: older or hand-edited backups
    may carry only one of them.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    lang: Optional[Language] = None
    is_dark: Optional[StrictBool] = Field(default=None, alias="isDark")

    @property
    def is_empty(self) -> bool:
        return self.lang is None and self.is_dark is None


class BackupMetadata(BaseModel):
    """Self-description stamped on every emitted backup."""
    model_config = ConfigDict(frozen=True)

    version: str = Field(
        default=FORMAT_VERSION,
        description="Backup format version"
    )
    timestamp: datetime = Field(
        ...,
        description="When the backup was encoded (UTC)"
    )
    description: str = Field(
        ...,
        description="Human-readable summary for audit, never parsed"
    )


class BackupData(BaseModel):
    """
    The canonical export/import envelope ("full backup").

    This is also the snapshot pushed to cloud sync backends.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    app_state: AppState = Field(..., alias="appState")
    settings: BackupSettings
    metadata: BackupMetadata

    def to_document(self) -> dict:
        """Serialize to the JSON-ready mapping written to files and backends."""
        document = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        stamp = self.metadata.timestamp.isoformat(timespec="milliseconds")
        document["metadata"]["timestamp"] = stamp.replace("+00:00", "Z")
        return document


# =============================================================================
# DECODE SCHEMAS
# =============================================================================

class StateDocument(BaseModel):
    """
    Import schema for a bare state: both lists must be present.

    Unlike AppState, nothing defaults here except the currency, so
    {"appState": {}} is rejected instead of restoring an empty ledger.
    """
    model_config = ConfigDict(extra="ignore")

    transactions: list[Transaction]
    categories: list[Category]
    currency: str = Field(default="USD", min_length=1)

    def to_state(self) -> AppState:
        """Build the AppState (raises ValidationError on duplicate ids)."""
        return AppState(
            transactions=self.transactions,
            categories=self.categories,
            currency=self.currency,
        )


class FullEnvelope(BaseModel):
    """
    Import schema for the full envelope.

    Settings are kept raw here; the codec validates them field by field so
    that one bad preference does not discard the other.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    app_state: StateDocument = Field(..., alias="appState")
    settings: Optional[Any] = None
    metadata: dict[str, Any]


class LegacyEnvelope(StateDocument):
    """Import schema for the legacy shape: a bare state at the top level."""
