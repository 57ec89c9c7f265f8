"""
Sync Event Models

Every significant reconciliation step is recorded as a SyncEvent:
local persistence, pushes, pulls, live updates, imports and
connection changes. Events are written to the structured log and kept
in a short in-memory history the UI can show ("last synced ...").

DESIGN DECISION: Events are append-only records. Nothing reads them back
to make decisions; they exist for tracing and for the user.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class SyncEventType(str, Enum):
    """Types of events the reconciliation layer records."""
    # Local persistence
    STATE_LOADED = "state_loaded"
    STATE_PERSISTED = "state_persisted"
    PREFERENCES_CHANGED = "preferences_changed"

    # Remote store
    PUSH_SUCCEEDED = "push_succeeded"
    PUSH_FAILED = "push_failed"
    PULL_APPLIED = "pull_applied"
    PULL_NOT_FOUND = "pull_not_found"
    PULL_FAILED = "pull_failed"
    PULL_REJECTED = "pull_rejected"
    REMOTE_UPDATE_APPLIED = "remote_update_applied"
    REMOTE_UPDATE_REJECTED = "remote_update_rejected"

    # Backup / restore
    BACKUP_EXPORTED = "backup_exported"
    IMPORT_APPLIED = "import_applied"
    IMPORT_REJECTED = "import_rejected"

    # Session / connectivity
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    CONNECTION_CHANGED = "connection_changed"
    SUBSCRIPTION_OPENED = "subscription_opened"
    SUBSCRIPTION_CLOSED = "subscription_closed"


class SyncSeverity(str, Enum):
    """Severity level for sync events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """A single reconciliation event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )
    event_type: SyncEventType
    severity: SyncSeverity = SyncSeverity.INFO
    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class SyncEventBuilder:
    """
    Helper class to build sync events with common patterns.

    Usage:
        event = SyncEventBuilder.push_failed(backend="firestore", error=str(e))
    """

    @staticmethod
    def state_loaded(source: str, transactions: int, categories: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.STATE_LOADED,
            description=f"State loaded from {source}",
            details={
                "source": source,
                "transactions": transactions,
                "categories": categories,
            },
        )

    @staticmethod
    def state_persisted(operation: str, transactions: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.STATE_PERSISTED,
            severity=SyncSeverity.DEBUG,
            description=f"State persisted locally after {operation}",
            details={
                "operation": operation,
                "transactions": transactions,
            },
            is_user_action=True,
        )

    @staticmethod
    def preferences_changed(**preferences: Any) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PREFERENCES_CHANGED,
            description="Preferences updated",
            details=preferences,
            is_user_action=True,
        )

    @staticmethod
    def push_succeeded(backend: str, transactions: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PUSH_SUCCEEDED,
            description=f"Snapshot pushed to {backend}",
            details={
                "backend": backend,
                "transactions": transactions,
            },
        )

    @staticmethod
    def push_failed(backend: str, error_type: str, error: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PUSH_FAILED,
            severity=SyncSeverity.ERROR,
            description=f"Push to {backend} failed",
            details={
                "backend": backend,
                "error_type": error_type,
            },
            error_message=error,
        )

    @staticmethod
    def pull_applied(backend: str, transactions: int, kind: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PULL_APPLIED,
            description=f"Remote snapshot from {backend} replaced local state",
            details={
                "backend": backend,
                "transactions": transactions,
                "envelope": kind,
            },
            is_user_action=True,
        )

    @staticmethod
    def pull_not_found(backend: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PULL_NOT_FOUND,
            description=f"No snapshot stored on {backend} yet",
            details={"backend": backend},
            is_user_action=True,
        )

    @staticmethod
    def pull_failed(backend: str, error_type: str, error: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PULL_FAILED,
            severity=SyncSeverity.ERROR,
            description=f"Pull from {backend} failed",
            details={
                "backend": backend,
                "error_type": error_type,
            },
            error_message=error,
        )

    @staticmethod
    def pull_rejected(backend: str, kind: str, reason: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PULL_REJECTED,
            severity=SyncSeverity.WARNING,
            description=f"Snapshot on {backend} could not be decoded",
            details={
                "backend": backend,
                "failure": kind,
            },
            error_message=reason,
        )

    @staticmethod
    def remote_update_applied(transactions: int, kind: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_UPDATE_APPLIED,
            description="Live update replaced local state",
            details={
                "transactions": transactions,
                "envelope": kind,
            },
        )

    @staticmethod
    def remote_update_rejected(kind: str, reason: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_UPDATE_REJECTED,
            severity=SyncSeverity.WARNING,
            description="Live update ignored: document could not be decoded",
            details={"failure": kind},
            error_message=reason,
        )

    @staticmethod
    def backup_exported(transactions: int, categories: int, path: Optional[str] = None) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.BACKUP_EXPORTED,
            description=f"Backup created with {transactions} transactions",
            details={
                "transactions": transactions,
                "categories": categories,
                "path": path,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_applied(kind: str, transactions: int, settings_applied: bool) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.IMPORT_APPLIED,
            description=f"Restored {transactions} transactions from {kind} backup",
            details={
                "envelope": kind,
                "transactions": transactions,
                "settings_applied": settings_applied,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(kind: str, reason: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.IMPORT_REJECTED,
            severity=SyncSeverity.WARNING,
            description="Backup import rejected",
            details={"failure": kind},
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def user_logged_in() -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.USER_LOGGED_IN,
            description="User authenticated",
            is_user_action=True,
        )

    @staticmethod
    def user_logged_out(backup_path: Optional[str] = None) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.USER_LOGGED_OUT,
            description="User logged out",
            details={"backup_path": backup_path},
            is_user_action=True,
        )

    @staticmethod
    def connection_changed(previous: str, current: str, reason: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CONNECTION_CHANGED,
            description=f"Connection {previous} -> {current} ({reason})",
            details={
                "previous": previous,
                "current": current,
                "reason": reason,
            },
        )

    @staticmethod
    def subscription_opened(backend: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_OPENED,
            description=f"Listening for live updates from {backend}",
            details={"backend": backend},
        )

    @staticmethod
    def subscription_closed(backend: str, reason: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.SUBSCRIPTION_CLOSED,
            description=f"Stopped listening to {backend}",
            details={
                "backend": backend,
                "reason": reason,
            },
        )
