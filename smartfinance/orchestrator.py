"""
Reconciliation Controller for Smart Finance

This module ties the local store, the state mutator, the backup codec
and the sync gateway together and defines the flows for:
1. Local edits (mutate -> persist -> push in the background)
2. Remote snapshots (live update or manual pull -> replace -> persist)
3. Import / export of backups (file or document)
4. Session and connectivity changes (login, logout, online, offline)

DESIGN DECISION: The controller enforces the boundaries:
- The local store is written before the in-memory state changes
- A push never blocks or undoes a local edit
- A remote snapshot is never pushed back
- Every step is recorded as a SyncEvent

Merge policy is last-writer-wins on the whole snapshot. An incoming
snapshot replaces transactions, categories and currency outright; a
local edit made since the last push can be overwritten. This is
accepted for a single-user ledger with rare concurrent writers.

Connection states:

    DISCONNECTED      not authenticated, or offline
    CONNECTED_IDLE    authenticated and online, no usable backend
    CONNECTED_LIVE    subscribed to live remote updates
    CONNECTED_MANUAL  backend without live updates, or its listener failed;
                      user pushes/pulls
"""

import asyncio
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from smartfinance.audit import SyncEventLogger
from smartfinance.backup import (
    DecodeResult,
    decode,
    encode,
    read_backup_file,
    write_backup_file,
)
from smartfinance.config import Settings, get_settings
from smartfinance.models.backup import BackupData, BackupSettings, Language
from smartfinance.models.events import SyncEventBuilder
from smartfinance.models.state import (
    DEFAULT_CATEGORIES,
    AppState,
    Category,
    Transaction,
    TransactionDraft,
    default_state,
)
from smartfinance.mutations import mutator
from smartfinance.services.local import JsonFileStore, LocalStoreInterface, StoreError
from smartfinance.services.sync import (
    InMemorySyncGateway,
    Subscription,
    SyncError,
    SyncGateway,
)


# =============================================================================
# CONTEXT AND RESULTS
# =============================================================================

class ConnectionState(str, Enum):
    """Where the controller stands with respect to the remote store."""
    DISCONNECTED = "disconnected"
    CONNECTED_IDLE = "connected_idle"
    CONNECTED_LIVE = "connected_live"
    CONNECTED_MANUAL = "connected_manual"


class SyncContext(BaseModel):
    """
    Everything the session knows right now.

    Owned by one controller and handed to nobody else. `state` is
    replaced, never edited in place.
    """
    state: AppState
    language: Language = Language.ENGLISH
    is_dark: bool = False
    authenticated: bool = False
    online: bool = True

    def backup_settings(self) -> BackupSettings:
        return BackupSettings(lang=self.language, is_dark=self.is_dark)


class SyncResult(BaseModel):
    """Outcome of a push."""
    success: bool
    message: str
    error_type: Optional[str] = None


class PullOutcome(str, Enum):
    """What a manual pull ended in."""
    APPLIED = "applied"        # remote snapshot replaced local state
    NOT_FOUND = "not_found"    # nothing stored remotely yet
    FAILED = "failed"          # backend error, local state untouched
    REJECTED = "rejected"      # remote document could not be decoded


class PullResult(BaseModel):
    """Outcome of a pull."""
    outcome: PullOutcome
    message: str
    kind: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == PullOutcome.APPLIED


class ImportResult(BaseModel):
    """
    Outcome of an import.

    kind is the envelope kind on success ("full"/"legacy") and the
    failure kind otherwise.
    """
    success: bool
    message: str
    kind: Optional[str] = None


# =============================================================================
# CONTROLLER
# =============================================================================

class ReconciliationController:
    """
    Orchestrates local state, persistence and cloud sync.

    Usage:
        controller = ReconciliationController(store, gateway)
        await controller.start()
        controller.add_transaction(draft)   # persisted now, pushed later
        await controller.login()
        ...
        await controller.close()

    Mutation methods are synchronous and must be called from the event
    loop thread once start() has completed.
    """

    def __init__(
        self,
        store: LocalStoreInterface,
        gateway: Optional[SyncGateway] = None,
        event_logger: Optional[SyncEventLogger] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        app_settings = settings.app
        sync_settings = settings.sync

        self._store = store
        self._gateway = gateway
        self._events = event_logger or SyncEventLogger(app_settings.event_history_size)
        self._default_currency = app_settings.default_currency
        self._backup_directory = app_settings.backup_directory
        self._auto_push_manual = sync_settings.auto_push_manual

        self._context: Optional[SyncContext] = None
        self._connection = ConnectionState.DISCONNECTED
        self._subscription: Optional[Subscription] = None
        self._consumer: Optional[asyncio.Task] = None
        self._pushes: set[asyncio.Task] = set()
        self.last_sync_error: Optional[str] = None
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def context(self) -> SyncContext:
        if self._context is None:
            raise RuntimeError("Controller not started; await start() first")
        return self._context

    @property
    def state(self) -> AppState:
        return self.context.state

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection

    @property
    def gateway(self) -> Optional[SyncGateway]:
        return self._gateway

    @property
    def events(self) -> SyncEventLogger:
        return self._events

    @property
    def pending_pushes(self) -> int:
        return len(self._pushes)

    # =========================================================================
    # SESSION LIFECYCLE
    # =========================================================================

    async def start(self, online: bool = True) -> SyncContext:
        """
        Load state and preferences from the local store and connect.

        A fresh install starts from the default seed, which is persisted
        immediately.

        Raises:
            CorruptStoreError: If a stored state exists but is unreadable.
                The seed is never silently written over user data.
        """
        state = self._store.load_state()
        source = "local_store"
        if state is None:
            state = default_state(self._default_currency)
            self._store.save_state(state)
            source = "default_seed"
        elif not state.categories:
            state = state.model_copy(update={"categories": list(DEFAULT_CATEGORIES)})
            self._store.save_state(state)

        self._context = SyncContext(
            state=state,
            language=self._store.load_language(),
            is_dark=self._store.load_dark_mode(),
            authenticated=self._store.load_authenticated(),
            online=online,
        )
        self._events.log(SyncEventBuilder.state_loaded(
            source=source,
            transactions=len(state.transactions),
            categories=len(state.categories),
        ))

        await self._reconcile_connection("startup")
        return self._context

    async def login(self) -> None:
        """Mark the session authenticated (credentials are checked elsewhere)."""
        context = self.context
        if not context.authenticated:
            self._store.save_authenticated(True)
            context.authenticated = True
            self._events.log(SyncEventBuilder.user_logged_in())
        await self._reconcile_connection("login")

    async def logout(
        self,
        backup_directory: Optional[Union[str, Path]] = None,
    ) -> Optional[Path]:
        """
        End the session, optionally writing a backup file first.

        The local ledger is kept; only the session ends.

        Args:
            backup_directory: If given, a full backup is written there
                before logging out. If that write fails the session is
                left as it was.

        Returns:
            Path of the backup file, if one was written

        Raises:
            OSError: If the requested backup could not be written
        """
        backup_path = None
        if backup_directory is not None:
            backup_path = self.write_backup(backup_directory)

        context = self.context
        self._store.save_authenticated(False)
        context.authenticated = False
        await self._reconcile_connection("logout")
        self._events.log(SyncEventBuilder.user_logged_out(
            backup_path=str(backup_path) if backup_path else None,
        ))
        return backup_path

    async def set_online(self, online: bool) -> None:
        """Report a connectivity change."""
        context = self.context
        if context.online == online:
            return
        context.online = online
        await self._reconcile_connection("online" if online else "offline")

    async def flush(self) -> None:
        """Wait for every background push scheduled so far."""
        while self._pushes:
            await asyncio.gather(*list(self._pushes))

    async def close(self) -> None:
        """Unsubscribe, wait for pending pushes and release the gateway."""
        await self._close_subscription("shutdown")
        previous = self._connection
        self._connection = ConnectionState.DISCONNECTED
        if previous != ConnectionState.DISCONNECTED:
            self._events.log(SyncEventBuilder.connection_changed(
                previous=previous.value,
                current=self._connection.value,
                reason="shutdown",
            ))
        await self.flush()
        if self._gateway is not None:
            await self._gateway.close()

    # =========================================================================
    # CONNECTION STATE MACHINE
    # =========================================================================

    def _target_connection(self) -> ConnectionState:
        context = self.context
        if not context.authenticated or not context.online:
            return ConnectionState.DISCONNECTED
        if self._gateway is None or not self._gateway.is_ready:
            return ConnectionState.CONNECTED_IDLE
        if self._gateway.supports_live_updates:
            return ConnectionState.CONNECTED_LIVE
        return ConnectionState.CONNECTED_MANUAL

    async def _reconcile_connection(self, reason: str) -> None:
        """Move to the connection state implied by the current context."""
        target = self._target_connection()
        previous = self._connection
        if target == previous:
            return

        if previous == ConnectionState.CONNECTED_LIVE:
            await self._close_subscription(reason)

        if target == ConnectionState.CONNECTED_LIVE:
            try:
                await self._open_subscription()
            except SyncError as e:
                # Manual push/pull still work; subscribing is retried on the next change
                self.last_sync_error = str(e)
                self._logger.warning(
                    "subscription_failed",
                    backend=self._gateway.name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                target = ConnectionState.CONNECTED_MANUAL
                if target == previous:
                    return

        self._connection = target
        self._events.log(SyncEventBuilder.connection_changed(
            previous=previous.value,
            current=target.value,
            reason=reason,
        ))

    async def _open_subscription(self) -> None:
        gateway = self._gateway
        await gateway.open()
        subscription = gateway.subscribe()
        self._subscription = subscription
        self._consumer = asyncio.create_task(self._consume(subscription))
        self._events.log(SyncEventBuilder.subscription_opened(gateway.name))

    async def _close_subscription(self, reason: str) -> None:
        subscription, self._subscription = self._subscription, None
        consumer, self._consumer = self._consumer, None

        if subscription is not None:
            subscription.unsubscribe()
            self._events.log(SyncEventBuilder.subscription_closed(
                backend=subscription.backend,
                reason=reason,
            ))
        if consumer is not None and not consumer.done():
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)

    async def _consume(self, subscription: Subscription) -> None:
        async for document in subscription:
            self._apply_remote_update(document)

    def _apply_remote_update(self, document: Any) -> None:
        """Replace local state with a live remote snapshot (never pushed back)."""
        result = decode(document)
        if not result.ok:
            self._events.log(SyncEventBuilder.remote_update_rejected(
                kind=result.kind.value,
                reason=result.reason,
            ))
            return

        try:
            changed = self._commit(
                mutator.replace_state(self.state, result.state),
                operation="remote_update",
                push=False,
            )
        except StoreError as e:
            self._events.log(SyncEventBuilder.remote_update_rejected(
                kind="store_error",
                reason=str(e),
            ))
            return

        if changed:
            self._events.log(SyncEventBuilder.remote_update_applied(
                transactions=len(result.state.transactions),
                kind=result.kind.value,
            ))

    # =========================================================================
    # LOCAL MUTATIONS
    # =========================================================================

    def _commit(self, new_state: AppState, operation: str, push: bool = True) -> bool:
        """
        Persist and adopt a new state.

        Returns:
            False if nothing changed (nothing written, nothing pushed)

        Raises:
            StoreError: Local write failed; in-memory state is unchanged
        """
        context = self.context
        if new_state is context.state or new_state == context.state:
            return False

        self._store.save_state(new_state)
        context.state = new_state
        self._events.log(SyncEventBuilder.state_persisted(
            operation=operation,
            transactions=len(new_state.transactions),
        ))

        if push and self._should_auto_push():
            self._schedule_push()
        return True

    def add_transaction(self, draft: TransactionDraft) -> Transaction:
        """Add a transaction and return it with its assigned id."""
        new_state, transaction = mutator.add_transaction(self.state, draft)
        self._commit(new_state, "add_transaction")
        return transaction

    def update_transaction(self, transaction: Transaction) -> bool:
        return self._commit(
            mutator.update_transaction(self.state, transaction),
            "update_transaction",
        )

    def delete_transaction(self, transaction_id: str) -> bool:
        return self._commit(
            mutator.delete_transaction(self.state, transaction_id),
            "delete_transaction",
        )

    def add_category(self, category: Category) -> bool:
        return self._commit(
            mutator.add_category(self.state, category),
            "add_category",
        )

    def update_category(self, category: Category) -> bool:
        return self._commit(
            mutator.update_category(self.state, category),
            "update_category",
        )

    def delete_category(self, category_id: str) -> bool:
        return self._commit(
            mutator.delete_category(self.state, category_id),
            "delete_category",
        )

    def set_currency(self, code: str) -> bool:
        return self._commit(
            mutator.set_currency(self.state, code),
            "set_currency",
        )

    # -------------------------------------------------------------------------
    # Device preferences (persisted locally, not pushed)
    # -------------------------------------------------------------------------

    def set_language(self, language: Language) -> None:
        context = self.context
        if context.language == language:
            return
        self._store.save_language(language)
        context.language = language
        self._events.log(SyncEventBuilder.preferences_changed(language=language.value))

    def set_dark_mode(self, is_dark: bool) -> None:
        context = self.context
        if context.is_dark == is_dark:
            return
        self._store.save_dark_mode(is_dark)
        context.is_dark = is_dark
        self._events.log(SyncEventBuilder.preferences_changed(is_dark=is_dark))

    def _apply_settings(self, settings: Optional[BackupSettings]) -> bool:
        if settings is None:
            return False
        if settings.lang is not None:
            self.set_language(settings.lang)
        if settings.is_dark is not None:
            self.set_dark_mode(settings.is_dark)
        return True

    # =========================================================================
    # PUSH
    # =========================================================================

    def _should_auto_push(self) -> bool:
        if self._connection == ConnectionState.CONNECTED_LIVE:
            return True
        return self._connection == ConnectionState.CONNECTED_MANUAL and self._auto_push_manual

    def _schedule_push(self) -> None:
        """Start a best-effort push of the current snapshot in the background."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.warning("push_skipped", reason="no running event loop")
            return
        task = loop.create_task(self._push(self.export_snapshot()))
        self._pushes.add(task)
        task.add_done_callback(self._pushes.discard)

    async def _push(self, snapshot: BackupData) -> SyncResult:
        gateway = self._gateway
        try:
            await gateway.push(snapshot)
        except SyncError as e:
            self.last_sync_error = str(e)
            self._events.log(SyncEventBuilder.push_failed(
                backend=gateway.name,
                error_type=type(e).__name__,
                error=str(e),
            ))
            return SyncResult(
                success=False,
                message=f"Sync failed: {e}",
                error_type=type(e).__name__,
            )

        self.last_sync_error = None
        transactions = len(snapshot.app_state.transactions)
        self._events.log(SyncEventBuilder.push_succeeded(
            backend=gateway.name,
            transactions=transactions,
        ))
        return SyncResult(success=True, message=f"Synced {transactions} transactions")

    def _sync_unavailable(self) -> Optional[str]:
        if self._connection == ConnectionState.DISCONNECTED:
            return "Not connected: log in and go online to sync"
        if self._connection == ConnectionState.CONNECTED_IDLE:
            return "No cloud sync backend is available"
        return None

    async def push_now(self) -> SyncResult:
        """Push the current snapshot and wait for the result."""
        reason = self._sync_unavailable()
        if reason is not None:
            return SyncResult(success=False, message=reason)
        return await self._push(self.export_snapshot())

    # =========================================================================
    # PULL / IMPORT
    # =========================================================================

    async def pull(self) -> PullResult:
        """
        Fetch the remote snapshot and, if it decodes, replace local state.

        The pulled state is persisted locally but not pushed back.
        Settings carried in the snapshot are applied.

        Raises:
            StoreError: If the pulled state could not be persisted locally
        """
        reason = self._sync_unavailable()
        if reason is not None:
            return PullResult(outcome=PullOutcome.FAILED, message=reason)

        gateway = self._gateway
        try:
            document = await gateway.pull()
        except SyncError as e:
            self.last_sync_error = str(e)
            self._events.log(SyncEventBuilder.pull_failed(
                backend=gateway.name,
                error_type=type(e).__name__,
                error=str(e),
            ))
            return PullResult(
                outcome=PullOutcome.FAILED,
                message=f"Could not reach cloud backup: {e}",
                kind=type(e).__name__,
            )

        if document is None:
            self._events.log(SyncEventBuilder.pull_not_found(gateway.name))
            return PullResult(
                outcome=PullOutcome.NOT_FOUND,
                message="No cloud backup found yet",
            )

        result = decode(document)
        if not result.ok:
            self._events.log(SyncEventBuilder.pull_rejected(
                backend=gateway.name,
                kind=result.kind.value,
                reason=result.reason,
            ))
            return PullResult(
                outcome=PullOutcome.REJECTED,
                message=f"Cloud backup could not be read: {result.reason}",
                kind=result.kind.value,
            )

        self._commit(
            mutator.replace_state(self.state, result.state),
            operation="pull",
            push=False,
        )
        self._apply_settings(result.settings)
        self.last_sync_error = None
        self._events.log(SyncEventBuilder.pull_applied(
            backend=gateway.name,
            transactions=len(result.state.transactions),
            kind=result.kind.value,
        ))
        return PullResult(
            outcome=PullOutcome.APPLIED,
            message=f"Restored {len(result.state.transactions)} transactions from the cloud",
            kind=result.kind.value,
        )

    def _apply_import(self, result: DecodeResult) -> ImportResult:
        if not result.ok:
            self._events.log(SyncEventBuilder.import_rejected(
                kind=result.kind.value,
                reason=result.reason,
            ))
            return ImportResult(success=False, message=result.reason, kind=result.kind.value)

        self._commit(
            mutator.replace_state(self.state, result.state),
            operation="import",
        )
        settings_applied = self._apply_settings(result.settings)
        self._events.log(SyncEventBuilder.import_applied(
            kind=result.kind.value,
            transactions=len(result.state.transactions),
            settings_applied=settings_applied,
        ))
        return ImportResult(
            success=True,
            message=(
                f"Restored {len(result.state.transactions)} transactions "
                f"and {len(self.state.categories)} categories"
            ),
            kind=result.kind.value,
        )

    def import_backup(self, document: Any) -> ImportResult:
        """
        Restore from a parsed backup document (full or legacy).

        On success the state is replaced wholesale, persisted and pushed
        like any local edit. On failure nothing changes.

        Raises:
            StoreError: If the restored state could not be persisted
        """
        return self._apply_import(decode(document))

    def import_backup_file(self, path: Union[str, Path]) -> ImportResult:
        """Restore from a backup file on disk."""
        return self._apply_import(read_backup_file(path))

    # =========================================================================
    # EXPORT
    # =========================================================================

    def export_snapshot(self) -> BackupData:
        """Full envelope of the current state, without logging an export."""
        context = self.context
        return encode(context.state, context.backup_settings())

    def export_backup(self) -> BackupData:
        """Full backup of the current state and preferences."""
        backup = self.export_snapshot()
        self._events.log(SyncEventBuilder.backup_exported(
            transactions=len(backup.app_state.transactions),
            categories=len(backup.app_state.categories),
        ))
        return backup

    def write_backup(self, directory: Optional[Union[str, Path]] = None) -> Path:
        """
        Write a dated backup file.

        Args:
            directory: Target directory (defaults to APP_BACKUP_DIRECTORY)

        Raises:
            OSError: If the file could not be written
        """
        backup = self.export_snapshot()
        path = write_backup_file(backup, directory or self._backup_directory)
        self._events.log(SyncEventBuilder.backup_exported(
            transactions=len(backup.app_state.transactions),
            categories=len(backup.app_state.categories),
            path=str(path),
        ))
        return path


# =============================================================================
# FACTORY
# =============================================================================

def _build_gateway(settings: Settings) -> Optional[SyncGateway]:
    backend = settings.sync.backend
    if backend == "firestore":
        from smartfinance.services.sync.firestore import FirestoreSyncGateway
        return FirestoreSyncGateway(
            settings=settings.firestore,
            document_id=settings.sync.document_id,
        )
    if backend == "sheets":
        from smartfinance.services.sync.google_sheets import GoogleSheetsSyncGateway
        return GoogleSheetsSyncGateway(settings=settings.google_sheets)
    if backend == "memory":
        return InMemorySyncGateway()
    return None


def create_app_components(use_sync: bool = True) -> ReconciliationController:
    """
    Factory function to create the controller and its collaborators.

    Args:
        use_sync: Whether to build the configured sync backend.
                  Set to False to run local-only.

    Returns:
        A controller that still needs `await controller.start()`
    """
    settings = get_settings()
    store_settings = settings.local_store
    store = JsonFileStore(store_settings.path, fsync=store_settings.fsync)
    event_logger = SyncEventLogger(settings.app.event_history_size)

    gateway = None
    if use_sync:
        try:
            gateway = _build_gateway(settings)
        except (ValidationError, SyncError) as e:
            # Backend not configured - continue local-only
            structlog.get_logger(__name__).warning(
                "sync_backend_unavailable",
                backend=settings.sync.backend,
                error=str(e),
            )
            gateway = None

    return ReconciliationController(
        store=store,
        gateway=gateway,
        event_logger=event_logger,
        settings=settings,
    )
