"""
Cloud Firestore Sync Backend

DESIGN DECISION: The whole snapshot lives in one document,
<collection>/<document_id>. Pushing is a full `set()` overwrite, so the
remote copy is always exactly the last snapshot written by any device.

Firestore is the realtime backend: `on_snapshot` streams every committed
change. Its callback runs on a background thread owned by the SDK; the
Subscription channel carries documents from there into the event loop.

TRADEOFFS:
- Last writer wins; two devices pushing at once race on the server
- The listener also sees this client's own writes, possibly out of order
  when pushes overlap; those are dropped by comparing against the last
  RECENT_PUSHES documents sent from here. A document is recorded before
  `set()` is called, so an echo that arrives first is still recognized.
"""

import asyncio
import threading
from collections import deque
from typing import Any, Optional

import structlog
from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import firestore
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from smartfinance.config import get_settings
from smartfinance.config.settings import FirestoreSettings
from smartfinance.models.backup import BackupData
from smartfinance.services.sync.interface import (
    AuthorizationError,
    NetworkError,
    QuotaError,
    Subscription,
    SyncError,
    SyncGateway,
)


SCOPES = ["https://www.googleapis.com/auth/datastore"]

# Outgoing documents remembered for echo suppression
RECENT_PUSHES = 16


def translate_error(error: Exception, action: str) -> SyncError:
    """Map a Google SDK exception onto the SyncError hierarchy."""
    if isinstance(error, SyncError):
        return error
    if isinstance(error, (api_exceptions.Unauthenticated, api_exceptions.PermissionDenied)):
        return AuthorizationError(f"Not authorized to {action}: {error}")
    if isinstance(error, auth_exceptions.GoogleAuthError):
        return AuthorizationError(f"Credentials rejected while trying to {action}: {error}")
    if isinstance(error, api_exceptions.ResourceExhausted):
        return QuotaError(f"Quota exceeded while trying to {action}: {error}")
    if isinstance(
        error,
        (
            api_exceptions.ServiceUnavailable,
            api_exceptions.DeadlineExceeded,
            api_exceptions.RetryError,
            OSError,
        ),
    ):
        return NetworkError(f"Firestore unreachable while trying to {action}: {error}")
    return SyncError(f"Failed to {action}: {error}")


class FirestoreSyncGateway(SyncGateway):
    """
    Realtime sync gateway backed by a single Firestore document.

    Args:
        settings: Firestore settings (read from the environment if omitted)
        document_id: Snapshot document id (defaults to SYNC_DOCUMENT_ID)
        client: Pre-built firestore.Client, mainly for tests
    """

    name = "firestore"

    def __init__(
        self,
        settings: Optional[FirestoreSettings] = None,
        document_id: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self._settings = settings
        self._document_id = document_id or get_settings().sync.document_id
        self._client = client
        # Read from the SDK's listener thread
        self._recent_pushes: deque[dict] = deque(maxlen=RECENT_PUSHES)
        self._recent_lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def is_ready(self) -> bool:
        return self._client is not None or self._settings is not None

    @property
    def supports_live_updates(self) -> bool:
        return True

    # =========================================================================
    # CONNECTION
    # =========================================================================

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(NetworkError),
        reraise=True,
    )
    def connect(self) -> Any:
        """
        Build the Firestore client from service account credentials.

        Raises:
            AuthorizationError: Credentials file missing or rejected
            NetworkError: Backend unreachable (after retries)
        """
        if self._client is None:
            if self._settings is None:
                raise AuthorizationError("Firestore is not configured")
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = firestore.Client(
                    project=self._settings.project_id or credentials.project_id,
                    credentials=credentials,
                )
            except FileNotFoundError:
                raise AuthorizationError(
                    f"Firestore credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise translate_error(e, "connect to Firestore")
        return self._client

    async def open(self) -> None:
        await asyncio.to_thread(self.connect)

    def _document(self) -> Any:
        collection = self._settings.collection if self._settings else "finance_data"
        return self.connect().collection(collection).document(self._document_id)

    # =========================================================================
    # PUSH / PULL
    # =========================================================================

    def _push_blocking(self, document: dict) -> None:
        try:
            self._document().set(document)
        except Exception as e:
            raise translate_error(e, "push snapshot")

    def _pull_blocking(self) -> Optional[dict]:
        try:
            snapshot = self._document().get()
        except Exception as e:
            raise translate_error(e, "pull snapshot")
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    def _remember_push(self, document: dict) -> None:
        with self._recent_lock:
            self._recent_pushes.append(document)

    def _forget_push(self, document: dict) -> None:
        with self._recent_lock:
            try:
                self._recent_pushes.remove(document)
            except ValueError:
                pass

    def is_own_write(self, document: dict) -> bool:
        """True if `document` is one of the recent snapshots pushed from here."""
        with self._recent_lock:
            return any(document == pushed for pushed in self._recent_pushes)

    async def push(self, snapshot: BackupData) -> None:
        document = snapshot.to_document()
        self._remember_push(document)
        try:
            await asyncio.to_thread(self._push_blocking, document)
        except SyncError:
            self._forget_push(document)
            raise
        self._logger.debug("firestore_push_complete", document_id=self._document_id)

    async def pull(self) -> Optional[dict]:
        return await asyncio.to_thread(self._pull_blocking)

    # =========================================================================
    # LIVE UPDATES
    # =========================================================================

    def subscribe(self) -> Subscription:
        """
        Listen to the snapshot document.

        The first delivery is the document as currently stored (if any).
        """
        subscription = Subscription(self.name)

        def on_snapshot(doc_snapshots, changes, read_time):
            for doc in doc_snapshots:
                if not doc.exists:
                    continue
                document = doc.to_dict()
                if self.is_own_write(document):
                    continue
                subscription.deliver(document)

        try:
            watch = self._document().on_snapshot(on_snapshot)
        except Exception as e:
            subscription.unsubscribe()
            raise translate_error(e, "subscribe to snapshot")

        subscription.bind(watch.unsubscribe)
        return subscription

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await asyncio.to_thread(self._client.close)
        self._client = None
