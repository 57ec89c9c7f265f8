"""
Abstract Sync Gateway Interface

The capability the reconciliation controller needs from a cloud backend:
1. push a full snapshot (idempotent overwrite, never append)
2. pull the most recent snapshot, or learn that none is stored yet
3. optionally, subscribe to live changes made by other devices

DESIGN DECISION: Backends differ only in which optional operations they
support. The controller checks `supports_live_updates`; it never
branches on which backend it is talking to.

Authentication and session setup happen outside this contract. A gateway
only reports whether it is ready (configured) to push and pull.
"""

import asyncio
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import structlog

from smartfinance.models.backup import BackupData


_CLOSED = object()


class Subscription:
    """
    Channel carrying live remote documents to a single consumer.

    Producer side (backend, any thread):
        subscription.deliver(document)

    Consumer side (event loop):
        async for document in subscription:
            ...

    unsubscribe() may be called any number of times. The first call stops
    delivery at once (documents queued but not yet consumed are dropped),
    ends the iteration and releases the backend listener. Later calls do
    nothing.

    Must be created on the event loop thread that will consume it.
    """

    def __init__(self, backend: str, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.backend = backend
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._release: Optional[Callable[[], None]] = None
        self._lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def active(self) -> bool:
        return not self._closed

    def bind(self, release: Callable[[], None]) -> None:
        """Attach the backend teardown to run on unsubscribe."""
        with self._lock:
            if not self._closed:
                self._release = release
                return
        # Already cancelled before the backend finished wiring up
        release()

    def deliver(self, document: Any) -> None:
        """Hand a remote document to the consumer. Safe from any thread."""
        if self._closed or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._enqueue, document)

    def _enqueue(self, document: Any) -> None:
        if not self._closed:
            self._queue.put_nowait(document)

    def unsubscribe(self) -> None:
        """Stop delivery and release the backend listener (idempotent)."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            release, self._release = self._release, None

        if not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _CLOSED)

        if release is not None:
            try:
                release()
            except Exception as e:
                self._logger.warning(
                    "subscription_release_failed",
                    backend=self.backend,
                    error=str(e),
                )

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Any:
        if self._closed:
            raise StopAsyncIteration
        document = await self._queue.get()
        if self._closed or document is _CLOSED:
            raise StopAsyncIteration
        return document


class SyncGateway(ABC):
    """
    Abstract interface for a remote snapshot store.

    Any backend (Firestore, Google Sheets, in-memory) must implement
    push and pull. Realtime backends also override subscribe.
    """

    name: str = "remote"

    @property
    def is_ready(self) -> bool:
        """Whether the backend is configured well enough to try push/pull."""
        return True

    @property
    def supports_live_updates(self) -> bool:
        return False

    async def open(self) -> None:
        """
        Establish the backend connection ahead of first use.

        Called before subscribe() so that blocking setup work happens off
        the event loop. push/pull connect on their own if needed.
        """
        return None

    @abstractmethod
    async def push(self, snapshot: BackupData) -> None:
        """
        Overwrite the remote copy with this snapshot.

        Safe to call repeatedly; the remote always holds exactly one snapshot.

        Raises:
            AuthorizationError: Credentials missing, expired or denied
            NetworkError: Backend unreachable
            QuotaError: Remote quota exceeded
            SyncError: Any other backend failure
        """
        pass

    @abstractmethod
    async def pull(self) -> Optional[dict]:
        """
        Fetch the most recently stored snapshot document.

        Returns:
            The raw document (decode it with the backup codec), or None if
            nothing has been stored yet. None is not an error.

        Raises:
            SyncError: (or a subclass) if the backend could not be read
        """
        pass

    def subscribe(self) -> Subscription:
        """
        Start listening for changes made by other clients.

        Must be called from the event loop thread.

        Raises:
            UnsupportedOperationError: Backend has no live updates
        """
        raise UnsupportedOperationError(f"{self.name} does not support live updates")

    async def close(self) -> None:
        """Release any connection held by the gateway."""
        return None


class SyncError(Exception):
    """Base exception for sync gateway operations."""
    pass


class AuthorizationError(SyncError):
    """Not authorized to reach the remote store."""
    pass


class NetworkError(SyncError):
    """Remote store could not be reached."""
    pass


class QuotaError(SyncError):
    """Remote store refused the request for quota reasons."""
    pass


class UnsupportedOperationError(SyncError):
    """The backend does not offer this operation."""
    pass
