"""
In-Memory Sync Backend

A process-local stand-in for a cloud store. Several gateways attached to
the same InMemoryRemote behave like several devices sharing one account:
a push from one is delivered live to the others' subscriptions.

Used by the test suite and for running the app without credentials.
"""

import asyncio
import copy
from typing import Optional

from smartfinance.models.backup import BackupData
from smartfinance.services.sync.interface import (
    SyncError,
    SyncGateway,
    Subscription,
)


class InMemoryRemote:
    """The shared remote document plus everyone listening to it."""

    def __init__(self, document: Optional[dict] = None):
        self.document: Optional[dict] = copy.deepcopy(document)
        self.write_count = 0
        self._listeners: list[tuple[object, Subscription]] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def write(self, document: dict, origin: Optional[object] = None) -> None:
        """Replace the stored document and notify listeners other than `origin`."""
        self.document = copy.deepcopy(document)
        self.write_count += 1
        for owner, subscription in list(self._listeners):
            if owner is not origin:
                subscription.deliver(copy.deepcopy(document))

    def read(self) -> Optional[dict]:
        return copy.deepcopy(self.document)

    def attach(self, owner: object, subscription: Subscription) -> None:
        self._listeners.append((owner, subscription))

    def detach(self, subscription: Subscription) -> None:
        self._listeners = [
            (owner, s) for owner, s in self._listeners if s is not subscription
        ]


class InMemorySyncGateway(SyncGateway):
    """
    Gateway over an InMemoryRemote.

    Args:
        remote: Shared remote (a private one is created if omitted)
        live: Offer live updates (False behaves like a manual backend)
        ready: Value reported by is_ready
        latency: Seconds each push/pull waits before completing

    Set fail_next_push / fail_next_pull to a SyncError to make the next
    call raise it.
    """

    name = "memory"

    def __init__(
        self,
        remote: Optional[InMemoryRemote] = None,
        live: bool = True,
        ready: bool = True,
        latency: float = 0.0,
    ):
        self.remote = remote or InMemoryRemote()
        self._live = live
        self._ready = ready
        self.latency = latency
        self.fail_next_push: Optional[SyncError] = None
        self.fail_next_pull: Optional[SyncError] = None
        self.pushed: list[BackupData] = []

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def supports_live_updates(self) -> bool:
        return self._live

    async def push(self, snapshot: BackupData) -> None:
        await asyncio.sleep(self.latency)
        if self.fail_next_push is not None:
            error, self.fail_next_push = self.fail_next_push, None
            raise error
        self.pushed.append(snapshot)
        self.remote.write(snapshot.to_document(), origin=self)

    async def pull(self) -> Optional[dict]:
        await asyncio.sleep(self.latency)
        if self.fail_next_pull is not None:
            error, self.fail_next_pull = self.fail_next_pull, None
            raise error
        return self.remote.read()

    def subscribe(self) -> Subscription:
        """Listen to the shared remote; the stored document is delivered first."""
        if not self._live:
            return super().subscribe()
        subscription = Subscription(self.name)
        self.remote.attach(self, subscription)
        subscription.bind(lambda: self.remote.detach(subscription))
        current = self.remote.read()
        if current is not None:
            subscription.deliver(current)
        return subscription
