"""Tests for the live update channel and the in-memory backend."""

import asyncio
import threading

import pytest

from smartfinance.backup import encode
from smartfinance.models import BackupSettings
from smartfinance.services.sync import (
    InMemorySyncGateway,
    NetworkError,
    Subscription,
    UnsupportedOperationError,
)


async def drain(subscription: Subscription) -> list:
    """Collect everything already queued, without blocking."""
    await asyncio.sleep(0)
    received = []
    while not subscription._queue.empty():
        item = subscription._queue.get_nowait()
        if isinstance(item, dict):
            received.append(item)
    return received


class TestSubscription:
    """Tests for the Subscription channel."""

    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        subscription = Subscription("test")
        subscription.deliver({"n": 1})
        subscription.deliver({"n": 2})
        assert await subscription.__anext__() == {"n": 1}
        assert await subscription.__anext__() == {"n": 2}

    @pytest.mark.asyncio
    async def test_deliver_from_other_thread(self):
        subscription = Subscription("test")
        worker = threading.Thread(target=subscription.deliver, args=({"n": 1},))
        worker.start()
        worker.join()
        document = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert document == {"n": 1}

    @pytest.mark.asyncio
    async def test_unsubscribe_twice(self):
        """Second unsubscribe is a no-op; nothing arrives after the first."""
        released = []
        subscription = Subscription("test")
        subscription.bind(lambda: released.append(True))

        subscription.unsubscribe()
        subscription.unsubscribe()
        subscription.deliver({"n": 1})

        assert released == [True]
        assert not subscription.active
        with pytest.raises(StopAsyncIteration):
            await subscription.__anext__()

    @pytest.mark.asyncio
    async def test_queued_documents_dropped_on_unsubscribe(self):
        subscription = Subscription("test")
        subscription.deliver({"n": 1})
        await asyncio.sleep(0)
        subscription.unsubscribe()
        received = [document async for document in subscription]
        assert received == []

    @pytest.mark.asyncio
    async def test_unsubscribe_ends_waiting_consumer(self):
        subscription = Subscription("test")

        async def consume():
            return [document async for document in subscription]

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        subscription.unsubscribe()
        assert await asyncio.wait_for(task, timeout=1) == []

    @pytest.mark.asyncio
    async def test_bind_after_unsubscribe_releases_at_once(self):
        released = []
        subscription = Subscription("test")
        subscription.unsubscribe()
        subscription.bind(lambda: released.append(True))
        assert released == [True]

    @pytest.mark.asyncio
    async def test_release_failure_does_not_raise(self):
        def broken():
            raise RuntimeError("listener already gone")

        subscription = Subscription("test")
        subscription.bind(broken)
        subscription.unsubscribe()
        assert not subscription.active


class TestInMemorySyncGateway:
    """Tests for the in-memory backend."""

    @pytest.mark.asyncio
    async def test_pull_empty_remote(self, remote):
        gateway = InMemorySyncGateway(remote)
        assert await gateway.pull() is None

    @pytest.mark.asyncio
    async def test_push_overwrites(self, remote, ledger, empty_state):
        gateway = InMemorySyncGateway(remote)
        await gateway.push(encode(ledger, BackupSettings()))
        await gateway.push(encode(empty_state, BackupSettings()))
        document = await gateway.pull()
        assert document["appState"]["transactions"] == []
        assert remote.write_count == 2

    @pytest.mark.asyncio
    async def test_other_devices_notified(self, remote, ledger):
        phone = InMemorySyncGateway(remote)
        laptop = InMemorySyncGateway(remote)
        phone_updates = phone.subscribe()
        laptop_updates = laptop.subscribe()

        await phone.push(encode(ledger, BackupSettings()))

        assert await drain(phone_updates) == []
        received = await drain(laptop_updates)
        assert len(received) == 1
        assert received[0]["appState"]["currency"] == "EUR"

    @pytest.mark.asyncio
    async def test_subscribe_delivers_current_document(self, remote, ledger):
        writer = InMemorySyncGateway(remote)
        await writer.push(encode(ledger, BackupSettings()))
        subscription = InMemorySyncGateway(remote).subscribe()
        assert len(await drain(subscription)) == 1

    @pytest.mark.asyncio
    async def test_no_deliveries_after_unsubscribe(self, remote, ledger):
        writer = InMemorySyncGateway(remote)
        reader = InMemorySyncGateway(remote)
        subscription = reader.subscribe()
        assert remote.listener_count == 1

        subscription.unsubscribe()
        subscription.unsubscribe()
        await writer.push(encode(ledger, BackupSettings()))

        assert remote.listener_count == 0
        assert await drain(subscription) == []

    @pytest.mark.asyncio
    async def test_failure_injection(self, remote, ledger):
        gateway = InMemorySyncGateway(remote)
        gateway.fail_next_push = NetworkError("offline")
        with pytest.raises(NetworkError):
            await gateway.push(encode(ledger, BackupSettings()))
        await gateway.push(encode(ledger, BackupSettings()))
        assert remote.write_count == 1

    def test_manual_mode_has_no_subscribe(self, remote):
        gateway = InMemorySyncGateway(remote, live=False)
        assert gateway.supports_live_updates is False
        with pytest.raises(UnsupportedOperationError):
            gateway.subscribe()
