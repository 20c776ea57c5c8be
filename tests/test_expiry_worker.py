"""Tests for the expired-conversation worker."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from quote_context.core.errors import StorageError
from quote_context.db.storage import InMemoryConversationStore
from quote_context.services.expiry_worker import ConversationExpiryWorker, expire_conversations


class MutableClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


class FlakyStore(InMemoryConversationStore):
    """Store whose first sweeps fail."""

    def __init__(self, failures: int, **kwargs):
        super().__init__(**kwargs)
        self.failures = failures
        self.sweeps = 0

    async def expire_old_conversations(self) -> int:
        self.sweeps += 1
        if self.sweeps <= self.failures:
            raise StorageError("expire_old_conversations", "simulated outage")
        return await super().expire_old_conversations()


class TestConversationExpiryWorker:
    @pytest.mark.asyncio
    async def test_run_once_deletes_expired(self, settings):
        clock = MutableClock()
        store = InMemoryConversationStore(settings=settings, clock=clock)
        await store.get_or_create_conversation("U1")
        clock.now += timedelta(days=31)
        await store.get_or_create_conversation("U2")
        worker = ConversationExpiryWorker(store, settings=settings)

        deleted = await worker.run_once()

        assert deleted == 1
        assert list(store.conversations) == ["U2"]
        assert worker.stats["sweep_count"] == 1
        assert worker.stats["expired_count"] == 1

    @pytest.mark.asyncio
    async def test_run_once_propagates_errors(self, settings):
        worker = ConversationExpiryWorker(FlakyStore(1, settings=settings), settings=settings)

        with pytest.raises(StorageError):
            await worker.run_once()

    @pytest.mark.asyncio
    async def test_run_forever_survives_failed_sweeps(self, settings):
        store = FlakyStore(2, settings=settings)
        worker = ConversationExpiryWorker(store, interval=0.01, settings=settings)

        task = asyncio.create_task(worker.run_forever())
        for _ in range(200):
            if store.sweeps >= 3:
                break
            await asyncio.sleep(0.01)
        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        stats = worker.stats
        assert stats["running"] is False
        assert stats["error_count"] == 2
        assert stats["sweep_count"] >= 1

    @pytest.mark.asyncio
    async def test_stop_interrupts_the_wait(self, settings):
        store = InMemoryConversationStore(settings=settings)
        worker = ConversationExpiryWorker(store, interval=3600, settings=settings)

        task = asyncio.create_task(worker.run_forever())
        await asyncio.sleep(0.05)
        worker.stop()
        await asyncio.wait_for(task, timeout=1)

        assert worker.stats["sweep_count"] == 1

    def test_interval_defaults_to_setting(self, settings):
        worker = ConversationExpiryWorker(InMemoryConversationStore(settings=settings), settings=settings)

        assert worker.interval == settings.EXPIRY_CHECK_INTERVAL_SECONDS
        assert worker.stats["running"] is False


@pytest.mark.asyncio
async def test_expire_conversations_one_shot(settings):
    store = InMemoryConversationStore(settings=settings)

    assert await expire_conversations(store) == {"expired": 0}
