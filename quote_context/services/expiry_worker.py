"""Background purge of expired conversations.

Conversations expire after CONVERSATION_EXPIRY_DAYS without activity. The
worker deletes them (with their messages and specifications) on a fixed
interval, daily by default. Can be run as a long-lived task or one-shot.
"""

import asyncio
import time
from typing import Any

from quote_context.core.config import Settings, get_settings
from quote_context.core.logging import get_logger
from quote_context.db.storage import ConversationStore

logger = get_logger(__name__)


class ConversationExpiryWorker:
    """Periodically deletes conversations past their expiry date."""

    def __init__(
        self,
        store: ConversationStore,
        interval: float | None = None,
        settings: Settings | None = None,
    ):
        """Initialize the worker.

        Args:
            store: Storage collaborator that owns the conversations
            interval: Seconds between sweeps (EXPIRY_CHECK_INTERVAL_SECONDS by default)
            settings: Settings override
        """
        settings = settings or get_settings()
        self.store = store
        self.interval = interval if interval is not None else settings.EXPIRY_CHECK_INTERVAL_SECONDS
        self._running = False
        self._stop_event = asyncio.Event()
        self._sweep_count = 0
        self._expired_count = 0
        self._error_count = 0
        self._start_time: float | None = None

    @property
    def stats(self) -> dict[str, Any]:
        """Get worker statistics."""
        uptime = time.time() - self._start_time if self._start_time else 0
        return {
            "running": self._running,
            "sweep_count": self._sweep_count,
            "expired_count": self._expired_count,
            "error_count": self._error_count,
            "uptime_seconds": round(uptime, 1),
        }

    async def run_once(self) -> int:
        """Run one sweep.

        Returns:
            Number of conversations deleted

        Raises:
            StorageError: If the store fails
        """
        deleted = await self.store.expire_old_conversations()
        self._sweep_count += 1
        self._expired_count += deleted
        if deleted:
            logger.info(f"Expired {deleted} old conversations")
        return deleted

    async def run_forever(self) -> None:
        """Sweep on the interval until stop() is called.

        A failed sweep is logged and retried at the next interval.
        """
        self._running = True
        self._stop_event.clear()
        self._start_time = time.time()
        logger.info(f"Starting conversation expiry worker (interval={self.interval}s)")

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                self._error_count += 1
                logger.exception(f"Error expiring conversations: {e}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Conversation expiry worker stopped")

    def stop(self) -> None:
        """Stop the worker; an in-progress wait ends immediately."""
        logger.info("Stopping conversation expiry worker...")
        self._running = False
        self._stop_event.set()


async def expire_conversations(store: ConversationStore) -> dict[str, Any]:
    """Run a single sweep (one-shot).

    Args:
        store: Storage collaborator

    Returns:
        Dict with the number of conversations expired
    """
    worker = ConversationExpiryWorker(store)
    expired = await worker.run_once()
    return {"expired": expired}
