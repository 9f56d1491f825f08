"""
Inbound message bus for Acheron.

Channels publish events; exactly one consumer (the dispatcher) takes them
off in arrival order. Nothing here reorders, merges or rate-limits events.
"""

import asyncio
from typing import Any

from loguru import logger

from acheron.bus.events import InboundEvent


class MessageBus:
    """Bounded FIFO between channels and the dispatcher."""

    def __init__(self, max_queue_size: int = 100):
        self._queue: asyncio.Queue[InboundEvent] = asyncio.Queue(maxsize=max_queue_size)

        # Stats
        self._total_received = 0
        self._total_dropped = 0
        self._total_processed = 0

    def publish(self, event: InboundEvent) -> bool:
        """
        Add an event to the queue.

        Returns:
            True if queued, False if dropped because the queue is full.
        """
        self._total_received += 1
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._total_dropped += 1
            logger.warning(f"Inbound queue full, dropping event from {_source(event)}")
            return False
        return True

    async def get(self) -> InboundEvent:
        """Wait for the next event."""
        event = await self._queue.get()
        self._total_processed += 1
        return event

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    @property
    def size(self) -> int:
        """Current queue size."""
        return self._queue.qsize()

    @property
    def is_empty(self) -> bool:
        return self._queue.empty()

    def get_stats(self) -> dict[str, Any]:
        """Get queue statistics."""
        return {
            "queue_size": self.size,
            "total_received": self._total_received,
            "total_dropped": self._total_dropped,
            "total_processed": self._total_processed,
        }


def _source(event: InboundEvent) -> str:
    return getattr(event, "chat_id", None) or getattr(event, "group_id", "?")
