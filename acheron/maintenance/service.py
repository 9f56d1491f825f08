"""Periodic store maintenance."""

import asyncio
from datetime import datetime, timedelta
from typing import Callable

from loguru import logger

from acheron.config.loader import ConfigSource
from acheron.memory.store import MemoryStore, utcnow


class MaintenanceService:
    """
    Prunes users that have gone quiet.

    Every ``interval_hours`` the service deletes users whose last message
    is older than ``memory_prune_days``. The retention window is read from
    a fresh config load on each run, so edits apply without a restart.
    """

    def __init__(
        self,
        store: MemoryStore,
        config_source: ConfigSource,
        interval_hours: float = 12,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config_source = config_source
        self.interval_s = interval_hours * 3600
        self._clock = clock

        self._task: asyncio.Task | None = None
        self._running = False
        self.last_run: datetime | None = None
        self.last_pruned = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the maintenance timer."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Maintenance started (every {self.interval_s / 3600:g}h)")

    async def stop(self) -> None:
        """Stop the maintenance timer."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Maintenance stopped")

    async def run_once(self) -> int:
        """
        Prune once.

        Returns:
            Number of users removed.
        """
        config = self.config_source.load()
        cutoff = self._clock() - timedelta(days=config.memory_prune_days)

        removed = await self.store.prune_older_than(cutoff)
        self.last_run = self._clock()
        self.last_pruned = removed
        logger.info(f"Pruned {removed} stale user(s)")
        return removed

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_s)
                await self.run_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Memory prune error: {e}")
