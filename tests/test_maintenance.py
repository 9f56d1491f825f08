"""Tests for the periodic prune service."""

import asyncio

import pytest

from acheron.maintenance import MaintenanceService

from tests.conftest import ALICE, BOB


class TestMaintenanceService:
    """Tests for MaintenanceService."""

    @pytest.mark.asyncio
    async def test_run_once_uses_configured_window(self, store, clock, write_config, config_source):
        write_config(memoryPruneDays=7)
        await store.record_message(ALICE, "Alice")
        clock.advance(days=5)
        await store.record_message(BOB, "Bob")
        clock.advance(days=3)

        service = MaintenanceService(store, config_source, clock=clock)
        removed = await service.run_once()

        assert removed == 1
        assert await store.get_user(ALICE) is None
        assert await store.get_user(BOB) is not None
        assert service.last_pruned == 1
        assert service.last_run == clock.now

    @pytest.mark.asyncio
    async def test_window_edit_applies_next_run(self, store, clock, write_config, config_source):
        await store.record_message(ALICE, "Alice")
        clock.advance(days=10)
        service = MaintenanceService(store, config_source, clock=clock)

        assert await service.run_once() == 0

        write_config(memoryPruneDays=5)
        assert await service.run_once() == 1

    @pytest.mark.asyncio
    async def test_prune_keeps_total(self, store, clock, config_source):
        await store.record_message(ALICE, "Alice")
        clock.advance(days=31)

        await MaintenanceService(store, config_source, clock=clock).run_once()

        assert (await store.get_stats()).total_messages == 1

    @pytest.mark.asyncio
    async def test_loop_runs_and_survives_errors(self, data_dir, config_source, clock):
        from acheron.memory.store import MemoryStore

        closed = MemoryStore(data_dir)  # every prune raises StoreUnavailable
        service = MaintenanceService(closed, config_source, interval_hours=0.01 / 3600, clock=clock)

        await service.start()
        assert service.is_running
        await asyncio.sleep(0.05)
        assert service.is_running

        await service.stop()
        assert not service.is_running

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, store, config_source):
        service = MaintenanceService(store, config_source)

        await service.start()
        task = service._task
        await service.start()

        assert service._task is task
        await service.stop()
