"""Tests for prefix and effective config resolution."""

import pytest

from acheron.config.resolver import resolve, resolve_prefix
from acheron.config.schema import Config
from acheron.memory.store import MemoryStore

from tests.conftest import ALICE, BOB, GROUP, OWNER


class TestResolvePrefix:
    """Tests for prefix precedence."""

    @pytest.mark.asyncio
    async def test_chat_override_wins(self, store):
        await store.set_prefix_for(GROUP, "#")
        await store.set_global_prefix("$")

        prefix = await resolve_prefix(store, Config(prefix="!"), GROUP, ALICE)

        assert prefix == "#"

    @pytest.mark.asyncio
    async def test_global_override_for_other_chats(self, store):
        await store.set_prefix_for(GROUP, "#")
        await store.set_global_prefix("$")

        prefix = await resolve_prefix(store, Config(prefix="!"), BOB)

        assert prefix == "$"

    @pytest.mark.asyncio
    async def test_participant_override_before_global(self, store):
        await store.set_prefix_for(ALICE, "~")
        await store.set_global_prefix("$")

        assert await resolve_prefix(store, Config(), GROUP, ALICE) == "~"
        assert await resolve_prefix(store, Config(), GROUP, BOB) == "$"

    @pytest.mark.asyncio
    async def test_config_prefix_without_overrides(self, store):
        assert await resolve_prefix(store, Config(prefix="."), BOB) == "."

    @pytest.mark.asyncio
    async def test_clearing_global_falls_back_to_config(self, store):
        await store.set_global_prefix("$")
        await store.clear_prefix_for("global")

        assert await resolve_prefix(store, Config(prefix="!"), BOB) == "!"

    @pytest.mark.asyncio
    async def test_literal_default_without_config(self, store):
        assert await resolve_prefix(store, None, BOB) == "!"
        assert await resolve_prefix(store, Config(prefix=""), BOB) == "!"

    @pytest.mark.asyncio
    async def test_unavailable_store_uses_config(self, data_dir):
        closed = MemoryStore(data_dir)

        assert await resolve_prefix(closed, Config(prefix="."), GROUP, ALICE) == "."


class TestResolve:
    """Tests for the per-event snapshot."""

    @pytest.mark.asyncio
    async def test_snapshot_from_fresh_config(self, store, write_config, config_source):
        write_config(mood="cold", chatMode=True, typingDelayMs=0)
        await store.set_prefix_for(GROUP, "#")

        settings = await resolve(store, config_source, GROUP, ALICE)

        assert settings.prefix == "#"
        assert settings.mood == "cold"
        assert settings.chat_mode is True
        assert settings.typing_delay_seconds == 0
        assert settings.is_owner(OWNER)
        assert not settings.is_owner(ALICE)
        assert not settings.is_owner(None)

    @pytest.mark.asyncio
    async def test_no_source_gives_defaults(self, store):
        settings = await resolve(store, None, BOB)

        assert settings.prefix == "!"
        assert settings.mood == "calm"
        assert settings.chat_mode is False
        assert settings.config is None
