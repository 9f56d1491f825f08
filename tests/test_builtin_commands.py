"""
Tests for the built-in command handlers.

Each test goes through the dispatcher so ownership checks and the
effective prefix apply exactly as they do in production.
"""

import asyncio

import pytest

from acheron.auto_reply.dispatch import COMMAND_FAILED_TEXT, NOT_AUTHORIZED_TEXT, ReplyDispatcher
from acheron.commands import build_default_registry

from tests.conftest import ALICE, BOB, GROUP, OWNER, make_message


@pytest.fixture
def restarts():
    return []


@pytest.fixture
def dispatcher(store, config_source, transport, restarts):
    return ReplyDispatcher(
        store=store,
        config_source=config_source,
        registry=build_default_registry(),
        transport=transport,
        on_restart=lambda: restarts.append(True),
    )


async def send(dispatcher, text, chat_id=ALICE, participant_id=None, name="Alice"):
    await dispatcher.handle_message(
        make_message(text, chat_id=chat_id, participant_id=participant_id, display_name=name)
    )


class TestInfoCommands:
    """Tests for help, ping and about."""

    @pytest.mark.asyncio
    async def test_help_lists_every_command(self, dispatcher, transport):
        await send(dispatcher, "!help")

        lines = transport.sent[0].split("\n")
        assert lines[0] == "*Acheron — Commands*"
        assert lines[1] == ""
        assert lines[2] == "!help - Lists available commands"
        assert "!ping - Replies with Pong" in lines
        assert len(lines) == 2 + 9

    @pytest.mark.asyncio
    async def test_help_uses_effective_prefix(self, dispatcher, store, transport):
        await store.set_prefix_for(ALICE, "#")

        await send(dispatcher, "#help")

        assert "#about - Short about text" in transport.sent[0]

    @pytest.mark.asyncio
    async def test_about(self, dispatcher, transport):
        await send(dispatcher, "!about")
        assert transport.sent == ["I am Acheron — your dark companion."]


class TestSeen:
    """Tests for the seen command."""

    @pytest.mark.asyncio
    async def test_seen_me(self, dispatcher, transport):
        await send(dispatcher, "!seen me")

        reply = transport.sent[0]
        assert reply.startswith(f"Alice ({ALICE}) — last seen: 2024-01-01T12:00:00")
        assert reply.endswith("messages: 1")

    @pytest.mark.asyncio
    async def test_seen_other_user(self, dispatcher, store, transport):
        await store.record_message(BOB, "Bob")

        await send(dispatcher, f"!seen {BOB}")

        assert transport.sent[0].startswith(f"Bob ({BOB}) — last seen:")

    @pytest.mark.asyncio
    async def test_seen_unknown(self, dispatcher, transport):
        await send(dispatcher, "!seen 999@s.whatsapp.net")
        assert transport.sent == ["I have not seen 999@s.whatsapp.net."]

    @pytest.mark.asyncio
    async def test_seen_usage(self, dispatcher, transport):
        await send(dispatcher, "!seen")
        assert transport.sent == ["Usage: !seen <jid|me>"]

    @pytest.mark.asyncio
    async def test_seen_me_in_group_is_participant(self, dispatcher, transport):
        await send(dispatcher, "!seen ME", chat_id=GROUP, participant_id=BOB, name="Bob")
        assert transport.sent[0].startswith(f"Bob ({BOB})")


class TestStats:
    """Tests for the stats command."""

    @pytest.mark.asyncio
    async def test_stats_with_users(self, dispatcher, store, transport):
        for _ in range(3):
            await store.record_message(BOB, "Bob")

        await send(dispatcher, "!stats")

        lines = transport.sent[0].split("\n")
        assert lines[0] == "*Acheron Stats*"
        assert "Total messages seen: 4" in lines
        assert "Known users: 2" in lines
        assert f"1. Bob — 3 messages ({BOB})" in lines
        assert f"2. Alice — 1 messages ({ALICE})" in lines

    @pytest.mark.asyncio
    async def test_stats_top_five_only(self, dispatcher, store, transport):
        for i in range(6):
            await store.record_message(f"{i}@s.whatsapp.net", None)

        await send(dispatcher, "!stats")

        ranked = [line for line in transport.sent[0].split("\n") if line[:2] in {f"{n}." for n in range(1, 10)}]
        assert len(ranked) == 5


class TestMood:
    """Tests for the mood command."""

    @pytest.mark.asyncio
    async def test_show_current(self, dispatcher, transport):
        await send(dispatcher, "!mood", chat_id=OWNER)
        assert transport.sent == ["Current mood: calm"]

    @pytest.mark.asyncio
    async def test_invalid(self, dispatcher, config_source, transport):
        await send(dispatcher, "!mood angry", chat_id=OWNER)

        assert transport.sent == ["Invalid mood. Options: calm, cold, cryptic"]
        assert config_source.load().mood == "calm"

    @pytest.mark.asyncio
    async def test_set_is_case_insensitive(self, dispatcher, config_source, transport):
        await send(dispatcher, "!mood COLD", chat_id=OWNER)

        assert transport.sent == ["Mood set to cold"]
        assert config_source.load().mood == "cold"


class TestChatToggle:
    """Tests for the chat command."""

    @pytest.mark.asyncio
    async def test_on_then_off(self, dispatcher, config_source, transport):
        await send(dispatcher, "!chat on", chat_id=OWNER)
        assert config_source.load().chat_mode is True

        await send(dispatcher, "!chat off", chat_id=OWNER)
        assert config_source.load().chat_mode is False

        assert transport.sent == ["Chat mode set to true", "Chat mode set to false"]

    @pytest.mark.asyncio
    async def test_usage(self, dispatcher, transport):
        await send(dispatcher, "!chat maybe", chat_id=OWNER)
        assert transport.sent == ["Usage: !chat on | !chat off"]

    @pytest.mark.asyncio
    async def test_enabling_starts_scripted_replies(self, store, config_source, transport):
        async def no_sleep(seconds):
            return None

        dispatcher = ReplyDispatcher(
            store, config_source, build_default_registry(), transport, sleep=no_sleep
        )

        await send(dispatcher, "!chat on", chat_id=OWNER)
        await send(dispatcher, "thank you", chat_id=BOB)

        assert transport.sent[-1] == "Do not thank the darkness; it is simply here."

    @pytest.mark.asyncio
    async def test_non_owner(self, dispatcher, transport):
        await send(dispatcher, "!chat on", chat_id=BOB)
        assert transport.sent == [NOT_AUTHORIZED_TEXT]


class TestPrefix:
    """Tests for the prefix command."""

    @pytest.mark.asyncio
    async def test_usage(self, dispatcher, transport):
        await send(dispatcher, "!prefix")
        assert transport.sent == ["Usage: !prefix <new> OR !prefix global <new>"]

    @pytest.mark.asyncio
    async def test_per_chat_by_anyone(self, dispatcher, store, transport):
        await send(dispatcher, "!prefix #", chat_id=GROUP, participant_id=BOB)

        assert transport.sent == ['Prefix for this chat set to "#"']
        assert await store.get_prefix_for(GROUP) == "#"

        await send(dispatcher, "#ping", chat_id=GROUP, participant_id=BOB)
        await send(dispatcher, "!ping", chat_id=BOB)
        assert transport.sent[1:] == ["🏓 Pong!", "🏓 Pong!"]

    @pytest.mark.asyncio
    async def test_global_by_non_owner(self, dispatcher, store, transport):
        await send(dispatcher, "!prefix global $", chat_id=BOB)

        assert transport.sent == ["Only owner can set global prefix."]
        assert await store.get_global_prefix() is None

    @pytest.mark.asyncio
    async def test_global_by_owner(self, dispatcher, store, transport):
        await send(dispatcher, "!prefix global $", chat_id=OWNER)

        assert transport.sent == ['Global prefix set to "$"']
        assert await store.get_global_prefix() == "$"

    @pytest.mark.asyncio
    async def test_global_missing_value(self, dispatcher, transport):
        await send(dispatcher, "!prefix global", chat_id=OWNER)
        assert transport.sent == ["Provide a new prefix."]

    @pytest.mark.asyncio
    async def test_precedence_end_to_end(self, dispatcher, transport):
        await send(dispatcher, "!prefix #", chat_id=GROUP, participant_id=OWNER)
        await send(dispatcher, "!prefix global $", chat_id=OWNER)

        await send(dispatcher, "#ping", chat_id=GROUP, participant_id=ALICE)
        await send(dispatcher, "$ping", chat_id=BOB)
        await send(dispatcher, "!ping", chat_id=BOB)

        assert transport.sent[2:] == ["🏓 Pong!", "🏓 Pong!"]

    @pytest.mark.asyncio
    async def test_reset(self, dispatcher, store, transport):
        await store.set_prefix_for(ALICE, "#")

        await send(dispatcher, "#prefix reset")

        assert await store.get_prefix_for(ALICE) is None
        assert transport.sent == ["Prefix for this chat cleared."]


class TestRestart:
    """Tests for the restart command."""

    @pytest.mark.asyncio
    async def test_restart_after_delay(self, dispatcher, transport, restarts):
        await send(dispatcher, "!restart", chat_id=OWNER)

        assert transport.sent == ["Restarting Acheron..."]
        assert restarts == []
        await asyncio.sleep(1.2)
        assert restarts == [True]

    @pytest.mark.asyncio
    async def test_restart_unsupported(self, store, config_source, transport):
        dispatcher = ReplyDispatcher(store, config_source, build_default_registry(), transport)

        await send(dispatcher, "!restart", chat_id=OWNER)

        assert transport.sent == [COMMAND_FAILED_TEXT]

    @pytest.mark.asyncio
    async def test_restart_non_owner(self, dispatcher, transport, restarts):
        await send(dispatcher, "!restart", chat_id=BOB)

        assert transport.sent == [NOT_AUTHORIZED_TEXT]
        await asyncio.sleep(0)
        assert restarts == []
