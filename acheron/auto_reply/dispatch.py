"""
Reply dispatcher for Acheron.

Takes one inbound event at a time off the bus and runs it to completion:

1. Drop self-sent, malformed and textless messages
2. Count the message for its sender
3. Load the config fresh and resolve the prefix for the chat
4. Prefixed text: look up the command, check ownership, run the handler
5. Anything else: scripted reply when chat mode is on
"""

import asyncio
import random
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping

from loguru import logger

from acheron.auto_reply.commands import CommandContext, CommandRegistry, parse_command
from acheron.auto_reply.offline import generate_offline_reply
from acheron.bus.events import GroupParticipantsEvent, InboundEvent, InboundMessage
from acheron.bus.queue import MessageBus
from acheron.channels.base import PRESENCE_AVAILABLE, PRESENCE_COMPOSING, Transport
from acheron.config.loader import ConfigSource
from acheron.config.resolver import EffectiveConfig, resolve
from acheron.config.schema import DispatchConfig
from acheron.errors import HandlerFailure, StoreUnavailable, TransportSendFailure
from acheron.memory.store import MemoryStore


UNKNOWN_COMMAND_TEXT = "Unknown command. Use {prefix}help to list commands."
NOT_AUTHORIZED_TEXT = "⚠️ You are not authorized to use this command."
COMMAND_FAILED_TEXT = "⚠️ Command execution failed."

# Payload fields that may carry text, in priority order
TEXT_FIELDS: tuple[tuple[str, ...], ...] = (
    ("conversation",),
    ("extendedTextMessage", "text"),
    ("imageMessage", "caption"),
    ("videoMessage", "caption"),
    ("documentMessage", "caption"),
)


class DispatchOutcome(str, Enum):
    """How an inbound message was handled."""
    IGNORED = "ignored"
    EMPTY_COMMAND = "empty_command"
    UNKNOWN_COMMAND = "unknown_command"
    UNAUTHORIZED = "unauthorized"
    COMMAND = "command"
    COMMAND_FAILED = "command_failed"
    CHAT_REPLY = "chat_reply"
    NO_REPLY = "no_reply"
    GROUP_UPDATE = "group_update"


def extract_text(payload: Any) -> str:
    """
    Get the plain text of a message payload.

    Checks the body, extended text, then image/video/document captions;
    the first non-empty one wins.
    """
    if not isinstance(payload, Mapping):
        return ""

    for path in TEXT_FIELDS:
        value: Any = payload
        for part in path:
            value = value.get(part) if isinstance(value, Mapping) else None
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


ReplyGenerator = Callable[[str, str], str]


class ReplyDispatcher:
    """
    Routes inbound events to commands or scripted replies.

    One instance consumes the bus; events never overlap, so store and
    config writes from one event are visible to the next without locks.
    """

    def __init__(
        self,
        store: MemoryStore,
        config_source: ConfigSource,
        registry: CommandRegistry,
        transport: Transport,
        bus: MessageBus | None = None,
        config: DispatchConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        reply_generator: ReplyGenerator | None = None,
        on_restart: Callable[[], None] | None = None,
    ):
        self.store = store
        self.config_source = config_source
        self.registry = registry
        self.transport = transport
        self.bus = bus
        self.config = config or DispatchConfig()
        self._sleep = sleep
        self._rng = random.Random()
        self._reply_generator = reply_generator or (
            lambda text, mood: generate_offline_reply(text, mood, self._rng)
        )
        self._on_restart = on_restart

        # Stats
        self._processed_count = 0
        self._error_count = 0
        self._running = False

    async def run(self) -> None:
        """Consume the bus until stopped."""
        if self.bus is None:
            raise RuntimeError("ReplyDispatcher.run() needs a message bus")

        self._running = True
        logger.info("Reply dispatcher started")

        while self._running:
            try:
                event = await asyncio.wait_for(self.bus.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self.dispatch(event)
            finally:
                self.bus.task_done()

    def stop(self) -> None:
        """Stop the dispatch loop."""
        self._running = False
        logger.info("Reply dispatcher stopped")

    async def dispatch(self, event: InboundEvent) -> DispatchOutcome | None:
        """
        Handle one event, bounded by the processing timeout.

        Never raises for a single bad event.

        Returns:
            The outcome, or None when the event timed out or failed.
        """
        self._processed_count += 1
        timeout = self.config.processing_timeout_seconds or None

        try:
            if isinstance(event, GroupParticipantsEvent):
                await asyncio.wait_for(self.handle_group_update(event), timeout)
                return DispatchOutcome.GROUP_UPDATE
            return await asyncio.wait_for(self.handle_message(event), timeout)
        except asyncio.TimeoutError:
            self._error_count += 1
            logger.warning(f"Event processing timed out after {timeout}s")
        except Exception as e:
            self._error_count += 1
            logger.exception(f"Dispatcher error: {e}")
        return None

    async def handle_message(self, event: InboundMessage) -> DispatchOutcome:
        """Run the full pipeline for one message."""
        if event.from_me or not event.chat_id or not isinstance(event.payload, Mapping):
            return DispatchOutcome.IGNORED

        text = extract_text(event.payload)
        if not text:
            return DispatchOutcome.IGNORED

        chat_id = event.chat_id
        actor_id = event.actor_id
        escaped = text.replace("\n", "\\n")
        logger.bind(message_log=True).info(f"{chat_id} -> {escaped}")

        await self._record(actor_id, event.display_name)

        settings = await resolve(self.store, self.config_source, chat_id, event.participant_id)

        if text.startswith(settings.prefix):
            return await self._handle_command(event, text, settings)

        if not settings.chat_mode:
            return DispatchOutcome.NO_REPLY

        return await self._chat_reply(event, text, settings)

    async def handle_group_update(self, event: GroupParticipantsEvent) -> int:
        """
        Make sure every listed participant has a user record.

        Returns:
            Number of records created.
        """
        created = 0
        for participant_id in event.participant_ids:
            try:
                if await self.store.ensure_user(participant_id):
                    created += 1
            except Exception as e:
                logger.error(f"Failed to record group participant {participant_id}: {e}")

        logger.info(
            f"Group update ({event.action}) logged for "
            f"{len(event.participant_ids)} participant(s) in {event.group_id}"
        )
        return created

    async def _record(self, actor_id: str, display_name: str | None) -> None:
        try:
            await self.store.record_message(actor_id, display_name)
        except StoreUnavailable as e:
            logger.error(f"Skipping stats update for {actor_id}: {e}")
        except Exception as e:
            logger.error(f"Failed to record message for {actor_id}: {e}")

    async def _handle_command(
        self,
        event: InboundMessage,
        text: str,
        settings: EffectiveConfig,
    ) -> DispatchOutcome:
        command = parse_command(text, settings.prefix)
        if command is None:
            return DispatchOutcome.EMPTY_COMMAND

        spec = self.registry.lookup(command.name)
        if spec is None:
            await self._send(
                event.chat_id,
                UNKNOWN_COMMAND_TEXT.format(prefix=settings.prefix),
                event,
            )
            return DispatchOutcome.UNKNOWN_COMMAND

        if spec.owner_only and not settings.is_owner(event.actor_id):
            await self._send(event.chat_id, NOT_AUTHORIZED_TEXT, event)
            return DispatchOutcome.UNAUTHORIZED

        ctx = CommandContext(
            transport=self.transport,
            event=event,
            chat_id=event.chat_id,
            args=command.arguments,
            store=self.store,
            config_source=self.config_source,
            settings=settings,
            registry=self.registry,
            logger=logger.bind(command=spec.name),
            request_restart=self._on_restart,
        )

        try:
            await spec.handler(ctx)
        except Exception as e:
            failure = HandlerFailure(spec.name, e)
            logger.opt(exception=e).error(str(failure))
            self._error_count += 1
            await self._send(event.chat_id, COMMAND_FAILED_TEXT, event)
            return DispatchOutcome.COMMAND_FAILED

        return DispatchOutcome.COMMAND

    async def _chat_reply(
        self,
        event: InboundMessage,
        text: str,
        settings: EffectiveConfig,
    ) -> DispatchOutcome:
        chat_id = event.chat_id

        await self._presence(chat_id, PRESENCE_COMPOSING)
        await self._sleep(settings.typing_delay_seconds)
        await self._presence(chat_id, PRESENCE_AVAILABLE)

        reply = self._reply_generator(text, settings.mood)
        if not await self._send(chat_id, reply, event):
            logger.error(f"Failed to send chat reply to {chat_id}")
        return DispatchOutcome.CHAT_REPLY

    async def _presence(self, chat_id: str, state: str) -> None:
        try:
            await self.transport.set_presence(chat_id, state)
        except Exception:
            pass  # Typing indicators are cosmetic

    async def _send(self, chat_id: str, text: str, reply_to: InboundMessage | None) -> bool:
        """Send a reply; failures are logged, not raised."""
        try:
            await self.transport.send(chat_id, text, reply_to=reply_to)
            return True
        except TransportSendFailure as e:
            logger.error(f"Send to {chat_id} failed: {e}")
        except Exception as e:
            logger.error(f"Send to {chat_id} failed: {e!r}")
        return False

    def get_stats(self) -> dict[str, Any]:
        """Get dispatcher statistics."""
        stats: dict[str, Any] = {
            "processed_count": self._processed_count,
            "error_count": self._error_count,
            "running": self._running,
        }
        if self.bus is not None:
            stats["queue_stats"] = self.bus.get_stats()
        return stats
