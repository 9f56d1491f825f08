"""Base channel interface."""

from abc import ABC, abstractmethod
from typing import Any, Protocol

from loguru import logger

from acheron.bus.events import GroupParticipantsEvent, InboundMessage
from acheron.bus.queue import MessageBus


PRESENCE_COMPOSING = "composing"
PRESENCE_AVAILABLE = "available"


class Transport(Protocol):
    """Outbound side of a channel, as seen by the dispatcher."""

    async def send(
        self,
        chat_id: str,
        text: str,
        reply_to: InboundMessage | None = None,
    ) -> None: ...

    async def set_presence(self, chat_id: str, state: str) -> None: ...


class BaseChannel(ABC):
    """
    Abstract base class for chat channels.

    A channel turns transport events into bus events and carries replies
    back out. It never interprets message text.
    """

    name: str = "base"

    def __init__(self, config: Any, bus: MessageBus):
        """
        Initialize the channel.

        Args:
            config: Channel-specific configuration.
            bus: Message bus for inbound events.
        """
        self.config = config
        self.bus = bus
        self._running = False
        self.allow_from = set(getattr(config, "allow_from", None) or [])

    @abstractmethod
    async def start(self) -> None:
        """Connect and keep delivering events until stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """Disconnect."""

    @abstractmethod
    async def send(
        self,
        chat_id: str,
        text: str,
        reply_to: InboundMessage | None = None,
    ) -> None:
        """
        Send a text message.

        Raises:
            TransportSendFailure: The message could not be handed over.
        """

    async def set_presence(self, chat_id: str, state: str) -> None:
        """Show a presence state (typing, online) in a chat."""

    def is_allowed(self, chat_id: str) -> bool:
        """Check the chat allowlist (empty = everyone)."""
        if not self.allow_from:
            return True
        return chat_id in self.allow_from

    @property
    def is_running(self) -> bool:
        return self._running

    def _handle_message(self, message: InboundMessage) -> bool:
        """Publish an inbound message if its chat is allowed."""
        if not self.is_allowed(message.chat_id):
            logger.debug(f"[{self.name}] ignoring message from {message.chat_id} (not allowed)")
            return False
        message.channel = message.channel or self.name
        return self.bus.publish(message)

    def _handle_group_update(
        self,
        group_id: str,
        participant_ids: list[str],
        action: str,
    ) -> bool:
        """Publish a group membership change."""
        return self.bus.publish(GroupParticipantsEvent(
            group_id=group_id,
            participant_ids=list(participant_ids),
            action=action,
            channel=self.name,
        ))
