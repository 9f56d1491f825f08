"""
Local console channel.

Feeds lines typed in the terminal through the normal pipeline and prints
replies, so commands can be tried without a phone.
"""

import itertools

from rich.console import Console

from acheron.bus.events import InboundMessage
from acheron.bus.queue import MessageBus
from acheron.channels.base import BaseChannel, PRESENCE_COMPOSING


class ConsoleChannel(BaseChannel):
    """Channel that reads from and writes to the terminal."""

    name = "console"

    def __init__(
        self,
        bus: MessageBus,
        identity: str = "console@local",
        group_id: str | None = None,
        display_name: str = "Console",
        console: Console | None = None,
    ):
        super().__init__(None, bus)
        self.identity = identity
        self.group_id = group_id
        self.display_name = display_name
        self.console = console or Console()
        self._ids = itertools.count(1)

    @property
    def chat_id(self) -> str:
        return self.group_id or self.identity

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    def submit(self, text: str) -> bool:
        """Publish a typed line as an inbound message."""
        return self._handle_message(InboundMessage(
            chat_id=self.chat_id,
            payload={"conversation": text},
            participant_id=self.identity if self.group_id else None,
            display_name=self.display_name,
            is_group=self.group_id is not None,
            message_id=f"console-{next(self._ids)}",
            channel=self.name,
        ))

    async def send(
        self,
        chat_id: str,
        text: str,
        reply_to: InboundMessage | None = None,
    ) -> None:
        self.console.print(f"[bold magenta]Acheron:[/bold magenta] {text}")

    async def set_presence(self, chat_id: str, state: str) -> None:
        if state == PRESENCE_COMPOSING:
            self.console.print("[dim]typing...[/dim]")
