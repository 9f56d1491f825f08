"""
Command parsing and registry for Acheron.

Commands are messages that start with the effective prefix:

    !ping
    !mood cryptic
    !prefix global $
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from loguru import logger

from acheron.bus.events import InboundMessage

if TYPE_CHECKING:
    from acheron.channels.base import Transport
    from acheron.config.loader import ConfigSource
    from acheron.config.resolver import EffectiveConfig
    from acheron.memory.store import MemoryStore


@dataclass
class ParsedCommand:
    """A command found at the start of a message."""
    name: str
    arguments: list[str] = field(default_factory=list)
    raw: str = ""

    @property
    def arg(self) -> str:
        """Get first argument or empty string."""
        return self.arguments[0] if self.arguments else ""

    @property
    def args_str(self) -> str:
        """Get all arguments as a single string."""
        return " ".join(self.arguments)


@dataclass
class CommandContext:
    """Everything a handler may use while running one command."""
    transport: "Transport"
    event: InboundMessage
    chat_id: str
    args: list[str]
    store: "MemoryStore"
    config_source: "ConfigSource"
    settings: "EffectiveConfig"
    registry: "CommandRegistry"
    logger: Any = logger
    request_restart: Callable[[], None] | None = None

    @property
    def actor_id(self) -> str:
        """Identity of whoever sent the command."""
        return self.event.actor_id

    @property
    def prefix(self) -> str:
        return self.settings.prefix

    @property
    def config_path(self) -> Path:
        return self.config_source.path

    def is_owner(self) -> bool:
        return self.settings.is_owner(self.actor_id)

    async def reply(self, text: str) -> None:
        """Send a message to the command's chat, quoting the command."""
        await self.transport.send(self.chat_id, text, reply_to=self.event)


# Type alias for command handlers
CommandHandler = Callable[[CommandContext], Awaitable[None]]


@dataclass(frozen=True)
class CommandSpec:
    """A registered command."""
    name: str
    description: str
    handler: CommandHandler
    owner_only: bool = False


class CommandRegistry:
    """
    Name-keyed table of commands.

    Filled once at startup; lookups are case-insensitive.
    """

    def __init__(self):
        self._commands: dict[str, CommandSpec] = {}

    def register(self, spec: CommandSpec) -> None:
        """
        Register a command.

        Raises:
            ValueError: A command with the same name already exists.
        """
        key = spec.name.lower()
        if key in self._commands:
            raise ValueError(f"Command already registered: {spec.name}")
        self._commands[key] = spec
        logger.debug(f"Loaded command: {key}")

    def lookup(self, name: str) -> CommandSpec | None:
        return self._commands.get(name.lower())

    def list_all(self) -> list[CommandSpec]:
        """All commands in registration order."""
        return list(self._commands.values())

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._commands

    def __len__(self) -> int:
        return len(self._commands)


def parse_command(text: str, prefix: str) -> ParsedCommand | None:
    """
    Parse a command from message text.

    The prefix must match literally and case-sensitively. The command name
    is lowercased; arguments keep their case.

    Examples:
        ("!ping", "!") -> ParsedCommand(name="ping")
        ("!Mood cold", "!") -> ParsedCommand(name="mood", arguments=["cold"])
        ("!   ", "!") -> None

    Args:
        text: Message text.
        prefix: Effective command prefix.

    Returns:
        Parsed command, or None if the text is not a command.
    """
    if not prefix or not text.startswith(prefix):
        return None

    parts = text[len(prefix):].split()
    if not parts:
        return None

    return ParsedCommand(name=parts[0].lower(), arguments=parts[1:], raw=text)
