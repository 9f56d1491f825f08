"""Built-in commands."""

from acheron.auto_reply.commands import CommandRegistry, CommandSpec
from acheron.commands.admin import CHAT, MOOD, PREFIX, RESTART
from acheron.commands.info import ABOUT, HELP, PING
from acheron.commands.users import SEEN, STATS

# Registration order is the order `help` lists them in
BUILTIN_COMMANDS: tuple[CommandSpec, ...] = (
    HELP,
    PING,
    ABOUT,
    SEEN,
    STATS,
    MOOD,
    CHAT,
    PREFIX,
    RESTART,
)


def build_default_registry() -> CommandRegistry:
    """Create a registry holding every built-in command."""
    registry = CommandRegistry()
    for spec in BUILTIN_COMMANDS:
        registry.register(spec)
    return registry


__all__ = ["BUILTIN_COMMANDS", "build_default_registry"]
