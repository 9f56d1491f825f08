"""
Auto-reply system for Acheron.

Provides:
- Command parsing and the command registry
- The reply dispatcher (message pipeline)
- Scripted offline replies for chat mode
"""

from acheron.auto_reply.commands import (
    CommandContext,
    CommandRegistry,
    CommandSpec,
    ParsedCommand,
    parse_command,
)
from acheron.auto_reply.dispatch import (
    DispatchOutcome,
    ReplyDispatcher,
    extract_text,
)
from acheron.auto_reply.offline import generate_offline_reply

__all__ = [
    # Commands
    "CommandContext",
    "CommandRegistry",
    "CommandSpec",
    "ParsedCommand",
    "parse_command",
    # Dispatch
    "DispatchOutcome",
    "ReplyDispatcher",
    "extract_text",
    # Offline replies
    "generate_offline_reply",
]
