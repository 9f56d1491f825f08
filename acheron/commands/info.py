"""Informational commands: help, ping, about."""

from acheron.auto_reply.commands import CommandContext, CommandSpec
from acheron.auto_reply.offline import IDENTITY_LINE

PONG_TEXT = "🏓 Pong!"
HELP_HEADER = "*Acheron — Commands*"


async def handle_help(ctx: CommandContext) -> None:
    lines = [HELP_HEADER, ""]
    for spec in ctx.registry.list_all():
        lines.append(f"{ctx.prefix}{spec.name} - {spec.description or 'No description'}")
    await ctx.reply("\n".join(lines))


async def handle_ping(ctx: CommandContext) -> None:
    await ctx.reply(PONG_TEXT)


async def handle_about(ctx: CommandContext) -> None:
    await ctx.reply(IDENTITY_LINE)


HELP = CommandSpec("help", "Lists available commands", handle_help)
PING = CommandSpec("ping", "Replies with Pong", handle_ping)
ABOUT = CommandSpec("about", "Short about text", handle_about)
