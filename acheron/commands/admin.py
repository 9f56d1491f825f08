"""Owner and configuration commands: mood, chat, prefix, restart."""

import asyncio

from acheron.auto_reply.commands import CommandContext, CommandSpec
from acheron.config.schema import MOODS
from acheron.memory.store import GLOBAL_SCOPE

RESTART_DELAY_SECONDS = 1.0


async def handle_mood(ctx: CommandContext) -> None:
    """Show or change the offline reply mood."""
    if not ctx.args:
        await ctx.reply(f"Current mood: {ctx.settings.mood}")
        return

    mood = ctx.args[0].lower()
    if mood not in MOODS:
        await ctx.reply(f"Invalid mood. Options: {', '.join(MOODS)}")
        return

    ctx.config_source.update(mood=mood)
    await ctx.reply(f"Mood set to {mood}")


async def handle_chat(ctx: CommandContext) -> None:
    """Turn scripted chat replies on or off."""
    choice = ctx.args[0].lower() if ctx.args else ""
    if choice not in ("on", "off"):
        await ctx.reply(f"Usage: {ctx.prefix}chat on | {ctx.prefix}chat off")
        return

    enabled = choice == "on"
    ctx.config_source.update(chat_mode=enabled)
    await ctx.reply(f"Chat mode set to {str(enabled).lower()}")


async def handle_prefix(ctx: CommandContext) -> None:
    """
    Change the command prefix for this chat, or for every chat.

    Forms:
        prefix <new>            per-chat override, anyone may set it
        prefix global <new>     bot-wide override, owner only
        prefix reset            drop this chat's override
        prefix global reset     drop the bot-wide override, owner only
    """
    p = ctx.prefix
    if not ctx.args:
        await ctx.reply(f"Usage: {p}prefix <new> OR {p}prefix global <new>")
        return

    if ctx.args[0].lower() == "global":
        if not ctx.is_owner():
            await ctx.reply("Only owner can set global prefix.")
            return
        if len(ctx.args) < 2:
            await ctx.reply("Provide a new prefix.")
            return

        value = ctx.args[1]
        if value.lower() == "reset":
            await ctx.store.clear_prefix_for(GLOBAL_SCOPE)
            await ctx.reply("Global prefix cleared.")
            return

        await ctx.store.set_global_prefix(value)
        ctx.logger.info(f"Global prefix set to {value!r} by {ctx.actor_id}")
        await ctx.reply(f'Global prefix set to "{value}"')
        return

    value = ctx.args[0]
    if value.lower() == "reset":
        await ctx.store.clear_prefix_for(ctx.chat_id)
        await ctx.reply("Prefix for this chat cleared.")
        return

    await ctx.store.set_prefix_for(ctx.chat_id, value)
    await ctx.reply(f'Prefix for this chat set to "{value}"')


async def handle_restart(ctx: CommandContext) -> None:
    if ctx.request_restart is None:
        raise RuntimeError("Restart is not supported by this runner")

    await ctx.reply("Restarting Acheron...")
    ctx.logger.warning(f"Restart requested by {ctx.actor_id}")
    asyncio.get_running_loop().call_later(RESTART_DELAY_SECONDS, ctx.request_restart)


MOOD = CommandSpec("mood", "Show or set mood: calm | cold | cryptic", handle_mood, owner_only=True)
CHAT = CommandSpec("chat", "Toggle scripted chat replies: on | off", handle_chat, owner_only=True)
PREFIX = CommandSpec("prefix", "Set the prefix for this chat, or globally (owner)", handle_prefix)
RESTART = CommandSpec("restart", "Restart the bot", handle_restart, owner_only=True)
