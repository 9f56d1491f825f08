"""User statistics commands: seen, stats."""

from acheron.auto_reply.commands import CommandContext, CommandSpec
from acheron.memory.store import UserRecord

TOP_USERS_LIMIT = 5


def format_seen(user: UserRecord) -> str:
    last_seen = user.last_seen.isoformat(timespec="seconds")
    return (
        f"{user.display_name} ({user.user_id}) — "
        f"last seen: {last_seen}, messages: {user.message_count}"
    )


async def handle_seen(ctx: CommandContext) -> None:
    """Report when a user was last seen. ``me`` means the sender."""
    if not ctx.args:
        await ctx.reply(f"Usage: {ctx.prefix}seen <jid|me>")
        return

    target = ctx.args[0]
    lookup_id = ctx.actor_id if target.lower() == "me" else target

    user = await ctx.store.get_user(lookup_id)
    if user is None:
        await ctx.reply(f"I have not seen {lookup_id}.")
        return

    await ctx.reply(format_seen(user))


async def handle_stats(ctx: CommandContext) -> None:
    stats = await ctx.store.get_stats()
    top = await ctx.store.get_top_users(TOP_USERS_LIMIT)

    top_lines = [
        f"{i}. {user.display_name} — {user.message_count} messages ({user.user_id})"
        for i, user in enumerate(top, start=1)
    ]
    text = "\n".join([
        "*Acheron Stats*",
        f"Total messages seen: {stats.total_messages}",
        f"Known users: {stats.users_count}",
        "",
        "*Top users*",
        "\n".join(top_lines) or "No users yet.",
    ])
    await ctx.reply(text)


SEEN = CommandSpec("seen", "Tells when Acheron last saw a user: <jid|me>", handle_seen)
STATS = CommandSpec("stats", "Shows bot stats and top active users", handle_stats)
