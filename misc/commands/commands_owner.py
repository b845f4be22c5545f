from __future__ import annotations

from discord.ext import commands

from db.errors import StorageUnavailable
from db.migrate import list_schema_migrations_sync
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="dbmigrations")
    async def cmd_dbmigrations(ctx: commands.Context, limit: int = 30):
        if not gates.in_allowed_channel(ctx):
            return
        if not gates.user_is_owner(ctx.author):
            await ctx.send("This command is owner-only.")
            return

        lim = max(1, min(int(limit or 30), 200))
        try:
            rows = await deps.storage.run(list_schema_migrations_sync, lim)
        except StorageUnavailable as exc:
            print(f"[DB] dbmigrations failed: {exc}")
            await ctx.send("Could not read schema migrations: the database is unavailable.")
            return

        if not rows:
            await ctx.send("No schema migrations found.")
            return

        lines = [f"Applied schema migrations (latest {len(rows)}):"]
        for version, name, applied_at in rows:
            lines.append(f"- {version}_{name} @ {applied_at}")

        await deps.send_chunked(ctx.channel, "```\n" + "\n".join(lines)[:7000] + "\n```")
