from __future__ import annotations

import discord
from discord.ext import commands

from db.errors import GovernorError
from misc.discord_gates import message_in_allowed_channels
from misc.runtime_deps import RuntimeDeps


def command_error_reply(error: commands.CommandError) -> str | None:
    """Reply text for an error that escaped a command, or None to stay quiet."""
    if isinstance(error, commands.CommandNotFound):
        return None
    if isinstance(error, commands.CheckFailure):
        return None
    if isinstance(error, commands.UserInputError):
        return f"Invalid command usage: {error}"
    original = getattr(error, "original", None)
    if isinstance(original, GovernorError):
        return str(original)
    return "Something went wrong while running that command. Check logs."


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
) -> None:
    @bot.event
    async def on_ready():
        print(f"[Bot] Governor tracker is online as {bot.user}")
        if deps.allowed_channel_ids:
            print(f"[Bot] Listening in channels: {sorted(deps.allowed_channel_ids)}")
        else:
            print("[Bot] Listening in all channels")

    @bot.event
    async def on_message(message: discord.Message):
        if not message_in_allowed_channels(message, deps.allowed_channel_ids):
            return
        if message.author.bot:
            return
        if (message.content or "").lstrip().startswith(deps.command_prefix):
            await bot.process_commands(message)

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        command_name = getattr(getattr(ctx, "command", None), "qualified_name", None) or "?"
        original = getattr(error, "original", error)
        if not isinstance(error, (commands.CommandNotFound, commands.CheckFailure)):
            print(f"[Bot] command {command_name} failed: {type(original).__name__}: {original}")
        text = command_error_reply(error)
        if text:
            await deps.send_chunked(ctx.channel, text)
