from __future__ import annotations

import discord


def message_in_allowed_channels(message: discord.Message, allowed_channel_ids: set[int]) -> bool:
    # An empty allowlist means the bot answers everywhere it can read.
    if not allowed_channel_ids:
        return True
    if getattr(message, "guild", None) is None:
        return False

    channel_id = int(getattr(message.channel, "id", 0) or 0)
    if channel_id in allowed_channel_ids:
        return True
    # thread: allow if parent is allowed
    if isinstance(message.channel, discord.Thread) and message.channel.parent:
        return int(message.channel.parent.id) in allowed_channel_ids
    return False


def member_has_any_role(member, role_names) -> bool:
    wanted = {str(n).strip().lower() for n in role_names or () if str(n).strip()}
    if not wanted:
        return False
    for role in getattr(member, "roles", None) or []:
        if str(getattr(role, "name", "") or "").strip().lower() in wanted:
            return True
    return False
