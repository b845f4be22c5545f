from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_governor import register as register_governor
from misc.commands.commands_owner import register as register_owner
from misc.discord_gates import member_has_any_role
from misc.discord_gates import message_in_allowed_channels
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    storage,
    allowed_channel_ids: set[int],
    owner_user_ids: set[int],
    import_role_names: tuple[str, ...],
    stats_columns,
    send_chunked,
    command_prefix: str,
) -> None:
    def in_allowed_channel(ctx) -> bool:
        try:
            return message_in_allowed_channels(ctx.message, allowed_channel_ids)
        except Exception:
            return False

    def user_is_owner(user) -> bool:
        return int(getattr(user, "id", 0) or 0) in owner_user_ids

    def user_can_import(member) -> bool:
        return member_has_any_role(member, import_role_names)

    command_deps = CommandDeps(
        storage=storage,
        send_chunked=send_chunked,
        command_prefix=command_prefix,
        stats_columns=stats_columns,
        import_role_names=tuple(import_role_names),
    )
    command_gates = CommandGates(
        in_allowed_channel=in_allowed_channel,
        allowed_channel_ids=allowed_channel_ids,
        user_is_owner=user_is_owner,
        user_can_import=user_can_import,
    )

    register_owner(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_governor(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            storage=storage,
            send_chunked=send_chunked,
            allowed_channel_ids=allowed_channel_ids,
            command_prefix=command_prefix,
        ),
    )
