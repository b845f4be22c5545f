from __future__ import annotations

from discord.ext import commands

from accounts.store import create_account_sync
from accounts.store import find_account_sync
from accounts.store import parse_governor_id
from db.errors import GovernorError
from db.errors import StorageUnavailable
from db.errors import ValidationError
from ingestion.csv_import import decode_csv_bytes
from ingestion.service import import_stats_csv
from links.service import farms_of
from links.service import link_farms
from links.service import owners_of
from links.service import unlink_farms
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.formatting import format_farms
from misc.formatting import format_help
from misc.formatting import format_import_result
from misc.formatting import format_link_result
from misc.formatting import format_owners
from misc.formatting import format_stats
from stats.store import latest_snapshot_sync


def split_id_tokens(tokens) -> tuple[list[int], list[str]]:
    ids: list[int] = []
    invalid: list[str] = []
    for token in tokens or ():
        for piece in str(token).replace(",", " ").split():
            try:
                ids.append(parse_governor_id(piece))
            except ValidationError:
                invalid.append(piece)
    return ids, invalid


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    p = f"{deps.command_prefix}governor"

    async def reply(ctx: commands.Context, text: str) -> None:
        await deps.send_chunked(ctx.channel, text)

    async def reply_error(ctx: commands.Context, exc: GovernorError, action: str) -> None:
        if isinstance(exc, StorageUnavailable):
            print(f"[Governor] {action} failed: {exc}")
            await reply(ctx, f"Failed to {action}: the database is unavailable right now. Please try again shortly.")
            return
        await reply(ctx, str(exc))

    @bot.group(name="governor", invoke_without_command=True)
    async def governor(ctx: commands.Context, *, _rest: str = ""):
        if not gates.in_allowed_channel(ctx):
            return
        await reply(ctx, f"Invalid governor command. Use `{p} help` for usage.")

    @governor.command(name="add")
    async def governor_add(ctx: commands.Context, governor_id: str = "", *, governor_name: str = ""):
        if not gates.in_allowed_channel(ctx):
            return
        usage = f'Usage: `{p} add <GovernorId> "Governor Name"`'
        try:
            gid = parse_governor_id(governor_id)
        except ValidationError:
            await reply(ctx, f"Please provide a valid Governor ID. {usage}")
            return
        name = " ".join(governor_name.replace('"', "").split())
        if not name:
            await reply(ctx, f"Please provide a governor name. {usage}")
            return

        try:
            await deps.storage.run(create_account_sync, governor_id=gid, governor_name=name)
        except GovernorError as exc:
            await reply_error(ctx, exc, "add governor")
            return
        print(f"[Governor] added governor={gid} by user={getattr(ctx.author, 'id', '?')}")
        await reply(ctx, f"Governor {name} added with ID {gid}")

    @governor.command(name="link")
    async def governor_link(ctx: commands.Context, main_id: str = "", *farm_tokens: str):
        if not gates.in_allowed_channel(ctx):
            return
        usage = (
            "Please provide a main governor ID and at least one farm governor ID. "
            f"Usage: `{p} link <MainGovernorId> <FarmGovernorId1> [<FarmGovernorId2> ...]`"
        )
        try:
            main = parse_governor_id(main_id)
        except ValidationError:
            await reply(ctx, usage)
            return
        farm_ids, invalid = split_id_tokens(farm_tokens)
        if not farm_ids and not invalid:
            await reply(ctx, usage)
            return

        try:
            result = await link_farms(deps.storage, main_id=main, farm_ids=farm_ids)
        except GovernorError as exc:
            await reply_error(ctx, exc, "link accounts")
            return
        await reply(ctx, format_link_result(result, invalid_tokens=invalid))

    @governor.command(name="unlink")
    async def governor_unlink(ctx: commands.Context, main_id: str = "", *farm_tokens: str):
        if not gates.in_allowed_channel(ctx):
            return
        usage = (
            "Please provide a main governor ID and at least one farm governor ID. "
            f"Usage: `{p} unlink <MainGovernorId> <FarmGovernorId1> [<FarmGovernorId2> ...]`"
        )
        try:
            main = parse_governor_id(main_id)
        except ValidationError:
            await reply(ctx, usage)
            return
        farm_ids, invalid = split_id_tokens(farm_tokens)
        if not farm_ids:
            await reply(ctx, usage)
            return

        try:
            removed = await unlink_farms(deps.storage, main_id=main, farm_ids=farm_ids)
        except GovernorError as exc:
            await reply_error(ctx, exc, "unlink accounts")
            return
        text = f"Unlinked {removed} farm account(s) from main account {main}"
        if invalid:
            text += f"\nIgnored invalid IDs: {', '.join(invalid)}"
        await reply(ctx, text)

    @governor.command(name="farms")
    async def governor_farms(ctx: commands.Context, main_id: str = ""):
        if not gates.in_allowed_channel(ctx):
            return
        try:
            main = parse_governor_id(main_id)
        except ValidationError:
            await reply(ctx, f"Please provide a main governor ID. Usage: `{p} farms <MainGovernorId>`")
            return
        try:
            farms = await farms_of(deps.storage, main)
        except GovernorError as exc:
            await reply_error(ctx, exc, "retrieve farm accounts")
            return
        await reply(ctx, format_farms(main, farms))

    @governor.command(name="checkfarm")
    async def governor_checkfarm(ctx: commands.Context, farm_id: str = ""):
        if not gates.in_allowed_channel(ctx):
            return
        try:
            farm = parse_governor_id(farm_id)
        except ValidationError:
            await reply(ctx, f"Please provide a farm governor ID. Usage: `{p} checkfarm <FarmGovernorId>`")
            return
        try:
            account, owners = await owners_of(deps.storage, farm)
        except GovernorError as exc:
            await reply_error(ctx, exc, "retrieve farm account information")
            return
        await reply(ctx, format_owners(account, owners))

    @governor.command(name="stats")
    async def governor_stats(ctx: commands.Context, governor_id: str = ""):
        if not gates.in_allowed_channel(ctx):
            return
        try:
            gid = parse_governor_id(governor_id)
        except ValidationError:
            await reply(ctx, f"Please provide a governor ID. Usage: `{p} stats <GovernorId>`")
            return
        try:
            snapshot = await deps.storage.run(latest_snapshot_sync, gid)
            if snapshot is None:
                await reply(ctx, f"No stats found for governor ID {gid}")
                return
            account = await deps.storage.run(find_account_sync, gid)
            farms = await farms_of(deps.storage, gid)
        except GovernorError as exc:
            await reply_error(ctx, exc, "retrieve governor stats")
            return
        await reply(ctx, format_stats(account, snapshot, farms))

    @governor.command(name="import")
    async def governor_import(ctx: commands.Context):
        if not gates.in_allowed_channel(ctx):
            return
        if not gates.user_can_import(ctx.author):
            roles = ", ".join(deps.import_role_names)
            await reply(
                ctx,
                "Sorry, you do not have permission to import governors. "
                f"Only members with {roles} roles can use this command.",
            )
            return

        attachments = list(getattr(ctx.message, "attachments", None) or [])
        if not attachments:
            await reply(ctx, f"Please attach a CSV file when using the import command. Usage: `{p} import`")
            return
        csv_files = [a for a in attachments if str(getattr(a, "filename", "")).lower().endswith(".csv")]
        attachment = (csv_files or attachments)[0]
        size = int(getattr(attachment, "size", 0) or 0)
        if size > deps.max_import_bytes:
            await reply(ctx, f"CSV file is too large ({size} bytes); limit is {deps.max_import_bytes} bytes.")
            return

        try:
            text = decode_csv_bytes(await attachment.read())
        except Exception as e:
            print(f"[Import] could not download attachment {getattr(attachment, 'filename', '?')}: {e}")
            await reply(ctx, "Failed to download the attached file. Please try again.")
            return

        try:
            result = await import_stats_csv(deps.storage, text, columns=deps.stats_columns)
        except GovernorError as exc:
            await reply_error(ctx, exc, "import governors")
            return
        await reply(ctx, format_import_result(result))

    @governor.command(name="help")
    async def governor_help(ctx: commands.Context):
        if not gates.in_allowed_channel(ctx):
            return
        await reply(
            ctx,
            format_help(
                deps.command_prefix,
                show_import_guide=gates.user_can_import(ctx.author),
                import_role_names=deps.import_role_names,
            ),
        )
