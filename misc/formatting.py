from __future__ import annotations

from typing import Any

from config.defaults import DISCORD_MAX_MESSAGE_LEN
from ingestion.service import ImportResult
from links.service import LinkBatchResult


def chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    text = text or ""
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text

    while len(remaining) > limit:
        # Prefer splitting on paragraph, then newline, then space
        split_at = remaining.rfind("\n\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind("\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind(" ", 0, limit)
        if split_at == -1:
            split_at = limit

        chunk = remaining[:split_at].strip()
        if chunk:
            chunks.append(chunk)

        remaining = remaining[split_at:].strip()

    if remaining:
        chunks.append(remaining)

    return chunks


def add_delimiter(value: Any, delimiter: str = ",") -> str:
    if value is None:
        return "N/A"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float):
        if value.is_integer():
            value = int(value)
        else:
            return f"{value:,.2f}".replace(",", delimiter)
    if isinstance(value, int):
        return f"{value:,}".replace(",", delimiter)
    return str(value)


def format_link_result(result: LinkBatchResult, *, invalid_tokens: list[str] | None = None) -> str:
    lines = [
        f"Linked {len(result.linked)} farm account(s) to main account "
        f"{result.main_name} (ID: {result.main_id}):"
    ]
    for farm_id, farm_name in result.linked:
        lines.append(f"- Farm Governor: {farm_name} (ID: {farm_id})")

    invalid = [str(t) for t in invalid_tokens or []] + [str(f) for f in result.unknown]
    if invalid:
        lines.append("")
        lines.append("Warning: The following farm IDs are invalid and were not linked:")
        for token in invalid:
            lines.append(f"- ID: {token}")

    if result.already_linked:
        lines.append("")
        lines.append("Note: The following farm accounts were already linked to a main account:")
        for farm_id, owner_id in result.already_linked:
            lines.append(f"- Farm Governor ID: {farm_id} (Already linked to Main Governor ID: {owner_id})")

    if result.rejected:
        lines.append("")
        lines.append("Rejected:")
        for farm_id, reason in result.rejected:
            lines.append(f"- Farm Governor ID: {farm_id}: {reason}")

    return "\n".join(lines)


def format_farms(main_id: int, farms: list[tuple[int, str]]) -> str:
    if not farms:
        return f"No farm accounts found for main governor ID {main_id}"
    lines = [f"Farm Accounts for Main Governor ID {main_id}:"]
    for farm_id, farm_name in farms:
        lines.append(f"- Farm Governor ID: {farm_id}, Name: {farm_name}")
    return "\n".join(lines)


def format_owners(farm: dict[str, Any], owners: list[tuple[int, str]]) -> str:
    farm_id = farm["governor_id"]
    farm_name = farm["governor_name"]
    if not owners:
        return (
            f"Governor {farm_id} ({farm_name}) is not linked as a farm account to any main accounts."
        )
    lines = [
        "Farm Account Details:",
        f"- Farm Governor ID: {farm_id}",
        f"- Farm Governor Name: {farm_name}",
        "",
        "Linked Main Accounts:",
    ]
    for main_id, main_name in owners:
        lines.append(f"- Main Governor ID: {main_id}")
        lines.append(f"  Main Governor Name: {main_name}")
    return "\n".join(lines)


def format_stats(account: dict[str, Any] | None, snapshot: dict[str, Any], farms: list[tuple[int, str]]) -> str:
    name = account["governor_name"] if account else snapshot["governor_name"]
    lines = [
        "**Governor Stats**",
        f"Name: {name}",
        f"Governor ID: {snapshot['governor_id']}",
        f"Last Updated: {snapshot['snapshot_time']}",
    ]
    if snapshot.get("alliance"):
        lines.append(f"Alliance: {snapshot['alliance']}")
    lines += [
        "",
        "**Combat Stats**",
        f"- Power: {add_delimiter(snapshot.get('power'))}",
        f"- Kill Points: {add_delimiter(snapshot.get('total_kill_points'))}",
        f"- Total Deaths: {add_delimiter(snapshot.get('dead'))}",
        "",
        "**Kill Breakdown**",
    ]
    for tier in range(1, 6):
        lines.append(f"- T{tier} Kills: {add_delimiter(snapshot.get(f't{tier}_kills'))}")
    lines += [
        "",
        "**Support**",
        f"- RSS Assistance: {add_delimiter(snapshot.get('assistance'))}",
        f"- Alliance Helps: {add_delimiter(snapshot.get('helps'))}",
    ]
    if farms:
        lines.append("")
        lines.append("**Linked Farm Accounts:**")
        for farm_id, farm_name in farms:
            lines.append(f"- Farm Governor ID: {farm_id}, Name: {farm_name}")
    return "\n".join(lines)


def format_import_result(result: ImportResult, *, max_errors: int = 25) -> str:
    lines = [
        "CSV Import Results:",
        f"- Total Governors: {result.total}",
        f"- Added: {result.added}",
        f"- Updated: {result.updated}",
        f"- Failed: {result.failed}",
    ]
    if result.errors:
        lines.append("")
        lines.append("Errors:")
        for err in result.errors[:max_errors]:
            lines.append(f"- Row {err.line}, Governor ID {err.governor_id}: {err.message}")
        hidden = len(result.errors) - max_errors
        if hidden > 0:
            lines.append(f"- ...and {hidden} more")
    return "\n".join(lines)


def format_help(prefix: str, *, show_import_guide: bool, import_role_names: tuple[str, ...] | list[str]) -> str:
    p = f"{prefix}governor"
    lines = [
        "**Governor Tracker Bot Commands**",
        f'- `{p} add <GovernorId> "Governor Name"`: Add a new governor with a specific ID',
        f"- `{p} link <MainGovernorId> <FarmGovernorId1> [<FarmGovernorId2> ...]`: Link farm accounts to a main account",
        f"- `{p} unlink <MainGovernorId> <FarmGovernorId1> [<FarmGovernorId2> ...]`: Unlink farm accounts from a main account",
        f"- `{p} farms <MainGovernorId>`: List all farm accounts for a main account",
        f"- `{p} checkfarm <FarmGovernorId>`: Find the main account that owns a farm account",
        f"- `{p} stats <GovernorId>`: View latest stats for a governor",
        f"- `{p} import`: Import governors and their stats from an attached CSV file",
        f"- `{p} help`: Show this help message",
    ]
    if show_import_guide:
        roles = ", ".join(f"`{r}`" for r in import_role_names)
        lines += [
            "",
            "**CSV Import Guide (Visible to Officers Only)**",
            f"- Only members with {roles} roles can import governors.",
            "1. Prepare a comma-separated (.csv) file with the columns "
            "`Governor ID`, `Governor Name`, `Snapshot Time (UTC)`.",
            "   Optional columns include Alliance, Power, T1-T5, Dead, Helps and more.",
            f"2. Attach the file to a message containing `{p} import` and send it.",
            "",
            "**Troubleshooting**",
            "- Ensure all required columns are present.",
            "- Governor IDs must be whole numbers.",
            "- Snapshot times should look like `2025-03-05 09:15:00` (UTC).",
        ]
    return "\n".join(lines)
