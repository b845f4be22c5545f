from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Any

from accounts.store import find_account_sync
from db.errors import CannotMainAFarm
from db.errors import FarmAlreadyLinked
from db.errors import GovernorError
from db.errors import StorageUnavailable
from db.errors import UnknownAccount
from links.store import create_link_sync
from links.store import find_owners_sync
from links.store import list_farms_sync
from links.store import remove_links_sync


@dataclass(slots=True)
class LinkBatchResult:
    main_id: int
    main_name: str
    linked: list[tuple[int, str]] = field(default_factory=list)
    already_linked: list[tuple[int, int]] = field(default_factory=list)
    unknown: list[int] = field(default_factory=list)
    rejected: list[tuple[int, str]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.linked) + len(self.already_linked) + len(self.unknown) + len(self.rejected)


def _dedupe_ids(ids: list[int]) -> list[int]:
    out: list[int] = []
    seen: set[int] = set()
    for raw in ids or []:
        value = int(raw)
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def resolve_batch_main_sync(conn: sqlite3.Connection, main_id: int) -> dict[str, Any]:
    main = find_account_sync(conn, int(main_id))
    if main is None:
        raise UnknownAccount(int(main_id), f"Main governor with ID {int(main_id)} does not exist.")
    if find_owners_sync(conn, int(main_id)):
        raise CannotMainAFarm(int(main_id))
    return main


def _apply_candidate(result: LinkBatchResult, farm_id: int, outcome: Any) -> None:
    if isinstance(outcome, UnknownAccount):
        result.unknown.append(farm_id)
    elif isinstance(outcome, FarmAlreadyLinked):
        result.already_linked.append((farm_id, outcome.main_id))
    elif isinstance(outcome, GovernorError):
        result.rejected.append((farm_id, str(outcome)))
    else:
        result.linked.append((farm_id, str(outcome)))


def link_farms_sync(conn: sqlite3.Connection, *, main_id: int, farm_ids: list[int]) -> LinkBatchResult:
    """Best-effort batch link. Each farm is checked and committed on its own."""
    main = resolve_batch_main_sync(conn, main_id)
    result = LinkBatchResult(main_id=main["governor_id"], main_name=main["governor_name"])
    for farm_id in _dedupe_ids(farm_ids):
        try:
            create_link_sync(conn, main_id=result.main_id, farm_id=farm_id)
            farm = find_account_sync(conn, farm_id)
            outcome: Any = farm["governor_name"] if farm else "Unknown"
        except GovernorError as exc:
            outcome = exc
        _apply_candidate(result, farm_id, outcome)
    return result


async def link_farms(storage, *, main_id: int, farm_ids: list[int]) -> LinkBatchResult:
    main = await storage.run(resolve_batch_main_sync, int(main_id))
    result = LinkBatchResult(main_id=main["governor_id"], main_name=main["governor_name"])
    for farm_id in _dedupe_ids(farm_ids):
        try:
            await storage.run(create_link_sync, main_id=result.main_id, farm_id=farm_id)
            farm = await storage.run(find_account_sync, farm_id)
            outcome: Any = farm["governor_name"] if farm else "Unknown"
        except StorageUnavailable:
            raise
        except GovernorError as exc:
            outcome = exc
        _apply_candidate(result, farm_id, outcome)

    print(
        f"[Links] batch main={result.main_id} linked={len(result.linked)} "
        f"already_linked={len(result.already_linked)} unknown={len(result.unknown)} "
        f"rejected={len(result.rejected)}"
    )
    return result


async def unlink_farms(storage, *, main_id: int, farm_ids: list[int]) -> int:
    return int(await storage.run(remove_links_sync, main_id=int(main_id), farm_ids=set(farm_ids)))


async def farms_of(storage, main_id: int) -> list[tuple[int, str]]:
    return await storage.run(list_farms_sync, int(main_id))


async def owners_of(storage, farm_id: int) -> tuple[dict[str, Any], list[tuple[int, str]]]:
    farm = await storage.run(find_account_sync, int(farm_id))
    if farm is None:
        raise UnknownAccount(int(farm_id), f"No governor found with ID {int(farm_id)}")
    return farm, await storage.run(find_owners_sync, int(farm_id))
