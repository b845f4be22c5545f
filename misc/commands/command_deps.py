from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable

from config.defaults import COMMAND_PREFIX
from config.defaults import DEFAULT_IMPORT_ROLE_NAMES


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    storage: Any = None
    send_chunked: Callable | None = None
    command_prefix: str = COMMAND_PREFIX

    # Import
    stats_columns: Any = None
    import_role_names: tuple[str, ...] = DEFAULT_IMPORT_ROLE_NAMES
    max_import_bytes: int = 5 * 1024 * 1024


@dataclass(frozen=True)
class CommandGates:
    in_allowed_channel: Callable[[Any], bool] = _default_false
    allowed_channel_ids: set[int] = field(default_factory=set)
    user_is_owner: Callable[[Any], bool] = _default_false
    user_can_import: Callable[[Any], bool] = _default_false
