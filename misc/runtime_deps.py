from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from config.defaults import COMMAND_PREFIX


@dataclass(frozen=True)
class RuntimeDeps:
    storage: Any
    send_chunked: Callable
    allowed_channel_ids: set[int] = field(default_factory=set)
    command_prefix: str = COMMAND_PREFIX
