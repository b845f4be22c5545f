from __future__ import annotations

import os
import re


def parse_id_set(raw: str | None) -> set[int]:
    if not raw:
        return set()
    out: set[int] = set()
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if not tok:
            continue
        if re.fullmatch(r"\d{8,22}", tok):
            out.add(int(tok))
        else:
            print(f"[CFG] ignoring non-snowflake id {tok!r}")
    return out


def parse_name_list(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    # Role names may contain spaces, so only commas and semicolons separate them.
    if raw is None or not raw.strip():
        return tuple(default)
    out: list[str] = []
    for tok in re.split(r"[,;]+", raw):
        name = tok.strip()
        if name and name not in out:
            out.append(name)
    return tuple(out) or tuple(default)


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return float(default)
    try:
        value = float(raw.strip())
    except ValueError:
        print(f"[CFG] invalid {name}={raw!r}; falling back to {default}")
        return float(default)
    if value <= 0:
        print(f"[CFG] {name} must be positive; falling back to {default}")
        return float(default)
    return value
