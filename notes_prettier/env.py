from __future__ import annotations

import os
from collections.abc import Iterable

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})


def env_str(name: str, default: str = "") -> str:
    raw = str(os.getenv(name, "") or "").strip()
    return raw or default


def env_truthy(name: str) -> bool:
    return env_str(name).lower() in _TRUTHY


def env_choice(name: str, choices: Iterable[str], default: str) -> str:
    """Case-insensitive pick from `choices`; a value outside them is a config error."""

    allowed = tuple(choices)
    raw = env_str(name, default).lower()
    if raw not in allowed:
        raise ValueError(f"{name} must be one of {', '.join(allowed)} (got {raw!r})")
    return raw


def env_int(name: str, default: int, *, min_value: int | None = None, max_value: int | None = None) -> int:
    """Integer from the environment; unparsable or out-of-range values give `default`."""

    raw = env_str(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if (min_value is not None and value < min_value) or (max_value is not None and value > max_value):
        return default
    return value


def env_float(name: str, default: float, *, min_value: float | None = None) -> float:
    raw = env_str(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if min_value is not None and not value >= min_value:
        return default
    return value
