from __future__ import annotations

import asyncio
import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class PersistenceFailure(RuntimeError):
    pass


@runtime_checkable
class SettingsPersistence(Protocol):
    async def load(self) -> dict[str, Any] | None:
        """Return the persisted mapping, or None when nothing was saved yet."""

    async def save(self, raw: dict[str, Any]) -> None:
        """Persist the whole mapping, replacing what was stored before."""


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + f".{uuid.uuid4().hex}.tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


class JsonFilePersistence:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            obj = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"failed to read settings from {self.path}: {e}") from e
        if not isinstance(obj, dict):
            raise PersistenceFailure(f"settings file {self.path} must contain a JSON object")
        return obj

    def _write(self, raw: dict[str, Any]) -> None:
        content = json.dumps(raw, ensure_ascii=False, indent=2) + "\n"
        try:
            _atomic_write_text(self.path, content)
        except OSError as e:
            raise PersistenceFailure(f"failed to write settings to {self.path}: {e}") from e

    async def load(self) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read)

    async def save(self, raw: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, dict(raw))
        logger.debug("settings saved: %s", self.path)


class MemoryPersistence:
    """Keeps the last saved mapping in memory (no durability)."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data = copy.deepcopy(initial) if initial is not None else None
        self.saves = 0

    async def load(self) -> dict[str, Any] | None:
        return copy.deepcopy(self.data)

    async def save(self, raw: dict[str, Any]) -> None:
        self.data = copy.deepcopy(raw)
        self.saves += 1
