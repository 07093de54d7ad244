from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


class EngineFailure(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, stderr: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.stderr = stderr


@runtime_checkable
class FormattingEngine(Protocol):
    async def format(self, text: str, options: Mapping[str, Any]) -> str:
        """Return `text` reformatted with `options`; raise on failure."""
