from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class EditorHost(Protocol):
    """The editing surface a formatting command runs against (one open document)."""

    def get_selection(self) -> str: ...

    def replace_selection(self, text: str) -> None: ...

    def get_full_text(self) -> str: ...

    def set_full_text(self, text: str) -> None: ...


class TextBuffer:
    """In-memory document with a single selection range."""

    def __init__(self, text: str = "", selection: tuple[int, int] | None = None, document_id: str | None = None) -> None:
        self._text = text
        self.document_id = document_id or uuid.uuid4().hex
        self._start, self._end = self._check_selection(selection or (0, 0))

    def _check_selection(self, selection: tuple[int, int]) -> tuple[int, int]:
        start, end = (int(selection[0]), int(selection[1]))
        if start < 0 or end < start or end > len(self._text):
            raise ValueError(f"invalid selection {selection!r} for text of length {len(self._text)}")
        return start, end

    @property
    def selection(self) -> tuple[int, int]:
        return self._start, self._end

    def select(self, start: int, end: int) -> None:
        self._start, self._end = self._check_selection((start, end))

    def get_selection(self) -> str:
        return self._text[self._start : self._end]

    def replace_selection(self, text: str) -> None:
        self._text = self._text[: self._start] + text + self._text[self._end :]
        self._end = self._start + len(text)

    def get_full_text(self) -> str:
        return self._text

    def set_full_text(self, text: str) -> None:
        self._text = text
        self._start = min(self._start, len(text))
        self._end = min(self._end, len(text))
