from __future__ import annotations

import logging
import threading
from collections.abc import Hashable
from dataclasses import dataclass

from notes_prettier.engine.base import EngineFailure, FormattingEngine
from notes_prettier.formatting.host import EditorHost
from notes_prettier.settings.schema import Configuration
from notes_prettier.states import DISPATCH_TRANSITIONS, DispatchState, Span

logger = logging.getLogger(__name__)


class DispatcherBusy(RuntimeError):
    pass


@dataclass(frozen=True)
class FormatRequest:
    span: Span
    text: str
    config: Configuration


class FormattingDispatcher:
    """Runs format-and-replace cycles; at most one in flight per document.

    A cycle either replaces the whole span with the engine output or leaves the
    host untouched. Engine errors surface as EngineFailure; nothing is retried.
    """

    def __init__(self, engine: FormattingEngine) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._states: dict[Hashable, DispatchState] = {}

    @staticmethod
    def _document_key(host: EditorHost) -> Hashable:
        doc_id = getattr(host, "document_id", None)
        if doc_id:
            return ("doc", str(doc_id))
        return ("obj", id(host))

    def state(self, host: EditorHost) -> DispatchState:
        with self._lock:
            return self._states.get(self._document_key(host), DispatchState.IDLE)

    def _advance(self, key: Hashable, new: DispatchState) -> None:
        with self._lock:
            cur = self._states.get(key, DispatchState.IDLE)
            if new not in DISPATCH_TRANSITIONS[cur]:
                raise RuntimeError(f"illegal dispatch transition: {cur} -> {new}")
            self._states[key] = new

    def _acquire(self, key: Hashable) -> None:
        with self._lock:
            if key in self._states:
                raise DispatcherBusy("a formatting request is already running for this document")
            self._states[key] = DispatchState.READING

    def _release(self, key: Hashable) -> None:
        with self._lock:
            self._states.pop(key, None)

    async def format_selection(self, host: EditorHost, config: Configuration) -> None:
        await self._dispatch(host, config, Span.SELECTION)

    async def format_document(self, host: EditorHost, config: Configuration) -> None:
        await self._dispatch(host, config, Span.DOCUMENT)

    async def dispatch(self, host: EditorHost, config: Configuration, span: Span) -> None:
        await self._dispatch(host, config, Span(span))

    async def _dispatch(self, host: EditorHost, config: Configuration, span: Span) -> None:
        key = self._document_key(host)
        self._acquire(key)
        try:
            text = host.get_selection() if span == Span.SELECTION else host.get_full_text()
            request = FormatRequest(span=span, text=text, config=config)

            self._advance(key, DispatchState.FORMATTING)
            try:
                formatted = await self._engine.format(request.text, request.config.engine_options())
                if not isinstance(formatted, str):
                    raise EngineFailure(f"formatter returned {type(formatted).__name__}, expected str")
            except Exception as e:
                self._advance(key, DispatchState.FAILED)
                logger.warning("format %s failed: %s", span, e)
                if isinstance(e, EngineFailure):
                    raise
                raise EngineFailure(str(e) or type(e).__name__) from e

            self._advance(key, DispatchState.REPLACING)
            if span == Span.SELECTION:
                host.replace_selection(formatted)
            else:
                host.set_full_text(formatted)
            logger.info("formatted %s: %s -> %s chars", span, len(request.text), len(formatted))
        finally:
            self._release(key)
