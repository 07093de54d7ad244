from __future__ import annotations

from enum import StrEnum


class FieldKind(StrEnum):
    BOOLEAN = "boolean"
    BOUNDED_INTEGER = "bounded-integer"
    ENUMERATED_STRING = "enumerated-string"


class DispatchState(StrEnum):
    IDLE = "idle"
    READING = "reading"
    FORMATTING = "formatting"
    REPLACING = "replacing"
    FAILED = "failed"


class Span(StrEnum):
    SELECTION = "selection"
    DOCUMENT = "document"


DISPATCH_TRANSITIONS: dict[DispatchState, frozenset[DispatchState]] = {
    DispatchState.IDLE: frozenset({DispatchState.READING}),
    DispatchState.READING: frozenset({DispatchState.FORMATTING}),
    DispatchState.FORMATTING: frozenset({DispatchState.REPLACING, DispatchState.FAILED}),
    DispatchState.REPLACING: frozenset({DispatchState.IDLE}),
    DispatchState.FAILED: frozenset({DispatchState.IDLE}),
}
