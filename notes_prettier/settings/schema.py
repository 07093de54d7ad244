"""Formatting option schema: field declarations, validation and snapshots.

Every tunable option is declared once as a :class:`FieldSpec`. Raw values coming
from the settings panel or from persisted storage are coerced through
:meth:`FieldSpec.validate` before they may enter a :class:`Configuration`.

Recovery policies:

- bounded integer: an unparsable value raises :class:`InvalidFieldValue` and the
  caller keeps the previous value. Blank input maps to the default.
- enumerated string: an unknown value falls back to the field default.
- boolean: only `True` itself is true.
"""

from __future__ import annotations

import logging
import re
import reprlib
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from notes_prettier.states import FieldKind

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_INT_RE = re.compile(r"[+-]?[0-9]+")

FieldValue = bool | int | str


class InvalidFieldValue(ValueError):
    def __init__(self, key: str, raw: Any, reason: str) -> None:
        super().__init__(f"invalid value for {key}: {reprlib.repr(raw)} ({reason})")
        self.key = key
        self.raw = raw
        self.reason = reason


class UnknownFieldError(KeyError):
    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"unknown setting: {self.key}"


@dataclass(frozen=True)
class FieldSpec:
    key: str
    kind: FieldKind
    default: FieldValue
    choices: tuple[str, ...] = ()
    min_value: int | None = None
    max_value: int | None = None
    engine_name: str = ""
    label: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            raise ValueError("field key is required")
        if self.kind == FieldKind.BOOLEAN and not isinstance(self.default, bool):
            raise ValueError(f"{self.key}: boolean default must be a bool")
        if self.kind == FieldKind.ENUMERATED_STRING:
            if not self.choices:
                raise ValueError(f"{self.key}: enumerated field needs choices")
            if self.default not in self.choices:
                raise ValueError(f"{self.key}: default {self.default!r} is not one of {self.choices}")
        if self.kind == FieldKind.BOUNDED_INTEGER:
            if isinstance(self.default, bool) or not isinstance(self.default, int):
                raise ValueError(f"{self.key}: bounded-integer default must be an int")
            if not self._in_bounds(self.default):
                raise ValueError(f"{self.key}: default {self.default} is out of bounds")

    @property
    def option_name(self) -> str:
        return self.engine_name or self.key

    @property
    def control(self) -> str:
        if self.kind == FieldKind.BOOLEAN:
            return "toggle"
        if self.kind == FieldKind.ENUMERATED_STRING:
            return "dropdown"
        return "text"

    def _in_bounds(self, value: int) -> bool:
        if self.min_value is not None and value < self.min_value:
            return False
        if self.max_value is not None and value > self.max_value:
            return False
        return True

    def validate(self, raw: Any) -> FieldValue:
        """Coerce `raw` into a legal value or raise InvalidFieldValue."""

        if self.kind == FieldKind.BOOLEAN:
            return raw is True

        if self.kind == FieldKind.ENUMERATED_STRING:
            if isinstance(raw, str) and raw in self.choices:
                return raw
            logger.warning("unknown choice for %s: %s; using default %r", self.key, reprlib.repr(raw), self.default)
            return self.default

        text = "" if raw is None else str(raw).strip()
        if not text:
            return self.default
        if not _INT_RE.fullmatch(text):
            raise InvalidFieldValue(self.key, raw, "not a base-10 integer")
        try:
            value = int(text)
        except ValueError as e:
            # Digit strings past sys.get_int_max_str_digits() are refused by int().
            raise InvalidFieldValue(self.key, raw, "not a base-10 integer") from e
        if not self._in_bounds(value):
            raise InvalidFieldValue(self.key, raw, f"must be within [{self.min_value}, {self.max_value}]")
        return value

    def describe(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "key": self.key,
            "kind": str(self.kind),
            "control": self.control,
            "label": self.label or self.key,
            "description": self.description,
            "default": self.default,
        }
        if self.choices:
            data["choices"] = list(self.choices)
        if self.kind == FieldKind.BOUNDED_INTEGER:
            data["min"] = self.min_value
            data["max"] = self.max_value
        return data


class Configuration(Mapping[str, FieldValue]):
    """Immutable point-in-time view of every setting."""

    __slots__ = ("_schema", "_values")

    def __init__(self, schema: ConfigurationSchema, values: Mapping[str, FieldValue]) -> None:
        missing = [k for k in schema.keys() if k not in values]
        if missing:
            raise ValueError(f"missing settings: {', '.join(missing)}")
        self._schema = schema
        self._values = {k: values[k] for k in schema.keys()}

    def __getitem__(self, key: str) -> FieldValue:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Configuration({self._values!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Configuration):
            return self._values == other._values
        if isinstance(other, Mapping):
            return self._values == dict(other)
        return NotImplemented

    @property
    def schema(self) -> ConfigurationSchema:
        return self._schema

    def replace(self, key: str, value: FieldValue) -> Configuration:
        self._schema.spec(key)
        values = dict(self._values)
        values[key] = value
        return Configuration(self._schema, values)

    def as_dict(self) -> dict[str, FieldValue]:
        return dict(self._values)

    def engine_options(self) -> dict[str, FieldValue]:
        return {spec.option_name: self._values[spec.key] for spec in self._schema}


class ConfigurationSchema:
    def __init__(self, fields: Iterable[FieldSpec], *, version: int = SCHEMA_VERSION) -> None:
        by_key: dict[str, FieldSpec] = {}
        for spec in fields:
            if spec.key in by_key:
                raise ValueError(f"duplicate setting key: {spec.key}")
            by_key[spec.key] = spec
        self._fields = by_key
        self.version = version

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def keys(self) -> list[str]:
        return list(self._fields)

    def get(self, key: str) -> FieldSpec | None:
        return self._fields.get(key)

    def spec(self, key: str) -> FieldSpec:
        spec = self._fields.get(key)
        if spec is None:
            raise UnknownFieldError(key)
        return spec

    def defaults(self) -> Configuration:
        return Configuration(self, {spec.key: spec.default for spec in self})

    def validate(self, key: str, raw: Any) -> FieldValue:
        return self.spec(key).validate(raw)

    def describe(self) -> list[dict[str, Any]]:
        return [spec.describe() for spec in self]


def _flag(key: str, default: bool, label: str, description: str = "") -> FieldSpec:
    return FieldSpec(key=key, kind=FieldKind.BOOLEAN, default=default, label=label, description=description)


def _choice(key: str, default: str, choices: tuple[str, ...], label: str, description: str = "") -> FieldSpec:
    return FieldSpec(
        key=key,
        kind=FieldKind.ENUMERATED_STRING,
        default=default,
        choices=choices,
        label=label,
        description=description,
    )


PRETTIER_SCHEMA = ConfigurationSchema(
    [
        _flag("semi", True, "Semicolons", "Print semicolons at the ends of statements."),
        _flag("singleQuote", False, "Single quotes", "Use single quotes instead of double quotes."),
        _flag("jsxSingleQuote", False, "JSX single quotes", "Use single quotes in JSX."),
        _choice(
            "trailingComma",
            "all",
            ("all", "es5", "none"),
            "Trailing commas",
            "Print trailing commas wherever possible in multi-line lists.",
        ),
        _flag("bracketSpacing", True, "Bracket spacing", "Print spaces between brackets in object literals."),
        _flag("bracketSameLine", False, "Bracket same line", "Put the > of a multi-line element on the last line."),
        _flag("jsxBracketSameLine", False, "JSX bracket same line"),
        _choice(
            "proseWrap",
            "preserve",
            ("always", "never", "preserve"),
            "Prose wrap",
            "Wrap markdown text at the print width.",
        ),
        _choice("arrowParens", "always", ("always", "avoid"), "Arrow function parentheses"),
        _choice(
            "htmlWhitespaceSensitivity",
            "css",
            ("css", "strict", "ignore"),
            "HTML whitespace sensitivity",
        ),
        _choice("endOfLine", "lf", ("lf", "crlf", "cr", "auto"), "End of line"),
        _choice("quoteProps", "as-needed", ("as-needed", "consistent", "preserve"), "Quote props"),
        _choice(
            "embeddedLanguageFormatting",
            "auto",
            ("auto", "off"),
            "Embedded language formatting",
            "Format code blocks embedded in the document.",
        ),
        _flag("singleAttributePerLine", False, "Single attribute per line"),
        FieldSpec(
            key="printWidth",
            kind=FieldKind.BOUNDED_INTEGER,
            default=80,
            min_value=1,
            max_value=1000,
            label="Print width",
            description="The line length the formatter will try to wrap on.",
        ),
        FieldSpec(
            key="tabWidth",
            kind=FieldKind.BOUNDED_INTEGER,
            default=2,
            min_value=0,
            max_value=32,
            label="Tab width",
            description="Number of spaces per indentation level.",
        ),
        _flag("useTabs", False, "Use tabs", "Indent lines with tabs instead of spaces."),
    ]
)
