from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorEnvelope(BaseModel):
    code: str
    message: str
    request_id: str | None = None


class SettingsResponse(BaseModel):
    settings: dict[str, bool | int | str]
    schema_version: int


class FieldOut(BaseModel):
    key: str
    kind: str
    control: str
    label: str
    description: str = ""
    default: bool | int | str
    choices: list[str] | None = None
    min: int | None = None
    max: int | None = None


class SchemaResponse(BaseModel):
    version: int
    fields: list[FieldOut]


class SettingPutRequest(BaseModel):
    # Raw control value; validation happens in the settings store.
    value: Any = None


class SettingPutResponse(BaseModel):
    ok: bool
    key: str
    value: bool | int | str
    persisted: bool = False
    error: str | None = None


class SelectionRange(BaseModel):
    start: int = Field(ge=0)
    end: int = Field(ge=0)


class CommandOut(BaseModel):
    id: str
    name: str
    span: str


class CommandListResponse(BaseModel):
    commands: list[CommandOut]


class CommandRequest(BaseModel):
    text: str = ""
    selection: SelectionRange | None = None
    document_id: str | None = Field(default=None, max_length=128)


class CommandResponse(BaseModel):
    command: str
    text: str
    selection: SelectionRange
