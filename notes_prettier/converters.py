from __future__ import annotations

from fastapi.responses import JSONResponse

from notes_prettier.formatting.commands import Command
from notes_prettier.models import CommandOut, ErrorEnvelope, FieldOut, SchemaResponse, SettingsResponse
from notes_prettier.settings.schema import Configuration, ConfigurationSchema, FieldSpec


def _error_code_for_status(status_code: int) -> str:
    if status_code == 404:
        return "not_found"
    if status_code == 409:
        return "conflict"
    if status_code == 422:
        return "format_failed"
    if status_code == 503:
        return "unavailable"
    if status_code in {400, 413}:
        return "bad_request"
    return "internal_error"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": ErrorEnvelope(code=_error_code_for_status(status_code), message=message).model_dump()},
    )


def _field_to_out(spec: FieldSpec) -> FieldOut:
    return FieldOut.model_validate(spec.describe())


def _schema_to_out(schema: ConfigurationSchema) -> SchemaResponse:
    return SchemaResponse(version=schema.version, fields=[_field_to_out(spec) for spec in schema])


def _settings_to_out(config: Configuration) -> SettingsResponse:
    return SettingsResponse(settings=config.as_dict(), schema_version=config.schema.version)


def _command_to_out(cmd: Command) -> CommandOut:
    return CommandOut(id=cmd.id, name=cmd.name, span=str(cmd.span))
