from __future__ import annotations

import logging
import reprlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError

from notes_prettier.converters import _command_to_out, _error, _schema_to_out, _settings_to_out
from notes_prettier.engine.base import EngineFailure
from notes_prettier.engine.config import build_engine, engine_config_from_env
from notes_prettier.env import env_truthy
from notes_prettier.formatting.commands import COMMANDS, get_command, run_command
from notes_prettier.formatting.dispatcher import DispatcherBusy, FormattingDispatcher
from notes_prettier.formatting.host import TextBuffer
from notes_prettier.logging_setup import ensure_file_logging
from notes_prettier.models import (
    CommandListResponse,
    CommandRequest,
    CommandResponse,
    SchemaResponse,
    SelectionRange,
    SettingPutRequest,
    SettingPutResponse,
    SettingsResponse,
)
from notes_prettier.paths import LOG_DIR, settings_path
from notes_prettier.settings.persistence import (
    JsonFilePersistence,
    MemoryPersistence,
    PersistenceFailure,
    SettingsPersistence,
)
from notes_prettier.settings.schema import UnknownFieldError
from notes_prettier.settings.store import ConfigurationStore

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    store: ConfigurationStore | None = None
    dispatcher: FormattingDispatcher | None = None


RUNTIME = Runtime()


def _persistence_from_env() -> SettingsPersistence:
    if env_truthy("NOTES_PRETTIER_DISABLE_PERSISTENCE"):
        return MemoryPersistence()
    return JsonFilePersistence(settings_path())


def _store() -> ConfigurationStore:
    if RUNTIME.store is None:
        raise HTTPException(status_code=503, detail="settings store is not ready")
    return RUNTIME.store


def _dispatcher() -> FormattingDispatcher:
    if RUNTIME.dispatcher is None:
        raise HTTPException(status_code=503, detail="formatting engine is not ready")
    return RUNTIME.dispatcher


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # RUNTIME is monkeypatched in tests; only fill in what is missing.
    log_file = ensure_file_logging(log_dir=LOG_DIR)
    logger.info("file logging enabled: %s", log_file)

    if RUNTIME.store is None:
        persistence = _persistence_from_env()
        try:
            RUNTIME.store = await ConfigurationStore.open(persistence)
        except PersistenceFailure:
            logger.exception("failed to load persisted settings; starting from defaults")
            RUNTIME.store = ConfigurationStore(persistence=persistence)
    if RUNTIME.dispatcher is None:
        RUNTIME.dispatcher = FormattingDispatcher(build_engine(engine_config_from_env()))

    yield

    try:
        await RUNTIME.store.flush()
    except PersistenceFailure:
        logger.exception("failed to save settings on shutdown")


app = FastAPI(lifespan=_lifespan)


@app.exception_handler(HTTPException)
async def _http_exception_handler(_request: Request, exc: HTTPException):
    return _error(int(exc.status_code), str(exc.detail))


@app.exception_handler(RequestValidationError)
async def _validation_exception_handler(_request: Request, exc: RequestValidationError):
    msg = "bad request"
    errors = exc.errors()
    if errors:
        msg = errors[0].get("msg") or msg
    return _error(400, msg)


@app.exception_handler(Exception)
async def _unhandled_exception_handler(_request: Request, exc: Exception):
    logger.exception("unhandled error", exc_info=exc)
    return _error(500, str(exc))


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.get("/api/v1/settings", response_model=SettingsResponse)
async def get_settings():
    return _settings_to_out(_store().snapshot())


@app.get("/api/v1/settings/schema", response_model=SchemaResponse)
async def get_settings_schema():
    return _schema_to_out(_store().schema)


@app.put("/api/v1/settings/{key}", response_model=SettingPutResponse)
async def put_setting(key: str, body: SettingPutRequest = Body(...)):
    store = _store()
    try:
        ok = store.set(key, body.value)
    except UnknownFieldError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    if not ok:
        # The panel re-renders the value it gets back, which is the unchanged prior one.
        return SettingPutResponse(
            ok=False,
            key=key,
            value=store.get(key),
            error=f"invalid value for {key}: {reprlib.repr(body.value)}",
        )

    persisted = True
    error: str | None = None
    try:
        await store.flush()
    except PersistenceFailure as e:
        persisted = False
        error = str(e)
    return SettingPutResponse(ok=True, key=key, value=store.get(key), persisted=persisted, error=error)


@app.get("/api/v1/commands", response_model=CommandListResponse)
async def list_commands():
    return CommandListResponse(commands=[_command_to_out(cmd) for cmd in COMMANDS.values()])


@app.post("/api/v1/commands/{command_id}", response_model=CommandResponse)
async def invoke_command(command_id: str, body: CommandRequest = Body(...)):
    try:
        cmd = get_command(command_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"unknown command: {command_id}") from e

    store = _store()
    dispatcher = _dispatcher()

    selection = (body.selection.start, body.selection.end) if body.selection is not None else (0, 0)
    try:
        host = TextBuffer(body.text, selection, document_id=body.document_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    try:
        await run_command(cmd.id, host=host, store=store, dispatcher=dispatcher)
    except DispatcherBusy as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except EngineFailure as e:
        raise HTTPException(status_code=422, detail=f"formatting failed: {e}") from e

    start, end = host.selection
    return CommandResponse(command=cmd.id, text=host.get_full_text(), selection=SelectionRange(start=start, end=end))
