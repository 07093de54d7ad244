from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from notes_prettier.settings.persistence import MemoryPersistence, PersistenceFailure, SettingsPersistence
from notes_prettier.settings.schema import (
    PRETTIER_SCHEMA,
    Configuration,
    ConfigurationSchema,
    FieldValue,
    InvalidFieldValue,
)

logger = logging.getLogger(__name__)


class ConfigurationStore:
    """Owns the live Configuration; every write goes through `set()`.

    Mutation is synchronous (validate, then swap the snapshot under a lock).
    Saving is fire-and-forget: at most one save runs at a time and changes made
    meanwhile are written by the same writer afterwards (last write wins).
    """

    def __init__(
        self,
        schema: ConfigurationSchema = PRETTIER_SCHEMA,
        persistence: SettingsPersistence | None = None,
        *,
        on_persist_error: Callable[[PersistenceFailure], Any] | None = None,
    ) -> None:
        self._schema = schema
        self._persistence: SettingsPersistence = persistence if persistence is not None else MemoryPersistence()
        self._on_persist_error = on_persist_error
        self._lock = threading.Lock()
        self._config = schema.defaults()
        self._dirty = False
        # Bumped by every accepted set(); _saved_revision is the newest one on disk.
        self._revision = 0
        self._saved_revision = 0
        self._persist_task: asyncio.Task[None] | None = None
        self.last_persist_error: PersistenceFailure | None = None

    @classmethod
    async def open(
        cls,
        persistence: SettingsPersistence,
        schema: ConfigurationSchema = PRETTIER_SCHEMA,
        *,
        on_persist_error: Callable[[PersistenceFailure], Any] | None = None,
    ) -> ConfigurationStore:
        store = cls(schema, persistence, on_persist_error=on_persist_error)
        store.load(await persistence.load())
        return store

    @property
    def schema(self) -> ConfigurationSchema:
        return self._schema

    @property
    def dirty(self) -> bool:
        with self._lock:
            return self._dirty

    def load(self, persisted_raw: Mapping[str, Any] | None) -> Configuration:
        """Merge persisted values over the schema defaults.

        Persisted values are re-validated: unknown keys are dropped and a value
        that fails validation keeps the default.
        """

        values: dict[str, FieldValue] = self._schema.defaults().as_dict()
        if persisted_raw is not None and not isinstance(persisted_raw, Mapping):
            logger.warning("ignoring persisted settings of type %s", type(persisted_raw).__name__)
            persisted_raw = None

        for key, raw in (persisted_raw or {}).items():
            spec = self._schema.get(key)
            if spec is None:
                logger.warning("dropping unknown persisted setting: %s", key)
                continue
            try:
                values[key] = spec.validate(raw)
            except InvalidFieldValue as e:
                logger.warning("persisted setting %s is invalid (%s); using default %r", key, e.reason, spec.default)

        config = Configuration(self._schema, values)
        with self._lock:
            self._config = config
        return config

    def get(self, key: str) -> FieldValue:
        self._schema.spec(key)
        with self._lock:
            return self._config[key]

    def snapshot(self) -> Configuration:
        with self._lock:
            return self._config

    def set(self, key: str, raw: Any) -> bool:
        """Validate `raw` and store it; return False (and change nothing) if it is invalid.

        Raises UnknownFieldError for keys outside the schema.
        """

        spec = self._schema.spec(key)
        with self._lock:
            try:
                value = spec.validate(raw)
            except InvalidFieldValue as e:
                logger.info("rejected setting change: %s", e)
                return False
            self._config = self._config.replace(key, value)
            self._revision += 1
            self._dirty = True

        self._schedule_persist()
        return True

    def _schedule_persist(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running event loop; settings save deferred until flush()")
            return

        task = self._persist_task
        if task is not None and not task.done():
            return
        self._persist_task = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            with self._lock:
                if not self._dirty:
                    return
                self._dirty = False
                revision = self._revision
                payload = self._config.as_dict()

            try:
                await self._persistence.save(payload)
            except Exception as e:
                self._record_failure(e)
                continue

            with self._lock:
                self._saved_revision = max(self._saved_revision, revision)
                if self._saved_revision == self._revision:
                    self.last_persist_error = None

    def _record_failure(self, exc: Exception) -> None:
        if isinstance(exc, PersistenceFailure):
            failure = exc
        else:
            failure = PersistenceFailure(f"failed to save settings: {exc}")
            failure.__cause__ = exc
        logger.error("settings save failed (in-memory settings kept): %s", failure)

        with self._lock:
            self.last_persist_error = failure

        if self._on_persist_error is not None:
            try:
                self._on_persist_error(failure)
            except Exception:
                logger.exception("on_persist_error callback crashed")

    async def flush(self) -> None:
        """Wait until every change made before this call has been saved.

        Raises PersistenceFailure while the newest successful save is older
        than those changes. Every concurrent caller gets the same failure;
        only a later successful save clears it.
        """

        with self._lock:
            target = self._revision

        while True:
            task = self._persist_task
            if task is not None and not task.done():
                await task
                continue
            if not self.dirty:
                break
            self._persist_task = asyncio.get_running_loop().create_task(self._drain())

        with self._lock:
            if self._saved_revision >= target:
                return
            err = self.last_persist_error
        raise err if err is not None else PersistenceFailure("settings were not saved")
