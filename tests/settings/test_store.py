from __future__ import annotations

import asyncio

import pytest

from notes_prettier.settings.persistence import MemoryPersistence, PersistenceFailure
from notes_prettier.settings.schema import PRETTIER_SCHEMA, UnknownFieldError
from notes_prettier.settings.store import ConfigurationStore
from tests.support.fakes import RecordingPersistence


def test_fresh_store_loads_full_defaults() -> None:
    store = ConfigurationStore()
    cfg = store.load(None)
    assert cfg == PRETTIER_SCHEMA.defaults()
    assert store.snapshot()["printWidth"] == 80
    assert store.snapshot()["useTabs"] is False
    assert store.snapshot()["trailingComma"] == "all"


def test_load_overlays_persisted_values() -> None:
    store = ConfigurationStore()
    cfg = store.load({"printWidth": 100, "useTabs": True, "proseWrap": "always"})
    assert cfg["printWidth"] == 100
    assert cfg["useTabs"] is True
    assert cfg["proseWrap"] == "always"
    assert cfg["semi"] is True


def test_load_revalidates_and_drops_foreign_data() -> None:
    store = ConfigurationStore()
    cfg = store.load(
        {
            "printWidth": "wide",
            "trailingComma": "sometimes",
            "useTabs": "yes",
            "legacyOption": 1,
        }
    )
    assert cfg["printWidth"] == 80
    assert cfg["trailingComma"] == "all"
    assert cfg["useTabs"] is False
    assert "legacyOption" not in cfg


def test_set_scenario_blank_and_invalid() -> None:
    store = ConfigurationStore()
    store.load(None)

    assert store.set("printWidth", "120") is True
    assert store.snapshot()["printWidth"] == 120

    assert store.set("printWidth", "  ") is True
    assert store.snapshot()["printWidth"] == 80

    assert store.set("printWidth", "120") is True
    assert store.set("printWidth", "twelve") is False
    assert store.snapshot()["printWidth"] == 120


def test_set_unknown_key_raises() -> None:
    store = ConfigurationStore()
    with pytest.raises(UnknownFieldError):
        store.set("nope", "1")


def test_snapshot_is_not_affected_by_later_sets() -> None:
    store = ConfigurationStore()
    before = store.snapshot()
    store.set("tabWidth", "4")
    assert before["tabWidth"] == 2
    assert store.snapshot()["tabWidth"] == 4


def test_set_persists_whole_configuration() -> None:
    async def scenario() -> RecordingPersistence:
        persistence = RecordingPersistence()
        store = await ConfigurationStore.open(persistence)
        assert store.set("useTabs", True) is True
        await store.flush()
        return persistence

    persistence = asyncio.run(scenario())
    assert len(persistence.saved) == 1
    saved = persistence.saved[0]
    assert saved["useTabs"] is True
    assert set(saved) == set(PRETTIER_SCHEMA.keys())


def test_invalid_set_does_not_persist() -> None:
    async def scenario() -> RecordingPersistence:
        persistence = RecordingPersistence()
        store = await ConfigurationStore.open(persistence)
        assert store.set("printWidth", "abc") is False
        await store.flush()
        return persistence

    assert asyncio.run(scenario()).saved == []


def test_saves_are_coalesced_last_write_wins() -> None:
    async def scenario() -> tuple[RecordingPersistence, ConfigurationStore]:
        persistence = RecordingPersistence()
        persistence.gate = asyncio.Event()
        store = await ConfigurationStore.open(persistence)

        store.set("printWidth", "90")
        await asyncio.sleep(0)  # first save is now waiting on the gate
        store.set("printWidth", "100")
        store.set("printWidth", "110")
        assert store.snapshot()["printWidth"] == 110

        persistence.gate.set()
        await store.flush()
        return persistence, store

    persistence, store = asyncio.run(scenario())
    assert [s["printWidth"] for s in persistence.saved] == [90, 110]
    assert store.dirty is False


def test_persistence_failure_keeps_in_memory_value() -> None:
    reported: list[PersistenceFailure] = []

    async def scenario() -> ConfigurationStore:
        store = await ConfigurationStore.open(RecordingPersistence(fail=True), on_persist_error=reported.append)
        assert store.set("printWidth", "100") is True
        with pytest.raises(PersistenceFailure, match="disk full"):
            await store.flush()
        # Still unsaved, so a second flush reports it too.
        with pytest.raises(PersistenceFailure, match="disk full"):
            await store.flush()
        return store

    store = asyncio.run(scenario())
    assert store.snapshot()["printWidth"] == 100
    assert store.last_persist_error is not None
    assert len(reported) == 1


def test_successful_save_clears_persist_error() -> None:
    async def scenario() -> tuple[RecordingPersistence, ConfigurationStore]:
        persistence = RecordingPersistence(fail=True)
        store = await ConfigurationStore.open(persistence)
        store.set("printWidth", "100")
        with pytest.raises(PersistenceFailure):
            await store.flush()

        persistence.fail = False
        store.set("tabWidth", "4")
        await store.flush()
        return persistence, store

    persistence, store = asyncio.run(scenario())
    assert store.last_persist_error is None
    assert persistence.saved[-1]["printWidth"] == 100
    assert persistence.saved[-1]["tabWidth"] == 4


def test_concurrent_flushes_all_see_failed_save() -> None:
    async def scenario() -> list[BaseException | None]:
        persistence = RecordingPersistence(fail=True)
        persistence.gate = asyncio.Event()
        store = await ConfigurationStore.open(persistence)

        store.set("printWidth", "100")
        first = asyncio.create_task(store.flush())
        await asyncio.sleep(0)
        store.set("tabWidth", "4")
        second = asyncio.create_task(store.flush())
        await asyncio.sleep(0)

        persistence.gate.set()
        results = await asyncio.gather(first, second, return_exceptions=True)
        return [r if isinstance(r, BaseException) else None for r in results]

    results = asyncio.run(scenario())
    assert all(isinstance(r, PersistenceFailure) for r in results)


def test_set_rejects_digit_strings_int_cannot_convert() -> None:
    store = ConfigurationStore()
    store.set("printWidth", "120")
    assert store.set("printWidth", "9" * 5000) is False
    assert store.snapshot()["printWidth"] == 120


def test_load_replaces_unconvertible_persisted_integer_with_default() -> None:
    store = ConfigurationStore()
    cfg = store.load({"printWidth": "9" * 5000, "tabWidth": 4})
    assert cfg["printWidth"] == 80
    assert cfg["tabWidth"] == 4


def test_set_without_event_loop_defers_save_until_flush() -> None:
    persistence = MemoryPersistence()
    store = ConfigurationStore(persistence=persistence)
    assert store.set("semi", False) is True
    assert store.dirty is True
    assert persistence.saves == 0

    asyncio.run(store.flush())
    assert persistence.saves == 1
    assert persistence.data is not None and persistence.data["semi"] is False


def test_round_trip_through_persistence() -> None:
    async def scenario() -> tuple[ConfigurationStore, ConfigurationStore]:
        persistence = MemoryPersistence()
        store = await ConfigurationStore.open(persistence)
        store.set("printWidth", "120")
        store.set("trailingComma", "es5")
        store.set("useTabs", True)
        store.set("semi", False)
        await store.flush()
        reloaded = await ConfigurationStore.open(persistence)
        return store, reloaded

    store, reloaded = asyncio.run(scenario())
    assert reloaded.snapshot() == store.snapshot()
