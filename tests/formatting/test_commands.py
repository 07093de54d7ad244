from __future__ import annotations

import asyncio

import pytest

from notes_prettier.formatting.commands import COMMANDS, get_command, run_command
from notes_prettier.formatting.dispatcher import FormattingDispatcher
from notes_prettier.formatting.host import TextBuffer
from notes_prettier.settings.store import ConfigurationStore
from notes_prettier.states import Span
from tests.support.fakes import FakeEngine


def test_command_registry_matches_editor_commands() -> None:
    assert set(COMMANDS) == {"format-selection", "format-page"}
    assert get_command("format-selection").name == "Format Selection"
    assert get_command("format-page").span == Span.DOCUMENT
    with pytest.raises(KeyError):
        get_command("format-everything")


def test_run_command_uses_store_snapshot() -> None:
    engine = FakeEngine(lambda s: s.upper())
    store = ConfigurationStore()
    store.set("printWidth", "60")
    host = TextBuffer("one two", (4, 7))

    cmd = asyncio.run(
        run_command("format-selection", host=host, store=store, dispatcher=FormattingDispatcher(engine))
    )

    assert cmd.id == "format-selection"
    assert host.get_full_text() == "one TWO"
    assert engine.calls[0][1]["printWidth"] == 60
    # Dispatching never writes settings.
    assert store.dirty is True
    assert store.snapshot()["printWidth"] == 60


def test_run_format_page() -> None:
    engine = FakeEngine(lambda s: "page\n")
    host = TextBuffer("anything")
    asyncio.run(
        run_command("format-page", host=host, store=ConfigurationStore(), dispatcher=FormattingDispatcher(engine))
    )
    assert host.get_full_text() == "page\n"
