from __future__ import annotations

from dataclasses import dataclass

from notes_prettier.formatting.dispatcher import FormattingDispatcher
from notes_prettier.formatting.host import EditorHost
from notes_prettier.settings.store import ConfigurationStore
from notes_prettier.states import Span


@dataclass(frozen=True)
class Command:
    id: str
    name: str
    span: Span


COMMANDS: dict[str, Command] = {
    cmd.id: cmd
    for cmd in (
        Command(id="format-selection", name="Format Selection", span=Span.SELECTION),
        Command(id="format-page", name="Format Page", span=Span.DOCUMENT),
    )
}


def get_command(command_id: str) -> Command:
    cmd = COMMANDS.get(str(command_id or "").strip())
    if cmd is None:
        raise KeyError(f"unknown command: {command_id}")
    return cmd


async def run_command(
    command_id: str,
    *,
    host: EditorHost,
    store: ConfigurationStore,
    dispatcher: FormattingDispatcher,
) -> Command:
    cmd = get_command(command_id)
    # Settings changed while the engine runs do not affect this request.
    config = store.snapshot()
    await dispatcher.dispatch(host, config, cmd.span)
    return cmd
