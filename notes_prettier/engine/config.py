from __future__ import annotations

import shlex
from dataclasses import dataclass

from notes_prettier.engine.base import FormattingEngine
from notes_prettier.engine.cli import PrettierCliEngine
from notes_prettier.engine.remote import HttpFormattingEngine
from notes_prettier.env import env_choice, env_float, env_str


@dataclass(frozen=True)
class EngineConfig:
    kind: str = "cli"  # cli | http

    # Parser prettier uses; notes are markdown.
    parser: str = "markdown"
    timeout_seconds: float = 30.0

    # cli
    command: tuple[str, ...] = ("prettier",)

    # http
    base_url: str = ""
    api_key: str = ""  # do NOT hardcode in repo


def engine_config_from_env() -> EngineConfig:
    command = shlex.split(env_str("NOTES_PRETTIER_PRETTIER_CMD", "prettier"))
    return EngineConfig(
        kind=env_choice("NOTES_PRETTIER_ENGINE", ("cli", "http"), "cli"),
        timeout_seconds=env_float("NOTES_PRETTIER_ENGINE_TIMEOUT_SECONDS", 30.0, min_value=0.5),
        command=tuple(command) or ("prettier",),
        base_url=env_str("NOTES_PRETTIER_ENGINE_URL"),
        api_key=env_str("NOTES_PRETTIER_ENGINE_API_KEY"),
    )


def build_engine(cfg: EngineConfig) -> FormattingEngine:
    kind = (cfg.kind or "").strip().lower()
    if kind == "http":
        return HttpFormattingEngine(
            cfg.base_url,
            parser=cfg.parser,
            api_key=cfg.api_key,
            timeout_seconds=cfg.timeout_seconds,
        )
    if kind == "cli":
        return PrettierCliEngine(cfg.command, parser=cfg.parser, timeout_seconds=cfg.timeout_seconds)
    raise ValueError(f"unsupported formatting engine: {cfg.kind!r} (expected 'cli' or 'http')")
