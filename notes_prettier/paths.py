from __future__ import annotations

from pathlib import Path

from notes_prettier.env import env_str

WORKDIR = Path(__file__).resolve().parent.parent
DATA_DIR = WORKDIR / "data"
LOG_DIR = DATA_DIR / "logs"


def settings_path() -> Path:
    override = env_str("NOTES_PRETTIER_SETTINGS_PATH")
    if override:
        return Path(override)
    return DATA_DIR / "settings.json"
