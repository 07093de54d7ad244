from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from notes_prettier.env import env_str, env_truthy

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_MARKER = "_notes_prettier_file_log"


def level_from_env(default: int = logging.INFO) -> int:
    """`NOTES_PRETTIER_LOG_LEVEL` as a logging level; unknown names give `default`."""

    name = env_str("NOTES_PRETTIER_LOG_LEVEL").upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def _attached_log_file(root: logging.Logger, log_file: Path) -> Path | None:
    for h in root.handlers:
        base = getattr(h, "baseFilename", None)
        if getattr(h, _MARKER, False):
            return Path(str(base)).resolve() if base else log_file
        if base and Path(str(base)).resolve() == log_file:
            return log_file
    return None


def _rotating_handler(log_file: Path, level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
    setattr(handler, _MARKER, True)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    return handler


def ensure_file_logging(*, log_dir: Path, filename: str = "notes-prettier.log") -> Path:
    """Attach a rotating file handler to the root logger once per process.

    Runs alongside uvicorn's own handlers. Settings changes, rejected values and
    engine failures all end up in this file. `NOTES_PRETTIER_DISABLE_FILE_LOG`
    skips it (tests set it).
    """

    log_file = log_dir / filename
    if env_truthy("NOTES_PRETTIER_DISABLE_FILE_LOG"):
        return log_file

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_file.resolve()

    root = logging.getLogger()
    attached = _attached_log_file(root, log_file)
    if attached is not None:
        return attached

    level = level_from_env()
    root.addHandler(_rotating_handler(log_file, level))
    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)
    return log_file
