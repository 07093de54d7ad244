from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path

import pytest

# Ensure the repo root (containing `notes_prettier/`) is importable when pytest
# picks `tests/` as the rootdir (e.g., single-file runs).
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))


def _env_truthy(name: str) -> bool:
    v = str(os.getenv(name, "")).strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def pytest_addoption(parser):  # noqa: ANN001
    parser.addoption(
        "--run-prettier-tests",
        action="store_true",
        default=False,
        help="Allow tests that run a real prettier executable.",
    )


def pytest_configure(config):  # noqa: ANN001
    config.addinivalue_line(
        "markers",
        "prettier_integration: tests that run the real prettier CLI (requires NOTES_PRETTIER_RUN_PRETTIER_TESTS=true or --run-prettier-tests)",
    )


def pytest_collection_modifyitems(config, items):  # noqa: ANN001
    run_prettier_tests = bool(config.getoption("--run-prettier-tests")) or _env_truthy(
        "NOTES_PRETTIER_RUN_PRETTIER_TESTS"
    )

    skip_not_enabled = (
        "prettier integration tests are disabled; set NOTES_PRETTIER_RUN_PRETTIER_TESTS=true or pass --run-prettier-tests"
    )
    skip_missing = "prettier executable not found on PATH"

    for item in items:
        if item.get_closest_marker("prettier_integration") is None:
            continue

        if not run_prettier_tests:
            item.add_marker(pytest.mark.skip(reason=skip_not_enabled))
            continue

        if shutil.which("prettier") is None:
            item.add_marker(pytest.mark.skip(reason=skip_missing))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # Never touch the real data dir or log file from tests.
    monkeypatch.setenv("NOTES_PRETTIER_SETTINGS_PATH", str(tmp_path / "settings.json"))
    monkeypatch.setenv("NOTES_PRETTIER_DISABLE_FILE_LOG", "1")
