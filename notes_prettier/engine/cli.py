from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Mapping, Sequence
from contextlib import suppress
from typing import Any

from notes_prettier.engine.base import EngineFailure

logger = logging.getLogger(__name__)

# Boolean options prettier enables unless told otherwise (`--no-<flag>`).
_ON_BY_DEFAULT = frozenset({"semi", "bracketSpacing"})

_camel_re = re.compile(r"(?<!^)(?=[A-Z])")


def _kebab(name: str) -> str:
    return _camel_re.sub("-", name).lower()


def options_to_cli_args(options: Mapping[str, Any]) -> list[str]:
    args: list[str] = []
    for name, value in options.items():
        flag = _kebab(name)
        if isinstance(value, bool):
            if name in _ON_BY_DEFAULT:
                if not value:
                    args.append(f"--no-{flag}")
            elif value:
                args.append(f"--{flag}")
            continue
        args.extend([f"--{flag}", str(value)])
    return args


class PrettierCliEngine:
    """Pipe text through the prettier CLI (stdin -> stdout)."""

    def __init__(
        self,
        command: Sequence[str] = ("prettier",),
        *,
        parser: str = "markdown",
        timeout_seconds: float = 30.0,
    ) -> None:
        if not command:
            raise ValueError("prettier command is empty")
        self.command = tuple(command)
        self.parser = parser
        self.timeout_seconds = timeout_seconds

    def build_argv(self, options: Mapping[str, Any]) -> list[str]:
        return [*self.command, "--parser", self.parser, *options_to_cli_args(options)]

    async def format(self, text: str, options: Mapping[str, Any]) -> str:
        argv = self.build_argv(options)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EngineFailure(f"failed to start formatter {self.command[0]!r}: {e}") from e

        try:
            out, err = await asyncio.wait_for(proc.communicate(text.encode("utf-8")), timeout=self.timeout_seconds)
        except TimeoutError as e:
            with suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise EngineFailure(f"formatter timed out after {self.timeout_seconds}s") from e

        stderr = err.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            logger.warning("formatter exited with %s: %s", proc.returncode, stderr.strip())
            raise EngineFailure(
                f"formatter exited with code {proc.returncode}: {stderr.strip()}",
                stderr=stderr,
            )
        return out.decode("utf-8", errors="replace")
