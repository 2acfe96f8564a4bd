"""Blocking wrapper around external command-line tools.

Every `git`, `gh` and delegated setup invocation goes through `run_command` so
callers receive a `CommandResult` instead of an exception. No timeout is applied:
a hung tool stalls the run until the operator interrupts it.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Conventional shell status for "command not found".
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a single external process."""

    args: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def message(self) -> str:
        """Best human-readable explanation of the outcome."""

        text = (self.stderr or self.stdout).strip()
        if text:
            return text
        return f"exit code {self.returncode}"


class CommandRunner(Protocol):
    def __call__(self, args: Sequence[str], *, cwd: Path | None = None) -> CommandResult: ...


def run_command(args: Sequence[str], *, cwd: Path | None = None) -> CommandResult:
    """Run `args` to completion and capture its output.

    The executable is resolved through PATH first so wrapper scripts such as
    `npm.cmd` are found on Windows.
    """

    argv = tuple(str(a) for a in args)
    if not argv:
        raise ValueError("args must not be empty")

    executable = shutil.which(argv[0])
    if executable is None:
        logger.debug("Executable not found", extra={"command": argv[0]})
        return CommandResult(
            args=argv,
            returncode=COMMAND_NOT_FOUND,
            stderr=f"{argv[0]}: command not found",
        )

    logger.debug("Running command", extra={"command": " ".join(argv)})
    try:
        completed = subprocess.run(
            [executable, *argv[1:]],
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as e:
        return CommandResult(args=argv, returncode=COMMAND_NOT_FOUND, stderr=str(e))

    return CommandResult(
        args=argv,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
