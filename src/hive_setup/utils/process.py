"""Subprocess access for steps and health checks.

Every external program the tool drives goes through :class:`CommandRunner`,
so steps can be exercised with a fake runner in tests.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from hive_setup.core.errors import CommandError


@dataclass(slots=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class CommandRunner:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def which(self, name: str) -> str | None:
        return shutil.which(name)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: str | Path | None = None,
        check: bool = True,
        capture: bool = False,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``argv`` to completion.

        Output streams to the terminal unless ``capture`` is set. With
        ``check`` a non-zero exit raises :class:`CommandError`; a missing
        executable always raises it (return code 127). Timeouts propagate
        as ``subprocess.TimeoutExpired``.
        """
        args = [str(part) for part in argv]
        self._logger.info("Running command: %s", " ".join(args))
        try:
            completed = subprocess.run(
                args,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=capture,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise CommandError(args, 127, f"{args[0]} not found") from exc

        result = CommandResult(
            argv=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if check and not result.ok:
            self._logger.warning("Command '%s' exited with %s.", " ".join(args), result.returncode)
            raise CommandError(args, result.returncode, f"{args[0]} exited with status {result.returncode}")
        return result

    def spawn(self, argv: Sequence[str]) -> None:
        """Start a long-running daemon without waiting for it."""
        args = [str(part) for part in argv]
        self._logger.info("Spawning command: %s", " ".join(args))
        try:
            subprocess.Popen(
                args,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except FileNotFoundError as exc:
            raise CommandError(args, 127, f"{args[0]} not found") from exc
