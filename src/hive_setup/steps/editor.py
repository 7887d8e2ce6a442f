from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from hive_setup.core.errors import CommandError
from hive_setup.steps.base import BaseStep
from hive_setup.utils.process import CommandRunner


DOOM_RELATIVE_PATHS = (
    Path(".emacs.d") / "bin" / "doom",
    Path(".config") / "emacs" / "bin" / "doom",
)


def find_doom(home: Path) -> Path | None:
    for relative in DOOM_RELATIVE_PATHS:
        candidate = home / relative
        if candidate.exists():
            return candidate
    return None


class DoomSyncStep(BaseStep):
    name = "Sync Doom Emacs packages"
    always_run = True

    def __init__(
        self,
        *,
        home: Path | None = None,
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(commands=commands, logger=logger)
        self._home = home

    def run(self) -> None:
        doom = find_doom(self._home or Path.home())
        if doom is None:
            raise FileNotFoundError("doom command not found - is Doom Emacs installed?")
        self._commands.run([doom, "sync"])


class EmacsDaemonStep(BaseStep):
    name = "Start Emacs daemon"

    def __init__(
        self,
        *,
        startup_wait_seconds: float = 2.0,
        sleep_fn: Callable[[float], None] = time.sleep,
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(commands=commands, logger=logger)
        self._startup_wait_seconds = startup_wait_seconds
        self._sleep = sleep_fn
        self._started = False

    def is_done(self) -> bool:
        try:
            result = self._commands.run(["emacsclient", "-e", "(emacs-pid)"], check=False, capture=True)
        except CommandError:
            return False
        return result.ok

    def run(self) -> None:
        self._commands.run(["emacs", "--daemon"])
        self._started = True
        self._sleep(self._startup_wait_seconds)
        if not self.is_done():
            raise RuntimeError("Emacs daemon started but not responding")

    def rollback(self) -> None:
        # A daemon that was already running before setup is left alone.
        if not self._started:
            return
        self._started = False
        try:
            self._commands.run(["emacsclient", "-e", "(kill-emacs)"], check=False, capture=True)
        except CommandError:
            self._logger.info("emacsclient unavailable, no daemon to stop.")
