from __future__ import annotations

import logging
import shutil
from pathlib import Path

from hive_setup.config.settings import DEFAULT_REPOSITORY_URL
from hive_setup.steps.base import ProjectStep
from hive_setup.utils.process import CommandRunner


class CloneStep(ProjectStep):
    name = "Clone hive-mcp repository"

    def __init__(
        self,
        project_dir: str | Path,
        *,
        repository_url: str = DEFAULT_REPOSITORY_URL,
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(project_dir, commands=commands, logger=logger)
        self.repository_url = repository_url
        self._created_dir = False

    def is_done(self) -> bool:
        return (self.project_dir / ".git").exists()

    def run(self) -> None:
        self._created_dir = not self.project_dir.exists()
        self.project_dir.parent.mkdir(parents=True, exist_ok=True)
        self._commands.run(["git", "clone", "--recursive", self.repository_url, self.project_dir])

    def rollback(self) -> None:
        # Only a checkout created by run() is removed.
        if self._created_dir and self.project_dir.exists():
            self._logger.info("Removing cloned directory %s.", self.project_dir)
            shutil.rmtree(self.project_dir)


class DependenciesStep(ProjectStep):
    name = "Download Clojure dependencies"
    # .cpcache is not a reliable marker, so resolve every time.
    always_run = True

    def run(self) -> None:
        self._commands.run(["clojure", "-P"], cwd=self.project_dir)
