from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from hive_setup.utils.process import CommandRunner


class BaseStep(ABC):
    """Common plumbing for concrete steps.

    Subclasses implement ``is_done`` and ``run``. Setting ``always_run`` makes
    ``check`` report "not done" unconditionally, for actions cheap enough to
    repeat on every setup.
    """

    name: str = ""
    always_run: bool = False

    def __init__(self, *, commands: CommandRunner | None = None, logger: logging.Logger | None = None) -> None:
        self._commands = commands or CommandRunner()
        self._logger = logger or logging.getLogger(__name__)

    def check(self) -> bool:
        if self.always_run:
            return False
        return self.is_done()

    def is_done(self) -> bool:
        return False

    @abstractmethod
    def run(self) -> None:
        ...

    def rollback(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ProjectStep(BaseStep):
    """Step operating inside the hive-mcp checkout."""

    def __init__(
        self,
        project_dir: str | Path,
        *,
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(commands=commands, logger=logger)
        self.project_dir = Path(project_dir).expanduser()
