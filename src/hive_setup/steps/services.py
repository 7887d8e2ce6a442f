from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from hive_setup.core.errors import CommandError
from hive_setup.steps.base import BaseStep, ProjectStep
from hive_setup.utils.http import HttpProbe
from hive_setup.utils.process import CommandRunner


class ChromaStep(ProjectStep):
    """Bring up the Chroma container from the hive-mcp compose file."""

    name = "Start Docker services (Chroma)"

    def __init__(
        self,
        project_dir: str | Path,
        *,
        heartbeat_url: str = "http://localhost:8000/api/v2/heartbeat",
        probe: HttpProbe | None = None,
        ready_attempts: int = 15,
        ready_interval_seconds: float = 2.0,
        sleep_fn: Callable[[float], None] = time.sleep,
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(project_dir, commands=commands, logger=logger)
        self.heartbeat_url = heartbeat_url
        self._probe = probe or HttpProbe()
        self._ready_attempts = ready_attempts
        self._ready_interval_seconds = ready_interval_seconds
        self._sleep = sleep_fn
        self._started = False

    def is_done(self) -> bool:
        return self._probe.is_healthy(self.heartbeat_url)

    def run(self) -> None:
        try:
            self._commands.run(["docker", "info"], capture=True)
        except CommandError as exc:
            raise RuntimeError(f"docker is not running: {exc}") from exc

        self._commands.run(["docker", "compose", "up", "-d", "chroma"], cwd=self.project_dir)
        self._started = True

        for _ in range(self._ready_attempts):
            if self._probe.is_healthy(self.heartbeat_url):
                return
            self._sleep(self._ready_interval_seconds)

        waited = int(self._ready_attempts * self._ready_interval_seconds)
        raise TimeoutError(f"Chroma failed to start within {waited} seconds")

    def rollback(self) -> None:
        if not self._started:
            return
        self._started = False
        self._commands.run(["docker", "compose", "down"], cwd=self.project_dir)


class OllamaStep(BaseStep):
    def __init__(
        self,
        *,
        model: str = "nomic-embed-text",
        tags_url: str = "http://localhost:11434/api/tags",
        probe: HttpProbe | None = None,
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(commands=commands, logger=logger)
        self.model = model
        self.tags_url = tags_url
        self.name = f"Setup Ollama with {model} model"
        self._probe = probe or HttpProbe()

    def is_done(self) -> bool:
        # TODO: inspect the /api/tags payload for the model instead of only checking liveness.
        return self._probe.is_healthy(self.tags_url)

    def run(self) -> None:
        if self._commands.which("ollama") is None:
            raise FileNotFoundError("ollama not installed - please install from https://ollama.ai")
        try:
            self._commands.run(["ollama", "pull", self.model])
        except CommandError as exc:
            raise RuntimeError(f"failed to pull {self.model}: {exc}") from exc

    # Pulled models are kept on rollback.
