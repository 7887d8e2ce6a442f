from __future__ import annotations

import logging
import sys
from pathlib import Path

from hive_setup.config.settings import Settings
from hive_setup.core.interfaces import Step
from hive_setup.steps.editor import DoomSyncStep, EmacsDaemonStep
from hive_setup.steps.mcp import McpRegistrationStep
from hive_setup.steps.prerequisites import PrerequisitesStep, select_installer
from hive_setup.steps.repository import CloneStep, DependenciesStep
from hive_setup.steps.services import ChromaStep, OllamaStep
from hive_setup.steps.shell import ShellStep
from hive_setup.utils.http import HttpProbe
from hive_setup.utils.process import CommandRunner


def build_setup_steps(
    settings: Settings,
    *,
    platform: str | None = None,
    commands: CommandRunner | None = None,
    probe: HttpProbe | None = None,
    home: Path | None = None,
    logger: logging.Logger | None = None,
) -> list[Step]:
    """Build the full ordered setup sequence.

    Order matters: the checkout must exist before dependencies are fetched or
    compose services started, and the daemon must run before registration.
    """
    commands = commands or CommandRunner(logger=logger)
    probe = probe or HttpProbe(timeout=settings.probe_timeout_seconds, logger=logger)
    project_dir = settings.hive_mcp_dir
    installer = select_installer(platform or sys.platform, commands=commands, logger=logger)

    return [
        CloneStep(project_dir, repository_url=settings.repository_url, commands=commands, logger=logger),
        ShellStep(project_dir, home=home, logger=logger),
        PrerequisitesStep(installer, commands=commands, logger=logger),
        DependenciesStep(project_dir, commands=commands, logger=logger),
        DoomSyncStep(home=home, commands=commands, logger=logger),
        ChromaStep(
            project_dir,
            heartbeat_url=settings.chroma_heartbeat_url,
            probe=probe,
            commands=commands,
            logger=logger,
        ),
        OllamaStep(
            model=settings.embedding_model,
            tags_url=settings.ollama_tags_url,
            probe=probe,
            commands=commands,
            logger=logger,
        ),
        EmacsDaemonStep(commands=commands, logger=logger),
        McpRegistrationStep(project_dir, server_name=settings.mcp_server_name, commands=commands, logger=logger),
    ]
