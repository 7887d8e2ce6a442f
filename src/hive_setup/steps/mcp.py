from __future__ import annotations

import logging
from pathlib import Path

from hive_setup.core.errors import CommandError
from hive_setup.steps.base import ProjectStep
from hive_setup.utils.process import CommandRunner


MCP_SERVER_ENTRYPOINT = "bb.hive-mcp.server/-main"


def registered_servers(listing: str) -> set[str]:
    """Server names from `claude mcp list` output, one `name: command` entry per line."""
    names: set[str] = set()
    for line in listing.splitlines():
        name, sep, _ = line.partition(":")
        if sep and name.strip():
            names.add(name.strip())
    return names


class McpRegistrationStep(ProjectStep):
    name = "Register MCP server with Claude CLI"

    def __init__(
        self,
        project_dir: str | Path,
        *,
        server_name: str = "emacs",
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(project_dir, commands=commands, logger=logger)
        self.server_name = server_name
        self._registered = False

    def registration_command(self) -> list[str]:
        return [
            "claude",
            "mcp",
            "add",
            self.server_name,
            "--",
            "bb",
            "--prn",
            "-cp",
            str(self.project_dir / "bb.edn"),
            "-m",
            MCP_SERVER_ENTRYPOINT,
        ]

    def is_done(self) -> bool:
        try:
            result = self._commands.run(["claude", "mcp", "list"], check=False, capture=True)
        except CommandError:
            return False
        # The CLI may be installed but unconfigured; treat that as not registered.
        return result.ok and self.server_name in registered_servers(result.stdout)

    def run(self) -> None:
        if self._commands.which("claude") is None:
            raise FileNotFoundError("claude CLI not found - please install from https://github.com/anthropics/claude-code")
        try:
            self._commands.run(self.registration_command())
        except CommandError as exc:
            raise RuntimeError(f"failed to register MCP server: {exc}") from exc
        self._registered = True

    def rollback(self) -> None:
        if not self._registered:
            return
        self._registered = False
        self._commands.run(["claude", "mcp", "remove", self.server_name])
