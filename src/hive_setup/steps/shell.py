from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from hive_setup.steps.base import BaseStep


SHELL_MARKER = "# hive-mcp-cli managed"
SHELL_RC_NAMES = (".bashrc", ".zshrc")


def existing_shell_configs(home: Path) -> list[Path]:
    return [home / name for name in SHELL_RC_NAMES if (home / name).is_file()]


def render_managed_block(env_vars: dict[str, str]) -> str:
    lines = ["", f"{SHELL_MARKER} - START"]
    lines.extend(f'export {key}="{value}"' for key, value in env_vars.items())
    lines.extend([f"{SHELL_MARKER} - END", ""])
    return "\n".join(lines)


def strip_managed_block(text: str) -> str:
    kept: list[str] = []
    in_block = False
    for line in text.splitlines():
        if f"{SHELL_MARKER} - START" in line:
            in_block = True
            continue
        if f"{SHELL_MARKER} - END" in line:
            in_block = False
            continue
        if not in_block:
            kept.append(line)

    while kept and kept[-1] == "":
        kept.pop()
    return "\n".join(kept) + "\n"


class ShellStep(BaseStep):
    """Export HIVE_MCP_DIR and BB_MCP_DIR from every existing shell rc file."""

    name = "Configure shell environment"

    def __init__(self, project_dir: str | Path, *, home: Path | None = None, logger: logging.Logger | None = None) -> None:
        super().__init__(logger=logger)
        self.project_dir = Path(project_dir).expanduser()
        self._home = home
        self._modified: list[Path] = []

    @property
    def home(self) -> Path:
        return self._home or Path.home()

    def env_vars(self) -> dict[str, str]:
        directory = str(self.project_dir)
        return {"HIVE_MCP_DIR": directory, "BB_MCP_DIR": directory}

    def is_done(self) -> bool:
        return any(_contains_marker(path) for path in existing_shell_configs(self.home))

    def run(self) -> None:
        configs = existing_shell_configs(self.home)
        if not configs:
            raise FileNotFoundError("no shell config found (.bashrc or .zshrc)")

        block = render_managed_block(self.env_vars())
        for path in configs:
            with path.open("a", encoding="utf-8") as handle:
                handle.write(block)
            self._modified.append(path)
            self._logger.info("Appended managed environment block to %s.", path)

    def rollback(self) -> None:
        _rewrite(self._modified)
        self._modified = []


def _contains_marker(path: Path) -> bool:
    try:
        return SHELL_MARKER in path.read_text(encoding="utf-8")
    except OSError:
        return False


def _rewrite(paths: Iterable[Path]) -> None:
    for path in paths:
        text = path.read_text(encoding="utf-8")
        if SHELL_MARKER in text:
            path.write_text(strip_managed_block(text), encoding="utf-8")
