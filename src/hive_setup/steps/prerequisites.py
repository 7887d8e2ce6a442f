from __future__ import annotations

import logging
from typing import Protocol

from hive_setup.core.errors import CommandError, UnsupportedPlatformError
from hive_setup.steps.base import BaseStep
from hive_setup.utils.process import CommandRunner


REQUIRED_BINARIES = ("git", "java", "clojure", "bb", "docker", "emacs")

HOMEBREW_FORMULAE = (
    "git",
    "openjdk@17",
    "clojure/tools/clojure",
    "borkdude/brew/babashka",
    "docker",
    "emacs-plus@29",
)
APT_PACKAGES = ("git", "openjdk-17-jdk", "docker.io", "emacs")

CLOJURE_INSTALL_SCRIPT = """
curl -L -O https://github.com/clojure/brew-install/releases/latest/download/linux-install.sh
chmod +x linux-install.sh
sudo ./linux-install.sh
rm linux-install.sh
"""
BABASHKA_INSTALL_SCRIPT = (
    "curl -sLO https://raw.githubusercontent.com/babashka/babashka/master/install"
    " && chmod +x install && sudo ./install && rm install"
)


class PrerequisiteInstaller(Protocol):
    platform: str

    def install(self) -> None:
        ...


class HomebrewInstaller:
    platform = "darwin"

    def __init__(self, commands: CommandRunner, logger: logging.Logger | None = None) -> None:
        self._commands = commands
        self._logger = logger or logging.getLogger(__name__)

    def install(self) -> None:
        if self._commands.which("brew") is None:
            raise RuntimeError("Homebrew not found - please install from https://brew.sh")

        for formula in HOMEBREW_FORMULAE:
            # A formula may already be present from another tap; keep going.
            result = self._commands.run(["brew", "install", formula], check=False)
            if not result.ok:
                self._logger.warning("brew install %s exited with %s.", formula, result.returncode)


class AptInstaller:
    platform = "linux"

    def __init__(self, commands: CommandRunner, logger: logging.Logger | None = None) -> None:
        self._commands = commands
        self._logger = logger or logging.getLogger(__name__)

    def install(self) -> None:
        if self._commands.which("apt") is None:
            raise RuntimeError("apt not found - this step requires Debian/Ubuntu")

        try:
            self._commands.run(["sudo", "apt", "install", "-y", *APT_PACKAGES])
        except CommandError as exc:
            raise RuntimeError(f"apt install failed: {exc}") from exc

        if self._commands.which("clojure") is None:
            self._commands.run(["bash", "-c", CLOJURE_INSTALL_SCRIPT])
        if self._commands.which("bb") is None:
            self._commands.run(["bash", "-c", BABASHKA_INSTALL_SCRIPT])


def select_installer(
    platform: str,
    *,
    commands: CommandRunner | None = None,
    logger: logging.Logger | None = None,
) -> PrerequisiteInstaller:
    """Pick the installer strategy for ``platform`` (``sys.platform`` style names)."""
    runner = commands or CommandRunner()
    normalized = platform.strip().lower()
    if normalized == "darwin":
        return HomebrewInstaller(runner, logger=logger)
    if normalized.startswith("linux"):
        return AptInstaller(runner, logger=logger)
    raise UnsupportedPlatformError(platform)


class PrerequisitesStep(BaseStep):
    name = "Install system prerequisites"

    def __init__(
        self,
        installer: PrerequisiteInstaller,
        *,
        commands: CommandRunner | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(commands=commands, logger=logger)
        self.installer = installer

    def missing_binaries(self) -> list[str]:
        return [binary for binary in REQUIRED_BINARIES if self._commands.which(binary) is None]

    def is_done(self) -> bool:
        return not self.missing_binaries()

    def run(self) -> None:
        self._logger.info("Installing prerequisites for %s; missing: %s", self.installer.platform, self.missing_binaries())
        self.installer.install()

    # System packages are never uninstalled.
