from __future__ import annotations

import os
import platform as host_platform
import sys
from pathlib import Path

from hive_setup.core.enums import CheckStatus
from hive_setup.core.errors import CommandError
from hive_setup.core.models import PlatformInfo, ShellInfo
from hive_setup.utils.process import CommandRunner


OS_RELEASE_PATH = Path("/etc/os-release")

DISTRO_PACKAGE_MANAGERS = {
    "ubuntu": "apt",
    "debian": "apt",
    "linuxmint": "apt",
    "pop": "apt",
    "fedora": "dnf",
    "rhel": "dnf",
    "centos": "dnf",
    "arch": "pacman",
    "manjaro": "pacman",
    "endeavouros": "pacman",
    "opensuse": "zypper",
    "opensuse-leap": "zypper",
    "opensuse-tumbleweed": "zypper",
    "alpine": "apk",
}
FALLBACK_PACKAGE_MANAGERS = ("apt", "dnf", "yum", "pacman", "zypper", "apk")

SHELL_CONFIG_CANDIDATES = {
    "bash": (".bashrc", ".bash_profile", ".profile"),
    "zsh": (".zshrc", ".zprofile"),
}


def parse_os_release(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            values[key.strip()] = value.strip().strip('"')
    return values


def detect_platform(
    *,
    os_name: str | None = None,
    commands: CommandRunner | None = None,
    os_release_path: Path = OS_RELEASE_PATH,
) -> PlatformInfo:
    commands = commands or CommandRunner()
    raw_name = os_name or sys.platform
    name = "linux" if raw_name.startswith("linux") else raw_name
    info = PlatformInfo(os=name, arch=host_platform.machine())

    if name == "linux":
        _detect_linux(info, commands, os_release_path)
    elif name == "darwin":
        _detect_macos(info, commands)
    else:
        info.status = CheckStatus.ERROR
        return info

    if info.package_manager and commands.which(info.package_manager) is None:
        info.status = CheckStatus.WARNING
    else:
        info.status = CheckStatus.OK
    return info


def _detect_linux(info: PlatformInfo, commands: CommandRunner, os_release_path: Path) -> None:
    try:
        release = parse_os_release(os_release_path.read_text(encoding="utf-8"))
    except OSError:
        info.distro = "unknown"
        info.package_manager = "unknown"
        return

    info.distro = release.get("ID", "")
    info.version = release.get("VERSION_ID", "")
    info.package_manager = DISTRO_PACKAGE_MANAGERS.get(info.distro) or _package_manager_on_path(commands)


def _detect_macos(info: PlatformInfo, commands: CommandRunner) -> None:
    info.distro = "macOS"
    info.package_manager = "brew"
    try:
        result = commands.run(["sw_vers", "-productVersion"], check=False, capture=True)
    except CommandError:
        return
    if result.ok:
        info.version = result.stdout.strip()


def _package_manager_on_path(commands: CommandRunner) -> str:
    for manager in FALLBACK_PACKAGE_MANAGERS:
        if commands.which(manager) is not None:
            return manager
    return "unknown"


def detect_shell(*, commands: CommandRunner | None = None, environ: dict[str, str] | None = None) -> ShellInfo:
    commands = commands or CommandRunner()
    env = os.environ if environ is None else environ
    info = ShellInfo(name=Path(env.get("SHELL") or "/bin/bash").name)

    if info.name not in SHELL_CONFIG_CANDIDATES:
        info.status = CheckStatus.WARNING
        return info

    try:
        result = commands.run([info.name, "--version"], check=False, capture=True)
    except CommandError:
        result = None
    if result is not None and result.ok and result.stdout:
        info.version = result.stdout.splitlines()[0].strip()

    info.config_file = _shell_config_file(info.name, env.get("HOME", ""))
    info.status = CheckStatus.OK if info.config_file else CheckStatus.WARNING
    return info


def _shell_config_file(shell: str, home: str) -> str:
    if not home:
        return ""
    candidates = [Path(home) / name for name in SHELL_CONFIG_CANDIDATES.get(shell, ())]
    for candidate in candidates:
        if candidate.exists():
            return str(candidate)
    # A config file that does not exist yet is still the one setup will target.
    return str(candidates[0]) if candidates else ""
