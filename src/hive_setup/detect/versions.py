from __future__ import annotations

import re
from dataclasses import dataclass

from hive_setup.core.errors import CommandError
from hive_setup.utils.process import CommandRunner


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: str
    command: str
    version_arg: str
    version_pattern: str
    min_version: str
    fix_hint: str = ""


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name="Emacs",
        command="emacs",
        version_arg="--version",
        version_pattern=r"GNU Emacs (\d+\.\d+)",
        min_version="28.1",
        fix_hint="Install Emacs 28.1+ via package manager or build from source",
    ),
    ToolSpec(
        name="Java",
        command="java",
        version_arg="-version",
        version_pattern=r'version "?(\d+)(?:\.(\d+))?',
        min_version="17",
        fix_hint="Install OpenJDK 17+: sudo apt install openjdk-17-jdk",
    ),
    ToolSpec(
        name="Clojure",
        command="clojure",
        version_arg="--version",
        version_pattern=r"Clojure CLI version (\d+\.\d+\.\d+)",
        min_version="1.11.0",
        fix_hint=(
            "Install Clojure: curl -L -O https://github.com/clojure/brew-install/releases/latest/download/"
            "posix-install.sh && chmod +x posix-install.sh && sudo ./posix-install.sh"
        ),
    ),
    ToolSpec(
        name="Babashka",
        command="bb",
        version_arg="--version",
        version_pattern=r"babashka v?(\d+\.\d+\.\d+)",
        min_version="1.3.0",
        fix_hint="Install Babashka: bash < <(curl -s https://raw.githubusercontent.com/babashka/babashka/master/install)",
    ),
    ToolSpec(
        name="Docker",
        command="docker",
        version_arg="--version",
        version_pattern=r"Docker version (\d+\.\d+\.\d+)",
        min_version="20.0.0",
        fix_hint="Install Docker: https://docs.docker.com/engine/install/",
    ),
    ToolSpec(
        name="Git",
        command="git",
        version_arg="--version",
        version_pattern=r"git version (\d+\.\d+\.\d+)",
        min_version="2.0.0",
        fix_hint="Install Git: sudo apt install git",
    ),
    ToolSpec(
        name="Claude CLI",
        command="claude",
        version_arg="--version",
        version_pattern=r"(\d+\.\d+\.\d+)",
        min_version="0.1.0",
        fix_hint="Install Claude CLI: npm install -g @anthropic-ai/claude-code",
    ),
)


def parse_version(value: str) -> list[int]:
    """Numeric components of a dotted version, keeping only leading digits of each part."""
    parts: list[int] = []
    for part in value.removeprefix("v").split("."):
        match = re.match(r"\d+", part)
        if match:
            parts.append(int(match.group()))
    return parts


def compare_versions(left: str, right: str) -> int:
    left_parts = parse_version(left)
    right_parts = parse_version(right)
    width = max(len(left_parts), len(right_parts))
    left_parts += [0] * (width - len(left_parts))
    right_parts += [0] * (width - len(right_parts))
    if left_parts < right_parts:
        return -1
    if left_parts > right_parts:
        return 1
    return 0


def extract_version(spec: ToolSpec, output: str) -> str | None:
    match = re.search(spec.version_pattern, output)
    if match is None:
        return None
    version = match.group(1)
    # Java may report "17.0.x"; keep major.minor.
    if spec.command == "java" and match.lastindex and match.lastindex >= 2 and match.group(2):
        version = f"{version}.{match.group(2)}"
    return version


def read_tool_version(spec: ToolSpec, commands: CommandRunner) -> str | None:
    """Return the parsed version, or None when the output holds nothing recognizable."""
    try:
        result = commands.run([spec.command, spec.version_arg], check=False, capture=True)
    except CommandError:
        return None
    # Some tools, java included, print their version on stderr.
    return extract_version(spec, result.output)
