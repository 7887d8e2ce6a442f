from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FakeCommandRunner, FakeHttpProbe, missing
from hive_setup.config.settings import Settings
from hive_setup.core.errors import CommandError, UnsupportedPlatformError
from hive_setup.steps.editor import DoomSyncStep, EmacsDaemonStep, find_doom
from hive_setup.steps.mcp import McpRegistrationStep, registered_servers
from hive_setup.steps.prerequisites import (
    AptInstaller,
    HomebrewInstaller,
    PrerequisitesStep,
    REQUIRED_BINARIES,
    select_installer,
)
from hive_setup.steps.registry import build_setup_steps
from hive_setup.steps.repository import CloneStep, DependenciesStep
from hive_setup.steps.services import ChromaStep, OllamaStep
from hive_setup.steps.shell import SHELL_MARKER, ShellStep, strip_managed_block


HEARTBEAT = "http://localhost:8000/api/v2/heartbeat"
TAGS = "http://localhost:11434/api/tags"


def test_clone_step_checks_for_git_dir_and_clones(tmp_path: Path) -> None:
    project = tmp_path / "src" / "hive-mcp"
    commands = FakeCommandRunner()
    step = CloneStep(project, repository_url="https://example.com/hive.git", commands=commands)

    assert step.check() is False
    step.run()

    assert project.parent.is_dir()
    assert commands.joined_calls() == [f"git clone --recursive https://example.com/hive.git {project}"]

    (project / ".git").mkdir(parents=True)
    assert step.check() is True


def test_clone_rollback_removes_checkout_it_created(tmp_path: Path) -> None:
    project = tmp_path / "hive-mcp"
    step = CloneStep(project, commands=FakeCommandRunner())

    step.run()
    (project / ".git").mkdir(parents=True)
    step.rollback()

    assert not project.exists()
    # Safe to call again once nothing is left.
    step.rollback()


def test_clone_rollback_keeps_existing_checkout(tmp_path: Path) -> None:
    project = tmp_path / "hive-mcp"
    (project / ".git").mkdir(parents=True)
    (project / "notes.txt").write_text("local work", encoding="utf-8")
    step = CloneStep(project, commands=FakeCommandRunner())

    assert step.check() is True
    step.rollback()

    assert (project / "notes.txt").read_text(encoding="utf-8") == "local work"


def test_dependencies_step_always_runs_in_project_dir(tmp_path: Path) -> None:
    commands = FakeCommandRunner()
    step = DependenciesStep(tmp_path, commands=commands)

    assert step.check() is False
    step.run()

    assert commands.calls == [["clojure", "-P"]]
    assert commands.cwds == [tmp_path]


def test_shell_step_appends_block_to_existing_rc_files(tmp_path: Path) -> None:
    bashrc = tmp_path / ".bashrc"
    bashrc.write_text("export PATH=/usr/bin\n", encoding="utf-8")
    step = ShellStep("/opt/hive-mcp", home=tmp_path)

    assert step.check() is False
    step.run()

    text = bashrc.read_text(encoding="utf-8")
    assert f"{SHELL_MARKER} - START" in text
    assert 'export HIVE_MCP_DIR="/opt/hive-mcp"' in text
    assert 'export BB_MCP_DIR="/opt/hive-mcp"' in text
    assert not (tmp_path / ".zshrc").exists()
    assert step.check() is True


def test_shell_step_fails_without_rc_files(tmp_path: Path) -> None:
    step = ShellStep("/opt/hive-mcp", home=tmp_path)

    with pytest.raises(FileNotFoundError):
        step.run()


def test_shell_rollback_restores_original_content(tmp_path: Path) -> None:
    zshrc = tmp_path / ".zshrc"
    zshrc.write_text("alias ll='ls -l'\n", encoding="utf-8")
    step = ShellStep(tmp_path / "hive-mcp", home=tmp_path)

    step.run()
    step.rollback()

    assert zshrc.read_text(encoding="utf-8") == "alias ll='ls -l'\n"
    assert step.check() is False


def test_strip_managed_block_keeps_surrounding_lines() -> None:
    text = "\n".join(
        [
            "before",
            f"{SHELL_MARKER} - START",
            'export HIVE_MCP_DIR="/x"',
            f"{SHELL_MARKER} - END",
            "after",
        ]
    )
    assert strip_managed_block(text) == "before\nafter\n"


def test_select_installer_by_platform() -> None:
    commands = FakeCommandRunner()

    assert isinstance(select_installer("darwin", commands=commands), HomebrewInstaller)
    assert isinstance(select_installer("linux", commands=commands), AptInstaller)
    with pytest.raises(UnsupportedPlatformError) as excinfo:
        select_installer("win32", commands=commands)
    assert excinfo.value.code == "UNSUPPORTED_PLATFORM"


def test_prerequisites_done_when_all_binaries_present() -> None:
    commands = FakeCommandRunner(available=REQUIRED_BINARIES)
    step = PrerequisitesStep(select_installer("linux", commands=commands), commands=commands)

    assert step.check() is True
    assert step.missing_binaries() == []


def test_homebrew_installer_tolerates_formula_failures() -> None:
    commands = FakeCommandRunner(available=["brew"], responses={"brew install docker": (1, "")})
    step = PrerequisitesStep(HomebrewInstaller(commands), commands=commands)

    assert step.check() is False
    step.run()

    assert "brew install docker" in commands.joined_calls()
    assert commands.joined_calls()[-1] == "brew install emacs-plus@29"


def test_homebrew_installer_requires_brew() -> None:
    with pytest.raises(RuntimeError, match="Homebrew not found"):
        HomebrewInstaller(FakeCommandRunner()).install()


def test_apt_installer_runs_scripts_for_missing_tools() -> None:
    commands = FakeCommandRunner(available=["apt", "bb"])

    AptInstaller(commands).install()

    calls = commands.joined_calls()
    assert calls[0].startswith("sudo apt install -y git")
    assert len(calls) == 2
    assert "linux-install.sh" in calls[1]


def test_apt_installer_wraps_apt_failure() -> None:
    commands = FakeCommandRunner(available=["apt"], responses={"sudo apt": (100, "")})

    with pytest.raises(RuntimeError, match="apt install failed"):
        AptInstaller(commands).install()


def test_doom_sync_uses_first_doom_location(tmp_path: Path) -> None:
    doom = tmp_path / ".config" / "emacs" / "bin" / "doom"
    doom.parent.mkdir(parents=True)
    doom.write_text("#!/bin/sh\n", encoding="utf-8")
    commands = FakeCommandRunner()
    step = DoomSyncStep(home=tmp_path, commands=commands)

    assert find_doom(tmp_path) == doom
    assert step.check() is False
    step.run()
    assert commands.calls == [[str(doom), "sync"]]


def test_doom_sync_without_doom_fails(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Doom Emacs"):
        DoomSyncStep(home=tmp_path, commands=FakeCommandRunner()).run()


def test_emacs_daemon_step_starts_and_verifies() -> None:
    commands = FakeCommandRunner(responses={"emacsclient": (1, "")})
    sleeps: list[float] = []
    step = EmacsDaemonStep(startup_wait_seconds=0.5, sleep_fn=sleeps.append, commands=commands)

    assert step.check() is False
    with pytest.raises(RuntimeError, match="not responding"):
        step.run()
    assert sleeps == [0.5]

    commands.responses["emacsclient"] = (0, "4242")
    step.run()
    assert step.check() is True


def test_emacs_daemon_check_treats_missing_client_as_not_running() -> None:
    commands = FakeCommandRunner(responses={"emacsclient": missing("emacsclient")})
    step = EmacsDaemonStep(commands=commands)

    assert step.check() is False
    step.rollback()
    assert commands.joined_calls() == ["emacsclient -e (emacs-pid)"]


def test_chroma_step_polls_until_healthy(tmp_path: Path) -> None:
    probe = FakeHttpProbe()
    commands = FakeCommandRunner()
    sleeps: list[float] = []

    def sleep(seconds: float) -> None:
        sleeps.append(seconds)
        if len(sleeps) == 2:
            probe.statuses[HEARTBEAT] = 200

    step = ChromaStep(tmp_path, heartbeat_url=HEARTBEAT, probe=probe, sleep_fn=sleep, commands=commands)

    assert step.check() is False
    step.run()

    assert commands.joined_calls() == ["docker info", "docker compose up -d chroma"]
    assert commands.cwds[1] == tmp_path
    assert sleeps == [2.0, 2.0]
    assert step.check() is True


def test_chroma_step_times_out() -> None:
    step = ChromaStep(
        "/tmp/hive",
        heartbeat_url=HEARTBEAT,
        probe=FakeHttpProbe(),
        ready_attempts=3,
        ready_interval_seconds=1.0,
        sleep_fn=lambda _: None,
        commands=FakeCommandRunner(),
    )

    with pytest.raises(TimeoutError, match="within 3 seconds"):
        step.run()


def test_chroma_step_requires_running_docker() -> None:
    commands = FakeCommandRunner(responses={"docker info": (1, "")})
    step = ChromaStep("/tmp/hive", probe=FakeHttpProbe(), commands=commands)

    with pytest.raises(RuntimeError, match="docker is not running"):
        step.run()
    assert commands.joined_calls() == ["docker info"]


def test_ollama_step_pulls_model() -> None:
    commands = FakeCommandRunner(available=["ollama"])
    step = OllamaStep(model="nomic-embed-text", tags_url=TAGS, probe=FakeHttpProbe(), commands=commands)

    assert step.name == "Setup Ollama with nomic-embed-text model"
    assert step.check() is False
    step.run()
    assert commands.joined_calls() == ["ollama pull nomic-embed-text"]


def test_ollama_step_done_when_api_answers() -> None:
    step = OllamaStep(tags_url=TAGS, probe=FakeHttpProbe({TAGS: 200}), commands=FakeCommandRunner())
    assert step.check() is True


def test_ollama_step_requires_binary() -> None:
    step = OllamaStep(probe=FakeHttpProbe(), commands=FakeCommandRunner())

    with pytest.raises(FileNotFoundError, match="ollama not installed"):
        step.run()


def test_mcp_registration_check_reads_server_list(tmp_path: Path) -> None:
    commands = FakeCommandRunner(responses={"claude mcp list": (0, "emacs: bb --prn ...\n")})
    step = McpRegistrationStep(tmp_path, commands=commands)

    assert step.check() is True

    commands.responses["claude mcp list"] = (0, "other: npx something\n")
    assert step.check() is False

    commands.responses["claude mcp list"] = missing("claude")
    assert step.check() is False


def test_mcp_registration_runs_add_and_remove(tmp_path: Path) -> None:
    commands = FakeCommandRunner(available=["claude"])
    step = McpRegistrationStep(tmp_path, server_name="emacs", commands=commands)

    step.run()
    step.rollback()

    assert commands.calls[0] == step.registration_command()
    assert commands.calls[0][-4:] == ["-cp", str(tmp_path / "bb.edn"), "-m", "bb.hive-mcp.server/-main"]
    assert commands.joined_calls()[1] == "claude mcp remove emacs"


def test_mcp_registration_wraps_cli_failure(tmp_path: Path) -> None:
    commands = FakeCommandRunner(available=["claude"], responses={"claude mcp add": (1, "")})
    step = McpRegistrationStep(tmp_path, commands=commands)

    with pytest.raises(RuntimeError, match="failed to register MCP server") as excinfo:
        step.run()
    assert isinstance(excinfo.value.__cause__, CommandError)


def test_build_setup_steps_order(tmp_path: Path) -> None:
    settings = Settings(hive_mcp_dir=tmp_path / "hive-mcp")

    steps = build_setup_steps(
        settings,
        platform="linux",
        commands=FakeCommandRunner(),
        probe=FakeHttpProbe(),
        home=tmp_path,
    )

    assert [step.name for step in steps] == [
        "Clone hive-mcp repository",
        "Configure shell environment",
        "Install system prerequisites",
        "Download Clojure dependencies",
        "Sync Doom Emacs packages",
        "Start Docker services (Chroma)",
        "Setup Ollama with nomic-embed-text model",
        "Start Emacs daemon",
        "Register MCP server with Claude CLI",
    ]


def test_build_setup_steps_rejects_unknown_platform(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedPlatformError):
        build_setup_steps(Settings(hive_mcp_dir=tmp_path), platform="freebsd13", commands=FakeCommandRunner())


def test_shell_rollback_leaves_blocks_it_did_not_write(tmp_path: Path) -> None:
    bashrc = tmp_path / ".bashrc"
    bashrc.write_text("export PATH=/usr/bin\n", encoding="utf-8")
    ShellStep("/opt/hive-mcp", home=tmp_path).run()
    configured = bashrc.read_text(encoding="utf-8")

    fresh = ShellStep("/opt/hive-mcp", home=tmp_path)
    assert fresh.check() is True
    fresh.rollback()

    assert bashrc.read_text(encoding="utf-8") == configured


def test_emacs_daemon_rollback_stops_only_daemon_it_started() -> None:
    commands = FakeCommandRunner(responses={"emacsclient -e (emacs-pid)": (0, "4242")})
    running = EmacsDaemonStep(commands=commands)

    assert running.check() is True
    running.rollback()
    assert "emacsclient -e (kill-emacs)" not in commands.joined_calls()

    started = EmacsDaemonStep(sleep_fn=lambda _: None, commands=commands)
    started.run()
    started.rollback()
    assert commands.joined_calls()[-1] == "emacsclient -e (kill-emacs)"


def test_chroma_rollback_only_after_compose_up(tmp_path: Path) -> None:
    commands = FakeCommandRunner()
    step = ChromaStep(tmp_path, heartbeat_url=HEARTBEAT, probe=FakeHttpProbe({HEARTBEAT: 200}), commands=commands)

    step.rollback()
    assert commands.calls == []

    step.run()
    step.rollback()
    assert commands.joined_calls()[-1] == "docker compose down"


def test_mcp_rollback_without_registration_is_noop(tmp_path: Path) -> None:
    commands = FakeCommandRunner(available=["claude"], responses={"claude mcp list": (0, "emacs: bb --prn\n")})
    step = McpRegistrationStep(tmp_path, commands=commands)

    assert step.check() is True
    step.rollback()

    assert "claude mcp remove emacs" not in commands.joined_calls()


def test_mcp_registration_matches_whole_server_names(tmp_path: Path) -> None:
    commands = FakeCommandRunner(responses={"claude mcp list": (0, "emacs-old: bb --prn\nmy-emacs: npx x\n")})
    step = McpRegistrationStep(tmp_path, server_name="emacs", commands=commands)

    assert step.check() is False
    assert registered_servers("emacs: bb --prn\nother: npx y\n") == {"emacs", "other"}
