from __future__ import annotations

import json
import subprocess
from collections.abc import Callable, Mapping
from pathlib import Path

from hive_setup.config.settings import Settings
from hive_setup.core.enums import CheckStatus
from hive_setup.core.errors import CommandError
from hive_setup.core.models import CheckResult, mask_secret
from hive_setup.detect.scanner import emacs_daemon_pid
from hive_setup.detect.versions import TOOL_SPECS, ToolSpec, compare_versions, read_tool_version
from hive_setup.steps.mcp import registered_servers
from hive_setup.utils.http import HttpProbe, host_port
from hive_setup.utils.process import CommandRunner


INTEGRATION_TIMEOUT_SECONDS = 5.0

DOCTOR_ENV_VARS: tuple[tuple[str, bool, str], ...] = (
    ("HIVE_MCP_DIR", True, "Add to shell config: export HIVE_MCP_DIR=$HOME/hive-mcp"),
    ("BB_MCP_DIR", True, "Add to shell config: export BB_MCP_DIR=$HOME/bb-mcp"),
    ("OPENROUTER_API_KEY", False, "Get API key from https://openrouter.ai and add to shell config"),
)

OBSERVABILITY_ENDPOINTS: tuple[tuple[str, str], ...] = (
    ("Prometheus", "http://localhost:9090/-/healthy"),
    ("Grafana", "http://localhost:3000/api/health"),
    ("Loki", "http://localhost:3100/ready"),
)


def check_version(spec: ToolSpec, commands: CommandRunner) -> CheckResult:
    result = CheckResult(name=spec.name, fix_hint=spec.fix_hint)
    if commands.which(spec.command) is None:
        result.status = CheckStatus.ERROR
        result.message = "not installed"
        result.details = f"Requires {spec.name} {spec.min_version}+"
        return result

    version = read_tool_version(spec, commands)
    if version is None:
        result.status = CheckStatus.WARNING
        result.message = "version unknown"
        result.details = "Could not parse version output"
        return result

    if compare_versions(version, spec.min_version) >= 0:
        result.status = CheckStatus.OK
        result.message = f"v{version} (>= {spec.min_version})"
    else:
        result.status = CheckStatus.WARNING
        result.message = f"v{version} (requires {spec.min_version}+)"
        result.details = f"Installed version {version} is below minimum {spec.min_version}"
    return result


def check_versions(commands: CommandRunner) -> list[CheckResult]:
    return [check_version(spec, commands) for spec in TOOL_SPECS]


def check_env_var(name: str, required: bool, fix_hint: str, environ: Mapping[str, str]) -> CheckResult:
    result = CheckResult(name=name, fix_hint=fix_hint)
    value = environ.get(name, "")
    if value:
        lowered = name.lower()
        result.status = CheckStatus.OK
        result.message = mask_secret(value) if "key" in lowered or "secret" in lowered else value
    elif required:
        result.status = CheckStatus.ERROR
        result.message = "not set (required)"
    else:
        result.status = CheckStatus.WARNING
        result.message = "not set (optional)"
    return result


def check_env_vars(environ: Mapping[str, str]) -> list[CheckResult]:
    return [check_env_var(name, required, hint, environ) for name, required, hint in DOCTOR_ENV_VARS]


def check_emacs_daemon(commands: CommandRunner) -> CheckResult:
    result = CheckResult(
        name="Emacs Daemon",
        fix_hint="Start daemon: emacs --daemon",
        fix=lambda: _start_emacs_daemon(commands),
    )
    pid = emacs_daemon_pid(commands)
    if pid is None:
        result.status = CheckStatus.ERROR
        result.message = "not running"
    else:
        result.status = CheckStatus.OK
        result.message = f"running (PID {pid})"
    return result


def _start_emacs_daemon(commands: CommandRunner) -> None:
    commands.run(["emacs", "--daemon"])


def check_http_service(
    name: str,
    url: str,
    probe: HttpProbe,
    *,
    fix_hint: str = "",
    fix: Callable[[], None] | None = None,
) -> CheckResult:
    result = CheckResult(name=name, fix_hint=fix_hint, fix=fix)
    host, port = host_port(url)
    endpoint = f"{host}:{port}"

    status_code = probe.status(url)
    if status_code is None:
        if probe.tcp_open(host, port):
            result.status = CheckStatus.OK
            result.message = f"running on {endpoint}"
        else:
            result.status = CheckStatus.ERROR
            result.message = f"not running on port {port}"
        return result

    if status_code == 200:
        result.status = CheckStatus.OK
        result.message = f"healthy ({endpoint})"
    else:
        result.status = CheckStatus.WARNING
        result.message = f"unhealthy (status {status_code})"
    return result


def start_chroma_container(commands: CommandRunner) -> None:
    """Restart an existing stopped ``chroma`` container, otherwise run a fresh one."""
    try:
        listing = commands.run(
            ["docker", "ps", "-a", "--filter", "name=chroma", "--format", "{{.Names}}"],
            check=False,
            capture=True,
        )
    except CommandError:
        listing = None

    if listing is not None and listing.ok and listing.stdout.strip() == "chroma":
        started = commands.run(["docker", "start", "chroma"], check=False, capture=True)
        if started.ok:
            return

    commands.run(
        [
            "docker",
            "run",
            "-d",
            "--name",
            "chroma",
            "-p",
            "8000:8000",
            "-v",
            "chroma-data:/chroma/chroma",
            "chromadb/chroma",
        ]
    )


def check_services(settings: Settings, commands: CommandRunner, probe: HttpProbe) -> list[CheckResult]:
    return [
        check_emacs_daemon(commands),
        check_http_service(
            "Chroma (Vector DB)",
            settings.chroma_heartbeat_url,
            probe,
            fix_hint="Start Chroma: docker run -d -p 8000:8000 chromadb/chroma",
            fix=lambda: start_chroma_container(commands),
        ),
        check_http_service(
            "Ollama (LLM)",
            settings.ollama_tags_url,
            probe,
            fix_hint="Start Ollama: ollama serve",
            fix=lambda: commands.spawn(["ollama", "serve"]),
        ),
    ]


def check_mcp_registration(settings: Settings, commands: CommandRunner) -> CheckResult:
    server = settings.mcp_server_name
    result = CheckResult(
        name="MCP Server Registration",
        fix_hint=f"Register with: claude mcp add {server} -- bb -x hive-mcp.core/main",
        fix=lambda: register_mcp_server(settings, commands),
    )
    try:
        listing = commands.run(["claude", "mcp", "list"], check=True, capture=True)
    except CommandError as exc:
        result.status = CheckStatus.ERROR
        result.message = "failed to query MCP servers"
        result.details = str(exc)
        return result

    if server in registered_servers(listing.stdout):
        result.status = CheckStatus.OK
        result.message = f"{server} server registered"
    else:
        result.status = CheckStatus.ERROR
        result.message = f"{server} server not registered"
        result.details = f"Run 'claude mcp add {server} -- bb -x hive-mcp.core/main' to register"
    return result


def register_mcp_server(settings: Settings, commands: CommandRunner) -> None:
    commands.run(
        ["claude", "mcp", "add", settings.mcp_server_name, "--", "bb", "-x", "hive-mcp.core/main"],
        cwd=Path(settings.hive_mcp_dir),
    )


def check_mcp_server_config(commands: CommandRunner) -> CheckResult:
    result = CheckResult(
        name="MCP Server Config",
        fix_hint="Check ~/.config/claude-code/settings.json for MCP configuration",
    )
    try:
        listing = commands.run(["claude", "mcp", "list", "--json"], check=False, capture=True)
    except CommandError:
        listing = None

    if listing is None or not listing.ok:
        result.status = CheckStatus.WARNING
        result.message = "could not verify server config"
        return result

    try:
        json.loads(listing.stdout)
    except json.JSONDecodeError:
        result.status = CheckStatus.WARNING
        result.message = "could not parse server list"
        return result

    result.status = CheckStatus.OK
    result.message = "server config accessible"
    return result


def check_mcp(settings: Settings, commands: CommandRunner) -> list[CheckResult]:
    return [check_mcp_registration(settings, commands), check_mcp_server_config(commands)]


def check_emacs_mcp_connection(
    settings: Settings,
    commands: CommandRunner,
    timeout: float = INTEGRATION_TIMEOUT_SECONDS,
) -> CheckResult:
    result = CheckResult(
        name="Emacs MCP Connection",
        fix_hint="Ensure Emacs daemon is running and hive-mcp.el is loaded",
    )
    try:
        outcome = commands.run(
            ["claude", "mcp", "run", settings.mcp_server_name, "emacs_status"],
            check=False,
            capture=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        result.status = CheckStatus.WARNING
        result.message = "connection timeout"
        result.details = f"MCP server did not respond within {timeout:g} seconds"
        return result
    except CommandError:
        outcome = None

    if outcome is None or not outcome.ok:
        result.status = CheckStatus.WARNING
        result.message = "connection failed"
        result.details = "MCP server may not be running"
    else:
        result.status = CheckStatus.OK
        result.message = "connected"
    return result


def check_mcp_tool_execution(
    settings: Settings,
    commands: CommandRunner,
    timeout: float = INTEGRATION_TIMEOUT_SECONDS,
) -> CheckResult:
    result = CheckResult(name="MCP Tool Execution", fix_hint="Check MCP server logs for errors")
    try:
        outcome = commands.run(
            ["claude", "mcp", "run", settings.mcp_server_name, "mcp_capabilities"],
            check=False,
            capture=True,
            timeout=timeout,
        )
    except (CommandError, subprocess.TimeoutExpired) as exc:
        result.status = CheckStatus.WARNING
        result.message = "tool execution failed"
        result.details = str(exc)
        return result

    output = outcome.output
    if not outcome.ok:
        result.status = CheckStatus.WARNING
        result.message = "tool execution failed"
        result.details = output
    elif "capabilities" in output or "hive-mcp" in output or len(output) > 10:
        result.status = CheckStatus.OK
        result.message = "tools executing correctly"
    else:
        result.status = CheckStatus.WARNING
        result.message = "unexpected tool response"
        result.details = "Response may be empty or malformed"
    return result


def check_integration(settings: Settings, commands: CommandRunner) -> list[CheckResult]:
    return [check_emacs_mcp_connection(settings, commands), check_mcp_tool_execution(settings, commands)]


def check_optional_endpoint(name: str, url: str, probe: HttpProbe) -> CheckResult:
    result = CheckResult(name=name, fix_hint="Optional: Deploy via hive-mcp observability stack")
    status_code = probe.status(url)
    if status_code is None:
        result.status = CheckStatus.WARNING
        result.message = "not running (optional)"
    elif status_code == 200:
        host, port = host_port(url)
        result.status = CheckStatus.OK
        result.message = f"healthy ({host}:{port})"
    else:
        result.status = CheckStatus.WARNING
        result.message = "unhealthy"
    return result


def check_observability(probe: HttpProbe) -> list[CheckResult]:
    return [check_optional_endpoint(name, url, probe) for name, url in OBSERVABILITY_ENDPOINTS]
