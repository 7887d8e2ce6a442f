"""Read-only scan of prerequisites, services and environment."""

from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from hive_setup.config.settings import Settings
from hive_setup.core.enums import CheckStatus
from hive_setup.core.errors import CommandError
from hive_setup.core.models import DetectionReport, EnvVarCheck, PrereqCheck, ServiceCheck
from hive_setup.detect.platform import detect_platform, detect_shell
from hive_setup.detect.versions import TOOL_SPECS, ToolSpec, compare_versions, read_tool_version
from hive_setup.utils.http import HttpProbe, host_port
from hive_setup.utils.process import CommandRunner


@dataclass(frozen=True, slots=True)
class EnvVarSpec:
    name: str
    required: bool
    sensitive: bool = False


ENV_VAR_SPECS: tuple[EnvVarSpec, ...] = (
    EnvVarSpec("HIVE_MCP_DIR", required=True),
    EnvVarSpec("BB_MCP_DIR", required=True),
    EnvVarSpec("OPENROUTER_API_KEY", required=False, sensitive=True),
    EnvVarSpec("HOME", required=True),
    EnvVarSpec("SHELL", required=True),
)


def check_prereq(spec: ToolSpec, commands: CommandRunner) -> PrereqCheck:
    check = PrereqCheck(status=CheckStatus.MISSING, name=spec.name, command=spec.command, required=spec.min_version)
    if commands.which(spec.command) is None:
        return check

    version = read_tool_version(spec, commands)
    if version is None:
        check.status = CheckStatus.WARNING
        check.version = "unknown"
        return check

    check.version = version
    check.status = CheckStatus.OK if compare_versions(version, spec.min_version) >= 0 else CheckStatus.WARNING
    return check


def check_all_prereqs(commands: CommandRunner) -> list[PrereqCheck]:
    return [check_prereq(spec, commands) for spec in TOOL_SPECS]


def emacs_daemon_pid(commands: CommandRunner) -> str | None:
    try:
        result = commands.run(["emacsclient", "--eval", "(emacs-pid)"], check=False, capture=True)
    except CommandError:
        return None
    pid = result.output.strip()
    if not result.ok or pid in ("", "nil"):
        return None
    return pid


def check_emacs_daemon(commands: CommandRunner) -> ServiceCheck:
    pid = emacs_daemon_pid(commands)
    if pid is None:
        return ServiceCheck(status=CheckStatus.MISSING, name="Emacs Daemon", message="Emacs daemon not running")
    return ServiceCheck(status=CheckStatus.OK, name="Emacs Daemon", endpoint=f"PID {pid}")


def check_http_service(name: str, url: str, probe: HttpProbe) -> ServiceCheck:
    host, port = host_port(url)
    check = ServiceCheck(status=CheckStatus.OK, name=name, endpoint=f"{host}:{port}")

    status_code = probe.status(url)
    if status_code is None:
        # Fall back to a bare TCP connect; some builds lack the HTTP endpoint.
        if not probe.tcp_open(host, port):
            check.status = CheckStatus.MISSING
            check.message = f"{name} not running on port {port}"
        return check

    if status_code != 200:
        check.status = CheckStatus.WARNING
        check.message = f"{name} returned status {status_code}"
    return check


def check_all_services(settings: Settings, commands: CommandRunner, probe: HttpProbe) -> list[ServiceCheck]:
    return [
        check_emacs_daemon(commands),
        check_http_service("Chroma", settings.chroma_heartbeat_url, probe),
        check_http_service("Ollama", settings.ollama_tags_url, probe),
    ]


def check_env_var(spec: EnvVarSpec, environ: Mapping[str, str]) -> EnvVarCheck:
    value = environ.get(spec.name, "")
    if value:
        status = CheckStatus.OK
    elif spec.required:
        status = CheckStatus.MISSING
    else:
        status = CheckStatus.WARNING
    return EnvVarCheck(status=status, name=spec.name, value=value, required=spec.required, sensitive=spec.sensitive)


def check_all_env_vars(environ: Mapping[str, str] | None = None) -> list[EnvVarCheck]:
    env = os.environ if environ is None else environ
    return [check_env_var(spec, env) for spec in ENV_VAR_SPECS]


def run_detection(
    settings: Settings,
    *,
    commands: CommandRunner | None = None,
    probe: HttpProbe | None = None,
    environ: Mapping[str, str] | None = None,
    os_name: str | None = None,
) -> DetectionReport:
    commands = commands or CommandRunner()
    probe = probe or HttpProbe(timeout=settings.probe_timeout_seconds)
    env = dict(os.environ if environ is None else environ)
    return DetectionReport(
        platform=detect_platform(os_name=os_name, commands=commands),
        shell=detect_shell(commands=commands, environ=env),
        prereqs=check_all_prereqs(commands),
        services=check_all_services(settings, commands, probe),
        env_vars=check_all_env_vars(env),
    )


def format_detection_report(report: DetectionReport, colorize: Callable[[CheckStatus, str], str] | None = None) -> str:
    paint = colorize or (lambda _status, text: text)
    rule = "=" * 50
    lines = ["System Detection Results", rule, "", "Platform:"]
    lines.append(
        f"  {paint(report.platform.status, report.platform.status.symbol)} "
        f"{report.platform.os} ({report.platform.package_manager})"
    )

    lines += ["", "Shell:", f"  {paint(report.shell.status, report.shell.status.symbol)} {report.shell.name}"]
    if report.shell.config_file:
        lines.append(f"    Config: {report.shell.config_file}")

    lines += ["", "Prerequisites:"]
    for prereq in report.prereqs:
        found = prereq.version if prereq.status in (CheckStatus.OK, CheckStatus.WARNING) else "not found"
        lines.append(f"  {paint(prereq.status, prereq.status.symbol)} {prereq.name}: {found} (requires {prereq.required})")

    lines += ["", "Services:"]
    for service in report.services:
        mark = paint(service.status, service.status.symbol)
        if service.status == CheckStatus.OK:
            suffix = f" at {service.endpoint}" if service.endpoint else ""
            lines.append(f"  {mark} {service.name}: running{suffix}")
        else:
            lines.append(f"  {mark} {service.name}: not running")

    lines += ["", "Environment Variables:"]
    for env_var in report.env_vars:
        mark = paint(env_var.status, env_var.status.symbol)
        if env_var.status == CheckStatus.OK:
            lines.append(f"  {mark} {env_var.name}: {env_var.display_value}")
        else:
            need = "required" if env_var.required else "optional"
            lines.append(f"  {mark} {env_var.name}: not set ({need})")

    ok, warn, fail = report.summary()
    lines += ["", rule, f"Summary: {ok} passed, {warn} warnings, {fail} failed", ""]
    if report.is_ready:
        lines.append(f"{paint(CheckStatus.OK, '✓')} System is ready for hive-mcp setup")
    else:
        lines.append(f"{paint(CheckStatus.ERROR, '✗')} Please resolve issues before running setup")
    return "\n".join(lines)
