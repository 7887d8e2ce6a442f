from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import TextIO

from hive_setup.config.settings import Settings
from hive_setup.core.enums import CheckStatus
from hive_setup.core.models import CheckCategory, CheckResult, DoctorReport
from hive_setup.doctor.checks import (
    check_env_vars,
    check_integration,
    check_mcp,
    check_observability,
    check_services,
    check_versions,
)
from hive_setup.utils.http import HttpProbe
from hive_setup.utils.process import CommandRunner


LOGGER = logging.getLogger(__name__)


def run_doctor(
    settings: Settings,
    *,
    commands: CommandRunner | None = None,
    probe: HttpProbe | None = None,
    environ: Mapping[str, str] | None = None,
) -> DoctorReport:
    commands = commands or CommandRunner()
    probe = probe or HttpProbe(timeout=settings.probe_timeout_seconds)
    env = os.environ if environ is None else environ

    return DoctorReport(
        categories=[
            CheckCategory(name="Version Requirements", checks=check_versions(commands)),
            CheckCategory(name="Environment Variables", checks=check_env_vars(env)),
            CheckCategory(name="Service Health", checks=check_services(settings, commands, probe)),
            CheckCategory(name="MCP Configuration", checks=check_mcp(settings, commands)),
            CheckCategory(name="Integration Tests", checks=check_integration(settings, commands)),
            CheckCategory(name="Observability (Optional)", checks=check_observability(probe)),
        ]
    )


def run_fixes(report: DoctorReport, stream: TextIO | None = None) -> tuple[int, int]:
    """Attempt every available fix for non-ok checks. Returns (fixed, failed)."""
    fixed = 0
    failed = 0
    for check in report.fixable_checks():
        fix = check.fix
        if fix is None:
            continue
        try:
            fix()
        except Exception as exc:
            LOGGER.warning("Fix for '%s' failed: %s", check.name, exc)
            _write(stream, f"Fixing {check.name}... failed: {exc}")
            failed += 1
        else:
            LOGGER.info("Fix for '%s' applied.", check.name)
            _write(stream, f"Fixing {check.name}... done")
            fixed += 1
    return fixed, failed


def format_check(check: CheckResult) -> list[str]:
    line = f"  {check.status.symbol} {check.name}"
    if check.message:
        line += f": {check.message}"
    lines = [line]
    if check.status != CheckStatus.OK:
        if check.details:
            lines.append(f"    {check.details}")
        if check.fix_hint:
            lines.append(f"    Fix: {check.fix_hint}")
    return lines


def format_doctor_report(report: DoctorReport) -> str:
    rule = "=" * 50
    lines = ["", "hive-mcp Health Check", rule]
    for category in report.categories:
        lines += ["", f"{category.name}:"]
        for check in category.checks:
            lines.extend(format_check(check))

    ok, warn, fail = report.summary()
    parts = []
    if ok:
        parts.append(f"{ok} passed")
    if warn:
        parts.append(f"{warn} warnings")
    if fail:
        parts.append(f"{fail} failed")
    lines += ["", rule, f"Summary: {', '.join(parts)}", ""]

    if report.is_healthy:
        lines.append("✓ hive-mcp is healthy")
    else:
        lines.append("✗ Some issues need attention")
        fixable = report.fixable_checks()
        if fixable:
            lines += ["", f"Run 'hive doctor --fix' to attempt automatic fixes for {len(fixable)} issue(s)"]
    return "\n".join(lines)


def _write(stream: TextIO | None, line: str) -> None:
    if stream is not None:
        stream.write(line + "\n")
