from __future__ import annotations

from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from hive_setup.core.enums import CheckStatus, StepOutcome


class StepResult(BaseModel):
    """Outcome of attempting one step. Immutable once produced."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    step_name: str
    outcome: StepOutcome
    error: BaseException | None = Field(default=None, exclude=True)

    @property
    def skipped(self) -> bool:
        return self.outcome == StepOutcome.SKIPPED

    @property
    def succeeded(self) -> bool:
        return self.outcome == StepOutcome.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.outcome == StepOutcome.FAILED

    @property
    def error_message(self) -> str | None:
        return None if self.error is None else str(self.error)

    def to_dict(self) -> dict[str, object]:
        return {
            "step_name": self.step_name,
            "outcome": self.outcome.value,
            "error_message": self.error_message,
        }


def summarize_statuses(statuses: list[CheckStatus]) -> tuple[int, int, int]:
    ok = sum(1 for status in statuses if status == CheckStatus.OK)
    warn = sum(1 for status in statuses if status == CheckStatus.WARNING)
    return ok, warn, len(statuses) - ok - warn


class PlatformInfo(BaseModel):
    status: CheckStatus = CheckStatus.UNKNOWN
    os: str
    arch: str = ""
    distro: str = ""
    version: str = ""
    package_manager: str = ""


class ShellInfo(BaseModel):
    status: CheckStatus = CheckStatus.UNKNOWN
    name: str
    config_file: str = ""
    version: str = ""


class PrereqCheck(BaseModel):
    status: CheckStatus
    name: str
    command: str
    version: str = ""
    required: str = ""


class ServiceCheck(BaseModel):
    status: CheckStatus
    name: str
    endpoint: str = ""
    message: str = ""


class EnvVarCheck(BaseModel):
    status: CheckStatus
    name: str
    value: str = ""
    required: bool = False
    sensitive: bool = False

    @property
    def display_value(self) -> str:
        if self.sensitive:
            return mask_secret(self.value)
        return self.value


class DetectionReport(BaseModel):
    platform: PlatformInfo
    shell: ShellInfo
    prereqs: list[PrereqCheck] = Field(default_factory=list)
    services: list[ServiceCheck] = Field(default_factory=list)
    env_vars: list[EnvVarCheck] = Field(default_factory=list)

    def summary(self) -> tuple[int, int, int]:
        statuses = [self.platform.status, self.shell.status]
        statuses.extend(item.status for item in self.prereqs)
        statuses.extend(item.status for item in self.services)
        statuses.extend(item.status for item in self.env_vars)
        return summarize_statuses(statuses)

    @property
    def is_ready(self) -> bool:
        return self.summary()[2] == 0


class CheckResult(BaseModel):
    name: str
    status: CheckStatus = CheckStatus.UNKNOWN
    message: str = ""
    details: str = ""
    fix_hint: str = ""
    fix: Callable[[], None] | None = Field(default=None, exclude=True)

    @property
    def can_fix(self) -> bool:
        return self.fix is not None


class CheckCategory(BaseModel):
    name: str
    checks: list[CheckResult] = Field(default_factory=list)


class DoctorReport(BaseModel):
    categories: list[CheckCategory] = Field(default_factory=list)

    def summary(self) -> tuple[int, int, int]:
        return summarize_statuses([check.status for category in self.categories for check in category.checks])

    @property
    def is_healthy(self) -> bool:
        return self.summary()[2] == 0

    def fixable_checks(self) -> list[CheckResult]:
        return [
            check
            for category in self.categories
            for check in category.checks
            if check.can_fix and check.status != CheckStatus.OK
        ]


def mask_secret(value: str) -> str:
    if len(value) > 8:
        return f"{value[:4]}****{value[-4:]}"
    return "****"
