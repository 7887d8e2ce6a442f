from enum import StrEnum


class StepOutcome(StrEnum):
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class RunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_INCOMPLETE = "rollback_incomplete"


class CheckStatus(StrEnum):
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"
    MISSING = "missing"
    UNKNOWN = "unknown"

    @property
    def symbol(self) -> str:
        if self is CheckStatus.OK:
            return "✓"
        if self is CheckStatus.WARNING:
            return "!"
        if self in (CheckStatus.ERROR, CheckStatus.MISSING):
            return "✗"
        return "?"
