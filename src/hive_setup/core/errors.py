from __future__ import annotations

from collections.abc import Sequence


class SetupError(Exception):
    """Base setup error with machine-readable code."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


class StepError(SetupError):
    """Failure attributed to a named step, chained from the step's own exception."""

    def __init__(self, code: str, step_name: str, message: str, cause: BaseException | None = None) -> None:
        self.step_name = step_name
        self.cause = cause
        super().__init__(code, message)
        self.__cause__ = cause


class StepCheckError(StepError):
    def __init__(self, step_name: str, cause: BaseException) -> None:
        super().__init__("CHECK_FAILED", step_name, f"check failed for {step_name}: {cause}", cause)


class StepRunError(StepError):
    def __init__(self, step_name: str, cause: BaseException) -> None:
        super().__init__("STEP_FAILED", step_name, f"step {step_name} failed: {cause}", cause)


class StepRollbackError(StepError):
    def __init__(self, step_name: str, cause: BaseException) -> None:
        super().__init__("ROLLBACK_FAILED", step_name, f"rollback {step_name}: {cause}", cause)


class CommandError(SetupError):
    def __init__(self, argv: Sequence[str], returncode: int, message: str) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        super().__init__("COMMAND_FAILED", message)


class UnsupportedPlatformError(SetupError):
    def __init__(self, platform: str) -> None:
        self.platform = platform
        super().__init__("UNSUPPORTED_PLATFORM", f"unsupported platform: {platform}")
