from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field

from hive_setup.config.settings import Settings
from hive_setup.core.engine import StepRunner
from hive_setup.core.enums import RunStatus
from hive_setup.core.errors import StepError
from hive_setup.core.interfaces import RunObserver, Step
from hive_setup.core.observers import CompositeObserver, ConsoleObserver, LoggingObserver
from hive_setup.persistence.database import init_database
from hive_setup.persistence.repository import SetupRunRepository
from hive_setup.steps.registry import build_setup_steps


@dataclass(slots=True)
class SetupSummary:
    run_id: int
    status: RunStatus
    total_steps: int
    skipped_count: int
    succeeded_count: int
    failed_step: str | None = None
    error_message: str | None = None
    rollback_errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.COMPLETED

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["status"] = self.status.value
        return payload


class SetupService:
    """Runs the setup sequence, optionally rolls back, and records the run history."""

    def __init__(self, settings: Settings, logger: logging.Logger | None = None) -> None:
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)
        self._session_factory = init_database(settings.database_url)

    def default_observer(self, *, quiet: bool = False) -> RunObserver:
        logging_observer = LoggingObserver(self._logger)
        if quiet:
            return logging_observer
        return CompositeObserver([ConsoleObserver(), logging_observer])

    def run_setup(
        self,
        *,
        steps: Sequence[Step] | None = None,
        platform: str | None = None,
        observer: RunObserver | None = None,
        rollback_on_failure: bool = False,
    ) -> SetupSummary:
        platform = platform or sys.platform
        if steps is None:
            steps = build_setup_steps(self._settings, platform=platform, logger=self._logger)
        runner = StepRunner(steps, observer=observer or self.default_observer())

        with self._session_factory() as session:
            repo = SetupRunRepository(session)
            run = repo.create_run(platform=platform, hive_mcp_dir=str(self._settings.hive_mcp_dir))
            run_id = run.id

            failure: StepError | None = None
            rollback_messages: list[str] = []
            # Replaced below unless the run is cut short (Ctrl-C, observer error).
            status = RunStatus.FAILED
            error_message: str | None = "setup aborted before completion"
            try:
                try:
                    runner.run_all()
                except StepError as exc:
                    failure = exc
                    self._logger.error("Setup failed at '%s' (%s): %s", exc.step_name, exc.code, exc)

                if failure is None:
                    status, error_message = RunStatus.COMPLETED, None
                else:
                    status, error_message = RunStatus.FAILED, str(failure)
                    failed_index = runner.failed_index
                    if rollback_on_failure and failed_index is not None:
                        rollback_errors = runner.rollback_from(failed_index)
                        rollback_messages = [str(error) for error in rollback_errors]
                        for error in rollback_errors:
                            self._logger.warning("Rollback problem: %s", error)
                        status = RunStatus.ROLLBACK_INCOMPLETE if rollback_errors else RunStatus.ROLLED_BACK
            finally:
                repo.add_step_results(run_id, runner.results)
                repo.complete_run(run_id, status, error_message=error_message)

        return SetupSummary(
            run_id=run_id,
            status=status,
            total_steps=len(runner.steps),
            skipped_count=sum(1 for result in runner.results if result.skipped),
            succeeded_count=sum(1 for result in runner.results if result.succeeded),
            failed_step=None if failure is None else failure.step_name,
            error_message=None if failure is None else str(failure),
            rollback_errors=rollback_messages,
        )

    def history(self, limit: int = 10) -> list[dict[str, object]]:
        with self._session_factory() as session:
            runs = SetupRunRepository(session).list_runs(limit=limit)
            return [
                {
                    "run_id": run.id,
                    "status": run.status,
                    "platform": run.platform,
                    "created_at": run.created_at.isoformat(timespec="seconds"),
                    "error_message": run.error_message,
                    "steps": [{"step_name": step.step_name, "outcome": step.outcome} for step in run.steps],
                }
                for run in runs
            ]
