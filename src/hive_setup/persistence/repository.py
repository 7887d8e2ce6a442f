from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from hive_setup.core.enums import RunStatus
from hive_setup.core.models import StepResult
from hive_setup.persistence.models import SetupRun, StepRun


class SetupRunRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_run(self, *, platform: str, hive_mcp_dir: str) -> SetupRun:
        run = SetupRun(platform=platform, hive_mcp_dir=hive_mcp_dir, status=RunStatus.RUNNING.value)
        self._session.add(run)
        self._session.commit()
        self._session.refresh(run)
        return run

    def add_step_results(self, run_id: int, results: list[StepResult]) -> None:
        for position, result in enumerate(results):
            self._session.add(
                StepRun(
                    setup_run_id=run_id,
                    position=position,
                    step_name=result.step_name,
                    outcome=result.outcome.value,
                    error_message=result.error_message,
                )
            )
        self._session.commit()

    def complete_run(self, run_id: int, status: RunStatus, error_message: str | None = None) -> None:
        run = self._session.get(SetupRun, run_id)
        if run is None:
            return
        run.status = status.value
        run.error_message = error_message
        run.completed_at = datetime.now()
        self._session.commit()

    def list_runs(self, limit: int = 10) -> list[SetupRun]:
        statement = (
            select(SetupRun)
            .options(selectinload(SetupRun.steps))
            .order_by(SetupRun.id.desc())
            .limit(limit)
        )
        return list(self._session.scalars(statement))
