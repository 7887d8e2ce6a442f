from __future__ import annotations

from collections.abc import Sequence

from hive_setup.core.enums import StepOutcome
from hive_setup.core.errors import StepCheckError, StepRollbackError, StepRunError
from hive_setup.core.interfaces import RunObserver, Step
from hive_setup.core.models import StepResult
from hive_setup.core.observers import ConsoleObserver


class StepRunner:
    """Sequential step executor with idempotent skip and stop-on-first-failure behavior.

    ``results`` is always a prefix of ``steps`` in the same order. A runner is
    meant for a single invocation of ``run_all``.
    Progress goes to stdout unless another observer is given; pass
    ``NullObserver()`` for silence.
    """

    def __init__(self, steps: Sequence[Step], observer: RunObserver | None = None) -> None:
        self.steps: tuple[Step, ...] = tuple(steps)
        self.results: list[StepResult] = []
        self._observer = observer or ConsoleObserver()

    def run_all(self) -> None:
        for step in self.steps:
            self._observer.on_start(step)

            try:
                done = step.check()
            except Exception as exc:
                self._record(step, StepOutcome.FAILED, exc)
                self._observer.on_done(step, False, exc)
                raise StepCheckError(step.name, exc) from exc

            if done:
                self._record(step, StepOutcome.SKIPPED)
                self._observer.on_done(step, True, None)
                continue

            try:
                step.run()
            except Exception as exc:
                self._record(step, StepOutcome.FAILED, exc)
                self._observer.on_done(step, False, exc)
                raise StepRunError(step.name, exc) from exc

            self._record(step, StepOutcome.SUCCEEDED)
            self._observer.on_done(step, False, None)

    def rollback_from(self, index: int) -> list[StepRollbackError]:
        """Roll back steps ``index`` down to 0, collecting failures instead of stopping."""
        errors: list[StepRollbackError] = []
        for position in range(index, -1, -1):
            if position >= len(self.steps):
                continue
            step = self.steps[position]
            try:
                step.rollback()
            except Exception as exc:
                errors.append(StepRollbackError(step.name, exc))
        return errors

    @property
    def failed_index(self) -> int | None:
        if self.results and self.results[-1].failed:
            return len(self.results) - 1
        return None

    def _record(self, step: Step, outcome: StepOutcome, error: BaseException | None = None) -> None:
        self.results.append(StepResult(step_name=step.name, outcome=outcome, error=error))


def run_all(steps: Sequence[Step], observer: RunObserver | None = None) -> StepRunner:
    """Run ``steps`` and return the runner. Build a StepRunner directly to keep results on failure."""
    runner = StepRunner(steps, observer=observer)
    runner.run_all()
    return runner
