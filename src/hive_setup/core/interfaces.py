from __future__ import annotations

from typing import Protocol


class Step(Protocol):
    """One idempotent unit of setup work.

    ``check`` returns True when the goal state already holds and raises only
    when the probe itself cannot complete. ``run`` raises on failure.
    ``rollback`` must be safe to call even if ``run`` never ran.
    """

    name: str

    def check(self) -> bool:
        ...

    def run(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class RunObserver(Protocol):
    def on_start(self, step: Step) -> None:
        ...

    def on_done(self, step: Step, skipped: bool, error: BaseException | None) -> None:
        ...
