from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import TextIO

from hive_setup.core.interfaces import RunObserver, Step


class NullObserver:
    def on_start(self, step: Step) -> None:
        del step

    def on_done(self, step: Step, skipped: bool, error: BaseException | None) -> None:
        del step, skipped, error


class ConsoleObserver:
    """Human-readable progress lines, one arrow line per start and one mark per completion."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def on_start(self, step: Step) -> None:
        self._write(f"→ {step.name}...")

    def on_done(self, step: Step, skipped: bool, error: BaseException | None) -> None:
        if error is not None:
            self._write(f"  ✗ {step.name}: {error}")
        elif skipped:
            self._write(f"  ✓ {step.name} (already done)")
        else:
            self._write(f"  ✓ {step.name}")

    def _write(self, line: str) -> None:
        stream = self._stream or sys.stdout
        stream.write(line + "\n")
        stream.flush()


class LoggingObserver:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def on_start(self, step: Step) -> None:
        self._logger.info("Starting step '%s'.", step.name)

    def on_done(self, step: Step, skipped: bool, error: BaseException | None) -> None:
        if error is not None:
            self._logger.error("Step '%s' failed: %s", step.name, error)
        elif skipped:
            self._logger.info("Step '%s' already done, skipped.", step.name)
        else:
            self._logger.info("Step '%s' completed.", step.name)


class CompositeObserver:
    def __init__(self, observers: Iterable[RunObserver]) -> None:
        self._observers = list(observers)

    def on_start(self, step: Step) -> None:
        for observer in self._observers:
            observer.on_start(step)

    def on_done(self, step: Step, skipped: bool, error: BaseException | None) -> None:
        for observer in self._observers:
            observer.on_done(step, skipped, error)
