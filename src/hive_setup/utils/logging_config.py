from __future__ import annotations

import logging
from pathlib import Path


def configure_logging(log_dir: Path, *, console_level: int = logging.WARNING) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    logfile = log_dir / "hive-setup.log"

    console = logging.StreamHandler()
    console.setLevel(console_level)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[
            console,
            logging.FileHandler(logfile, encoding="utf-8"),
        ],
    )
