"""Logging setup for the dashboard client.

Console gets INFO and above. Every process also writes a DEBUG log named
``dashboard_<timestamp>.log`` plus ``dashboard.log`` for the current run;
older run files beyond ``_KEEP_RUN_LOGS`` are deleted at startup.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from trading_dashboard.config import settings

_KEEP_RUN_LOGS = 10
_RUN_LOG_GLOB = "dashboard_*.log"

_FORMAT = logging.Formatter(
    "[%(asctime)s] %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _file_handler(path: Path, mode: str = "a") -> logging.FileHandler:
    handler = logging.FileHandler(path, mode=mode, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_FORMAT)
    return handler


def _prune_run_logs(logs_dir: Path) -> None:
    run_logs = sorted(logs_dir.glob(_RUN_LOG_GLOB), key=lambda p: p.stat().st_mtime)
    for stale in run_logs[:-_KEEP_RUN_LOGS]:
        try:
            stale.unlink()
        except OSError:
            pass


def _build_logger(name: str = "trading_dashboard") -> logging.Logger:
    log = logging.getLogger(name)
    log.setLevel(logging.DEBUG)
    if log.handlers:
        return log

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(_FORMAT)
    log.addHandler(console)

    logs_dir = settings.LOGS_DIR
    run_name = f"dashboard_{datetime.now():%Y-%m-%d_%H-%M-%S}.log"
    try:
        logs_dir.mkdir(parents=True, exist_ok=True)
        log.addHandler(_file_handler(logs_dir / run_name))
        log.addHandler(_file_handler(logs_dir / "dashboard.log", mode="w"))
    except OSError:
        log.warning("Could not open log files in %s; console only", logs_dir)
        return log

    _prune_run_logs(logs_dir)
    log.info("Log started: %s", run_name)
    return log


logger = _build_logger()
