"""
bootstrap.py — hotloop startup

One call for applications: load config, validate it, configure logging and
build a Scheduler from the result.

    from hotloop.bootstrap import bootstrap

    scheduler = bootstrap("config/config.yaml")
    async with scheduler:
        scheduler.hot_load(Task("Task A", "30s", condition=..., on_complete=...))
        scheduler.start_loop("Task A")
        ...
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from hotloop.config.settings import load_settings
from hotloop.observability.logger import get_logger, setup_logging_from_settings
from hotloop.scheduler.loop import SleepFn
from hotloop.scheduler.scheduler import Scheduler


def bootstrap(
    config_path: str | Path | None = None,
    sleep: Optional[SleepFn] = None,
) -> Scheduler:
    """
    Build a ready-to-use Scheduler.

    Raises:
        pydantic.ValidationError  a field in the YAML or environment is invalid
        ConfigError               validate_all() found cross-field problems
    """
    settings = load_settings(config_path)
    settings.validate_all()

    setup_logging_from_settings(settings)
    log = get_logger("hotloop.bootstrap")

    scheduler = Scheduler.from_settings(settings, sleep=sleep)
    log.info(
        "hotloop.started",
        isolate_failures=settings.scheduler.isolate_failures,
        allow_duplicate_loops=settings.scheduler.allow_duplicate_loops,
        log_dir=str(settings.log_dir),
    )
    return scheduler
