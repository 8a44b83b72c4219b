"""
config/settings.py — hotloop Runtime Settings

Merges config.yaml (defaults/structure) with environment variables.
Pydantic-powered — all fields are validated and typed.

  - SchedulerConfig controls failure isolation, the duplicate-loop guard
    and how much event and stopped-loop history stays in memory
  - validate_all() performs cross-field validation and raises ConfigError
    with a clear, human-readable message listing every problem found
  - load_settings() respects HOTLOOP_CONFIG env var as a fallback
    when no explicit config_path argument is given
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, field_validator
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hotloop.exceptions import ConfigError

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


# ─────────────────────────────────────────────────────────────────────────────
# Sub-models
# ─────────────────────────────────────────────────────────────────────────────

class SchedulerConfig(BaseModel):
    isolate_failures: bool = True
    allow_duplicate_loops: bool = False
    event_history_limit: int = 1000
    stopped_loop_history: int = 100
    stop_timeout_seconds: float = 5.0

    @field_validator("event_history_limit")
    @classmethod
    def _positive_history(cls, v: int) -> int:
        if v < 1:
            raise ValueError("scheduler.event_history_limit must be >= 1")
        return v

    @field_validator("stopped_loop_history")
    @classmethod
    def _non_negative_loop_history(cls, v: int) -> int:
        if v < 0:
            raise ValueError("scheduler.stopped_loop_history must be >= 0")
        return v

    @field_validator("stop_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("scheduler.stop_timeout_seconds must be > 0")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    log_dir: str = "./data/logs"
    max_file_size_mb: int = 100
    backup_count: int = 5
    console_output: bool = True
    json_format: bool = True

    @field_validator("level")
    @classmethod
    def _valid_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"logging.level '{v}' is not valid. "
                f"Must be one of: {sorted(_VALID_LOG_LEVELS)}"
            )
        return upper


# ─────────────────────────────────────────────────────────────────────────────
# Root Settings
# ─────────────────────────────────────────────────────────────────────────────

class Settings(BaseSettings):
    """
    hotloop runtime settings.

    Priority (highest to lowest):
      1. Explicit constructor arguments / config.yaml sections
      2. Environment variables (HOTLOOP_SCHEDULER__ISOLATE_FAILURES=false)
      3. .env file
      4. Field defaults
    """

    model_config = SettingsConfigDict(
        env_prefix="HOTLOOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("scheduler", mode="before")
    @classmethod
    def _coerce_scheduler(cls, v: Any) -> Any:
        return SchedulerConfig(**v) if isinstance(v, dict) else v

    @field_validator("logging", mode="before")
    @classmethod
    def _coerce_logging(cls, v: Any) -> Any:
        return LoggingConfig(**v) if isinstance(v, dict) else v

    # -- Convenience properties ----------------------------------------------

    @property
    def log_level(self) -> str:
        return self.logging.level.upper()

    @property
    def log_dir(self) -> Path:
        return Path(self.logging.log_dir)

    def validate_all(self) -> None:
        """
        Full startup validation. Raises ConfigError listing every problem found.

        Pydantic field validators catch type/value errors at parse time; this
        method catches problems in values that were changed after parsing.
        """
        errors: list[str] = []

        if self.scheduler.stopped_loop_history < 0:
            errors.append("scheduler.stopped_loop_history must be >= 0.")

        if self.scheduler.event_history_limit < 1:
            errors.append("scheduler.event_history_limit must be >= 1.")

        if self.scheduler.stop_timeout_seconds <= 0:
            errors.append("scheduler.stop_timeout_seconds must be > 0.")

        if self.logging.level.upper() not in _VALID_LOG_LEVELS:
            errors.append(
                f"logging.level '{self.logging.level}' is not one of "
                f"{sorted(_VALID_LOG_LEVELS)}."
            )

        if not self.logging.log_dir.strip():
            errors.append("logging.log_dir must not be empty.")

        if errors:
            numbered = "\n".join(f"  {i+1}. {e}" for i, e in enumerate(errors))
            raise ConfigError(
                f"\n\nhotloop startup failed — {len(errors)} configuration "
                f"problem(s) found:\n\n{numbered}\n\n"
                f"Fix the issues above in config/config.yaml or your environment "
                f"and restart.\n"
            )


# ─────────────────────────────────────────────────────────────────────────────
# Loader + singleton
# ─────────────────────────────────────────────────────────────────────────────

_singleton: Optional[Settings] = None
_singleton_lock = threading.RLock()

_KNOWN_SECTIONS = {"scheduler", "logging"}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _resolve_config_path(config_path: str | Path | None) -> Path:
    """
    Resolve the config file path with this priority:
      1. Explicit config_path argument
      2. HOTLOOP_CONFIG environment variable
      3. Default: config/config.yaml
    """
    if config_path is not None:
        return Path(config_path)
    env_path = os.environ.get("HOTLOOP_CONFIG")
    if env_path:
        return Path(env_path)
    return Path("config/config.yaml")


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings by merging config.yaml with environment variables."""
    global _singleton
    yaml_data = _load_yaml(_resolve_config_path(config_path))
    init_kwargs = {k: v for k, v in yaml_data.items() if k in _KNOWN_SECTIONS}

    instance = Settings(**init_kwargs)
    with _singleton_lock:
        _singleton = instance
    return instance


def get_settings() -> Settings:
    """
    Return the global Settings singleton, loading it from the default
    config path on first use.

    Thread-safe: guarded by _singleton_lock to prevent double-initialisation
    if called concurrently before the first load completes.
    """
    if _singleton is not None:
        return _singleton
    with _singleton_lock:
        if _singleton is None:
            load_settings()
    return _singleton  # type: ignore[return-value]
