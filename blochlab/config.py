"""Runtime settings.

Values come from ``BLOCHLAB_*`` environment variables and are validated with
pydantic, so a bad value fails loudly at startup instead of deep inside a
request.

Variables:
    BLOCHLAB_HISTORY_LIMIT: undo steps kept per session (default 20).
    BLOCHLAB_MAX_SESSIONS: live sessions kept by the API (default 256).
    BLOCHLAB_LOG_LIMIT: command log entries kept per session (default 200).
    BLOCHLAB_LOG_LEVEL: logging level name (default INFO).
    BLOCHLAB_LOG_FILE: optional path for a log file.
"""
import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .bloch_sim import MAX_HISTORY

ENV_PREFIX = "BLOCHLAB_"


class Settings(BaseModel):
    history_limit: int = Field(default=MAX_HISTORY, ge=1)
    max_sessions: int = Field(default=256, ge=1)
    log_limit: int = Field(default=200, ge=1)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``environ`` (defaults to ``os.environ``)."""
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if key in environ and environ[key] != "":
                values[name] = environ[key]
        return cls(**values)
