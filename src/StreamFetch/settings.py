"""Runtime settings for StreamFetch.

Values come from ``STREAMFETCH_*`` environment variables through
``pydantic-settings``; CLI flags layer on top via :meth:`StreamFetchSettings.with_overrides`.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__
from .errors import UserConfigError

__all__ = ["StreamFetchSettings", "get_settings", "reset_settings"]

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class StreamFetchSettings(BaseSettings):
    """Environment-backed configuration for one process."""

    log_level: str = Field(default="INFO", description="Console and file log level")
    log_dir: Optional[Path] = Field(
        default=None, description="Directory for JSON-lines logs; disabled when unset"
    )
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Network timeout in seconds; no timeout when unset",
    )
    chunk_size: int = Field(default=1 << 20, gt=0, description="Copy buffer size in bytes")
    user_agent: str = Field(default=f"streamfetch/{__version__}")
    follow_redirects: bool = True

    model_config = SettingsConfigDict(
        env_prefix="STREAMFETCH_", case_sensitive=False, extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    def with_overrides(self, **overrides: Any) -> "StreamFetchSettings":
        """Return a validated copy with every non-``None`` override applied."""

        updates: Dict[str, Any] = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        try:
            return self.model_validate({**self.model_dump(), **updates})
        except ValidationError as exc:
            raise UserConfigError(f"invalid settings: {exc}") from exc

    @property
    def numeric_log_level(self) -> int:
        return getattr(logging, self.log_level, logging.INFO)


_SETTINGS: Optional[StreamFetchSettings] = None
_SETTINGS_LOCK = threading.Lock()


def get_settings() -> StreamFetchSettings:
    """Return the process-wide settings, loading them from the environment once."""

    global _SETTINGS  # noqa: PLW0603

    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            try:
                _SETTINGS = StreamFetchSettings()
            except ValidationError as exc:
                raise UserConfigError(f"invalid STREAMFETCH_* environment: {exc}") from exc
        return _SETTINGS


def reset_settings() -> None:
    """Forget cached settings so the next :func:`get_settings` re-reads the environment."""

    global _SETTINGS  # noqa: PLW0603

    with _SETTINGS_LOCK:
        _SETTINGS = None
