"""Centralized application configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from procintake.autosave.state import AutoSaveConfig

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `PROCINTAKE_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    api_url : str
        Base URL of the forms backend; maps from `PROCINTAKE_API_URL`.
    api_key : Optional[str]
        Optional key sent as ``X-API-Key``. Maps from `PROCINTAKE_API_KEY`.
    api_timeout : float
        Per-request network timeout in seconds.
    autosave_delay : float
        Debounce window of the auto-save engine, in seconds.
    autosave_enabled : bool
        Master switch for auto-save in editing sessions.
    draft_dir : Path
        Directory used by the local draft fallback store.
    """

    environment: EnvName = Field(default="dev", alias="PROCINTAKE_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")
    api_url: str = Field(default="http://127.0.0.1:8000", alias="PROCINTAKE_API_URL")
    api_key: str | None = Field(default=None, alias="PROCINTAKE_API_KEY")
    api_timeout: float = Field(default=10.0, gt=0, alias="PROCINTAKE_API_TIMEOUT")
    autosave_delay: float = Field(default=3.0, ge=0, alias="PROCINTAKE_AUTOSAVE_DELAY")
    autosave_enabled: bool = Field(default=True, alias="PROCINTAKE_AUTOSAVE_ENABLED")
    draft_dir: Path = Field(default=Path("artifacts") / "drafts", alias="PROCINTAKE_DRAFT_DIR")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    @property
    def is_prod(self) -> bool:
        """Return True if running in the production environment."""
        return self.environment == "prod"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)

    def autosave_config(self) -> AutoSaveConfig:
        """Build the auto-save engine options from these settings."""
        from procintake.autosave.state import AutoSaveConfig

        return AutoSaveConfig(delay=self.autosave_delay, enabled=self.autosave_enabled)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("PROCINTAKE_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "procintake") -> logging.Logger:
    """Return a process-global logger configured to the current `LOG_LEVEL`."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
