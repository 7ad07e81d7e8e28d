"""Typed smoke tests for the settings loader.

The `monkeypatch` fixture is annotated as `Any`, which keeps the tests fully
typed without importing pytest.

These tests verify four guarantees:
1) Importing the module-level `settings` yields a `Settings` instance.
2) Environment variables override defaults after clearing the loader cache.
3) The auto-save options are derived from settings.
4) `get_logger()` respects the configured LOG_LEVEL when constructing loggers.
"""

from __future__ import annotations

import logging
from typing import Any

from procintake.autosave.state import AutoSaveConfig
from procintake.core.settings import (
    Settings,
    get_logger,
    load_settings,
    settings,
)


def test_settings_instance_type() -> None:
    """`settings` should be an instance of the typed `Settings` model."""
    assert isinstance(settings, Settings)


def test_env_overrides_with_cache_clear(monkeypatch: Any) -> None:
    """Changing env vars should take effect after `load_settings.cache_clear()`."""
    monkeypatch.setenv("PROCINTAKE_ENV", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("PROCINTAKE_API_URL", "http://forms.local:9000")

    load_settings.cache_clear()
    s = load_settings()

    assert s.environment == "test"
    assert s.is_test
    assert s.log_level == "DEBUG"
    assert s.api_url == "http://forms.local:9000"
    load_settings.cache_clear()


def test_autosave_config_from_env(monkeypatch: Any) -> None:
    monkeypatch.setenv("PROCINTAKE_AUTOSAVE_DELAY", "1.5")
    monkeypatch.setenv("PROCINTAKE_AUTOSAVE_ENABLED", "false")

    load_settings.cache_clear()
    cfg = load_settings().autosave_config()
    load_settings.cache_clear()

    assert cfg == AutoSaveConfig(delay=1.5, enabled=False)


def test_get_logger_respects_level(monkeypatch: Any) -> None:
    """`get_logger()` should apply the numeric level derived from `LOG_LEVEL`.

    A unique logger name avoids side effects between tests.
    """
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    load_settings.cache_clear()

    logger = get_logger("procintake.tests.settings")

    assert logger.level == logging.ERROR
    assert logger.handlers, "Expected at least one StreamHandler to be attached."
    load_settings.cache_clear()
