"""Tests for settings loading."""

import logging

import pytest
from pydantic import ValidationError

from wealthtrack.audit import configure_logging
from wealthtrack.config import (
    DEFAULT_BALANCE_CORRECTION_CATEGORY_ID,
    AppSettings,
    LedgerSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults():
    settings = get_settings()

    assert settings.storage.backend == "memory"
    assert settings.ledger.balance_correction_category_id == DEFAULT_BALANCE_CORRECTION_CATEGORY_ID
    assert settings.ledger.conflict_retry_attempts == 3
    assert settings.app.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WEALTHTRACK_LEDGER_CONFLICT_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("WEALTHTRACK_LEDGER_BALANCE_CORRECTION_DESCRIPTION", "Adjustment")

    ledger = LedgerSettings()

    assert ledger.conflict_retry_attempts == 5
    assert ledger.balance_correction_description == "Adjustment"


def test_unknown_backend_rejected():
    with pytest.raises(ValidationError):
        StorageSettings(backend="postgres")


def test_validate_all_settings():
    results = validate_all_settings()
    assert results == {"storage": True, "ledger": True, "app": True}


def test_validate_all_settings_reports_errors(monkeypatch):
    monkeypatch.setenv("WEALTHTRACK_STORAGE_BACKEND", "postgres")

    results = validate_all_settings()

    assert results["storage"] is False
    assert "storage_error" in results
    assert results["ledger"] is True


def test_debug_mode_overrides_log_level():
    root = logging.getLogger()
    previous = root.level
    try:
        configure_logging(AppSettings(log_level="WARNING", debug_mode=True))
        assert root.level == logging.DEBUG

        configure_logging(AppSettings(log_level="WARNING"))
        assert root.level == logging.WARNING
    finally:
        root.setLevel(previous)
