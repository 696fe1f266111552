"""Configuration package."""

from wealthtrack.config.settings import (
    DEFAULT_BALANCE_CORRECTION_CATEGORY_ID,
    AppSettings,
    LedgerSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DEFAULT_BALANCE_CORRECTION_CATEGORY_ID",
    "AppSettings",
    "LedgerSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
