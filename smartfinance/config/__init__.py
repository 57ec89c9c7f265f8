"""Configuration package."""

from smartfinance.config.settings import (
    AppSettings,
    FirestoreSettings,
    GoogleSheetsSettings,
    LocalStoreSettings,
    Settings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FirestoreSettings",
    "GoogleSheetsSettings",
    "LocalStoreSettings",
    "Settings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
