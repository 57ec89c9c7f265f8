"""
Configuration Management for Smart Finance

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each backend has its own settings class with its own env prefix, so a
device that only uses the local store never needs cloud credentials.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LocalStoreSettings(BaseSettings):
    """On-device store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    path: Path = Field(
        default=Path.home() / ".smartfinance" / "store.json",
        description="JSON file holding state and preferences"
    )
    fsync: bool = Field(
        default=True,
        description="fsync the store file after every write"
    )


class FirestoreSettings(BaseSettings):
    """Realtime document store (Cloud Firestore) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIRESTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    project_id: Optional[str] = Field(
        default=None,
        description="GCP project id (defaults to the one in the credentials)"
    )
    collection: str = Field(
        default="finance_data",
        description="Collection holding the snapshot document"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firestore credentials file not found at {v}. "
                "Make sure it exists before enabling cloud sync."
            )
        return v


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets (manual cloud backup) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    snapshot_sheet_name: str = Field(
        default="Snapshot",
        description="Name of the worksheet holding the snapshot"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before enabling cloud sync."
            )
        return v


class SyncSettings(BaseSettings):
    """Which sync backend to use and how."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["firestore", "sheets", "memory", "none"] = Field(
        default="none",
        description="Active sync backend"
    )
    document_id: str = Field(
        default="admin_default",
        description="Remote document holding this user's snapshot"
    )
    auto_push_manual: bool = Field(
        default=False,
        description="Also push after every local change on manual backends"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    environment: str = Field(
        default="development",
        description="Application environment"
    )
    default_currency: str = Field(
        default="USD",
        min_length=1,
        description="Currency of a freshly seeded state"
    )
    backup_directory: Path = Field(
        default=Path.home() / "Downloads",
        description="Where backup files are written"
    )
    event_history_size: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="Sync events kept in memory for display"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily so a device without cloud credentials still starts

    @property
    def local_store(self) -> LocalStoreSettings:
        return LocalStoreSettings()

    @property
    def firestore(self) -> FirestoreSettings:
        return FirestoreSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus "<name>_error" entries
    for the ones that failed. Useful for startup checks.
    """
    results: dict[str, object] = {}
    settings = get_settings()

    for name in ("local_store", "sync", "app", "firestore", "google_sheets"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
