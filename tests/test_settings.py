"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from smartfinance.config import (
    AppSettings,
    FirestoreSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)


class TestSettings:
    """Tests for the settings classes."""

    def test_defaults(self):
        sync = SyncSettings()
        assert sync.backend == "none"
        assert sync.document_id == "admin_default"
        assert sync.auto_push_manual is False
        assert AppSettings().default_currency == "USD"

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SYNC_BACKEND", "firestore")
        monkeypatch.setenv("SYNC_DOCUMENT_ID", "household")
        monkeypatch.setenv("APP_DEFAULT_CURRENCY", "MMK")
        settings = get_settings()
        assert settings.sync.backend == "firestore"
        assert settings.sync.document_id == "household"
        assert settings.app.default_currency == "MMK"
        assert settings.app.backup_directory == tmp_path / "backups"

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("SYNC_BACKEND", "dropbox")
        with pytest.raises(ValidationError):
            SyncSettings()

    def test_firestore_requires_credentials(self, monkeypatch):
        monkeypatch.delenv("FIRESTORE_CREDENTIALS_PATH", raising=False)
        with pytest.raises(ValidationError):
            FirestoreSettings()

    def test_missing_credentials_file_warns(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FIRESTORE_CREDENTIALS_PATH", str(tmp_path / "missing.json"))
        with pytest.warns(UserWarning):
            settings = FirestoreSettings()
        assert settings.collection == "finance_data"

    def test_validate_all_settings(self, monkeypatch):
        monkeypatch.delenv("FIRESTORE_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        results = validate_all_settings()
        assert results["local_store"] is True
        assert results["app"] is True
        assert results["firestore"] is False
        assert "firestore_error" in results

    def test_store_path_from_env(self, tmp_path):
        assert get_settings().local_store.path == Path(tmp_path / "store.json")
