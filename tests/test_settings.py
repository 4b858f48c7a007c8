"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from thcontrol.config import (
    AuthSettings,
    RemoteStoreSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)


class TestSettings:
    def test_defaults(self):
        assert RemoteStoreSettings().base_url == "https://jsonblob.com/api/jsonBlob"
        sync = SyncSettings()
        assert sync.min_push_interval_seconds == 2.0
        assert sync.document_id_key == "th_control_blob_id"
        assert sync.state_key == "th_control_state"
        assert AuthSettings().admin_keys_list == ["Admin1", "Admin2"]

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("THCONTROL_REMOTE_BASE_URL", "https://example.test/blobs/")
        monkeypatch.setenv("THCONTROL_SYNC_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("THCONTROL_AUTH_ADMIN_KEYS", " Jefe , , Otro ")

        assert RemoteStoreSettings().base_url == "https://example.test/blobs"
        assert SyncSettings().data_dir == Path(tmp_path)
        assert AuthSettings().admin_keys_list == ["Jefe", "Otro"]

    def test_empty_base_url_rejected(self):
        with pytest.raises(ValueError):
            RemoteStoreSettings(base_url="  ")

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        monkeypatch.setenv("THCONTROL_SYNC_MIN_PUSH_INTERVAL_SECONDS", "-1")
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["remote"] is True
        assert results["sync"] is False
        assert "sync_error" in results
        get_settings.cache_clear()
