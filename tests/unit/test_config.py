"""Unit tests — Settings.load, get_settings, override_settings."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from da_rack.config import Settings, get_settings, override_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DA_WRITE_TOKEN", "DA_INSTANCEID", "DA_SERVER__PORT", "DA_SECURITY__WRITE_TOKEN"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
class TestSettingsDefaults:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.server.port == 8787
        assert settings.server.host == "127.0.0.1"
        assert settings.security.write_token is None
        assert settings.service.instance_id == "default"
        assert settings.diagnostics.file is None

    def test_source_id(self) -> None:
        settings = Settings(service={"instance_id": "eu-1"})
        assert settings.service.source_id() == "da-cloud-cfd1-rack/eu-1"

    def test_port_range_validated(self) -> None:
        with pytest.raises(ValidationError):
            Settings(server={"port": 70000})


@pytest.mark.unit
class TestSettingsLoad:
    def test_load_defaults_when_no_files(self) -> None:
        with patch.object(Path, "exists", return_value=False):
            settings = Settings.load()
        assert settings.server.port == 8787

    def test_load_from_custom_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "server:\n  port: 9999\n"
            "storage:\n  database: ':memory:'\n"
            "service:\n  instance_id: staging\n"
        )
        settings = Settings.load(config_file=config_file)
        assert settings.server.port == 9999
        assert settings.storage.database == ":memory:"
        assert settings.service.instance_id == "staging"

    def test_empty_config_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        settings = Settings.load(config_file=config_file)
        assert isinstance(settings, Settings)

    def test_flat_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DA_WRITE_TOKEN", "s3cret")
        monkeypatch.setenv("DA_INSTANCEID", "edge-7")
        with patch.object(Path, "exists", return_value=False):
            settings = Settings.load()
        assert settings.security.write_token == "s3cret"
        assert settings.service.source_id() == "da-cloud-cfd1-rack/edge-7"

    def test_flat_env_beats_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("security:\n  write_token: from-file\n")
        monkeypatch.setenv("DA_WRITE_TOKEN", "from-env")
        settings = Settings.load(config_file=config_file)
        assert settings.security.write_token == "from-env"

    def test_nested_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DA_SERVER__PORT", "9100")
        with patch.object(Path, "exists", return_value=False):
            settings = Settings.load()
        assert settings.server.port == 9100


@pytest.mark.unit
class TestGetSettings:
    def test_get_settings_returns_cached_instance(self) -> None:
        import da_rack.config as cfg_module

        original = cfg_module._settings
        try:
            mock_settings = Settings()
            cfg_module._settings = mock_settings
            assert get_settings() is mock_settings
        finally:
            cfg_module._settings = original

    def test_override_sets_singleton(self) -> None:
        import da_rack.config as cfg_module

        original = cfg_module._settings
        try:
            custom = Settings(service={"instance_id": "x"})
            override_settings(custom)
            assert get_settings() is custom
        finally:
            cfg_module._settings = original
