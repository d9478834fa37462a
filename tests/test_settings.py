"""
Tests for environment-driven settings.

Run tests:
    pytest tests/test_settings.py -v
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from gridscan.graphics.uniforms import GridScanConfig
from gridscan.settings import EffectSettings, RelaySettings, Settings, get_settings

ENV_VARS = [
    "PORT",
    "GOOGLE_CREDS",
    "GRIDSCAN_ENV",
    "GRIDSCAN_DEBUG",
    "GRIDSCAN_RELAY_PORT",
    "GRIDSCAN_RELAY_SPREADSHEET_ID",
    "GRIDSCAN_EFFECT_SENSITIVITY",
    "GRIDSCAN_EFFECT_LINE_STYLE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate from the developer's environment and any local .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestEffectSettings:

    def test_defaults_match_config(self):
        assert EffectSettings().to_config() == GridScanConfig()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GRIDSCAN_EFFECT_SENSITIVITY", "0.9")
        monkeypatch.setenv("GRIDSCAN_EFFECT_LINE_STYLE", "dashed")
        config = EffectSettings().to_config()
        assert config.sensitivity == 0.9
        assert config.line_style == "dashed"

    def test_out_of_range_rejected(self, monkeypatch):
        monkeypatch.setenv("GRIDSCAN_EFFECT_SENSITIVITY", "1.5")
        with pytest.raises(ValidationError):
            EffectSettings()

    def test_unknown_line_style_rejected(self):
        with pytest.raises(ValidationError):
            EffectSettings(line_style="wavy")


class TestRelaySettings:

    def test_defaults(self):
        relay = RelaySettings()
        assert relay.port == 3000
        assert relay.poll_interval == 5.0
        assert relay.google_creds == ""
        assert relay.credentials_file == Path("credentials.json")

    def test_plain_port_variable(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert RelaySettings().port == 8080

    def test_prefixed_port_variable(self, monkeypatch):
        monkeypatch.setenv("GRIDSCAN_RELAY_PORT", "8081")
        assert RelaySettings().port == 8081

    def test_google_creds(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_CREDS", '{"type": "service_account"}')
        assert RelaySettings().google_creds == '{"type": "service_account"}'

    def test_field_names_accepted(self):
        assert RelaySettings(port=9000).port == 9000


class TestSettings:

    def test_default_mode(self):
        settings = Settings()
        assert settings.is_effect
        assert not settings.is_relay
        assert not settings.debug

    def test_relay_mode_from_env(self, monkeypatch):
        monkeypatch.setenv("GRIDSCAN_ENV", "relay")
        monkeypatch.setenv("GRIDSCAN_RELAY_SPREADSHEET_ID", "abc123")
        settings = Settings()
        assert settings.is_relay
        assert settings.relay.spreadsheet_id == "abc123"

    def test_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("GRIDSCAN_DEBUG=true\n")
        assert Settings().debug

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
