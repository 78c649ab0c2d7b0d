"""Tests for session settings."""
import pytest

from netcommit.config.settings import DEFAULT_SSH_CIPHERS, Settings


class TestSettings:
    """Tests for Settings defaults and checks."""

    def test_defaults(self):
        settings = Settings(host="192.0.2.1")
        assert settings.port == 830
        assert settings.username == "netconf"
        assert settings.connect_retries == 1
        assert settings.ssh_ciphers == DEFAULT_SSH_CIPHERS
        assert settings.device_id == "192.0.2.1"
        assert not settings.offline

    def test_name_is_device_id(self):
        assert Settings(host="192.0.2.1", name="srx-1").device_id == "srx-1"

    @pytest.mark.parametrize("value,expected", [(0, 1), (4, 4), (50, 10)])
    def test_connect_retries_clamped(self, value, expected):
        assert Settings(connect_retries=value).connect_retries == expected

    def test_commit_confirmed_range(self):
        with pytest.raises(ValueError, match="commit_confirmed"):
            Settings(commit_confirmed=0)
        with pytest.raises(ValueError, match="commit_confirmed"):
            Settings(commit_confirmed=65536)

    def test_wait_percent_range(self):
        with pytest.raises(ValueError, match="wait_percent"):
            Settings(commit_confirmed=1, commit_confirmed_wait_percent=100)

    def test_commit_confirmed_wait(self):
        assert Settings(commit_confirmed=10).commit_confirmed_wait == 540
        assert Settings().commit_confirmed_wait == 0

    def test_home_expanded(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        settings = Settings(fake_set_file="~/staged.set")
        assert settings.fake_set_file == str(tmp_path / "staged.set")
        assert settings.offline

    def test_get_password_from_env(self, monkeypatch):
        """Password falls back to the configured env var."""
        monkeypatch.setenv("SRX_PASSWORD", "env_secret")
        settings = Settings(password_env="SRX_PASSWORD")
        assert settings.get_password() == "env_secret"

    def test_explicit_password_wins(self, monkeypatch):
        monkeypatch.setenv("NETCOMMIT_PASSWORD", "env_secret")
        assert Settings(password="direct").get_password() == "direct"

    def test_from_dict_ignores_unknown(self):
        settings = Settings.from_dict({"host": "192.0.2.1", "retries": 3})
        assert settings.host == "192.0.2.1"


class TestSettingsFromEnv:
    """Tests for NETCOMMIT_* environment variables."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NETCOMMIT_HOST", "192.0.2.9")
        monkeypatch.setenv("NETCOMMIT_PORT", "22")
        monkeypatch.setenv("NETCOMMIT_SLEEP_LOCK", "2.5")
        monkeypatch.setenv("NETCOMMIT_FAKEUPDATE_ALSO", "true")
        monkeypatch.setenv("NETCOMMIT_SSH_CIPHERS", "aes256-ctr, aes128-ctr")

        settings = Settings.from_env()

        assert settings.host == "192.0.2.9"
        assert settings.port == 22
        assert settings.sleep_lock == 2.5
        assert settings.fake_update_also is True
        assert settings.ssh_ciphers == ["aes256-ctr", "aes128-ctr"]

    def test_bad_value_skipped(self, monkeypatch):
        monkeypatch.setenv("NETCOMMIT_PORT", "eight-thirty")
        assert Settings.from_env().port == 830

    def test_base_wins(self, monkeypatch):
        monkeypatch.setenv("NETCOMMIT_HOST", "192.0.2.9")
        settings = Settings.from_env({"host": "192.0.2.1", "name": "srx-1"})
        assert settings.host == "192.0.2.1"
        assert settings.device_id == "srx-1"
