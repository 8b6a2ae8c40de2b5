"""Tests for configuration loading."""

from pathlib import Path

from bookswap.config import Config, get_config, reset_config


class TestConfigFromEnv:
    """Tests for reading configuration from the environment."""

    def test_defaults(self):
        """Test values with nothing set."""
        config = Config.from_env()

        assert config.project_id is None
        assert config.credentials_path is None
        assert config.storage_bucket is None
        assert config.api_key is None
        assert config.auth_timeout == 10
        assert config.require_verified_email is True
        assert config.log_level == "WARNING"
        assert not config.has_auth_config()

    def test_project_and_bucket(self, monkeypatch):
        """Test the bucket defaults from the project ID."""
        monkeypatch.setenv("BOOKSWAP_PROJECT_ID", "swap-prod")

        config = Config.from_env()

        assert config.project_id == "swap-prod"
        assert config.storage_bucket == "swap-prod.appspot.com"

    def test_google_fallbacks(self, monkeypatch, tmp_path):
        """Test the standard Google variables are honoured."""
        key_file = tmp_path / "key.json"
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "gcp-project")
        monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", str(key_file))

        config = Config.from_env()

        assert config.project_id == "gcp-project"
        assert config.credentials_path == key_file

    def test_explicit_values(self, monkeypatch):
        """Test every BOOKSWAP_* variable."""
        monkeypatch.setenv("BOOKSWAP_PROJECT_ID", "swap-prod")
        monkeypatch.setenv("BOOKSWAP_STORAGE_BUCKET", "covers-bucket")
        monkeypatch.setenv("BOOKSWAP_API_KEY", "abc")
        monkeypatch.setenv("BOOKSWAP_AUTH_TIMEOUT", "30")
        monkeypatch.setenv("BOOKSWAP_REQUIRE_VERIFIED_EMAIL", "no")
        monkeypatch.setenv("BOOKSWAP_USER_ID", "alice")
        monkeypatch.setenv("BOOKSWAP_LOG_LEVEL", "debug")

        config = Config.from_env()

        assert config.storage_bucket == "covers-bucket"
        assert config.api_key == "abc"
        assert config.auth_timeout == 30
        assert config.require_verified_email is False
        assert config.user_id == "alice"
        assert config.log_level == "DEBUG"
        assert config.has_auth_config()

    def test_bad_auth_timeout_does_not_raise(self, monkeypatch):
        """Test a non-numeric timeout falls back to the default."""
        monkeypatch.setenv("BOOKSWAP_AUTH_TIMEOUT", "soon")

        config = Config.from_env()

        assert config.auth_timeout == 10
        assert config.invalid == {"BOOKSWAP_AUTH_TIMEOUT": "soon"}

    def test_blank_auth_timeout_uses_default(self, monkeypatch):
        """Test an empty timeout counts as unset."""
        monkeypatch.setenv("BOOKSWAP_AUTH_TIMEOUT", "")

        config = Config.from_env()

        assert config.auth_timeout == 10
        assert config.invalid == {}

    def test_credentials_path_expanded(self, monkeypatch):
        """Test a home-relative credentials path is expanded."""
        monkeypatch.setenv("BOOKSWAP_CREDENTIALS", "~/keys/bookswap.json")

        config = Config.from_env()

        assert config.credentials_path == Path("~/keys/bookswap.json").expanduser()


class TestConfigValidate:
    """Tests for configuration validation."""

    def test_valid(self, config):
        """Test a complete configuration."""
        assert config.validate() == []

    def test_missing_project(self, config):
        """Test a configuration without a project."""
        config.project_id = None
        assert any("No Firebase project" in e for e in config.validate())

    def test_missing_credentials_file(self, config, tmp_path):
        """Test a credentials path that does not exist."""
        config.credentials_path = tmp_path / "missing.json"
        assert any("Credentials file not found" in e for e in config.validate())

    def test_unknown_log_level(self, config):
        """Test a log level logging does not know."""
        config.log_level = "CHATTY"
        assert config.validate() == ["Unknown log level: CHATTY"]

    def test_bad_auth_timeout(self, monkeypatch):
        """Test an unusable timeout is reported instead of raised."""
        monkeypatch.setenv("BOOKSWAP_PROJECT_ID", "swap-prod")
        monkeypatch.setenv("BOOKSWAP_AUTH_TIMEOUT", "-3")

        errors = Config.from_env().validate()

        assert errors == ["BOOKSWAP_AUTH_TIMEOUT must be a positive whole number, got '-3'"]


class TestGlobalConfig:
    """Tests for the shared config instance."""

    def test_cached_until_reset(self, monkeypatch):
        """Test get_config caches and reset_config clears it."""
        monkeypatch.setenv("BOOKSWAP_USER_ID", "alice")
        first = get_config()
        monkeypatch.setenv("BOOKSWAP_USER_ID", "bob")

        assert get_config() is first
        reset_config()
        assert get_config().user_id == "bob"
