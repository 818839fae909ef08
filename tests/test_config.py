"""Tests for environment-driven settings."""

from pathlib import Path

from odata_mcp.config import DEFAULT_CONFIG_DIR, Settings, get_settings, reset_settings


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("ODATA_MCP_CONFIG_DIR")
        settings = Settings()

        assert settings.mcp_transport == "stdio"
        assert settings.mcp_host == "localhost"
        assert settings.mcp_port == 3000
        assert settings.odata_verify_ssl is True
        assert settings.timeout_seconds == 30.0
        assert settings.get_config_dir() == DEFAULT_CONFIG_DIR
        assert settings.validation_errors() == []

    def test_config_dir_from_env(self, tmp_path):
        settings = Settings()
        assert settings.get_config_dir() == tmp_path / "config"
        assert settings.get_config_file() == tmp_path / "config" / "config.yaml"
        assert settings.get_log_file() == tmp_path / "config" / "logs" / "server.log"


class TestEnvironment:
    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("ODATA_TIMEOUT", "5000")
        monkeypatch.setenv("ODATA_VERIFY_SSL", "FALSE")
        monkeypatch.setenv("MCP_TRANSPORT", "http")
        monkeypatch.setenv("MCP_PORT", "8080")
        monkeypatch.setenv("MCP_LOG_FILE", "true")

        settings = Settings()

        assert settings.timeout_seconds == 5.0
        assert settings.odata_verify_ssl is False
        assert settings.mcp_transport == "http"
        assert settings.mcp_port == 8080
        assert settings.log_file is True

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("ODATA_SERVER=https://dotenv.example.com\n")
        assert Settings().odata_server == "https://dotenv.example.com"

    def test_cached(self, monkeypatch):
        first = get_settings()
        assert get_settings() is first

        monkeypatch.setenv("MCP_HOST", "0.0.0.0")
        reset_settings()

        assert get_settings().mcp_host == "0.0.0.0"


class TestBaselineConnection:
    def _full(self, monkeypatch):
        monkeypatch.setenv("ODATA_SERVER", "https://fms.example.com")
        monkeypatch.setenv("ODATA_DATABASE", "Sales")
        monkeypatch.setenv("ODATA_USER", "admin")
        monkeypatch.setenv("ODATA_PASSWORD", "hunter2")

    def test_complete(self, monkeypatch):
        self._full(monkeypatch)

        conn = Settings().baseline_connection()

        assert conn.name == "$env"
        assert conn.address == "https://fms.example.com/Sales"
        assert conn.password.get_secret_value() == "hunter2"

    def test_password_not_in_repr(self, monkeypatch):
        self._full(monkeypatch)
        assert "hunter2" not in repr(Settings())

    def test_incomplete(self, monkeypatch):
        monkeypatch.setenv("ODATA_SERVER", "https://fms.example.com")
        monkeypatch.setenv("ODATA_DATABASE", "Sales")

        settings = Settings()

        assert settings.baseline_connection() is None
        assert settings.validation_errors() == [
            "ODATA_USER is required",
            "ODATA_PASSWORD is required",
        ]


class TestValidation:
    def test_unknown_transport(self):
        errors = Settings(mcp_transport="carrier-pigeon").validation_errors()
        assert errors == ["MCP_TRANSPORT must be one of: stdio, http, sse"]

    def test_port_range_for_http(self):
        assert Settings(mcp_transport="http", mcp_port=0).validation_errors() == [
            "MCP_PORT must be between 1 and 65535"
        ]
        assert Settings(mcp_transport="sse", mcp_port=70000).validation_errors() != []

    def test_port_ignored_for_stdio(self):
        assert Settings(mcp_transport="stdio", mcp_port=0).validation_errors() == []

    def test_timeout_must_be_positive(self):
        assert Settings(odata_timeout=0).validation_errors() == [
            "ODATA_TIMEOUT must be a positive number of milliseconds"
        ]


def test_config_dir_expands_user(monkeypatch):
    monkeypatch.setenv("ODATA_MCP_CONFIG_DIR", "~/odata-test")
    assert Settings().get_config_dir() == Path("~/odata-test").expanduser()
