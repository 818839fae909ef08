"""Configuration for odata-mcp."""

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from odata_mcp.models import BASELINE_CONNECTION_NAME, Connection

DEFAULT_CONFIG_DIR = Path.home() / ".odata-mcp"
CONFIG_FILE_NAME = "config.yaml"

SUPPORTED_TRANSPORTS = ("stdio", "http", "sse")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # ==========================================================================
    # Baseline OData connection (not part of the named registry)
    # ==========================================================================

    odata_server: str = Field(default="", description="OData server URL (e.g. https://fms.example.com)")
    odata_database: str = Field(default="", description="Hosted database name")
    odata_user: str = Field(default="", description="Account name")
    odata_password: SecretStr = Field(default=SecretStr(""), description="Account password")
    odata_verify_ssl: bool = Field(
        default=True,
        description="Verify TLS certificates of the OData server",
    )
    odata_timeout: int = Field(
        default=30000,
        description="Request timeout in milliseconds",
    )

    # ==========================================================================
    # MCP server configuration
    # ==========================================================================

    mcp_transport: str = Field(
        default="stdio",
        description="MCP transport: 'stdio' for local, 'http' or 'sse' for remote",
    )
    mcp_host: str = Field(default="localhost", description="Host to bind MCP HTTP server")
    mcp_port: int = Field(default=3000, description="Port for MCP HTTP server")
    mcp_path: str = Field(default="/mcp", description="Path for MCP HTTP endpoint")

    # ==========================================================================
    # Storage and logging
    # ==========================================================================

    config_dir: str = Field(
        default="",
        validation_alias="ODATA_MCP_CONFIG_DIR",
        description="Directory holding config.yaml and logs (default: ~/.odata-mcp)",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    log_file: bool = Field(
        default=False,
        validation_alias="MCP_LOG_FILE",
        description="Also write logs to {config_dir}/logs/server.log",
    )

    @property
    def timeout_seconds(self) -> float:
        return self.odata_timeout / 1000

    def get_config_dir(self) -> Path:
        if self.config_dir:
            return Path(self.config_dir).expanduser()
        return DEFAULT_CONFIG_DIR

    def get_config_file(self) -> Path:
        return self.get_config_dir() / CONFIG_FILE_NAME

    def get_log_file(self) -> Path:
        return self.get_config_dir() / "logs" / "server.log"

    def _baseline_fields(self) -> dict[str, str]:
        return {
            "ODATA_SERVER": self.odata_server,
            "ODATA_DATABASE": self.odata_database,
            "ODATA_USER": self.odata_user,
            "ODATA_PASSWORD": self.odata_password.get_secret_value(),
        }

    def baseline_connection(self) -> Connection | None:
        """Return the environment-sourced connection, or None when incomplete."""
        if not all(self._baseline_fields().values()):
            return None
        return Connection(
            name=BASELINE_CONNECTION_NAME,
            server=self.odata_server,
            database=self.odata_database,
            user=self.odata_user,
            password=self.odata_password,
        )

    def validation_errors(self) -> list[str]:
        """Describe configuration problems; an empty list means valid.

        Missing baseline fields are only reported when the baseline is
        partially configured, since named connections make it optional.
        """
        errors: list[str] = []

        fields = self._baseline_fields()
        if any(fields.values()):
            errors.extend(f"{key} is required" for key, value in fields.items() if not value)

        if self.mcp_transport not in SUPPORTED_TRANSPORTS:
            errors.append(
                f"MCP_TRANSPORT must be one of: {', '.join(SUPPORTED_TRANSPORTS)}"
            )
        elif self.mcp_transport != "stdio" and not 1 <= self.mcp_port <= 65535:
            errors.append("MCP_PORT must be between 1 and 65535")

        if self.odata_timeout <= 0:
            errors.append("ODATA_TIMEOUT must be a positive number of milliseconds")

        return errors


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset cached settings (useful for testing)."""
    global _settings
    _settings = None
