"""Configuration management for the MCP client node."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for connections, batching and logging."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server configuration
    HOST: str = Field(default="127.0.0.1", description="Server host")
    PORT: int = Field(default=8000, description="Server port")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Logging format: json or text")

    # Client identity sent during the MCP handshake
    CLIENT_NAME: str = Field(default="McpClient-client", description="MCP client name")
    CLIENT_VERSION: str = Field(default="1.0.0", description="MCP client version")

    # Timeouts (milliseconds)
    DEFAULT_TIMEOUT_MS: int = Field(default=600000, ge=1, description="Default request timeout")
    HTTP_TIMEOUT_MS: int = Field(default=60000, ge=1, description="Default timeout for SSE and HTTP transports")

    # Stdio subprocess environment
    ENV_PASSTHROUGH_PREFIX: str = Field(
        default="MCP_",
        min_length=1,
        description="Ambient variables with this prefix are passed to stdio servers with the prefix stripped"
    )

    # Batching
    DEFAULT_BATCH_SIZE: int = Field(default=50, ge=1, le=1000, description="Items per batch when not configured")
    MAX_BATCH_SIZE: int = Field(default=1000, ge=1, description="Upper bound for items per batch")
    MAX_BATCH_INTERVAL_MS: int = Field(default=60000, ge=0, description="Upper bound for the delay between batches")

    @field_validator('LOG_LEVEL')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('LOG_FORMAT')
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format"""
        valid_formats = ['json', 'text']
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}")
        return v.lower()


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings (for dependency injection)"""
    return settings
