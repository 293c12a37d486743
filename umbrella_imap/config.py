"""Configuration loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars.
"""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class MessageConfig(BaseSettings):
    """Per-message decoding settings."""

    model_config = {"env_prefix": "MESSAGE_"}

    charset: str = Field(
        default="UTF-8",
        description="Charset that decoded body fragments are converted to",
    )


class ImapConfig(BaseSettings):
    """IMAP server connection settings."""

    model_config = {"env_prefix": "IMAP_"}

    host: str = Field(description="IMAP server hostname")
    port: int = Field(default=993, description="IMAP server port")
    use_ssl: bool = Field(default=True, description="Use SSL/TLS connection")
    username: str = Field(description="IMAP login username")
    password: SecretStr = Field(description="IMAP login password")
    mailbox: str = Field(default="INBOX", description="IMAP mailbox/folder to open")
    timeout_seconds: float = Field(default=30.0, description="Socket timeout in seconds")


class RetryConfig(BaseSettings):
    """Retry / backoff settings for establishing the IMAP session."""

    model_config = {"env_prefix": "RETRY_"}

    max_attempts: int = Field(default=3, description="Maximum connection attempts")
    initial_wait_seconds: float = Field(
        default=1.0,
        description="Initial backoff wait in seconds",
    )
    max_wait_seconds: float = Field(
        default=30.0,
        description="Maximum backoff wait in seconds",
    )
    multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")


class LoggingConfig(BaseSettings):
    """Log output settings."""

    model_config = {"env_prefix": "LOG_"}

    json_format: bool = Field(
        default=True,
        description="Render JSON lines instead of the console renderer",
    )
    level: str = Field(default="INFO", description="Root log level name")
