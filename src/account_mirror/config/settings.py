"""
Configuration management using pydantic-settings.

Loads configuration from environment variables with validation and type conversion.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Dashboard backend
    mirror_api_base_url: str = Field(
        default="http://localhost:8000", description="Base URL of the dashboard backend REST API"
    )
    mirror_ws_url: Optional[str] = Field(
        default=None, description="Event stream URL; derived from the base URL when unset"
    )
    mirror_auth_token: Optional[str] = Field(
        default=None, description="Initial bearer token for snapshot requests"
    )

    # Service Configuration
    mirror_api_port: int = Field(default=4600, description="View API port")
    mirror_log_level: str = Field(
        default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    mirror_service_name: str = Field(default="account-mirror", description="Service identifier")

    # Event stream
    reconnect_delay_ms: int = Field(default=3000, description="Delay before a reconnect attempt")
    reconnect_backoff_multiplier: float = Field(
        default=1.0, description="Backoff multiplier per failed attempt (1.0 keeps the delay fixed)"
    )
    reconnect_max_delay_ms: int = Field(default=30000, description="Upper bound for backoff delay")
    stream_open_timeout_seconds: float = Field(default=10.0, description="Handshake timeout")
    message_buffer_cap: int = Field(default=1000, description="Received events kept in memory")

    # Reconciliation
    debounce_ms: int = Field(default=300, description="Quiet period before a category refresh fires")
    dedup_cap: int = Field(default=500, description="Maximum remembered event identities")
    payload_fingerprint_length: int = Field(
        default=16, description="Hex characters of the payload digest used in event identity"
    )
    snapshot_fencing: bool = Field(
        default=False, description="Discard snapshot responses older than the last applied one"
    )

    # Snapshot API
    snapshot_timeout_seconds: float = Field(default=10.0, description="Per-request timeout")
    trades_limit: int = Field(default=1000, description="Trades requested per snapshot")
    activity_limit: int = Field(default=100, description="Activity entries requested per snapshot")

    @field_validator("mirror_log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v_upper

    @property
    def stream_url(self) -> str:
        """
        Get the event stream URL.

        Derived from the REST base URL (http -> ws, https -> wss, plus ``/ws``)
        unless ``mirror_ws_url`` is set explicitly.
        """
        if self.mirror_ws_url:
            return self.mirror_ws_url
        base_url = self.mirror_api_base_url.rstrip("/")
        if base_url.startswith("https://"):
            return "wss://" + base_url[len("https://"):] + "/ws"
        return base_url.replace("http://", "ws://", 1) + "/ws"

    @property
    def reconnect_delay_seconds(self) -> float:
        return self.reconnect_delay_ms / 1000.0

    @property
    def reconnect_max_delay_seconds(self) -> float:
        return self.reconnect_max_delay_ms / 1000.0

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


# Global settings instance
settings = Settings()
