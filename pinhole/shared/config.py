"""Configuration management using pydantic-settings."""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Local front bind host")
    port: int = Field(default=8001, description="Local front port", ge=1, le=65535)
    nats_url: str = Field(default="nats://localhost:4222", description="NATS server URL")
    function_name: str = Field(
        default="pinhole-replay", description="Subject the replay function listens on"
    )
    worker_queue: str = Field(default="pinhole-replay", description="Queue group for replay workers")
    invoke_timeout: float = Field(default=35.0, description="Invocation timeout in seconds", ge=1.0)
    upstream_timeout: float = Field(
        default=30.0, description="Timeout for the call to the private target in seconds", ge=1.0
    )
    upstream_skip_tls_verify: bool = Field(
        default=True,
        description=(
            "Disable TLS certificate validation for the private target. "
            "Only safe when the target lives inside a network the operator controls."
        ),
    )
    verbose: bool = Field(default=True, description="Log every proxied request")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """Get the application settings instance."""
    return Settings()
