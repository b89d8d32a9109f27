"""Configuration management using Pydantic Settings."""

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class SinkSettings(BaseModel):
    """Destination and bearer credential for one telemetry backend."""

    url: str = ""
    user_id: str = ""
    api_key: str = ""


class TelemetrySettings(BaseSettings):
    """Telemetry settings loaded from environment variables.

    Nested sink settings use a double underscore, e.g.
    ``LOKIFLUX_METRICS__URL`` or ``LOKIFLUX_LOGGING__API_KEY``.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOKIFLUX_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Labels
    component: str = "jwt-pizza-service-dev"
    source: str = "jwt-pizza-service-dev"

    # Sinks
    metrics: SinkSettings = SinkSettings()
    logging: SinkSettings = SinkSettings()

    # Scheduler
    flush_interval: float = 60.0

    # Delivery
    max_attempts: int = 3
    retry_base_delay: float = 1.0
    request_timeout: float = 10.0

    # Capture
    max_body_length: int = 200
    exclude_paths: list[str] = []


# Global settings instance
_settings: TelemetrySettings | None = None


def get_settings() -> TelemetrySettings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = TelemetrySettings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
