"""Application settings and configuration management."""
from typing import ClassVar, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class OperaSettings(BaseSettings):
    """OPERA Cloud (OHIP gateway) configuration."""

    gateway_url: str = ""
    enterprise_id: str = ""
    hotel_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    app_key: str = ""
    scope: str = ""

    default_rate_plan_code: str = "AIF-2025"
    request_timeout: float = 15.0  # seconds, whole request
    connect_timeout: float = 5.0  # seconds, TCP/TLS connect only
    availability_limit: int = 50

    # Token grant retries (transient failures only)
    token_max_retries: int = 2
    retry_backoff_seconds: float = 0.5

    # Reservation payload defaults
    guarantee_code: str = "PROP"
    currency_code: str = "USD"

    # Optional JSON file replacing the built-in room/rate catalog
    catalog_path: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="OPERA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "gateway_url",
        "enterprise_id",
        "hotel_id",
        "client_id",
        "client_secret",
        "app_key",
        "scope",
    )

    @property
    def base_url(self) -> str:
        """Gateway URL without trailing slash."""
        return self.gateway_url.strip().rstrip("/")

    def missing_required(self) -> list[str]:
        """Return the env var names of required values that are not set."""
        return [
            f"OPERA_{name.upper()}"
            for name in self.REQUIRED_FIELDS
            if not str(getattr(self, name) or "").strip()
        ]


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"

    model_config = SettingsConfigDict(env_prefix="LOG_")


class Settings(BaseSettings):
    """Main application settings."""

    environment: Literal["dev", "staging", "prod"] = "dev"
    debug: bool = False

    # Sub-settings
    opera: OperaSettings = OperaSettings()
    logging: LoggingSettings = LoggingSettings()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
