"""LeadHub-Engine configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_DEFAULTS = {
    "secret_key": "insecure-dev-key-change-me",
    "super_admin_key": "insecure-super-admin-key-change-me",
}

DEFAULT_POLICY_ORDER = ["after_hours", "away", "auto_response", "welcome"]


class LeadhubSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEADHUB_")

    environment: str = "development"
    secret_key: str = "insecure-dev-key-change-me"

    # Master secret for the credential vault. No default: the app refuses to
    # start without it.
    encryption_key: str = ""

    super_admin_key: str = "insecure-super-admin-key-change-me"
    cron_secret: str = ""

    # Database
    db_url: str = "sqlite+aiosqlite:///./data/leadhub.db"
    db_max_retries: int = 3
    db_retry_base_delay: float = 1.0  # seconds, multiplied by attempt number

    # API
    api_title: str = "LeadHub-Engine"
    api_version: str = "0.1.0"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["http://localhost:3000"]
    public_base_url: str = "http://localhost:8080"

    # Sessions
    session_max_age: int = 8 * 3600

    # Outbound timeouts (seconds)
    gateway_timeout: float = 15.0
    monitor_timeout: float = 10.0
    link_preview_timeout: float = 6.0

    # Automation
    automation_policy_order: list[str] = DEFAULT_POLICY_ORDER
    default_timezone: str = "America/Sao_Paulo"

    log_level: str = "INFO"

    def validate_for_production(self) -> None:
        """Raise if insecure defaults are used in non-development environments."""
        insecure_fields = [
            field
            for field, default in _INSECURE_DEFAULTS.items()
            if getattr(self, field) == default
        ]

        if self.environment != "development" and insecure_fields:
            env_vars = ", ".join(f"LEADHUB_{f.upper()}" for f in insecure_fields)
            raise RuntimeError(
                f"Insecure default values detected in '{self.environment}' environment. "
                f"Set these environment variables to secure values: {env_vars}. "
                "Generate secrets with: python -c \"import secrets; print(secrets.token_urlsafe(48))\""
            )

        if insecure_fields:
            warnings.warn(
                "Using insecure default keys — set LEADHUB_SECRET_KEY and "
                "LEADHUB_SUPER_ADMIN_KEY for production",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> LeadhubSettings:
    settings = LeadhubSettings()
    settings.validate_for_production()
    return settings
