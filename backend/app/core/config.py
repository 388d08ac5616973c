"""Application configuration loaded from environment variables.

Settings for database, rate limiting store, SMS provider, and session
lifetime. Uses pydantic-settings for validation and .env file support.
"""

import re

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "dumplin_dev_password"  # nosec B105

_REVIEW_CODE_PATTERN = re.compile(r"^\d{5}$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = (
        f"postgresql://dumplin_user:{_INSECURE_DEFAULT_PASSWORD}"
        "@localhost:5432/dumplin"
    )
    database_connect_timeout: int = 5
    database_pool_recycle: int = 20

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS
    # Bearer tokens travel in the Authorization header, not cookies, so a
    # wildcard origin is acceptable (credentials stay disabled).
    allowed_origins: list[str] = ["*"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Sessions
    session_expiry_days: int = 30

    # SMS (Twilio)
    twilio_account_sid: str = ""
    twilio_auth_token: SecretStr = SecretStr("")
    twilio_phone_number: str = ""

    # App store review pair: bypasses SMS dispatch and code lookup.
    # Both must be set to enable the bypass.
    review_phone_number: str = ""
    review_code: str = ""

    # Send-code throttling (Redis). Empty REDIS_URL disables it (fail-open).
    redis_url: str = ""
    send_code_ip_limit: int = 10
    send_code_ip_window_seconds: int = 60
    send_code_phone_limit: int = 10
    send_code_phone_window_seconds: int = 3600
    send_code_cooldown_seconds: int = 30

    # Decorator rate limiting (slowapi)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_verify: str = "10/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def async_database_url(self) -> str:
        """Async database URL for SQLAlchemy (asyncpg driver)."""
        url = self.database_url
        for prefix in ("postgresql://", "postgres://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix) :]
        return url

    @property
    def rate_limiting_configured(self) -> bool:
        """True when a Redis store is available for send-code throttling."""
        return bool(self.redis_url)

    @property
    def review_bypass_enabled(self) -> bool:
        """True when the review phone/code pair is fully configured."""
        return bool(self.review_phone_number and self.review_code)

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - Session expiry must be at least one day (all environments)
        - Review pair must be fully set or fully unset (all environments)
        - Review code must look like a real 5-digit code (all environments)
        - Database password must not be the default in production
        - Twilio must be fully configured in production
        """
        if self.session_expiry_days < 1:
            msg = (
                "SESSION_EXPIRY_DAYS must be at least 1. "
                f"Got: {self.session_expiry_days}"
            )
            raise ValueError(msg)

        if bool(self.review_phone_number) != bool(self.review_code):
            msg = (
                "REVIEW_PHONE_NUMBER and REVIEW_CODE must be set together. "
                "Leave both empty to disable the review bypass."
            )
            raise ValueError(msg)

        if self.review_code and not _REVIEW_CODE_PATTERN.match(self.review_code):
            msg = "REVIEW_CODE must be exactly 5 digits."
            raise ValueError(msg)

        if self.environment == "production":
            if _INSECURE_DEFAULT_PASSWORD in self.database_url:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_URL environment variable to a secure value."
                )
                raise ValueError(msg)

            twilio_values = (
                self.twilio_account_sid,
                self.twilio_auth_token.get_secret_value(),
                self.twilio_phone_number,
            )
            if not all(twilio_values):
                msg = (
                    "TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN and TWILIO_PHONE_NUMBER "
                    "must all be set in production."
                )
                raise ValueError(msg)

        return self


settings = Settings()
