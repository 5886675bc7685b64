"""Application settings and configuration.

This module defines all configuration options for the Bonsai Auth service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every external collaborator (shared key-value backend, SQL database, SMTP
    transport) is optional. When one is not configured the service falls back
    to a process-local or console implementation chosen once at startup.
    """

    # Application metadata
    app_name: str = Field(default="Bonsai Auth", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Shared challenge backend (Redis / Upstash)
    redis_url: str | None = Field(default=None, alias="UPSTASH_REDIS_URL")
    redis_timeout_seconds: float = Field(default=2.0, alias="REDIS_TIMEOUT_SECONDS")

    # Durable credential storage
    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Password hashing cost factor
    bcrypt_rounds: int = Field(default=12, ge=4, le=31, alias="BCRYPT_ROUNDS")

    # One-time passcode policy
    otp_ttl_seconds: int = Field(default=300, gt=0, alias="OTP_TTL_SECONDS")
    otp_request_window_seconds: int = Field(
        default=3600,
        gt=0,
        alias="OTP_REQUEST_WINDOW_SECONDS",
    )
    otp_max_requests: int = Field(default=5, gt=0, alias="OTP_MAX_REQUESTS")
    otp_delivery_best_effort: bool = Field(default=True, alias="OTP_DELIVERY_BEST_EFFORT")

    # SMTP transport for OTP delivery
    smtp_host: str = Field(default="", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str = Field(default="", alias="SMTP_USER")
    smtp_pass: str = Field(default="", alias="SMTP_PASS")
    smtp_from: str = Field(default="", alias="SMTP_FROM")
    smtp_timeout_seconds: float = Field(default=10.0, alias="SMTP_TIMEOUT_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=[
            "https://bonsai-auth-frontend.onrender.com",
            "http://localhost:5500",
            "http://127.0.0.1:5500",
        ],
        alias="CORS_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def shared_backend_configured(self) -> bool:
        """Return True when a shared Redis backend should be used for challenges."""
        return bool(self.redis_url)

    @property
    def smtp_configured(self) -> bool:
        """Return True when OTP codes should be delivered over SMTP."""
        return bool(self.smtp_host)

    @property
    def sender_address(self) -> str:
        """Return the From address for outgoing mail.

        Falls back to the SMTP login when no explicit sender is configured.
        """
        return self.smtp_from or self.smtp_user


settings = Settings()
