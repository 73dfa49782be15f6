"""Application configuration loaded from environment variables.

Settings for database, API, authentication, email delivery and the
one-time-passcode (OTP) registration workflow. Uses pydantic-settings for
validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "inkwell_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "inkwell"
    database_user: str = "inkwell_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # CRITICAL: Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Application
    environment: str = "development"
    # Level for app, module and structlog output; SQL statements are never echoed
    log_level: str = "INFO"

    # Authentication (JWT in httpOnly cookie)
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "inkwell"
    auth_cookie_name: str = "access_token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "strict"
    auth_cookie_domain: str = ""

    # Email (Resend API)
    email_from: str = "noreply@inkwell.blog"
    resend_api_key: SecretStr = SecretStr("")

    # One-time passcode registration
    otp_expiry_minutes: int = 5
    otp_resend_interval_minutes: int = 5
    # "database" persists pending registrations in PostgreSQL; "memory" keeps
    # them in-process (local-first single instance only)
    otp_store_backend: Literal["database", "memory"] = "database"

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_register: str = "5/hour"
    rate_limit_verify: str = "10/minute"
    rate_limit_resend: str = "5/hour"
    rate_limit_login: str = "5/15minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - OTP expiry and resend windows must be positive (all environments)
        - LOG_LEVEL must name a standard logging level
        - SameSite=None requires Secure flag (browser requirement)
        - CORS must not use wildcard origin (incompatible with credentials)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        """
        if self.otp_expiry_minutes <= 0:
            msg = f"OTP_EXPIRY_MINUTES must be positive. Got: {self.otp_expiry_minutes}"
            raise ValueError(msg)
        if self.otp_resend_interval_minutes <= 0:
            msg = (
                "OTP_RESEND_INTERVAL_MINUTES must be positive. "
                f"Got: {self.otp_resend_interval_minutes}"
            )
            raise ValueError(msg)

        if self.log_level.upper() not in _LOG_LEVELS:
            msg = (
                f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}. "
                f"Got: {self.log_level}"
            )
            raise ValueError(msg)

        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                msg = (
                    f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                    "characters in production."
                )
                raise ValueError(msg)

        return self


settings = Settings()
