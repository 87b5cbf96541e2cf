"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from limits import parse as parse_rate_limit
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "sqlite://",
    "sqlite+pysqlite://",
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
)

# Minimum bcrypt cost accepted from configuration.
MIN_BCRYPT_ROUNDS = 10


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./beershop.db"

    # Sessions: opaque cookie token, persisted as a hash in the sessions table.
    SESSION_COOKIE_NAME: str = "sessionID"
    SESSION_MAX_AGE_SEC: int = 2 * 24 * 60 * 60
    BCRYPT_ROUNDS: int = 12

    # CSRF: header compared against the per-session token on state-changing requests.
    CSRF_HEADER_NAME: str = "X-CSRF-Token"
    CSRF_PROTECTED_PREFIXES: list[str] = ["/v1", "/admin"]

    # Rate limiting ("<count>/<period>" strings understood by the limits library).
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_GLOBAL: str = "100/15 minutes"
    RATE_LIMIT_AUTH: str = "5/minute"
    RATE_LIMIT_UPLOAD: str = "5/minute"
    # Only honour X-Forwarded-For when running behind a trusted reverse proxy.
    TRUST_PROXY_HEADERS: bool = False

    # Request size caps (bytes).
    MAX_REQUEST_BYTES: int = 3 * 1024 * 1024
    MAX_JSON_BYTES: int = 50 * 1024
    MAX_UPLOAD_BYTES: int = 2 * 1024 * 1024
    MAX_XML_BYTES: int = 1 * 1024 * 1024
    UPLOAD_DIR: str = "uploads"

    # Outbound HTTP (status proxy and SSRF-guarded fetch).
    OUTBOUND_TIMEOUT_SEC: float = 3.0
    OUTBOUND_MAX_BYTES: int = 20 * 1024
    STATUS_URL: str = "https://letmegooglethat.com/"
    STATUS_MAX_BYTES: int = 10 * 1024

    REDIRECT_ALLOWED_HOSTS: list[str] = [
        "www.budweiser.com",
        "www.heineken.com",
        "www.coronausa.com",
    ]
    CORS_ORIGINS: list[str] = ["https://yourdomain.com"]

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        if not any(v.startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a SQLite or PostgreSQL URL (e.g. sqlite:///./beershop.db)"
            )
        return v.strip()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return level

    @field_validator("SESSION_COOKIE_NAME", "CSRF_HEADER_NAME")
    @classmethod
    def validate_header_like_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Cookie and header names must be non-empty")
        return v.strip()

    @field_validator("SESSION_MAX_AGE_SEC")
    @classmethod
    def validate_session_max_age(cls, v: int) -> int:
        if v < 60 or v > 30 * 24 * 60 * 60:
            raise ValueError(
                "SESSION_MAX_AGE_SEC must be between 60 and 2592000 (1 minute to 30 days)"
            )
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < MIN_BCRYPT_ROUNDS or v > 16:
            raise ValueError(f"BCRYPT_ROUNDS must be between {MIN_BCRYPT_ROUNDS} and 16")
        return v

    @field_validator("CSRF_PROTECTED_PREFIXES")
    @classmethod
    def validate_csrf_prefixes(cls, v: list[str]) -> list[str]:
        for prefix in v:
            if not prefix.startswith("/"):
                raise ValueError("CSRF_PROTECTED_PREFIXES entries must start with '/'")
        return v

    @field_validator("RATE_LIMIT_GLOBAL", "RATE_LIMIT_AUTH", "RATE_LIMIT_UPLOAD")
    @classmethod
    def validate_rate_limit(cls, v: str) -> str:
        try:
            parse_rate_limit(v)
        except ValueError as e:
            raise ValueError(f"Invalid rate limit expression: {v!r}") from e
        return v

    @field_validator(
        "MAX_REQUEST_BYTES",
        "MAX_JSON_BYTES",
        "MAX_UPLOAD_BYTES",
        "MAX_XML_BYTES",
        "OUTBOUND_MAX_BYTES",
        "STATUS_MAX_BYTES",
    )
    @classmethod
    def validate_byte_caps(cls, v: int) -> int:
        if v < 1 or v > 50 * 1024 * 1024:
            raise ValueError("Byte limits must be between 1 and 52428800 (50 MB)")
        return v

    @field_validator("OUTBOUND_TIMEOUT_SEC")
    @classmethod
    def validate_outbound_timeout(cls, v: float) -> float:
        if v <= 0 or v > 30:
            raise ValueError("OUTBOUND_TIMEOUT_SEC must be greater than 0 and at most 30")
        return v

    @field_validator("STATUS_URL")
    @classmethod
    def validate_status_url(cls, v: str) -> str:
        s = v.strip().lower()
        if not s.startswith("https://"):
            raise ValueError("STATUS_URL must use https")
        return v.strip()

    @field_validator("REDIRECT_ALLOWED_HOSTS")
    @classmethod
    def validate_redirect_hosts(cls, v: list[str]) -> list[str]:
        hosts = [h.strip().lower() for h in v if h and h.strip()]
        for host in hosts:
            if "/" in host or ":" in host or "@" in host:
                raise ValueError(
                    "REDIRECT_ALLOWED_HOSTS entries must be bare hostnames (e.g. www.example.com)"
                )
        return hosts


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()


settings = get_settings()
