"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "postgres+psycopg2://",
    "sqlite://",
)


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
    API_PREFIX: str = "/api"

    # Required: the process refuses to start without a database or a signing secret.
    DATABASE_URL: str
    DB_TIMEOUT_SEC: float = 5.0

    # JWT authentication (token lifetime is fixed at 24h, see app.core.security)
    JWT_SECRET: SecretStr
    JWT_ALGORITHM: str = "HS256"

    # Bcrypt cost (rounds); 12 is a good default for security vs speed.
    BCRYPT_ROUNDS: int = 12

    # First-run administrator; a random password is generated and logged when unset.
    DEFAULT_ADMIN_PASSWORD: SecretStr | None = None

    # Upstream media services (optional; each relay answers 503 until configured)
    JELLYFIN_URL: str | None = None
    JELLYFIN_API_KEY: SecretStr | None = None
    TMDB_URL: str | None = "https://api.themoviedb.org/3"
    TMDB_TOKEN: SecretStr | None = None
    RADARR_URL: str | None = None
    RADARR_API_KEY: SecretStr | None = None
    SONARR_URL: str | None = None
    SONARR_API_KEY: SecretStr | None = None
    UPSTREAM_TIMEOUT_SEC: float = 10.0

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        if not any(v.strip().startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a PostgreSQL or SQLite URL (e.g. postgresql+psycopg2:// or sqlite://)"
            )
        return v.strip()

    @field_validator("DB_TIMEOUT_SEC")
    @classmethod
    def validate_db_timeout(cls, v: float) -> float:
        if v <= 0 or v >= 10:
            raise ValueError("DB_TIMEOUT_SEC must be greater than 0 and less than 10")
        return v

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_ALGORITHM must be set and non-empty")
        if not v.strip().startswith("HS"):
            raise ValueError("JWT_ALGORITHM must be a symmetric HMAC algorithm (HS256, HS384, HS512)")
        return v.strip()

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < 4 or v > 16:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 16")
        return v

    @field_validator("DEFAULT_ADMIN_PASSWORD")
    @classmethod
    def validate_default_admin_password(cls, v: SecretStr | None) -> SecretStr | None:
        if v is None or not v.get_secret_value():
            return None
        if len(v.get_secret_value()) < 4:
            raise ValueError("DEFAULT_ADMIN_PASSWORD must be at least 4 characters")
        return v

    @field_validator("JELLYFIN_URL", "TMDB_URL", "RADARR_URL", "SONARR_URL")
    @classmethod
    def validate_upstream_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        s = v.strip().lower()
        if not (s.startswith("http://") or s.startswith("https://")):
            raise ValueError("Upstream URLs must use http or https (e.g. http://localhost:8096)")
        return v.strip().rstrip("/")

    @field_validator("UPSTREAM_TIMEOUT_SEC")
    @classmethod
    def validate_upstream_timeout(cls, v: float) -> float:
        if v <= 0 or v > 120:
            raise ValueError("UPSTREAM_TIMEOUT_SEC must be greater than 0 and at most 120")
        return v


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance; raises pydantic.ValidationError when required values are missing."""
    return Settings()
