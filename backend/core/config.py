"""Application settings."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the account service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = "local"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./vidtube.db"

    access_token_secret: str = "change-me-access-token-secret-0123456789"
    access_token_expire_minutes: int = 15
    refresh_token_secret: str = "change-me-refresh-token-secret-0123456789"
    refresh_token_expire_minutes: int = 60 * 24 * 10
    jwt_algorithm: str = "HS256"

    bcrypt_rounds: int = 10

    allow_insecure_http_cookies: bool = False
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_secure: bool = False
    minio_bucket: str = "vidtube"
    # Public base for object URLs; defaults to the MinIO endpoint itself.
    minio_public_base_url: str | None = None
    upload_max_bytes: int = 10 * 1024 * 1024

    @property
    def cookie_secure(self) -> bool:
        return (
            self.app_env.strip().lower() not in {"local", "test"}
            and not self.allow_insecure_http_cookies
        )


settings = Settings()
