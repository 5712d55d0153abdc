"""Application configuration objects based on Pydantic settings."""
from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseModel):
    """Settings that control FastAPI specific behaviour."""

    title: str = "Session Auth"
    description: str = "Access/refresh token issuance with per-device revocation."
    version: str = "0.1.0"
    docs_url: str | None = "/docs"
    redoc_url: str | None = "/redoc"
    openapi_url: str = "/openapi.json"
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: list[str] = Field(default_factory=lambda: ["*"])
    gzip_minimum_size: int = 1024


class JWTSettings(BaseModel):
    """Token signing and transport settings."""

    secret_key: str = Field(default="change-me", description="JWT signing secret")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_minutes: int = 60 * 24 * 7
    leeway_seconds: int = Field(default=0, ge=0, description="Clock skew tolerated on expiry checks")
    header_name: str = "Authorization"
    header_prefix: str = "Bearer"


class RedisSettings(BaseModel):
    """Redis connection used by the session registry."""

    url: str = "redis://localhost:6379/0"
    socket_timeout: float = 5.0
    key_prefix: str = "auth:tokens"


class PostgresSettings(BaseModel):
    """PostgreSQL connection settings."""

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = "postgres"
    database: str = "session_auth"
    echo: bool = False

    @property
    def dsn(self) -> str:
        return f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


class AuthSettings(BaseModel):
    """Account defaults applied by the auth service."""

    default_roles: list[str] = Field(default_factory=lambda: ["ROLE_USER"])
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)


class BootstrapSettings(BaseModel):
    """Bootstrap configuration for seeding an administrator account."""

    enabled: bool = False
    admin_username: str = "admin"
    admin_password: str = "ChangeMe123!"
    admin_email: str = "admin@example.com"
    admin_first_name: str = "System"
    admin_last_name: str = "Administrator"


class Settings(BaseSettings):
    """Aggregate settings for the application."""

    api: ApiSettings = Field(default_factory=ApiSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    bootstrap: BootstrapSettings = Field(default_factory=BootstrapSettings)

    model_config = SettingsConfigDict(env_file=".env", env_nested_delimiter="__", case_sensitive=False)

    def sqlalchemy_database_uri(self) -> str:
        """Return SQLAlchemy DSN."""

        return self.postgres.dsn


@lru_cache()
def load_settings() -> Settings:
    """Load application settings with caching."""

    return Settings()


__all__ = [
    "Settings",
    "ApiSettings",
    "JWTSettings",
    "RedisSettings",
    "PostgresSettings",
    "AuthSettings",
    "BootstrapSettings",
    "load_settings",
]
