"""Redis settings for the live-update broadcaster."""

from __future__ import annotations

from typing import Any

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisSettings(BaseSettings):
    """Redis pub/sub connection settings.

    Environment variables use REDIS_ prefix.
    Example: REDIS_URL="redis://localhost:6379/0"
    """

    redis_url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis connection URL. If provided, overrides component fields.",
    )
    host: str = Field(default="localhost", description="Redis server hostname")
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0, le=15)
    password: SecretStr | None = Field(default=None)

    key_prefix: str = Field(
        default="editorial:",
        description="Prefix applied to pub/sub channel names.",
    )
    socket_timeout: float = Field(
        default=5.0,
        ge=0.1,
        le=60.0,
        description="Socket timeout in seconds; bounds a publish call.",
    )
    max_connections: int = Field(default=20, ge=1, le=1000)

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def url(self) -> str:
        """Effective Redis URL."""
        if self.redis_url:
            return self.redis_url
        auth = f":{self.password.get_secret_value()}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"

    @property
    def is_configured(self) -> bool:
        """Redis is configured when a URL is given or the host is non-default."""
        return self.redis_url is not None or self.host != "localhost"

    def get_prefixed_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def connection_pool_kwargs(self) -> dict[str, Any]:
        return {
            "max_connections": self.max_connections,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_timeout,
            "decode_responses": True,
        }
