"""Configuration management with environment variable support."""

import os
import secrets
from dataclasses import dataclass, field
from typing import Literal


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _parse_player_names() -> list[str]:
    """Parse PLAYER_NAMES environment variable."""
    names = os.getenv("PLAYER_NAMES", "Player 1")
    return [n.strip() for n in names.split(",") if n.strip()]


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(
        default_factory=lambda: os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    )
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class SecurityConfig:
    """Security configuration."""

    secret_key: str = field(
        default_factory=lambda: os.getenv("SECRET_KEY", secrets.token_urlsafe(32))
    )


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection configuration."""

    host: str = field(default_factory=lambda: os.getenv("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("REDIS_PORT", "6379")))
    db: int = field(default_factory=lambda: int(os.getenv("REDIS_DB", "0")))
    password: str | None = field(default_factory=lambda: os.getenv("REDIS_PASSWORD"))

    @property
    def url(self) -> str:
        """Build Redis connection URL."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class PersistenceConfig:
    """Where participants and the activity log are kept."""

    backend: Literal["memory", "file", "redis"] = field(
        default_factory=lambda: os.getenv("PERSISTENCE_BACKEND", "memory")  # type: ignore[arg-type]
    )
    file_path: str | None = field(default_factory=lambda: os.getenv("PERSISTENCE_FILE"))
    key_prefix: str = field(default_factory=lambda: os.getenv("PERSISTENCE_PREFIX", "cardtable:"))
    max_log_entries: int = 100

    def __post_init__(self) -> None:
        """Validate backend name."""
        if self.backend not in ("memory", "file", "redis"):
            raise ValueError(f"Unknown persistence backend: {self.backend}")


@dataclass(frozen=True)
class TableConfig:
    """Default table configuration."""

    ante: int = field(default_factory=lambda: int(os.getenv("TABLE_ANTE", "10")))
    starting_bank: int = field(
        default_factory=lambda: int(os.getenv("TABLE_STARTING_BANK", "1000"))
    )
    # Pause before each automated move, in seconds
    automation_delay: float = field(
        default_factory=lambda: int(os.getenv("AUTOMATION_DELAY_MS", "500")) / 1000
    )
    player_names: list[str] = field(default_factory=_parse_player_names)

    def __post_init__(self) -> None:
        """Validate table settings."""
        if self.ante < 0:
            raise ValueError("ante must not be negative")
        if self.starting_bank < 0:
            raise ValueError("starting_bank must not be negative")
        if self.automation_delay < 0:
            raise ValueError("automation_delay must not be negative")


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    session_ttl: int = 3600  # Session timeout in seconds
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    redis: RedisConfig = field(default_factory=RedisConfig)
    table: TableConfig = field(default_factory=TableConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)


# Global configuration instance
config = AppConfig()
