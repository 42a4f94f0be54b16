"""
Pydantic models for configuration validation.

These models provide type-safe configuration with validation
and default values for all configuration options.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from lean_coffee_core.models.common import (
    DISCUSSION_DURATION_MS,
    MAX_DESCRIPTION_LENGTH,
    MAX_VOTES_PER_TICKET,
    MIN_TODO_TICKETS_FOR_ROUND,
    ONLINE_THRESHOLD_SECONDS,
    SHORT_CODE_MAX_ATTEMPTS,
)


class CORSConfig(BaseModel):
    """CORS configuration for cross-origin requests."""

    origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:8000",
        ]
    )
    allow_credentials: bool = True


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    cors: CORSConfig = Field(default_factory=CORSConfig)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./lean_coffee.db"
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate that database URL uses an async driver."""
        if not v:
            raise ValueError("Database URL cannot be empty")
        if "postgresql" in v and "asyncpg" not in v:
            raise ValueError(
                "Database URL must use asyncpg driver for async operations. "
                "Use: postgresql+asyncpg://..."
            )
        if v.startswith("sqlite") and "aiosqlite" not in v:
            raise ValueError(
                "Database URL must use aiosqlite driver for async operations. "
                "Use: sqlite+aiosqlite://..."
            )
        return v


class StorageConfig(BaseModel):
    """Record store selection."""

    backend: Literal["memory", "sqlalchemy"] = "memory"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"
    file: str | None = None


class SessionConfig(BaseModel):
    """Session directory settings."""

    short_code_max_attempts: int = Field(default=SHORT_CODE_MAX_ATTEMPTS, ge=1)
    online_threshold_seconds: int = Field(default=ONLINE_THRESHOLD_SECONDS, ge=1)


class TicketConfig(BaseModel):
    """Ticket settings."""

    max_description_length: int = Field(default=MAX_DESCRIPTION_LENGTH, ge=1)


class DiscussionConfig(BaseModel):
    """Discussion time box settings."""

    duration_seconds: int = Field(default=DISCUSSION_DURATION_MS // 1000, ge=1)

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000


class VotingConfig(BaseModel):
    """Quadratic voting settings."""

    max_votes_per_ticket: int = Field(default=MAX_VOTES_PER_TICKET, ge=1)
    min_todo_tickets: int = Field(default=MIN_TODO_TICKETS_FOR_ROUND, ge=1)


class Config(BaseModel):
    """Root configuration model."""

    version: str = "1.0.0"
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    ticket: TicketConfig = Field(default_factory=TicketConfig)
    discussion: DiscussionConfig = Field(default_factory=DiscussionConfig)
    voting: VotingConfig = Field(default_factory=VotingConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate version format (basic check)."""
        if not v:
            raise ValueError("Version cannot be empty")
        return v

    def get_database_url(self) -> str:
        """Get the database URL."""
        return self.database.url

    def get_cors_origins(self) -> list[str]:
        """Get CORS origins."""
        return self.server.cors.origins

    def get_log_level(self) -> str:
        """Get the log level."""
        return self.logging.level

    def get_log_format(self) -> str:
        """Get the log format."""
        return self.logging.format
