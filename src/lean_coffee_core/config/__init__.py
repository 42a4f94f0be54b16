"""
Configuration system for the Lean Coffee server.

Configuration is loaded from multiple sources (in order of precedence):
1. Environment variables (highest priority)
2. config.local.json (gitignored, for local development)
3. config.json (user configuration)
4. Package defaults (lowest priority)

Example usage:
    from lean_coffee_core.config import get_config

    config = get_config()
    duration_ms = config.discussion.duration_ms
    database_url = config.database.url
"""

from lean_coffee_core.config.defaults import get_default_config
from lean_coffee_core.config.loader import ConfigLoader, get_config, load_config, reset_config
from lean_coffee_core.config.models import (
    Config,
    CORSConfig,
    DatabaseConfig,
    DiscussionConfig,
    LoggingConfig,
    ServerConfig,
    SessionConfig,
    StorageConfig,
    TicketConfig,
    VotingConfig,
)

__all__ = [
    # Models
    "Config",
    "ServerConfig",
    "CORSConfig",
    "DatabaseConfig",
    "StorageConfig",
    "LoggingConfig",
    "SessionConfig",
    "TicketConfig",
    "DiscussionConfig",
    "VotingConfig",
    # Loader
    "ConfigLoader",
    "get_config",
    "load_config",
    "reset_config",
    # Defaults
    "get_default_config",
]
