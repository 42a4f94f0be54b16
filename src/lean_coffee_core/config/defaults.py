"""
Default configuration values for the Lean Coffee server.

This module provides default configuration that is used when
no custom configuration is provided.
"""


def get_default_config() -> dict:
    """Get the default configuration as a dictionary.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "version": "1.0.0",
        "server": {
            "host": "0.0.0.0",
            "port": 8000,
            "cors": {
                "origins": ["http://localhost:3000", "http://localhost:8000"],
                "allow_credentials": True,
            },
        },
        "database": {
            "url": "sqlite+aiosqlite:///./lean_coffee.db",
            "pool_size": 10,
            "max_overflow": 20,
            "echo": False,
        },
        "storage": {
            "backend": "memory",
        },
        "logging": {
            "level": "INFO",
            "format": "json",
            "file": None,
        },
        "session": {
            "short_code_max_attempts": 10,
            "online_threshold_seconds": 30,
        },
        "ticket": {
            "max_description_length": 1000,
        },
        "discussion": {
            # 9 minute time box
            "duration_seconds": 540,
        },
        "voting": {
            "max_votes_per_ticket": 20,
            "min_todo_tickets": 2,
        },
    }
