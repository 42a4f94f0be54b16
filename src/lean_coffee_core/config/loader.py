"""
Layered configuration loading.

Sources, lowest precedence first:
1. Package defaults (get_default_config)
2. The first config.json found in /etc/lean-coffee/, ~/.config/lean-coffee/
   or the working directory (or the explicit path given to the loader)
3. config.local.json in the working directory
4. Environment variables listed in ConfigLoader.ENV_MAPPINGS
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from lean_coffee_core.config.defaults import get_default_config
from lean_coffee_core.config.models import Config

LOCAL_CONFIG_NAME = "config.local.json"


def _read_json(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return json.load(f)


class ConfigLoader:
    """Build a validated Config from defaults, files and the environment."""

    DEFAULT_PATHS = [
        Path("/etc/lean-coffee/config.json"),
        Path.home() / ".config" / "lean-coffee" / "config.json",
        Path.cwd() / "config.json",
    ]

    ENV_MAPPINGS: dict[str, tuple[str, ...]] = {
        "PORT": ("server", "port"),
        "LEAN_COFFEE_SERVER_HOST": ("server", "host"),
        "LEAN_COFFEE_SERVER_PORT": ("server", "port"),
        "LEAN_COFFEE_CORS_ORIGINS": ("server", "cors", "origins"),
        "DATABASE_URL": ("database", "url"),
        "LEAN_COFFEE_DATABASE_URL": ("database", "url"),
        "LEAN_COFFEE_DATABASE_ECHO": ("database", "echo"),
        "LEAN_COFFEE_STORAGE_BACKEND": ("storage", "backend"),
        "LEAN_COFFEE_LOG_LEVEL": ("logging", "level"),
        "LEAN_COFFEE_LOG_FORMAT": ("logging", "format"),
        "LEAN_COFFEE_LOG_FILE": ("logging", "file"),
        "LEAN_COFFEE_SHORT_CODE_MAX_ATTEMPTS": ("session", "short_code_max_attempts"),
        "LEAN_COFFEE_ONLINE_THRESHOLD_SECONDS": ("session", "online_threshold_seconds"),
        "LEAN_COFFEE_MAX_DESCRIPTION_LENGTH": ("ticket", "max_description_length"),
        "LEAN_COFFEE_DISCUSSION_SECONDS": ("discussion", "duration_seconds"),
        "LEAN_COFFEE_MAX_VOTES_PER_TICKET": ("voting", "max_votes_per_ticket"),
        "LEAN_COFFEE_MIN_TODO_TICKETS": ("voting", "min_todo_tickets"),
    }

    # Leaf keys whose environment values are parsed as integers
    INT_KEYS = frozenset(
        {
            "port",
            "pool_size",
            "max_overflow",
            "short_code_max_attempts",
            "online_threshold_seconds",
            "max_description_length",
            "duration_seconds",
            "max_votes_per_ticket",
            "min_todo_tickets",
        }
    )

    # Leaf keys whose environment values are comma-separated lists
    LIST_KEYS = frozenset({"origins"})

    def __init__(self, config_path: Optional[Path] = None):
        """
        Args:
            config_path: Use this file instead of searching DEFAULT_PATHS.
                         A missing file means "defaults only".
        """
        self.config_path = config_path
        self._config: Optional[Config] = None

    def load(self) -> Config:
        """Merge every source and validate the result.

        Raises:
            pydantic.ValidationError: If the merged values are invalid
        """
        merged = get_default_config()
        for layer in (self._user_layer(), self._local_layer()):
            if layer:
                merged = self._deep_merge(merged, layer)

        self._apply_env_overrides(merged)
        self._config = Config(**merged)
        return self._config

    def _user_layer(self) -> Optional[dict[str, Any]]:
        if self.config_path is not None:
            return _read_json(self.config_path) if self.config_path.exists() else None

        found = next((path for path in self.DEFAULT_PATHS if path.exists()), None)
        return _read_json(found) if found else None

    def _local_layer(self) -> Optional[dict[str, Any]]:
        local_path = Path.cwd() / LOCAL_CONFIG_NAME
        return _read_json(local_path) if local_path.exists() else None

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged = dict(base)
        for key, value in override.items():
            if isinstance(merged.get(key), dict) and isinstance(value, dict):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _apply_env_overrides(self, config: dict[str, Any]) -> None:
        for env_var, path in self.ENV_MAPPINGS.items():
            raw = os.getenv(env_var)
            if raw is None:
                continue

            section = config
            for key in path[:-1]:
                section = section.setdefault(key, {})
            section[path[-1]] = self._parse_env_value(raw, path[-1])

    def _parse_env_value(self, raw: str, key: str) -> Any:
        """Turn an environment string into a bool, int, list or str.

        Unparseable integers are passed through so validation reports them.
        """
        if raw.lower() in ("true", "false"):
            return raw.lower() == "true"
        if key in self.INT_KEYS:
            try:
                return int(raw)
            except ValueError:
                return raw
        if key in self.LIST_KEYS:
            return [item.strip() for item in raw.split(",") if item.strip()]
        return raw


_global_loader: Optional[ConfigLoader] = None


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration with a fresh, uncached loader."""
    return ConfigLoader(config_path).load()


def get_config() -> Config:
    """Return the process-wide configuration, loading it on first use."""
    global _global_loader
    if _global_loader is None or _global_loader._config is None:
        _global_loader = ConfigLoader()
        return _global_loader.load()
    return _global_loader._config


def reset_config() -> None:
    """Forget the process-wide configuration so get_config() reloads it."""
    global _global_loader
    _global_loader = None
