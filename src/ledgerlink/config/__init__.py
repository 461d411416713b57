"""Application configuration helpers."""

from __future__ import annotations

from .env import env_bool, env_int, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .linking import AdminConfig, LinkingConfig, get_admin_config, get_linking_config
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "AdminConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "LinkingConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "env_bool",
    "env_int",
    "get_admin_config",
    "get_database_config",
    "get_linking_config",
    "get_storage_config",
    "require_env_vars",
]
