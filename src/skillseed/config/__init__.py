"""Configuration package for skillseed."""

from skillseed.config.app_config import (
    AppConfig,
    ContentConfig,
    DatabaseConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "ContentConfig",
    "DatabaseConfig",
    "clear_config_cache",
    "load_app_config",
]
