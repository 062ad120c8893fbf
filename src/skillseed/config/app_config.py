"""Application configuration loader.

Loads configuration from data/config/skillseed_v1.yaml, falling back to
built-in defaults. SKILLSEED_DB_PATH and SKILLSEED_CONTENT_DIR override the
file.

Usage:
    from skillseed.config.app_config import load_app_config

    config = load_app_config()
    init_db(config.database.path)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/skillseed_v1.yaml")

DB_PATH_ENV = "SKILLSEED_DB_PATH"
CONTENT_DIR_ENV = "SKILLSEED_CONTENT_DIR"


@dataclass
class DatabaseConfig:
    """Where the SQLite database lives."""

    path: Path = Path("db/skillseed.db")


@dataclass
class ContentConfig:
    """Where skill tree content is read from."""

    dir: Path = Path("content")


@dataclass
class AppConfig:
    """Application-wide configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    content: ContentConfig = field(default_factory=ContentConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "database": {"path": "db/skillseed.db"},
        "content": {"dir": "content"},
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = _get_defaults()
    database_data = data.get("database") or {}
    content_data = data.get("content") or {}

    db_path = os.environ.get(DB_PATH_ENV) or database_data.get(
        "path", defaults["database"]["path"]
    )
    content_dir = os.environ.get(CONTENT_DIR_ENV) or content_data.get(
        "dir", defaults["content"]["dir"]
    )

    return AppConfig(
        database=DatabaseConfig(path=Path(db_path)),
        content=ContentConfig(dir=Path(content_dir)),
    )


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
