"""Configuration management for the people counter service.

Loads the YAML configuration file into dataclasses and applies the
environment overrides read once at process startup.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DATABASE_URL_ENV = "DATABASE_URL"
TIMEZONE_ENV = "PEOPLE_COUNTER_TZ"
SQLITE_URL_PREFIX = "sqlite:///"


@dataclass
class DatabaseConfig:
    """Configuration for the SQLite observation store."""

    path: str = "data/people.db"
    timezone: str = "UTC"
    timeout: float = 5.0


@dataclass
class ServerConfig:
    """Configuration for the HTTP/WebSocket listener."""

    host: str = "0.0.0.0"
    port: int = 6942


@dataclass
class LoggingConfig:
    """Configuration for application logging."""

    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class DashboardConfig:
    """Configuration for the Streamlit dashboard."""

    latest_limit: int = 20


@dataclass
class AppConfig:
    """Top-level application configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)


def load_config(config_path: str) -> AppConfig:
    """Load application configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Populated AppConfig instance. Missing sections keep their defaults.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file contains invalid YAML.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        logger.warning("Empty config file, using defaults")
        return AppConfig()

    config = AppConfig(
        database=DatabaseConfig(**raw.get("database", {})),
        server=ServerConfig(**raw.get("server", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        dashboard=DashboardConfig(**raw.get("dashboard", {})),
    )

    logger.info("Configuration loaded from %s", config_path)
    return config


def database_path_from_url(url: str) -> str:
    """Turn a ``DATABASE_URL`` value into a SQLite path.

    Accepts either a bare path or a ``sqlite:///`` URL.

    Raises:
        ValueError: If the URL names a scheme other than sqlite.
    """
    if url.startswith(SQLITE_URL_PREFIX):
        return url[len(SQLITE_URL_PREFIX):] or ":memory:"
    if "://" in url:
        raise ValueError(f"Unsupported database URL: {url}")
    return url


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Override store settings from the process environment.

    ``DATABASE_URL`` replaces ``database.path`` and ``PEOPLE_COUNTER_TZ``
    replaces ``database.timezone``.
    """
    url = os.environ.get(DATABASE_URL_ENV)
    if url:
        config.database.path = database_path_from_url(url)
        logger.info("Database path taken from %s", DATABASE_URL_ENV)

    tz_name = os.environ.get(TIMEZONE_ENV)
    if tz_name:
        config.database.timezone = tz_name
        logger.info("Store time zone taken from %s: %s", TIMEZONE_ENV, tz_name)

    return config


def resolve_config(config_path: Optional[str] = None) -> AppConfig:
    """Load the YAML file if given, otherwise defaults, then apply env overrides."""
    config = load_config(config_path) if config_path else AppConfig()
    return apply_env_overrides(config)
