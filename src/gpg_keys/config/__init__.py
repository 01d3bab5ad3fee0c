"""Configuration for gpg-keys."""

from gpg_keys.config.settings import (
    AppConfig,
    DatabaseConfig,
    DatabaseEngine,
    KeysConfig,
    MetricsConfig,
)

__all__ = ["AppConfig", "DatabaseConfig", "DatabaseEngine", "KeysConfig", "MetricsConfig"]
