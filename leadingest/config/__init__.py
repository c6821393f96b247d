"""Configuration loading (YAML + JSON Schema)."""

from .loader import ConfigError, DatabaseConfig, IngestConfig, load_config

__all__ = [
    "ConfigError",
    "DatabaseConfig",
    "IngestConfig",
    "load_config",
]
