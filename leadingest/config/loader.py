from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the YAML config (``config/ingest.yml`` by default)
- Validate it against ``config_schema.json`` shipped with the package
- Apply defaults for every optional key

Every key is optional; a missing file is an error only when the caller asked
for it explicitly (see ``load_config(required=...)``).
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/ingest.yml")

DEFAULT_BATCH_SIZE = 500
DEFAULT_MAX_UPLOAD_MB = 15
DEFAULT_NULL_SENTINELS = ("NA", "N/A", "NULL", "NONE", "-")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class IngestConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    max_upload_mb: float = DEFAULT_MAX_UPLOAD_MB
    logs_directory: str = "./logs"
    null_sentinels: frozenset[str] = frozenset(DEFAULT_NULL_SENTINELS)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the packaged JSON schema.

    Raises:
        ConfigError: schema file missing or malformed, or the data violates it.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def parse_config(data: dict[str, Any]) -> IngestConfig:
    _validate_config_schema(data)
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    sentinels = data.get("null_sentinels")
    if sentinels is None:
        sentinels = DEFAULT_NULL_SENTINELS
    return IngestConfig(
        batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
        max_upload_mb=data.get("max_upload_mb", DEFAULT_MAX_UPLOAD_MB),
        logs_directory=data.get("logs_directory", "./logs"),
        null_sentinels=frozenset(s.strip().upper() for s in sentinels if s.strip()),
        database=db,
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH, required: bool = False) -> IngestConfig:
    """Load and validate the YAML config at ``path``.

    A missing file yields the defaults unless ``required`` is set.
    """
    if not path.exists():
        if required:
            raise ConfigError(f"config file not found: {path}")
        return IngestConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")
    return parse_config(data)
