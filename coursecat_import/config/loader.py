from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader for config/import.yml.

Responsibilities:
- Load the YAML file
- Validate it against config_schema.json (unknown keys are rejected)
- Apply defaults for every omitted key

Values here are the defaults of a run; command line options override them.
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    mode: str | None = None  # 未指定なら CLI で必須
    update_mode: str = "nothing"
    allow_deletes: bool = False
    allow_renames: bool = False
    standardise: bool = True
    create_missing_parents: bool = False
    delimiter: str = "comma"
    encoding: str = "UTF-8"
    root_alias: str = "Top"
    defaults: dict[str, Any] = field(default_factory=dict)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the packaged JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data does not match.
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


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    imp = data.get("import", {})
    csv_raw = data.get("csv", {})
    db_raw = data.get("database", {})
    base = ImportConfig()
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return ImportConfig(
        mode=imp.get("mode"),
        update_mode=imp.get("update_mode", base.update_mode),
        allow_deletes=imp.get("allow_deletes", base.allow_deletes),
        allow_renames=imp.get("allow_renames", base.allow_renames),
        standardise=imp.get("standardise", base.standardise),
        create_missing_parents=imp.get("create_missing_parents", base.create_missing_parents),
        delimiter=csv_raw.get("delimiter", base.delimiter),
        encoding=csv_raw.get("encoding", base.encoding),
        root_alias=data.get("root_alias", base.root_alias),
        defaults=dict(data.get("defaults", {})),
        database=db,
    )


def resolve_config(path: Path | None) -> ImportConfig:
    """Load an explicit config file, or the default one when present.

    An explicitly requested file must exist; a missing default file simply
    yields the built-in defaults.
    """
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return ImportConfig()
