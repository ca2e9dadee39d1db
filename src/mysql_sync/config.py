"""
Configuration loading and validation.

Configuration comes from a YAML file; any known key can be overridden by
an environment variable named ``APP_`` plus the upper-cased dotted path
with dots replaced by underscores, e.g. ``APP_SYNC_BATCH_SIZE`` or
``APP_DATABASE_SOURCE_PASSWORD``.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

from .errors import ConfigValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "APP_"

CHECK_METHODS = ("checksum", "count", "update_time")
SYNC_MODES = ("full", "incremental")
DEFAULT_CHECK_METHOD = "checksum"

_DATABASE_DEFAULTS = {
    "host": "localhost",
    "port": 3306,
    "user": "root",
    "password": "",
    "database": "",
    "charset": "utf8mb4",
}

DEFAULTS: dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 28081},
    "database": {
        "source": dict(_DATABASE_DEFAULTS),
        "target": dict(_DATABASE_DEFAULTS),
    },
    "pool": {
        "max_open": 100,
        "max_idle": 10,
        "max_lifetime": 3600,
        "acquire_timeout": 30.0,
    },
    "sync": {
        "batch_size": 100,
        "interval": 60,
        "sync_mode": "full",
        "table_pairs": [],
    },
    "databases": {},
    "options": {"merge_output": False, "output_dir": "."},
    "logging": {"level": "INFO", "file": "", "json": False},
}


@dataclass(frozen=True)
class DatabaseSettings:
    """Connection parameters for one MySQL database."""

    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = ""
    charset: str = "utf8mb4"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DatabaseSettings":
        merged = {**_DATABASE_DEFAULTS, **(data or {})}
        return cls(
            host=str(merged["host"]),
            port=int(merged["port"]),
            user=str(merged["user"]),
            password=str(merged["password"] or ""),
            database=str(merged["database"] or ""),
            charset=str(merged["charset"]),
        )

    def dsn(self) -> str:
        """DSN for log lines, password masked."""
        return (
            f"{self.user}:***@tcp({self.host}:{self.port})/{self.database}"
            f"?charset={self.charset}"
        )


@dataclass(frozen=True)
class PoolSettings:
    max_open: int = 100
    max_idle: int = 10
    max_lifetime: int = 3600
    acquire_timeout: float = 30.0


@dataclass(frozen=True)
class TablePairConfig:
    """One source/target table pair and how drift between them is detected."""

    source: str
    target: str
    check_method: str = DEFAULT_CHECK_METHOD
    update_field: str = ""

    @classmethod
    def default_for(cls, source_table: str) -> "TablePairConfig":
        return cls(source=source_table, target=source_table)


@dataclass(frozen=True)
class SyncSettings:
    batch_size: int = 100
    interval: int = 60
    sync_mode: str = "full"
    table_pairs: tuple[TablePairConfig, ...] = ()


@dataclass(frozen=True)
class AppConfig:
    source: DatabaseSettings
    target: DatabaseSettings
    sync: SyncSettings = field(default_factory=SyncSettings)
    pool: PoolSettings = field(default_factory=PoolSettings)
    databases: Mapping[str, DatabaseSettings] = field(default_factory=dict)
    server_host: str = "0.0.0.0"
    server_port: int = 28081
    merge_output: bool = False
    output_dir: str = "."
    log_level: str = "INFO"
    log_file: str = ""
    log_json: bool = False

    def get_table_config(self, source_table: str) -> TablePairConfig:
        """
        Look up the pair configured for a source table

        Falls back to a pair with the same target name and the checksum
        method when the table is not configured.
        """
        for pair in self.sync.table_pairs:
            if pair.source == source_table:
                return pair
        return TablePairConfig.default_for(source_table)

    def named_database(self, name: str) -> DatabaseSettings:
        """Connection settings from the ``databases`` section."""
        try:
            return self.databases[name]
        except KeyError:
            raise ConfigValidationError([f"database '{name}' not found in config"]) from None


def _deep_merge(base: dict, override: Mapping) -> dict:
    result = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _coerce(raw: str, current: Any) -> Any:
    if isinstance(current, bool):
        return raw.strip().lower() in ("true", "1", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def apply_env_overrides(data: dict, environ: Mapping[str, str], prefix: str = ENV_PREFIX,
                        _path: tuple[str, ...] = ()) -> dict:
    """
    Override leaf values from ``APP_*`` environment variables.

    Only keys that already exist (from defaults or the file) are looked up.
    Lists such as ``sync.table_pairs`` cannot be overridden.
    """
    for key, value in data.items():
        path = _path + (str(key),)
        if isinstance(value, dict):
            apply_env_overrides(value, environ, prefix, path)
            continue
        if isinstance(value, list):
            continue
        env_name = prefix + "_".join(path).upper()
        if env_name in environ:
            try:
                data[key] = _coerce(environ[env_name], value)
            except ValueError:
                raise ConfigValidationError(
                    [f"{env_name}={environ[env_name]!r} is not a valid {type(value).__name__}"]
                ) from None
            logger.debug(f"Config key {'.'.join(path)} overridden by {env_name}")
    return data


def _as_int(value: Any) -> int | None:
    """``int(value)``, or None when the value is not an integer."""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def validate_config(data: Mapping[str, Any]) -> None:
    """
    Check a merged configuration mapping

    Raises:
        ConfigValidationError: listing every violated rule
    """
    problems = []
    database = data.get("database", {})
    if not database.get("source", {}).get("password"):
        problems.append("source database password is required")
    if not database.get("target", {}).get("password"):
        problems.append("target database password is required")

    sync = data.get("sync", {})
    for key in ("batch_size", "interval"):
        value = _as_int(sync.get(key, 0))
        if value is None:
            problems.append(f"sync.{key} must be an integer, got {sync.get(key)!r}")
        elif value <= 0:
            problems.append(f"sync.{key} must be greater than 0")
    if sync.get("sync_mode") not in SYNC_MODES:
        problems.append(f"sync.sync_mode must be one of {', '.join(SYNC_MODES)}")

    for index, pair in enumerate(sync.get("table_pairs") or []):
        if not pair.get("source") or not pair.get("target"):
            problems.append(f"table_pairs[{index}] needs both source and target")
        method = pair.get("check_method") or DEFAULT_CHECK_METHOD
        if method not in CHECK_METHODS:
            problems.append(
                f"table_pairs[{index}].check_method '{method}' is not one of "
                f"{', '.join(CHECK_METHODS)}"
            )
        if method == "update_time" and not pair.get("update_field"):
            problems.append(f"table_pairs[{index}] uses update_time without update_field")

    if problems:
        raise ConfigValidationError(problems)


def build_config(data: Mapping[str, Any]) -> AppConfig:
    """Turn a merged, validated mapping into an AppConfig."""
    sync = data["sync"]
    pairs = tuple(
        TablePairConfig(
            source=pair["source"],
            target=pair["target"],
            check_method=pair.get("check_method") or DEFAULT_CHECK_METHOD,
            update_field=pair.get("update_field") or "",
        )
        for pair in sync.get("table_pairs") or []
    )
    pool = data["pool"]
    return AppConfig(
        source=DatabaseSettings.from_dict(data["database"]["source"]),
        target=DatabaseSettings.from_dict(data["database"]["target"]),
        sync=SyncSettings(
            batch_size=int(sync["batch_size"]),
            interval=int(sync["interval"]),
            sync_mode=sync["sync_mode"],
            table_pairs=pairs,
        ),
        pool=PoolSettings(
            max_open=int(pool["max_open"]),
            max_idle=int(pool["max_idle"]),
            max_lifetime=int(pool["max_lifetime"]),
            acquire_timeout=float(pool["acquire_timeout"]),
        ),
        databases={
            name: DatabaseSettings.from_dict(settings)
            for name, settings in (data.get("databases") or {}).items()
        },
        server_host=data["server"]["host"],
        server_port=int(data["server"]["port"]),
        merge_output=bool(data["options"]["merge_output"]),
        output_dir=data["options"]["output_dir"],
        log_level=data["logging"]["level"],
        log_file=data["logging"]["file"] or "",
        log_json=bool(data["logging"]["json"]),
    )


def load_config(path: str | None = None, environ: Mapping[str, str] | None = None,
                validate: bool = True) -> AppConfig:
    """
    Load configuration from YAML plus environment overrides

    Args:
        path: YAML file path (None uses defaults and environment only)
        environ: Environment mapping (default: os.environ)
        validate: Apply the data-sync validation rules. The structure
            comparison entry point only needs the ``databases`` section.

    Returns:
        AppConfig

    Raises:
        ConfigValidationError: file unreadable, not a mapping, or invalid
    """
    file_data: dict = {}
    if path:
        try:
            with open(path, encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError([f"cannot read config file {path}: {e}"]) from e
        if not isinstance(file_data, dict):
            raise ConfigValidationError([f"config file {path} must contain a mapping"])

    data = _deep_merge(DEFAULTS, file_data)
    apply_env_overrides(data, os.environ if environ is None else environ)

    if validate:
        validate_config(data)

    try:
        config = build_config(data)
    except (TypeError, ValueError) as e:
        raise ConfigValidationError([f"invalid configuration value: {e}"]) from e
    logger.info(
        f"Configuration loaded from {path or 'defaults'}: "
        f"source={config.source.dsn()}, target={config.target.dsn()}, "
        f"{len(config.sync.table_pairs)} table pair(s)"
    )
    return config
