"""Configuration model and helpers for the backup job."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml

CONFIG_FILENAME = "config.yaml"

DEFAULT_OUTPUT_DIRECTORY = "backups"
DEFAULT_ARCHIVE_DIRECTORY = str(Path("backups") / "archive")
DEFAULT_COMMAND_TIMEOUT = 3600
DEFAULT_LOGIN_TIMEOUT = 15
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

LOGGER = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""


@dataclass
class AppConfig:
    connection_string: Optional[str] = None
    connection_string_secret: Optional[str] = None
    odbc_driver: Optional[str] = DEFAULT_ODBC_DRIVER
    output_directory: str = DEFAULT_OUTPUT_DIRECTORY
    archive_directory: str = DEFAULT_ARCHIVE_DIRECTORY
    archive_enabled: bool = True
    command_timeout: int = DEFAULT_COMMAND_TIMEOUT
    login_timeout: int = DEFAULT_LOGIN_TIMEOUT
    native_compression: bool = False
    databases: List[str] = field(default_factory=list)

    @property
    def output_path(self) -> Path:
        return Path(_path_or_default(self.output_directory, DEFAULT_OUTPUT_DIRECTORY)).expanduser()

    @property
    def archive_path(self) -> Path:
        return Path(_path_or_default(self.archive_directory, DEFAULT_ARCHIVE_DIRECTORY)).expanduser()

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "AppConfig":
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping.")
        databases = data.get("databases") or []
        if not isinstance(databases, list):
            raise ConfigError("'databases' must be a list of database names.")
        names = ["" if name is None else str(name).strip() for name in databases]
        if any(not name for name in names):
            raise ConfigError("'databases' must not contain blank names.")
        return cls(
            connection_string=data.get("connection_string"),
            connection_string_secret=data.get("connection_string_secret"),
            odbc_driver=data.get("odbc_driver", DEFAULT_ODBC_DRIVER),
            output_directory=_path_or_default(data.get("output_directory"), DEFAULT_OUTPUT_DIRECTORY),
            archive_directory=_path_or_default(data.get("archive_directory"), DEFAULT_ARCHIVE_DIRECTORY),
            archive_enabled=_flag(data.get("archive_enabled"), "archive_enabled", True),
            command_timeout=_timeout(data.get("command_timeout"), "command_timeout", DEFAULT_COMMAND_TIMEOUT),
            login_timeout=_timeout(data.get("login_timeout"), "login_timeout", DEFAULT_LOGIN_TIMEOUT),
            native_compression=_flag(data.get("native_compression"), "native_compression", False),
            databases=names,
        )

    def to_dict(self) -> Dict:
        result: Dict[str, object] = {
            "connection_string": self.connection_string,
            "connection_string_secret": self.connection_string_secret,
            "odbc_driver": self.odbc_driver,
            "output_directory": self.output_directory,
            "archive_directory": self.archive_directory,
            "archive_enabled": self.archive_enabled,
            "command_timeout": self.command_timeout,
            "login_timeout": self.login_timeout,
            "native_compression": self.native_compression,
            "databases": list(self.databases),
        }
        # remove None values for cleaner YAML
        return {key: value for key, value in result.items() if value is not None}


# ---------------------------------------------------------------------------
def _path_or_default(value, default: str) -> str:
    if value is None or not str(value).strip():
        return default
    return str(value).strip()


def _flag(value, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ConfigError(f"'{name}' must be true or false, got {value!r}.")
    return value


def _timeout(value, name: str, default: int) -> int:
    """Parse a timeout in seconds; unusable values fall back to *default*."""

    if value is None or value == "":
        return default
    try:
        seconds = int(value)
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring non-numeric %s %r, using %d seconds.", name, value, default)
        return default
    if seconds < 0:
        LOGGER.warning("Ignoring negative %s %r, using %d seconds.", name, value, default)
        return default
    return seconds


# ---------------------------------------------------------------------------
def load_config(path: Path = Path(CONFIG_FILENAME)) -> AppConfig:
    path = Path(path)
    if not path.exists():
        return AppConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse configuration file '{path}': {exc}") from exc
    return AppConfig.from_dict(data)


def save_config(config: AppConfig, path: Path = Path(CONFIG_FILENAME)) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(
            config.to_dict(),
            fh,
            allow_unicode=True,
            sort_keys=False,
            default_flow_style=False,
        )


__all__ = [
    "AppConfig",
    "ConfigError",
    "DEFAULT_ARCHIVE_DIRECTORY",
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_OUTPUT_DIRECTORY",
    "load_config",
    "save_config",
]
