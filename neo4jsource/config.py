"""Data source configuration loading helpers."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import tomllib

from neo4j import READ_ACCESS, WRITE_ACCESS, basic_auth
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CONFIG_FILE = Path.home() / ".config" / "neo4jsource" / "config.toml"

_ENV_OVERRIDES = {
    "url": "NEO4J_URI",
    "user": "NEO4J_USER",
    "password": "NEO4J_PASSWORD",
    "default_database": "NEO4J_DATABASE",
}

_CAMEL_ALIASES = {
    "authToken": "auth",
    "defaultDatabase": "default_database",
    "defaultAccessMode": "default_access_mode",
    "driverOptions": "driver_options",
}


class DataSourceError(RuntimeError):
    """Base class for errors raised by the data source."""


class ConfigurationError(DataSourceError, ValueError):
    """Raised when the data source cannot be configured."""


class AccessMode(str, Enum):
    """Session access modes understood by the driver."""

    READ = READ_ACCESS
    WRITE = WRITE_ACCESS

    @classmethod
    def parse(cls, value: object) -> AccessMode:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        raise ValueError(f"Unknown access mode: {value!r}")


class DataSourceConfig(BaseModel):
    """Immutable settings for a Neo4j data source."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    url: str | None = None
    auth: Any = None
    default_database: str | None = None
    default_access_mode: AccessMode | None = None
    driver_options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("default_access_mode", mode="before")
    @classmethod
    def _parse_access_mode(cls, value: object) -> AccessMode | None:
        if value is None:
            return None
        return AccessMode.parse(value)

    def with_defaults(self, **updates: object) -> DataSourceConfig:
        """Return a copy with the given fields replaced."""

        return type(self)(**{**dict(self), **updates})


def coerce_config(value: DataSourceConfig | Mapping[str, Any]) -> DataSourceConfig:
    """Build a config from a model or mapping, accepting camelCase keys."""

    if isinstance(value, DataSourceConfig):
        return value
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Unsupported configuration object: {type(value).__name__}")
    data = {_CAMEL_ALIASES.get(str(key), str(key)): item for key, item in value.items()}
    try:
        return DataSourceConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid data source configuration: {exc}") from exc


def load_config(path: Path | None = None) -> DataSourceConfig:
    """Load configuration from disk, letting NEO4J_* environment variables win."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        data = {}
    except (tomllib.TOMLDecodeError, OSError) as exc:
        raise ConfigurationError(f"Could not read config file: {exc}") from exc

    for key, env_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[key] = value

    user = data.pop("user", None)
    password = data.pop("password", None)
    if user is not None:
        data["auth"] = basic_auth(str(user), str(password or ""))
    return coerce_config(data)


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if not isinstance(raw, dict):
        return data
    for key in ("url", "user", "password", "default_database"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    access_mode = raw.get("default_access_mode")
    if isinstance(access_mode, str):
        try:
            data["default_access_mode"] = AccessMode.parse(access_mode)
        except ValueError:
            pass
    driver = raw.get("driver")
    if isinstance(driver, dict):
        data["driver_options"] = {str(name): option for name, option in driver.items()}
    return data


__all__ = [
    "AccessMode",
    "CONFIG_FILE",
    "ConfigurationError",
    "DataSourceConfig",
    "DataSourceError",
    "coerce_config",
    "load_config",
]
