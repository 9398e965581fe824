"""
Centralized configuration management using Pydantic Settings.

Settings are read from a YAML file and can be overridden by environment
variables prefixed with ``MM_`` (nested sections use ``__``, for example
``MM_DATABASE__DSN``). Validation errors surface as ConfigurationError.
"""

import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from sqlalchemy.engine import URL, make_url

from money_manager.core.exceptions import ConfigurationError


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|us|µs|ns|h|m|s)")
_DURATION_UNITS = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 1e-3,
    "us": 1e-6,
    "µs": 1e-6,
    "ns": 1e-9,
}


def parse_duration(value: Any) -> Any:
    """
    Parse Go-style duration strings into timedelta.

    Accepts "500ms", "5s", "1m30s", "2h". Numbers and anything else are
    returned untouched so pydantic can apply its own timedelta parsing
    (seconds, ISO-8601).

    Raises:
        ValueError: If a string looks like a duration but has leftovers
    """
    if not isinstance(value, str):
        return value

    text = value.strip()
    if not text or text.startswith("P") or re.fullmatch(r"-?\d+(\.\d+)?", text):
        return text

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position != len(text):
        raise ValueError(f"invalid duration: {value!r}")

    return timedelta(seconds=total)


class _DurationModel(BaseModel):
    """Base for sections holding duration fields."""

    @field_validator("*", mode="before")
    @classmethod
    def parse_durations(cls, v: Any, info) -> Any:
        field = cls.model_fields[info.field_name]
        if field.annotation is timedelta:
            return parse_duration(v)
        return v


class AppSettings(BaseModel):
    name: str = Field(default="money-manager", description="Application name")
    env: str = Field(default="dev", description="Deployment environment")


class LoggerSettings(BaseModel):
    level: str = Field(default="debug", description="Minimum log level")
    encoding: str = Field(default="console", description="json or console")
    output_path: str = Field(default="", description="Log file path, stdout when empty")

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        v = v.lower()
        if v not in {"json", "console"}:
            raise ValueError("encoding must be 'json' or 'console'")
        return v


class ServerSettings(_DurationModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080, ge=1, le=65535)
    read_timeout: timedelta = Field(default=timedelta(seconds=5))
    write_timeout: timedelta = Field(default=timedelta(seconds=10))
    idle_timeout: timedelta = Field(default=timedelta(seconds=120))


class DatabaseSettings(_DurationModel):
    """
    Database connection settings.

    Either ``dsn`` or the discrete host/port/user/password/name fields are
    used to build the connection URL; ``dsn`` wins when both are set.
    """

    dsn: str = Field(default="", description="Full connection URL")
    host: str = Field(default="localhost")
    port: int = Field(default=5432, ge=1, le=65535)
    user: str = Field(default="postgres")
    password: SecretStr = Field(default=SecretStr(""))
    name: str = Field(default="money_manager")
    max_connections: int = Field(default=25, ge=1, description="Pool size bound")
    min_connections: int = Field(default=5, ge=0, description="Connections kept idle")
    connect_timeout: timedelta = Field(default=timedelta(seconds=5))

    def url(self) -> URL:
        """
        Build the SQLAlchemy async URL.

        ``postgres://`` and ``postgresql://`` DSNs are switched to the
        asyncpg driver.
        """
        if self.dsn:
            url = make_url(self.dsn)
            if url.drivername in {"postgres", "postgresql"}:
                url = url.set(drivername="postgresql+asyncpg")
            return url

        return URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password.get_secret_value() or None,
            host=self.host,
            port=self.port,
            database=self.name,
        )


class CacheSettings(_DurationModel):
    address: str = Field(default="localhost:6379")
    password: SecretStr = Field(default=SecretStr(""))
    db: int = Field(default=0, ge=0)
    dial_timeout: timedelta = Field(default=timedelta(milliseconds=500))
    read_timeout: timedelta = Field(default=timedelta(milliseconds=500))
    write_timeout: timedelta = Field(default=timedelta(milliseconds=500))
    pool_size: int = Field(default=10, ge=1)


class TimeoutSettings(_DurationModel):
    shutdown_grace_period: timedelta = Field(default=timedelta(seconds=15))
    request_timeout: timedelta = Field(default=timedelta(seconds=30))
    external_api_timeout: timedelta = Field(default=timedelta(seconds=10))


class Settings(BaseSettings):
    """
    Application settings.

    Source priority (highest first): environment, .env file, YAML values
    passed as init arguments by load_settings().
    """

    app: AppSettings = Field(default_factory=AppSettings)
    logger: LoggerSettings = Field(default_factory=LoggerSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)

    model_config = SettingsConfigDict(
        env_prefix="MM_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # File values arrive through init_settings; environment overrides them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(path: Optional[str | Path]) -> Settings:
    """
    Load settings from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: If path is empty, the file cannot be read or
            parsed, or the values fail validation
    """
    if not path:
        raise ConfigurationError("config path is empty")

    config_path = Path(path)
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(
            f"cannot read config from {config_path}: {exc}",
            {"path": str(config_path)},
        ) from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"config file {config_path} must contain a mapping",
            {"path": str(config_path)},
        )

    try:
        return Settings(**raw)
    except ValidationError as exc:
        raise ConfigurationError(
            f"invalid config in {config_path}: {exc}",
            {"path": str(config_path), "errors": exc.errors()},
        ) from exc
