"""Configuration loader for the county report service.

Values resolve in three layers: dataclass defaults, an optional YAML file with
a ``countyreport`` section, then environment variables (``.env`` files are
honoured through python-dotenv).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from countyreport.core.errors import ConfigError
from countyreport.core.logger import get_logger

LOGGER = get_logger()

load_dotenv(override=False)

CONFIG_DIR = Path(__file__).resolve().parent

DEFAULT_ARCHIVE_URL = "https://healthdata.gov/resource/6hii-ae4f.json"
DEFAULT_DOWNLOAD_URL_TEMPLATE = (
    "https://beta.healthdata.gov/api/views/gqxm-d9w9/files/{asset_id}?download=true&filename={filename}"
)
DEFAULT_TIMEOUT = 30.0
DEFAULT_CACHE_TTL_SECONDS = 15 * 60
DEFAULT_CACHE_MAX_ENTRIES = 32
DEFAULT_SELECTOR_COLUMN = "B"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5000

ARCHIVE_URL_ENV = "COUNTYREPORT_ARCHIVE_URL"
DOWNLOAD_URL_TEMPLATE_ENV = "COUNTYREPORT_DOWNLOAD_URL_TEMPLATE"
TIMEOUT_ENV = "COUNTYREPORT_TIMEOUT_SEC"
RETRY_ATTEMPTS_ENV = "COUNTYREPORT_RETRY_ATTEMPTS"
RETRY_BACKOFF_MS_ENV = "COUNTYREPORT_RETRY_BACKOFF_MS"
RETRY_MAX_BACKOFF_MS_ENV = "COUNTYREPORT_RETRY_MAX_BACKOFF_MS"
CACHE_TTL_ENV = "COUNTYREPORT_CACHE_TTL_SEC"
CACHE_MAX_ENTRIES_ENV = "COUNTYREPORT_CACHE_MAX_ENTRIES"
SELECTOR_COLUMN_ENV = "COUNTYREPORT_SELECTOR_COLUMN"
HOST_ENV = "COUNTYREPORT_HOST"
PORT_ENV = "PORT"


@dataclass(slots=True)
class RetryConfig:
    """Retry parameters for upstream HTTP requests."""

    max_attempts: int = 3
    backoff_ms: int = 250
    max_backoff_ms: int = 4000

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "RetryConfig":
        if not data:
            return cls()
        return cls(
            max_attempts=int(data.get("max_attempts", 3)),
            backoff_ms=int(data.get("backoff_ms", 250)),
            max_backoff_ms=int(data.get("max_backoff_ms", 4000)),
        )


@dataclass(slots=True)
class ReportServiceConfig:
    """Resolved configuration for report resolution, caching and serving."""

    archive_url: str = DEFAULT_ARCHIVE_URL
    download_url_template: str = DEFAULT_DOWNLOAD_URL_TEMPLATE
    timeout_sec: float = DEFAULT_TIMEOUT
    retries: RetryConfig = field(default_factory=RetryConfig)
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES
    selector_column: str = DEFAULT_SELECTOR_COLUMN
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ReportServiceConfig":
        """Create a configuration instance from a mapping."""

        retries = data.get("retries")
        try:
            return cls(
                archive_url=str(data.get("archive_url", DEFAULT_ARCHIVE_URL)),
                download_url_template=str(data.get("download_url_template", DEFAULT_DOWNLOAD_URL_TEMPLATE)),
                timeout_sec=float(data.get("timeout_sec", DEFAULT_TIMEOUT)),
                retries=RetryConfig.from_mapping(retries if isinstance(retries, Mapping) else None),
                cache_ttl_seconds=float(data.get("cache_ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)),
                cache_max_entries=int(data.get("cache_max_entries", DEFAULT_CACHE_MAX_ENTRIES)),
                selector_column=str(data.get("selector_column", DEFAULT_SELECTOR_COLUMN)).upper(),
                host=str(data.get("host", DEFAULT_HOST)),
                port=int(data.get("port", DEFAULT_PORT)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid countyreport configuration: {exc}") from exc

    @classmethod
    def from_file(cls, path: str | Path) -> "ReportServiceConfig":
        """Create a configuration instance from a YAML file.

        Args:
            path: YAML file holding a ``countyreport`` section.

        Returns:
            Parsed ``ReportServiceConfig`` instance.

        Raises:
            ConfigError: If the file is missing or the section is malformed.
        """

        cfg_path = Path(path).expanduser()
        if not cfg_path.exists():
            raise ConfigError(f"Config file not found: {cfg_path}")
        with cfg_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, Mapping):
            raise ConfigError("Config file must contain a mapping")
        section = data.get("countyreport", {})
        if not isinstance(section, Mapping):
            raise ConfigError("Config file 'countyreport' section must be a mapping")
        return cls.from_mapping(section)


def _read_env(key: str) -> str | None:
    value = os.getenv(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _read_env_int(key: str) -> int | None:
    value = _read_env(key)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {key} must be an integer") from exc


def _read_env_float(key: str) -> float | None:
    value = _read_env(key)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"Environment variable {key} must be a number") from exc


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def resolve_config(path: str | Path | None = None) -> ReportServiceConfig:
    """Resolve configuration from an optional YAML file with environment overrides."""

    base = ReportServiceConfig.from_file(path) if path else ReportServiceConfig()
    config = ReportServiceConfig(
        archive_url=_first(_read_env(ARCHIVE_URL_ENV), base.archive_url),
        download_url_template=_first(_read_env(DOWNLOAD_URL_TEMPLATE_ENV), base.download_url_template),
        timeout_sec=_first(_read_env_float(TIMEOUT_ENV), base.timeout_sec),
        retries=RetryConfig(
            max_attempts=_first(_read_env_int(RETRY_ATTEMPTS_ENV), base.retries.max_attempts),
            backoff_ms=_first(_read_env_int(RETRY_BACKOFF_MS_ENV), base.retries.backoff_ms),
            max_backoff_ms=_first(_read_env_int(RETRY_MAX_BACKOFF_MS_ENV), base.retries.max_backoff_ms),
        ),
        cache_ttl_seconds=_first(_read_env_float(CACHE_TTL_ENV), base.cache_ttl_seconds),
        cache_max_entries=_first(_read_env_int(CACHE_MAX_ENTRIES_ENV), base.cache_max_entries),
        selector_column=str(_first(_read_env(SELECTOR_COLUMN_ENV), base.selector_column)).upper(),
        host=_first(_read_env(HOST_ENV), base.host),
        port=_first(_read_env_int(PORT_ENV), base.port),
    )
    if config.cache_max_entries < 1:
        raise ConfigError("cache_max_entries must be at least 1")
    if config.cache_ttl_seconds <= 0:
        raise ConfigError("cache_ttl_seconds must be positive")
    LOGGER.debug(
        "countyreport.config resolved archive_url=%s ttl=%.0fs max_entries=%d",
        config.archive_url,
        config.cache_ttl_seconds,
        config.cache_max_entries,
    )
    return config


__all__ = [
    "ReportServiceConfig",
    "RetryConfig",
    "DEFAULT_ARCHIVE_URL",
    "DEFAULT_DOWNLOAD_URL_TEMPLATE",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_CACHE_MAX_ENTRIES",
    "CONFIG_DIR",
    "resolve_config",
]
