# src/logdna_shipper/config.py
"""Logger construction options and settings-file loading.

Uses Pydantic for validation and Dynaconf for file + environment loading.
Options are frozen after construction. Every validation failure surfaces as
LoggerConfigError so construction fails before anything is registered.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Self
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError, field_validator

from logdna_shipper.defaults import (
    FLUSH_BYTE_LIMIT,
    FLUSH_INTERVAL_MS,
    HOSTNAME_CHECK,
    IP_ADDR_CHECK,
    MAC_ADDR_CHECK,
    MAX_INPUT_LENGTH,
    MAX_REQUEST_TIMEOUT_MS,
    REQUEST_WITH_CREDENTIALS,
)
from logdna_shipper.errors import LoggerConfigError

ENVVAR_PREFIX = "LOGDNA_SHIPPER"


def _check_length(value: str, label: str) -> str:
    if len(value) > MAX_INPUT_LENGTH:
        raise ValueError(f"{label} cannot be longer than {MAX_INPUT_LENGTH} chars")
    return value


def validate_ingestion_key(key: Any) -> str:
    """Check the ingestion key is a non-empty string of bounded length.

    Raises:
        LoggerConfigError: If the key is missing, not a string, or too long.
    """
    if not key or not isinstance(key, str):
        raise LoggerConfigError("Ingestion key is undefined or not passed as a string")
    if len(key) > MAX_INPUT_LENGTH:
        raise LoggerConfigError(f"Ingestion key cannot be longer than {MAX_INPUT_LENGTH} chars")
    return key


def normalize_tags(value: Any) -> str | None:
    """Normalize tags given as a comma-separated string or a list of strings.

    Returns:
        Comma-joined, trimmed, non-empty tags, or None when nothing remains.

    Raises:
        ValueError: If tags is neither a string nor a list/tuple of strings.
    """
    if value is None:
        return None
    if isinstance(value, str):
        items: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ValueError("Tags should be passed as a string or a list")
    if not all(isinstance(item, str) for item in items):
        raise ValueError("Tags should be passed as a string or a list of strings")
    cleaned = [item.strip() for item in items if item.strip()]
    return ",".join(cleaned) or None


class LoggerOptions(BaseModel):
    """Validated logger construction options.

    Example:
        options = LoggerOptions.from_dict({"app": "svc", "tags": ["a", " b "]})
        assert options.tags == "a,b"
    """

    model_config = {"extra": "forbid", "frozen": True, "strict": True}

    hostname: str | None = Field(default=None, description="Host name sent with every batch")
    mac: str | None = Field(default=None, description="MAC address sent with every batch")
    ip: str | None = Field(default=None, description="IPv4 address sent with every batch")
    level: str | None = Field(default=None, description="Default level (INFO when unset)")
    app: str | None = Field(default=None, description="Default app name ('default' when unset)")
    env: str | None = Field(default=None, description="Default environment name")
    tags: str | None = Field(default=None, description="Comma-joined tags")
    logdna_url: str | None = Field(default=None, description="Override ingestion endpoint")
    timeout: int | None = Field(default=None, description="Request timeout in milliseconds")
    max_length: bool = Field(default=True, description="Truncate overlong lines")
    index_meta: bool = Field(default=False, description="Keep meta structured server-side")
    with_credentials: bool = Field(default=REQUEST_WITH_CREDENTIALS)
    query_params: dict[str, str] = Field(default_factory=dict, description="Extra endpoint query parameters")
    flush_interval_ms: int = Field(default=FLUSH_INTERVAL_MS, gt=0, description="Maximum buffering delay")
    flush_byte_limit: int = Field(default=FLUSH_BYTE_LIMIT, gt=0, description="Buffered bytes forcing a flush")

    @field_validator("hostname", "mac", "ip", "level", "app", "logdna_url", "env")
    @classmethod
    def _empty_as_unset(cls, v: str | None) -> str | None:
        return v or None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, v: Any) -> str | None:
        return normalize_tags(v)

    @field_validator("hostname")
    @classmethod
    def _validate_hostname(cls, v: str | None) -> str | None:
        if v is None:
            return v
        _check_length(v, "Hostname")
        if not HOSTNAME_CHECK.match(v):
            raise ValueError("Invalid hostname")
        return v

    @field_validator("mac")
    @classmethod
    def _validate_mac(cls, v: str | None) -> str | None:
        if v is None:
            return v
        _check_length(v, "MAC Address")
        if not MAC_ADDR_CHECK.match(v):
            raise ValueError("Invalid MAC Address format")
        return v

    @field_validator("ip")
    @classmethod
    def _validate_ip(cls, v: str | None) -> str | None:
        if v is None:
            return v
        _check_length(v, "IP Address")
        if not IP_ADDR_CHECK.match(v):
            raise ValueError("Invalid IP Address format")
        return v

    @field_validator("level", "app")
    @classmethod
    def _validate_short_string(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _check_length(v, "Value")

    @field_validator("logdna_url")
    @classmethod
    def _validate_url(cls, v: str | None) -> str | None:
        if v is None:
            return v
        _check_length(v, "LogDNA URL")
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Invalid URL")
        return v

    @field_validator("timeout")
    @classmethod
    def _validate_timeout(cls, v: int | None) -> int | None:
        if v is None:
            return v
        if v < 1:
            raise ValueError("Timeout must be a positive integer")
        if v > MAX_REQUEST_TIMEOUT_MS:
            raise ValueError(f"Timeout cannot be longer than {MAX_REQUEST_TIMEOUT_MS}")
        return v

    @classmethod
    def from_dict(cls, options: Mapping[str, Any] | LoggerOptions | None) -> Self:
        """Create options from a mapping with a clear error on validation failure.

        Raises:
            LoggerConfigError: If the options are invalid.
        """
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if not isinstance(options, Mapping):
            raise LoggerConfigError(f"Logger options must be a mapping, got {type(options).__name__}")
        try:
            return cls.model_validate(dict(options))
        except ValidationError as e:
            raise LoggerConfigError(f"Invalid logger options: {e}") from e


class ShipperSettings(BaseModel):
    """Settings file layout used by the CLI.

    Example YAML:
        ingestion_key: abc123
        logger:
          app: billing
          tags: [prod, eu]
    """

    model_config = {"extra": "forbid", "frozen": True}

    ingestion_key: str | None = None
    logger: dict[str, Any] = Field(default_factory=dict)

    @property
    def options(self) -> LoggerOptions:
        """Validated logger options.

        Raises:
            LoggerConfigError: If the logger section is invalid.
        """
        return LoggerOptions.from_dict(self.logger)


def load_settings(config_path: Path) -> ShipperSettings:
    """Load settings from a YAML file with environment variable overrides.

    Precedence: LOGDNA_SHIPPER_* environment variables, then the file, then
    model defaults. Nested keys use a double underscore, e.g.
    LOGDNA_SHIPPER_LOGGER__APP=billing.

    Raises:
        FileNotFoundError: If the file does not exist.
        LoggerConfigError: If the merged settings are invalid.
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENVVAR_PREFIX,
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    if isinstance(raw_config.get("logger"), Mapping):
        raw_config["logger"] = {k.lower(): v for k, v in raw_config["logger"].items()}

    try:
        settings = ShipperSettings.model_validate(raw_config)
    except ValidationError as e:
        raise LoggerConfigError(f"Invalid settings in {config_path}: {e}") from e
    # Fail at load time rather than at logger construction
    settings.options  # noqa: B018
    return settings
