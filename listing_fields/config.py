"""Configuration management for listing-fields."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

from listing_fields.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)

_ORDERS = ("asc", "desc")


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "listing-fields" / "config.toml"


def get_default_database_path() -> Path:
    """Get the default listings database path."""
    return Path.home() / ".local" / "share" / "listing-fields" / "listings.db"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        database: Path to the SQLite listings database.
        schema_file: Optional TOML file with extra fields, filters and groups.
        colored_output: Whether to use colored terminal output.
        max_page_size: Upper bound for any search page.
        default_page_size: Page size when a search does not ask for one.
        default_orderby: Sort key when a search does not ask for one.
        default_order: Sort direction, ``asc`` or ``desc``.
        cache_ttl: Seconds derived reads (term counts) stay cached.
        strict_fields: Report unregistered field names as validation errors.
        register_defaults: Register the default field and filter set.
        config_path: Path where config was loaded from (None if defaults).
    """

    database: Path = field(default_factory=get_default_database_path)
    schema_file: Path | None = None
    colored_output: bool = True
    max_page_size: int = 100
    default_page_size: int = 10
    default_orderby: str = "date"
    default_order: str = "desc"
    cache_ttl: int = 3600
    strict_fields: bool = False
    register_defaults: bool = True
    config_path: Path | None = None

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        self.database = self.database.expanduser()
        if self.schema_file is not None:
            self.schema_file = self.schema_file.expanduser()
            if not self.schema_file.exists():
                warnings.append(f"Schema file not found: {self.schema_file}")

        if self.max_page_size < 1:
            raise ConfigValidationError(
                "search.max_page_size", self.max_page_size, "must be at least 1"
            )
        if self.default_page_size < 1:
            warnings.append(
                f"search.default_page_size={self.default_page_size} is below 1; using 1"
            )
            self.default_page_size = 1
        if self.default_page_size > self.max_page_size:
            warnings.append(
                f"search.default_page_size={self.default_page_size} exceeds "
                f"max_page_size={self.max_page_size}; clamping"
            )
            self.default_page_size = self.max_page_size
        if self.default_order not in _ORDERS:
            warnings.append(f"search.default_order={self.default_order!r} is not asc/desc; using desc")
            self.default_order = "desc"
        if self.cache_ttl < 0:
            warnings.append(f"cache.ttl_seconds={self.cache_ttl} is negative; caching disabled")
            self.cache_ttl = 0

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        # Use defaults
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: listing-fields init-config"
        )
        config_warnings = config.validate()
        return config, warnings + config_warnings

    # Load from file
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    config_warnings = config.validate()

    return config, warnings + config_warnings


def _int_value(section: dict[str, Any], key: str, name: str) -> int:
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigValidationError(name, value, "must be an integer")
    return value


def _bool_value(section: dict[str, Any], key: str, name: str) -> bool:
    value = section[key]
    if not isinstance(value, bool):
        raise ConfigValidationError(name, value, "must be a boolean")
    return value


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [paths] section
    paths = data.get("paths", {})
    if "database" in paths:
        value = paths["database"]
        if not isinstance(value, str):
            raise ConfigValidationError("paths.database", value, "must be a string path")
        config.database = Path(value)

    if "schema" in paths:
        value = paths["schema"]
        if not isinstance(value, str):
            raise ConfigValidationError("paths.schema", value, "must be a string path")
        config.schema_file = Path(value)

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        config.colored_output = _bool_value(display, "colored_output", "display.colored_output")

    # Parse [search] section
    search = data.get("search", {})
    if "max_page_size" in search:
        config.max_page_size = _int_value(search, "max_page_size", "search.max_page_size")
    if "default_page_size" in search:
        config.default_page_size = _int_value(
            search, "default_page_size", "search.default_page_size"
        )
    if "default_orderby" in search:
        value = search["default_orderby"]
        if not isinstance(value, str):
            raise ConfigValidationError("search.default_orderby", value, "must be a string")
        config.default_orderby = value
    if "default_order" in search:
        value = search["default_order"]
        if not isinstance(value, str):
            raise ConfigValidationError("search.default_order", value, "must be a string")
        config.default_order = value.lower()

    # Parse [cache] section
    cache = data.get("cache", {})
    if "ttl_seconds" in cache:
        config.cache_ttl = _int_value(cache, "ttl_seconds", "cache.ttl_seconds")

    # Parse [fields] section
    fields = data.get("fields", {})
    if "strict" in fields:
        config.strict_fields = _bool_value(fields, "strict", "fields.strict")
    if "register_defaults" in fields:
        config.register_defaults = _bool_value(fields, "register_defaults", "fields.register_defaults")

    return config


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Path to save to. If None, uses config.config_path or default.
    """
    if config_path is None:
        config_path = config.config_path or get_default_config_path()

    config_path = config_path.expanduser().resolve()

    # Ensure directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # Build TOML structure
    data: dict[str, Any] = {
        "paths": {
            "database": str(config.database),
        },
        "display": {
            "colored_output": config.colored_output,
        },
        "search": {
            "max_page_size": config.max_page_size,
            "default_page_size": config.default_page_size,
            "default_orderby": config.default_orderby,
            "default_order": config.default_order,
        },
        "cache": {
            "ttl_seconds": config.cache_ttl,
        },
        "fields": {
            "strict": config.strict_fields,
            "register_defaults": config.register_defaults,
        },
    }

    if config.schema_file is not None:
        data["paths"]["schema"] = str(config.schema_file)

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
