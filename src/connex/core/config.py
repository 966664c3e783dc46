"""Configuration utilities for Connex.

Provides XDG-compliant config path handling and configuration loading.
All configuration is stored in ~/.config/connex/ by default, respecting
the XDG_CONFIG_HOME environment variable when set.
"""

import os
import re
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Literal

from connex.core.constants import (
    DEFAULT_MAX_PATH_DEPTH,
    DEFAULT_MAX_RESULTS,
    DEFAULT_MIN_SCORE,
    MAX_SCORE,
    MIN_SCORE,
)
from connex.core.exceptions import ConfigError
from connex.core.types import ScanOptions

__all__ = [
    "ConnexConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_TOML",
    "ConfigError",
    "get_xdg_config_home",
    "get_config_path",
    "ensure_config_directory",
    "load_config",
    "write_default_config",
    "CONFIG_KEYS",
    "get_config_display",
    "get_setting_value",
    "update_config",
    "reset_config",
]

VALID_OUTPUT_FORMATS: frozenset[str] = frozenset({"text", "json"})

# Integer settings and their inclusive lower/upper bounds (None = unbounded)
INT_SETTINGS: dict[str, tuple[int, int | None]] = {
    "max_results": (1, None),
    "min_score": (MIN_SCORE, MAX_SCORE),
    "max_path_depth": (1, None),
    "workers": (1, None),
}

# Valid configuration keys with descriptions and allowed values
# Format: key -> (description, frozenset of valid values or None for free-form)
CONFIG_KEYS: dict[str, tuple[str, frozenset[str] | None]] = {
    "reference_city": (
        "Your city, used to spot people who are in town (aliases like sf, nyc, bkk work)",
        None,  # Free-form
    ),
    "max_results": (
        "Maximum number of recommendations (integer >= 1)",
        None,
    ),
    "min_score": (
        "Drop recommendations scoring below this (0-100)",
        None,
    ),
    "max_path_depth": (
        "Maximum hops for path search (integer >= 1)",
        None,
    ),
    "workers": (
        "Threads used to score candidates (integer >= 1)",
        None,
    ),
    "default_format": (
        "Output format (text, json)",
        VALID_OUTPUT_FORMATS,
    ),
}


def get_xdg_config_home() -> Path:
    """Get XDG config home directory for Connex.

    Returns ~/.config/connex/ by default.
    Respects XDG_CONFIG_HOME environment variable when set.

    Returns:
        Path to Connex's config directory.
    """
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        base = Path(xdg_config_home)
    else:
        base = Path.home() / ".config"
    return base / "connex"


def get_config_path() -> Path:
    """Get path to config file.

    Returns:
        Path to config.toml file within Connex's config directory.
    """
    return get_xdg_config_home() / "config.toml"


def _make_private_dir(directory: Path) -> None:
    directory.parent.mkdir(parents=True, exist_ok=True)
    if not directory.exists():
        old_umask = os.umask(0o077)  # Block group/other access
        try:
            directory.mkdir(mode=0o700, exist_ok=True)
        finally:
            os.umask(old_umask)
    directory.chmod(0o700)


def ensure_config_directory() -> Path:
    """Ensure config directory exists with owner-only permissions (700).

    Returns:
        Path to the created/existing config directory.
    """
    config_dir = get_xdg_config_home()
    _make_private_dir(config_dir)
    return config_dir


@dataclass(frozen=True)
class ConnexConfig:
    """Connex configuration settings.

    All fields have sensible defaults. Config file can be partial.
    """

    # Discovery settings
    reference_city: str = ""
    max_results: int = DEFAULT_MAX_RESULTS
    min_score: int = DEFAULT_MIN_SCORE

    # Graph settings
    max_path_depth: int = DEFAULT_MAX_PATH_DEPTH

    # Performance
    workers: int = 1

    # Output settings
    default_format: Literal["text", "json"] = "text"

    def scan_options(self) -> ScanOptions:
        """Return the scan options these settings describe."""
        return ScanOptions(
            reference_city=self.reference_city or None,
            max_results=self.max_results,
            min_score=self.min_score,
        )


DEFAULT_CONFIG = ConnexConfig()


def _validate_int(key: str, value: object) -> int:
    low, high = INT_SETTINGS[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Invalid {key} '{value}'. Must be an integer")
    if value < low or (high is not None and value > high):
        bounds = f"between {low} and {high}" if high is not None else f">= {low}"
        raise ConfigError(f"Invalid {key} '{value}'. Must be {bounds}")
    return value


def _validate_config_values(data: dict[str, object]) -> None:
    """Validate config values against their allowed types and ranges.

    Args:
        data: Raw config data from TOML file.

    Raises:
        ConfigError: If any value is not allowed.
    """
    if "default_format" in data:
        value = data["default_format"]
        if value not in VALID_OUTPUT_FORMATS:
            raise ConfigError(
                f"Invalid default_format '{value}'. "
                f"Must be one of: {', '.join(sorted(VALID_OUTPUT_FORMATS))}"
            )

    if "reference_city" in data and not isinstance(data["reference_city"], str):
        raise ConfigError(f"Invalid reference_city '{data['reference_city']}'. Must be a string")

    for key in INT_SETTINGS:
        if key in data:
            _validate_int(key, data[key])


# Default config TOML template with documentation comments
DEFAULT_CONFIG_TOML = """\
# Connex Configuration
# Location: ~/.config/connex/config.toml

# Your city. People whose latest travel/location signal matches it get a
# "timing match" boost. Aliases such as "sf", "nyc" and "bkk" are accepted.
reference_city = ""

# Ranking
max_results = 10
min_score = 20

# Maximum hops for `connex path`
max_path_depth = 4

# Threads used to score candidates (1 = sequential)
workers = 1

# Output format: "text" or "json"
default_format = "text"
"""


def load_config(config_path: Path | None = None) -> ConnexConfig:
    """Load configuration from TOML file.

    Args:
        config_path: Optional path override. Defaults to XDG config path.

    Returns:
        ConnexConfig with loaded values merged with defaults.

    Raises:
        ConfigError: If TOML parsing or value validation fails.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        return DEFAULT_CONFIG

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Configuration file is invalid: {e}") from e

    _validate_config_values(data)

    # Merge with defaults - only use keys that are valid ConnexConfig fields
    valid_fields = {f.name for f in fields(ConnexConfig)}
    filtered_data = {k: v for k, v in data.items() if k in valid_fields}

    return ConnexConfig(**{**DEFAULT_CONFIG.__dict__, **filtered_data})


def _write_private(path: Path, content: str) -> None:
    """Write a file atomically (temp file + rename) with 600 permissions."""
    temp_path = path.with_suffix(".tmp")
    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)

        # Set permissions before move (0o600 = owner read/write only)
        temp_path.chmod(0o600)
        temp_path.replace(path)
    finally:
        # Clean up temp file if it still exists
        try:
            if temp_path.exists():
                temp_path.unlink()
        except OSError:
            pass


def write_default_config(config_path: Path | None = None) -> None:
    """Write default configuration file with documented settings.

    Creates the config directory if needed.

    Args:
        config_path: Optional path override. Defaults to XDG config path.
    """
    if config_path is None:
        config_path = get_config_path()
        ensure_config_directory()
    else:
        _make_private_dir(config_path.parent)

    _write_private(config_path, DEFAULT_CONFIG_TOML)


def get_config_display(config: ConnexConfig) -> str:
    """Format all configuration for display with section headers.

    Args:
        config: The ConnexConfig to format.

    Returns:
        Human-readable string with all settings grouped by category.
    """
    lines = []

    lines.append("# Discovery")
    city_display = config.reference_city if config.reference_city else "(not set)"
    lines.append(f"reference_city: {city_display}")
    lines.append(f"max_results: {config.max_results}")
    lines.append(f"min_score: {config.min_score}")
    lines.append("")

    lines.append("# Graph")
    lines.append(f"max_path_depth: {config.max_path_depth}")
    lines.append("")

    lines.append("# Performance")
    lines.append(f"workers: {config.workers}")
    lines.append("")

    lines.append("# Output")
    lines.append(f"default_format: {config.default_format}")

    return "\n".join(lines)


def _check_key(key: str) -> None:
    if key not in CONFIG_KEYS:
        valid_keys = ", ".join(sorted(CONFIG_KEYS.keys()))
        raise ConfigError(f"Unknown configuration key '{key}'. Valid keys: {valid_keys}")


def get_setting_value(config: ConnexConfig, key: str) -> str:
    """Get a single setting value for display.

    Raises:
        ConfigError: If key is not a valid configuration key.
    """
    _check_key(key)
    value = getattr(config, key)
    if key == "reference_city" and not value:
        return "(not set)"
    return str(value)


def update_config(key: str, value: str, config_path: Path | None = None) -> None:
    """Update a single configuration value.

    Creates the config file from defaults if needed, validates the value,
    and rewrites only that key's line so comments are preserved.

    Args:
        key: Configuration key to update.
        value: New value as typed on the command line.
        config_path: Optional path override. Defaults to XDG config path.

    Raises:
        ConfigError: If key is invalid or value doesn't pass validation.
    """
    _check_key(key)

    _description, valid_values = CONFIG_KEYS[key]
    if valid_values is not None and value.lower() not in valid_values:
        valid_list = ", ".join(sorted(valid_values))
        raise ConfigError(f"Invalid value '{value}' for {key}. Valid values: {valid_list}")

    if key in INT_SETTINGS:
        try:
            number = int(value)
        except ValueError as e:
            raise ConfigError(f"Invalid {key} '{value}'. Must be an integer") from e
        toml_value = str(_validate_int(key, number))
    elif valid_values is not None:
        toml_value = f'"{value.lower()}"'
    else:
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        toml_value = f'"{escaped}"'

    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        write_default_config(config_path)

    content = config_path.read_text(encoding="utf-8")

    pattern = rf"^({re.escape(key)}\s*=\s*).*$"
    if re.search(pattern, content, re.MULTILINE):
        new_content = re.sub(
            pattern, lambda m: m.group(1) + toml_value, content, flags=re.MULTILINE
        )
    else:
        # Key doesn't exist - append it
        new_content = content.rstrip() + f"\n{key} = {toml_value}\n"

    _write_private(config_path, new_content)


def reset_config(config_path: Path | None = None) -> None:
    """Reset configuration to default values.

    Overwrites the config file with DEFAULT_CONFIG_TOML.

    Args:
        config_path: Optional path override. Defaults to XDG config path.
    """
    write_default_config(config_path)
