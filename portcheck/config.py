"""Optional .portcheck.yaml settings, loaded from the scan root or --config."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_NAMES = (".portcheck.yaml", ".portcheck.yml")
FAIL_ON_LEVELS = ("error", "warning", "info")
OUTPUT_FORMATS = ("text", "json", "markdown")


class ConfigError(ValueError):
    """Config file exists but can't be used."""


@dataclass
class Settings:
    fail_on: str = "error"
    profiles: list[str] = field(default_factory=list)
    ignore_ports: list[int] = field(default_factory=list)
    format: str = "text"
    source: str | None = None  # file the settings came from


def _settings_from_dict(data: dict[str, Any], source: str) -> Settings:
    settings = Settings(source=source)

    fail_on = str(data.get("fail_on", settings.fail_on)).lower()
    if fail_on not in FAIL_ON_LEVELS:
        raise ConfigError(f"fail_on must be one of {', '.join(FAIL_ON_LEVELS)}, got {fail_on!r}")
    settings.fail_on = fail_on

    fmt = str(data.get("format", settings.format)).lower()
    if fmt not in OUTPUT_FORMATS:
        raise ConfigError(f"format must be one of {', '.join(OUTPUT_FORMATS)}, got {fmt!r}")
    settings.format = fmt

    profiles = data.get("profiles") or []
    if isinstance(profiles, str):
        profiles = [profiles]
    if not isinstance(profiles, list):
        raise ConfigError("profiles must be a list of names")
    settings.profiles = [str(p) for p in profiles]

    ignore = data.get("ignore_ports") or []
    if not isinstance(ignore, list):
        raise ConfigError("ignore_ports must be a list of port numbers")
    try:
        settings.ignore_ports = [int(p) for p in ignore]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"ignore_ports must be a list of port numbers: {e}") from e
    return settings


def read_config(path: Path) -> Settings:
    """Parse one config file. Raises ConfigError."""
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at top level")
    return _settings_from_dict(data, str(path))


def load_config(root: Path, explicit: Path | None = None) -> Settings:
    """
    Explicit --config file wins and must be valid. Otherwise the first
    .portcheck.yaml/.yml in root is used; if that one is broken it is
    ignored with a warning and defaults apply.
    """
    if explicit is not None:
        return read_config(explicit)
    for name in CONFIG_NAMES:
        candidate = root / name
        if candidate.is_file():
            try:
                settings = read_config(candidate)
            except ConfigError as e:
                logger.warning("Ignoring config: %s", e)
                return Settings()
            logger.debug("Loaded settings from %s", candidate)
            return settings
    return Settings()
