"""TOML settings loading and the saved-settings store."""

from __future__ import annotations

import logging
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, TextIO, Union

from platformdirs import user_config_path

from .errors import ConfigError
from .export import atomic_write

logger = logging.getLogger(__name__)

APP_NAME = "ciphercanvas"
APP_AUTHOR = "winlogon"
CONFIG_FILENAME = "config.toml"
SETTINGS_FILENAME = "settings.toml"
STDIN_MARKER = "-"

DEFAULT_FORMAT = "svg"
DEFAULT_SIZE = 512
DEFAULT_FOREGROUND = "#ffffff"
DEFAULT_BACKGROUND = "#000000"


def get_config_str(config: Mapping[str, Any], section: str, key: str, default: str) -> str:
    value = _lookup(config, section, key)
    return value if isinstance(value, str) else default


def get_config_int(config: Mapping[str, Any], section: str, key: str, default: int) -> int:
    value = _lookup(config, section, key)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def get_config_bool(config: Mapping[str, Any], section: str, key: str, default: bool) -> bool:
    value = _lookup(config, section, key)
    return value if isinstance(value, bool) else default


def _lookup(config: Mapping[str, Any], section: str, key: str) -> Any:
    table = config.get(section)
    if not isinstance(table, Mapping):
        return None
    return table.get(key)


@dataclass
class Settings:
    """Values read from ``config.toml`` and ``settings.toml``."""

    export_format: str = DEFAULT_FORMAT
    size: int = DEFAULT_SIZE
    foreground: str = DEFAULT_FOREGROUND
    background: str = DEFAULT_BACKGROUND
    ssid: Optional[str] = None
    password: Optional[str] = None
    preview: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Settings":
        ssid = _lookup(data, "wifi", "ssid")
        password = _lookup(data, "qrcode", "password")
        return cls(
            export_format=get_config_str(data, "qrcode", "export", DEFAULT_FORMAT),
            size=get_config_int(data, "qrcode", "size", DEFAULT_SIZE),
            foreground=get_config_str(data, "colors", "foreground", DEFAULT_FOREGROUND),
            background=get_config_str(data, "colors", "background", DEFAULT_BACKGROUND),
            ssid=ssid if isinstance(ssid, str) else None,
            password=password if isinstance(password, str) else None,
            preview=get_config_bool(data, "output", "preview", False),
        )


def config_dir() -> Path:
    return user_config_path(APP_NAME, APP_AUTHOR)


def default_config_path() -> Path:
    return config_dir() / CONFIG_FILENAME


def settings_path(directory: Optional[Path] = None) -> Path:
    return (directory if directory is not None else config_dir()) / SETTINGS_FILENAME


def read_config_text(path: Union[str, Path], stdin: Optional[TextIO] = None) -> str:
    """Read configuration text from ``path``; ``-`` reads standard input."""
    if str(path) == STDIN_MARKER:
        stream = stdin if stdin is not None else sys.stdin
        try:
            return stream.read()
        except OSError as exc:
            raise ConfigError(f"Failed to read configuration from stdin: {exc}") from exc
    path = Path(path)
    logger.info("Reading configuration file from %s", path)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to open config file {path}: {exc}") from exc


def parse_toml(text: str, source: str = "configuration") -> Dict[str, Any]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse the TOML {source}: {exc}") from exc


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``; tables merge key by key."""
    result: Dict[str, Any] = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = merge(current, value)
        else:
            result[key] = value
    return result


def load_settings(
    path: Optional[Union[str, Path]] = None,
    stdin: Optional[TextIO] = None,
    directory: Optional[Path] = None,
) -> Settings:
    """Load settings from ``path`` (or the default config file) and merge saved settings over them.

    An explicit ``path`` must be readable; the default config file is optional.
    """
    if path is not None:
        data = parse_toml(read_config_text(path, stdin=stdin))
    else:
        default_path = (directory if directory is not None else config_dir()) / CONFIG_FILENAME
        if default_path.is_file():
            logger.info("Using default configuration file: %s", default_path)
            data = parse_toml(read_config_text(default_path))
        else:
            logger.info("No configuration file at %s, using defaults", default_path)
            data = {}

    saved = settings_path(directory)
    if saved.is_file():
        logger.info("Merging saved settings from %s", saved)
        data = merge(data, parse_toml(read_config_text(saved), source=f"settings file {saved}"))
    logger.info("Configuration loaded successfully.")
    return Settings.from_mapping(data)


def save_settings(text: str, directory: Optional[Path] = None) -> Path:
    """Validate ``text`` as TOML and store it as the saved settings file."""
    parse_toml(text, source="settings")
    target = settings_path(directory)
    target.parent.mkdir(parents=True, exist_ok=True)
    atomic_write(target, text.encode("utf-8"), overwrite=True)
    logger.info("Settings saved successfully to %s", target)
    return target
