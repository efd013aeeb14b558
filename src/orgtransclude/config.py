"""Configuration loader for orgtx.toml."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomllib

from .core.cache import DEFAULT_MAX_SIZE
from .core.resolver import DEFAULT_MAX_DEPTH

CONFIG_NAME = "orgtx.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LOG_FORMATS = ("console", "json")


class ConfigError(ValueError):
    pass


@dataclass
class SourceConfig:
    """Where id: links are searched."""
    root: Path
    pattern: str = "*.org"


@dataclass
class TransclusionConfig:
    max_depth: int = DEFAULT_MAX_DEPTH
    cache_size: int = DEFAULT_MAX_SIZE


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    format: str = "console"


@dataclass
class WatchConfig:
    debounce_ms: int = 150


@dataclass
class OrgtxConfig:
    """Complete orgtx configuration."""
    source: SourceConfig
    transclusion: TransclusionConfig
    logging: LoggingConfig
    watch: WatchConfig


def load_config(config_path: Path | None = None, root: Path | None = None) -> OrgtxConfig:
    """
    Load configuration from orgtx.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/orgtx.toml
    3. root/orgtx.toml

    Raises:
        ConfigError: a value is out of range or unknown
    """
    toml_data: dict[str, Any] = {}

    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / CONFIG_NAME)
    if root:
        search_paths.append(root / CONFIG_NAME)

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
            break

    source_data = toml_data.get("source", {})
    source_config = SourceConfig(
        root=Path(source_data.get("root", root or Path("."))),
        pattern=source_data.get("pattern", "*.org"),
    )

    tx_data = toml_data.get("transclusion", {})
    tx_config = TransclusionConfig(
        max_depth=tx_data.get("max_depth", DEFAULT_MAX_DEPTH),
        cache_size=tx_data.get("cache_size", DEFAULT_MAX_SIZE),
    )
    if tx_config.max_depth < 1:
        raise ConfigError(f"transclusion.max_depth must be >= 1, got {tx_config.max_depth}")
    if tx_config.cache_size < 1:
        raise ConfigError(f"transclusion.cache_size must be >= 1, got {tx_config.cache_size}")

    log_data = toml_data.get("logging", {})
    log_config = LoggingConfig(
        level=str(log_data.get("level", "WARNING")).upper(),
        format=log_data.get("format", "console"),
    )
    if log_config.level not in LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of {', '.join(LOG_LEVELS)}")
    if log_config.format not in LOG_FORMATS:
        raise ConfigError(f"logging.format must be one of {', '.join(LOG_FORMATS)}")

    watch_data = toml_data.get("watch", {})
    watch_config = WatchConfig(debounce_ms=watch_data.get("debounce_ms", 150))

    return OrgtxConfig(
        source=source_config,
        transclusion=tx_config,
        logging=log_config,
        watch=watch_config,
    )
