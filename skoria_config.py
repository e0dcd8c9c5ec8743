#!/usr/bin/env python3
"""
Skoria Configuration

Read-only configuration for the skoria traversal, kept next to the other
kosmos tool settings in ~/.kosmos. The file is TOML:

    [traversal]
    max_depth = 1000
    concurrency = 50
    buffer_size = 100
    skip_dirs = ["target", "node_modules"]   # replaces the built-in skip-set
    extra_skip_dirs = [".venv"]              # added to the skip-set

    [detectors]
    disabled = ["unity"]

Skoria never writes this file back; every run starts from the same settings.
"""

import logging
import os
import pathlib
import tomllib
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from detectors import DetectorRegistry, UnknownDetectorError
from traversal import (
    CONCURRENCY_LIMIT,
    DEFAULT_SKIP_DIRS,
    MAX_RECURSION_DEPTH,
    RESULT_BUFFER_SIZE,
    TraversalConfig,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SKORIA_CONFIG"
CONFIG_FILENAME = "skoria.toml"


class ConfigError(ValueError):
    """Raised when the configuration file holds invalid values."""


@dataclass
class SkoriaConfig:
    """User-adjustable traversal settings"""

    max_depth: int = MAX_RECURSION_DEPTH
    concurrency: int = CONCURRENCY_LIMIT
    buffer_size: int = RESULT_BUFFER_SIZE
    skip_dirs: list[str] = field(default_factory=lambda: sorted(DEFAULT_SKIP_DIRS))
    extra_skip_dirs: list[str] = field(default_factory=list)
    disabled_detectors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SkoriaConfig":
        """Create from the parsed TOML document

        Raises:
            ConfigError: If a value has the wrong type or range
        """
        traversal = _section(data, "traversal")
        detectors = _section(data, "detectors")
        default = cls.default()
        return cls(
            max_depth=_non_negative_int(traversal, "max_depth", default.max_depth),
            concurrency=_non_negative_int(traversal, "concurrency", default.concurrency),
            buffer_size=_positive_int(traversal, "buffer_size", default.buffer_size),
            skip_dirs=_string_list(traversal, "skip_dirs", default.skip_dirs),
            extra_skip_dirs=_string_list(traversal, "extra_skip_dirs", []),
            disabled_detectors=_string_list(detectors, "disabled", []),
        )

    @classmethod
    def default(cls) -> "SkoriaConfig":
        """Create default configuration"""
        return cls()

    def effective_skip_dirs(self) -> frozenset:
        return frozenset(self.skip_dirs) | frozenset(self.extra_skip_dirs)

    def to_traversal_config(self, registry: DetectorRegistry) -> TraversalConfig:
        """Build the traversal settings, dropping disabled detectors from *registry*

        Raises:
            ConfigError: If a disabled detector is not in the registry
        """
        try:
            registry = registry.without(self.disabled_detectors)
        except UnknownDetectorError as e:
            raise ConfigError(f"Unknown detector(s) in [detectors] disabled: {e.args[0]}") from e
        try:
            return TraversalConfig(
                max_depth=self.max_depth,
                concurrency=self.concurrency,
                skip_dirs=self.effective_skip_dirs(),
                registry=registry,
                buffer_size=self.buffer_size,
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _non_negative_int(section: dict, key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(f"{key} must be a non-negative integer, got {value!r}")
    return value


def _positive_int(section: dict, key: str, default: int) -> int:
    value = _non_negative_int(section, key, default)
    if value == 0:
        raise ConfigError(f"{key} must be at least 1")
    return value


def _string_list(section: dict, key: str, default: list[str]) -> list[str]:
    value: Any = section.get(key, default)
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{key} must be a list of strings, got {value!r}")
    return list(value)


class ConfigManager:
    """Locates and loads the skoria configuration file"""

    def __init__(self, config_file: Optional[pathlib.Path] = None, kosmos_dir: Optional[pathlib.Path] = None):
        """Initialize configuration manager

        Args:
            config_file: Explicit configuration file (e.g. from --config)
            kosmos_dir: Override default .kosmos directory location
        """
        self.kosmos_dir = kosmos_dir or pathlib.Path.home() / ".kosmos"
        if config_file is not None:
            self.config_file = pathlib.Path(config_file).expanduser()
        elif os.environ.get(CONFIG_ENV_VAR):
            self.config_file = pathlib.Path(os.environ[CONFIG_ENV_VAR]).expanduser()
        else:
            self.config_file = self.kosmos_dir / CONFIG_FILENAME

    def load(self) -> SkoriaConfig:
        """Load configuration from file, falling back to defaults when absent or unreadable"""
        if not self.config_file.exists():
            return SkoriaConfig.default()
        try:
            with self.config_file.open("rb") as f:
                data = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)
            return SkoriaConfig.default()
        logger.debug("Loaded configuration from %s", self.config_file)
        return SkoriaConfig.from_dict(data)
