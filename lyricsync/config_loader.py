"""Handles loading configuration from YAML files."""

import yaml
import os
import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

from .cache import DEFAULT_EXPIRATION_MS, DEFAULT_PREFIX, LyricCache
from .exceptions import ConfigurationError
from .models import ParseOptions
from .storage import DirectoryBackend, MemoryBackend, StorageBackend

logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: str) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Args:
            config_path: The path to the YAML configuration file.

        Returns:
            A dictionary containing the loaded configuration settings.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML or
                              if there are other reading errors.
        """
        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
            logger.error(f"Configuration path is not a file: {config_path}")
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except OSError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if not isinstance(config, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")
        logger.info(f"Configuration loaded successfully from {config_path}")
        return config

    def load(self, config_path: str) -> "LyricSyncConfig":
        """Loads and validates a configuration file in one step."""
        return LyricSyncConfig.from_dict(self.load_config(config_path))


@dataclass
class LyricSyncConfig:
    """Validated settings for the cache, parser, sync loop and logging."""
    cache_prefix: str = DEFAULT_PREFIX
    cache_expiration_days: float = DEFAULT_EXPIRATION_MS / MS_PER_DAY
    cache_dir: Optional[str] = None
    memory_quota_bytes: Optional[int] = 5 * 1024 * 1024
    poll_interval_ms: float = 50
    line_size: float = 50.0
    align: str = "center"
    word_split: bool = False
    base_time: float = 0.0
    log_dir: str = "logs"
    log_file: str = "lyricsync.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "LyricSyncConfig":
        """
        Builds a config from a loaded mapping. Unknown keys are ignored with a warning.

        Raises:
            ConfigurationError: If a value is missing a sensible type or range.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {', '.join(unknown)}")
        try:
            settings = cls(**{k: v for k, v in config.items() if k in known})
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        settings.validate()
        return settings

    def validate(self) -> None:
        """Raises ConfigurationError if any setting is out of range."""
        if not isinstance(self.cache_prefix, str) or not self.cache_prefix:
            raise ConfigurationError("'cache_prefix' must be a non-empty string.")
        for name in ("cache_expiration_days", "poll_interval_ms", "line_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigurationError(f"'{name}' must be a positive number, got {value!r}")
        if self.memory_quota_bytes is not None and (
            isinstance(self.memory_quota_bytes, bool)
            or not isinstance(self.memory_quota_bytes, int)
            or self.memory_quota_bytes < 0
        ):
            raise ConfigurationError(f"'memory_quota_bytes' must be a non-negative integer, got {self.memory_quota_bytes!r}")
        if self.align not in ("center", "top"):
            raise ConfigurationError(f"'align' must be 'center' or 'top', got {self.align!r}")
        if not isinstance(self.word_split, bool):
            raise ConfigurationError(f"'word_split' must be true or false, got {self.word_split!r}")
        if isinstance(self.base_time, bool) or not isinstance(self.base_time, (int, float)):
            raise ConfigurationError(f"'base_time' must be a number of seconds, got {self.base_time!r}")
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ConfigurationError(f"'log_level' must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}")

    @property
    def poll_interval(self) -> float:
        """Polling interval in seconds."""
        return self.poll_interval_ms / 1000

    def parse_options(self) -> ParseOptions:
        return ParseOptions(base_time=float(self.base_time), word_split=self.word_split)

    def build_backends(self) -> List[StorageBackend]:
        """Memory store first, then the directory store when 'cache_dir' is set."""
        backends: List[StorageBackend] = [MemoryBackend(quota_bytes=self.memory_quota_bytes)]
        if self.cache_dir:
            backends.append(DirectoryBackend(os.path.expanduser(self.cache_dir)))
        return backends

    def build_cache(self) -> LyricCache:
        return LyricCache(
            self.build_backends(),
            prefix=self.cache_prefix,
            expiration_ms=self.cache_expiration_days * MS_PER_DAY,
        )
