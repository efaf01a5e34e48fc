"""
Configuration management for the web crawler system.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class CrawlerConfig:
    """Configuration for crawler behavior."""
    max_requests: int = 10
    max_concurrent_requests: int = 10
    request_timeout: float = 30
    channel_capacity: int = 1024
    max_outcomes: Optional[int] = None
    allowed_schemes: List[str] = field(default_factory=lambda: ['http'])
    user_agent: Optional[str] = None
    max_content_size: int = 10 * 1024 * 1024


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = 'INFO'
    format: str = '%(message)s'
    file: Optional[str] = None
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    metrics_enabled: bool = False
    prometheus_port: int = 8000


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _section(cls, data: Optional[Dict[str, Any]]):
    """Build a config section, rejecting keys the section does not define."""
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"{cls.__name__} section must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {', '.join(sorted(unknown))}")
    return cls(**data)


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = Path(config_path) if config_path else None
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from a YAML file, or defaults if no path is set."""
        config_data: Dict[str, Any] = {}
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

            with open(self.config_path, 'r') as file:
                config_data = yaml.safe_load(file) or {}

            if not isinstance(config_data, dict):
                raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")

        self._config = Config(
            crawler=_section(CrawlerConfig, config_data.get('crawler')),
            logging=_section(LoggingConfig, config_data.get('logging')),
            monitoring=_section(MonitoringConfig, config_data.get('monitoring'))
        )

        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ValueError("Configuration not loaded")
        validate_config(self._config)
        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ValueError("Configuration not loaded. Call load_config() first.")
        return self._config


def validate_config(config: Config):
    """Raise ValueError if any setting is out of range."""
    crawler = config.crawler

    if crawler.max_requests < 0:
        raise ValueError("max_requests must be non-negative")

    if crawler.max_concurrent_requests < 1:
        raise ValueError("max_concurrent_requests must be at least 1")

    if crawler.request_timeout <= 0:
        raise ValueError("request_timeout must be positive")

    if crawler.channel_capacity < 1:
        raise ValueError("channel_capacity must be at least 1")

    if crawler.max_outcomes is not None and crawler.max_outcomes < 1:
        raise ValueError("max_outcomes must be at least 1")

    if not crawler.allowed_schemes:
        raise ValueError("At least one allowed scheme must be provided")

    if crawler.max_content_size < 1:
        raise ValueError("max_content_size must be at least 1")

    if not isinstance(getattr(logging, config.logging.level.upper(), None), int):
        raise ValueError(f"Unknown log level: {config.logging.level}")


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
