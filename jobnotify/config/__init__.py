"""Configuration management: YAML application config and environment variables."""

from .duration import DurationParseError, parse_duration
from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_app_config, load_config
from .models import (
    AccessibilityRules,
    AppConfig,
    DeliveryConfig,
    FeedConfig,
    LedgerConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    NotifyConfig,
    ScheduleConfig,
)

__all__ = [
    "load_config",
    "load_app_config",
    "load_environment_config",
    "parse_duration",
    "AppConfig",
    "FeedConfig",
    "AccessibilityRules",
    "LedgerConfig",
    "DeliveryConfig",
    "NotifyConfig",
    "ScheduleConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
    "DurationParseError",
]
