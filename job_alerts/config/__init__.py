"""Configuration management for the job alert service."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_app_config, load_config
from .models import (
    AppConfig,
    EmailConfig,
    LogFormat,
    LogLevel,
    LoggingConfig,
    MatchingConfig,
    ScheduleConfig,
    TextGenerationConfig,
    build_cron_trigger,
)

__all__ = [
    # Loader functions
    "load_config",
    "load_app_config",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "ScheduleConfig",
    "MatchingConfig",
    "EmailConfig",
    "TextGenerationConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "build_cron_trigger",
    # Enums
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
