"""Configuration module."""

from govaudit.common.config.settings import (
    Config,
    Environment,
    LogLevel,
    get_config,
    reset_config,
)

__all__ = [
    "Config",
    "Environment",
    "LogLevel",
    "get_config",
    "reset_config",
]
