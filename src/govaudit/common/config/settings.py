"""Configuration management - Centralized configuration for govaudit.

Provides environment-aware configuration with sensible defaults.
All configuration is loaded from environment variables with fallbacks.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from govaudit.common.constants import (
    AuditConstants,
    MaskingConstants,
    TransportConstants,
)
from govaudit.common.exceptions import ConfigurationError


class Environment(str, Enum):
    """Application environment."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Config:
    """Central configuration object for govaudit.

    All settings can be overridden via environment variables prefixed with
    GOVAUDIT_.

    Example:
        GOVAUDIT_EMIT_EVENTS=true
        GOVAUDIT_AUDIT_BATCH_SIZE=50
        GOVAUDIT_SENSITIVE_FIELDS_CONFIG=./config/sensitive-fields.yaml
    """

    # Core settings
    environment: Environment = field(
        default_factory=lambda: Environment(
            os.getenv("GOVAUDIT_ENVIRONMENT", "development")
        )
    )
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("GOVAUDIT_LOG_LEVEL", "INFO").upper())
    )

    # Dispatch mode: local observers instead of the controller
    emit_events: bool = field(
        default_factory=lambda: _env_flag("GOVAUDIT_EMIT_EVENTS")
    )

    # Controller connection
    controller_url: Optional[str] = field(
        default_factory=lambda: os.getenv("GOVAUDIT_CONTROLLER_URL")
    )
    client_id: Optional[str] = field(
        default_factory=lambda: os.getenv("GOVAUDIT_CLIENT_ID")
    )
    client_secret: Optional[str] = field(
        default_factory=lambda: os.getenv("GOVAUDIT_CLIENT_SECRET")
    )
    transport_timeout: float = field(
        default_factory=lambda: float(
            os.getenv("GOVAUDIT_TRANSPORT_TIMEOUT", str(TransportConstants.DEFAULT_TIMEOUT_SECONDS))
        )
    )

    # Batching
    audit_batch_size: int = field(
        default_factory=lambda: int(
            os.getenv("GOVAUDIT_AUDIT_BATCH_SIZE", str(AuditConstants.DEFAULT_BATCH_SIZE))
        )
    )
    audit_batch_interval_ms: int = field(
        default_factory=lambda: int(
            os.getenv("GOVAUDIT_AUDIT_BATCH_INTERVAL_MS", str(AuditConstants.DEFAULT_BATCH_INTERVAL_MS))
        )
    )

    # Masking
    sensitive_fields_config: Optional[str] = field(
        default_factory=lambda: os.getenv(MaskingConstants.CONFIG_ENV_VAR)
    )

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.audit_batch_size < 1:
            raise ConfigurationError(
                "audit_batch_size must be at least 1",
                details={"audit_batch_size": self.audit_batch_size},
            )
        if self.audit_batch_interval_ms <= 0:
            raise ConfigurationError(
                "audit_batch_interval_ms must be positive",
                details={"audit_batch_interval_ms": self.audit_batch_interval_ms},
            )
        if not self.emit_events and not self.controller_url:
            raise ConfigurationError(
                "GOVAUDIT_CONTROLLER_URL must be set unless emit_events is enabled"
            )

    @property
    def batch_interval_seconds(self) -> float:
        """Batch interval as seconds, the unit threading.Timer expects."""
        return self.audit_batch_interval_ms / 1000.0

    @property
    def debug_enabled(self) -> bool:
        """Whether debug-level entries are emitted."""
        return self.log_level == LogLevel.DEBUG

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION


# Singleton instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config: The global configuration singleton.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (for testing)."""
    global _config
    _config = None
