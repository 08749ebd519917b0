"""sriguard integrations module.

Production utilities:
- Configuration management with environment variables
- Structured integrity event logging
- Verification metrics collection
"""

from sriguard.integrations.config import (
    ConfigSource,
    HashingConfig,
    MonitoringConfig,
    SRIGuardConfig,
    ConfigManager,
    PROFILES,
    get_profile,
    get_config,
    set_config,
    create_config_manager,
)

from sriguard.integrations.logging import (
    IntegrityEventType,
    IntegrityEvent,
    IntegrityLogger,
    JSONEventFormatter,
    MetricsCollector,
    VerificationMetrics,
    get_logger,
    get_metrics,
    configure_logging,
)

__all__ = [
    # Configuration
    "ConfigSource",
    "HashingConfig",
    "MonitoringConfig",
    "SRIGuardConfig",
    "ConfigManager",
    "PROFILES",
    "get_profile",
    "get_config",
    "set_config",
    "create_config_manager",
    # Logging
    "IntegrityEventType",
    "IntegrityEvent",
    "IntegrityLogger",
    "JSONEventFormatter",
    "MetricsCollector",
    "VerificationMetrics",
    "get_logger",
    "get_metrics",
    "configure_logging",
]
