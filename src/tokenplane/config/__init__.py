"""Config module exports."""

from tokenplane.config.loader import TokenPlaneSettings, load_config
from tokenplane.config.models import (
    LoggingConfig,
    MigrationConfig,
    PlatformConfig,
    ReconcileConfig,
    TokenPlaneConfig,
    TransformConfig,
    TransportConfig,
    VersioningConfig,
)

__all__ = [
    "load_config",
    "LoggingConfig",
    "MigrationConfig",
    "PlatformConfig",
    "ReconcileConfig",
    "TokenPlaneConfig",
    "TokenPlaneSettings",
    "TransformConfig",
    "TransportConfig",
    "VersioningConfig",
]
