"""Core module exports."""

from tokenplane.core.errors import (
    BreakingChangeBlocked,
    ConfigError,
    ErrorCode,
    FileWriteError,
    InternalError,
    MalformedInputError,
    SyncWarning,
    TokenPlaneError,
    WarningCode,
)
from tokenplane.core.logging import configure_logging, current_run_id, run_scope

__all__ = [
    # Errors
    "BreakingChangeBlocked",
    "ConfigError",
    "ErrorCode",
    "FileWriteError",
    "InternalError",
    "MalformedInputError",
    "SyncWarning",
    "TokenPlaneError",
    "WarningCode",
    # Logging
    "configure_logging",
    "current_run_id",
    "run_scope",
]
