"""tokenplane error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Baseline input
- 4xxx: Sync gating
- 5xxx: Migration
- 9xxx: Internal

Fatal conditions raise a ``TokenPlaneError`` subclass. Recoverable
conditions (identity mismatch, value coercion, unresolved aliases) are
collected as ``SyncWarning`` values on the result objects instead.
"""

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Baseline (3xxx)
    BASELINE_MISSING_FIELD = 3001
    BASELINE_INVALID_ENTRY = 3002
    BASELINE_UNPARSEABLE = 3003

    # Sync (4xxx)
    BREAKING_CHANGE_BLOCKED = 4001

    # Migration (5xxx)
    FILE_WRITE_FAILED = 5001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INVALID_STATE = 9002


class WarningCode(StrEnum):
    """Codes for non-fatal conditions aggregated into result objects."""

    IDENTITY_MISMATCH = "IDENTITY_MISMATCH"
    VALUE_COERCION = "VALUE_COERCION"
    UNRESOLVED_ALIAS = "UNRESOLVED_ALIAS"
    ALIAS_SET_FAILED = "ALIAS_SET_FAILED"
    TYPE_MISMATCH = "TYPE_MISMATCH"
    SKIPPED_ENTRY = "SKIPPED_ENTRY"
    VERSION_DOWNGRADE = "VERSION_DOWNGRADE"
    VERSION_CHANGE = "VERSION_CHANGE"


@dataclass(frozen=True, slots=True)
class SyncWarning:
    """A recovered, non-fatal condition."""

    code: WarningCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": str(self.code), "message": self.message, "details": self.details}

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@dataclass(frozen=True, slots=True)
class TokenPlaneError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'BASELINE_MISSING_FIELD')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON reports."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(TokenPlaneError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class MalformedInputError(TokenPlaneError):
    """Snapshot or version input that cannot be ingested. Always fatal."""

    @classmethod
    def missing_field(cls, field: str, where: str = "snapshot") -> "MalformedInputError":
        return cls(
            code=ErrorCode.BASELINE_MISSING_FIELD,
            message=f"Invalid baseline format: missing '{field}' in {where}",
            details={"field": field, "where": where},
        )

    @classmethod
    def invalid_entry(cls, key: str, reason: str) -> "MalformedInputError":
        return cls(
            code=ErrorCode.BASELINE_INVALID_ENTRY,
            message=f"Invalid baseline entry '{key}': {reason}",
            details={"key": key, "reason": reason},
        )

    @classmethod
    def unparseable(cls, reason: str) -> "MalformedInputError":
        return cls(
            code=ErrorCode.BASELINE_UNPARSEABLE,
            message=f"Failed to parse baseline payload: {reason}",
            details={"reason": reason},
        )

    @classmethod
    def invalid_version(cls, version: str) -> "MalformedInputError":
        return cls(
            code=ErrorCode.BASELINE_INVALID_ENTRY,
            message=f"Invalid semantic version: {version!r}",
            details={"version": version},
        )


class BreakingChangeBlocked(TokenPlaneError):
    """Breaking changes were found and the caller did not force the sync."""

    @classmethod
    def from_counts(cls, breaking: int, counts: dict[str, int]) -> "BreakingChangeBlocked":
        return cls(
            code=ErrorCode.BREAKING_CHANGE_BLOCKED,
            message=f"{breaking} breaking change(s) detected; re-run with force to proceed",
            details={"breaking": breaking, "counts": counts},
        )


class FileWriteError(TokenPlaneError):
    """Failure scoped to one file during migration."""

    @classmethod
    def for_path(cls, path: str, reason: str) -> "FileWriteError":
        return cls(
            code=ErrorCode.FILE_WRITE_FAILED,
            message=f"Failed to rewrite {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )


class InternalError(TokenPlaneError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )

    @classmethod
    def invalid_state(cls, operation: str, state: str) -> "InternalError":
        return cls(
            code=ErrorCode.INVALID_STATE,
            message=f"Cannot {operation} while in state {state}",
            details={"operation": operation, "state": state},
        )
