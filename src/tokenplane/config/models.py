"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (TOKENPLANE__SECTION__KEY)
3. Repo YAML (.tokenplane/config.yaml)
4. Global YAML (~/.config/tokenplane/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    TOKENPLANE__<SECTION>__<KEY>=<VALUE>

Examples:
    TOKENPLANE__LOGGING__LEVEL=DEBUG
    TOKENPLANE__RECONCILE__MATCH_EXISTING=false
    TOKENPLANE__TRANSPORT__CHUNK_SIZE=50000
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from tokenplane.config.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_STRIP_SEGMENTS,
    DEFAULT_TRANSPORT_NAMESPACE,
    DEFAULT_VERSION,
    MAX_CHUNK_SIZE,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
CaseStyle = Literal["kebab", "camel", "pascal", "snake", "constant"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        TOKENPLANE__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every match decision.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ReconcileConfig(BaseModel):
    """Graph reconciliation configuration.

    Env vars:
        TOKENPLANE__RECONCILE__MATCH_EXISTING: Handshake-match existing entities
        TOKENPLANE__RECONCILE__VALIDATE_SOURCE_IDENTITY: Refuse to merge foreign snapshots
        TOKENPLANE__RECONCILE__MAX_CONCURRENT_COLLECTIONS: Collections reconciled at once
    """

    match_existing: bool = Field(
        default=True,
        description="Match incoming collections, modes and variables against the live "
        "graph by original id, then by name. False always creates new entities.",
    )
    validate_source_identity: bool = Field(
        default=True,
        description="Force creation-only mode when the snapshot came from another source.",
    )
    max_concurrent_collections: int = Field(
        default=4,
        description="Upper bound on collections reconciled concurrently against the host.",
    )

    @field_validator("max_concurrent_collections")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_concurrent_collections must be >= 1, got {v}")
        return v


class TransformConfig(BaseModel):
    """How a dot path becomes a platform token literal."""

    separator: str = "-"
    case: CaseStyle = "kebab"
    prefix: str = ""
    strip_segments: list[str] | None = Field(
        default=None,
        description="Per-platform structural segments. None falls back to "
        "migration.strip_segments.",
    )


class PlatformConfig(BaseModel):
    """A migration target platform (css, scss, swift, ...)."""

    enabled: bool = True
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    transform: TransformConfig = Field(default_factory=TransformConfig)


def _default_platforms() -> dict[str, PlatformConfig]:
    return {
        "css": PlatformConfig(
            include=["**/*.css", "**/*.scss"],
            exclude=["**/node_modules/**"],
            transform=TransformConfig(separator="-", case="kebab", prefix="--"),
        ),
    }


class MigrationConfig(BaseModel):
    """Migration propagator configuration.

    Env vars:
        TOKENPLANE__MIGRATION__MAX_WORKERS: Parallel file workers
    """

    strip_segments: list[str] = Field(
        default_factory=lambda: list(DEFAULT_STRIP_SEGMENTS),
        description="Structural path segments (collection/mode qualifiers) dropped "
        "before building platform token names.",
    )
    max_workers: int = Field(
        default=8,
        description="Thread pool size for scanning and rewriting files.",
    )
    platforms: dict[str, PlatformConfig] = Field(default_factory=_default_platforms)

    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be >= 1, got {v}")
        return v


class TransportConfig(BaseModel):
    """Chunked storage configuration.

    Env vars:
        TOKENPLANE__TRANSPORT__CHUNK_SIZE: Characters per stored chunk
        TOKENPLANE__TRANSPORT__NAMESPACE: Key namespace for stored chunks
    """

    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        description="Characters per chunk. Must stay below the host's per-key limit.",
    )
    namespace: str = Field(default=DEFAULT_TRANSPORT_NAMESPACE)

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if not (0 < v <= MAX_CHUNK_SIZE):
            raise ValueError(f"chunk_size must be 1-{MAX_CHUNK_SIZE}, got {v}")
        return v

    @field_validator("namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        if not v or ":" in v:
            raise ValueError(f"namespace must be non-empty and contain no ':', got {v!r}")
        return v


class VersioningConfig(BaseModel):
    """Version classification configuration.

    Env vars:
        TOKENPLANE__VERSIONING__ALLOW_BREAKING: Let breaking syncs through without force
    """

    initial_version: str = Field(default=DEFAULT_VERSION)
    allow_breaking: bool = Field(
        default=False,
        description="Treat every sync as forced. Breaking renames then ship unannounced.",
    )


class TokenPlaneConfig(BaseModel):
    """Root configuration for tokenplane."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    migration: MigrationConfig = Field(default_factory=MigrationConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
    versioning: VersioningConfig = Field(default_factory=VersioningConfig)
