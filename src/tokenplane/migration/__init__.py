"""Migration propagator: breaking path changes -> source tree renames."""

from tokenplane.migration.files import PlatformFileSet
from tokenplane.migration.models import (
    FileMatch,
    LineMatch,
    MigrationResult,
    PlatformScanResult,
    RenameMapping,
)
from tokenplane.migration.naming import (
    build_platform_token_name,
    build_replacements,
    path_change_to_replacement,
    split_words,
    transform_case,
)
from tokenplane.migration.ops import MigrationOps, token_pattern

__all__ = [
    "FileMatch",
    "LineMatch",
    "MigrationOps",
    "MigrationResult",
    "PlatformFileSet",
    "PlatformScanResult",
    "RenameMapping",
    "build_platform_token_name",
    "build_replacements",
    "path_change_to_replacement",
    "split_words",
    "token_pattern",
    "transform_case",
]
