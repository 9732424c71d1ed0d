"""Semantic version recommendation from snapshot changes."""

from tokenplane.versioning.classifier import (
    SemVer,
    TokenChange,
    VersionBump,
    bump_version,
    classify,
    compare_versions,
    determine_bump,
    parse_version,
)

__all__ = [
    "SemVer",
    "TokenChange",
    "VersionBump",
    "bump_version",
    "classify",
    "compare_versions",
    "determine_bump",
    "parse_version",
]
