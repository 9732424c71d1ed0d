"""Semantic version classification of a ChangeSet.

Bump rules, strongest first:
- MAJOR: path changes, deleted modes, deleted variables
- MINOR: new variables, new modes
- PATCH: value changes (including alias retargeting)

The classifier only recommends; callers may override ``suggested``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal, NamedTuple

from tokenplane.baseline.references import is_alias_expression
from tokenplane.core.errors import MalformedInputError
from tokenplane.diff.models import ChangeSet

BumpType = Literal["major", "minor", "patch", "none"]
ChangeKind = Literal["breaking", "addition", "patch"]
ChangeSeverity = Literal["critical", "warning", "info"]
ChangeCategory = Literal[
    "token-renamed",
    "token-deleted",
    "token-added",
    "mode-deleted",
    "mode-added",
    "value-changed",
    "alias-changed",
]

_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


class SemVer(NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True, slots=True)
class TokenChange:
    """One classified change, suitable for changelogs and review prompts."""

    kind: ChangeKind
    severity: ChangeSeverity
    category: ChangeCategory
    path: str
    description: str
    before: Any = None
    after: Any = None


@dataclass
class VersionBump:
    current: str
    suggested: str
    change_type: BumpType
    changes: list[TokenChange] = field(default_factory=list)
    breaking_count: int = 0
    addition_count: int = 0
    patch_count: int = 0
    summary: str = "No changes detected"


def parse_version(version: str) -> SemVer:
    """Parse ``MAJOR.MINOR.PATCH`` (optional leading ``v``).

    Raises:
        MalformedInputError: not a three-part numeric version.
    """
    match = _VERSION_RE.match(version.strip())
    if match is None:
        raise MalformedInputError.invalid_version(version)
    major, minor, patch = (int(part) for part in match.groups())
    return SemVer(major, minor, patch)


def bump_version(version: str, part: BumpType) -> str:
    """Bump the major, minor, or patch part of a semver string."""
    major, minor, patch = parse_version(version)
    if part == "major":
        return f"{major + 1}.0.0"
    if part == "minor":
        return f"{major}.{minor + 1}.0"
    if part == "patch":
        return f"{major}.{minor}.{patch + 1}"
    return f"{major}.{minor}.{patch}"


def compare_versions(a: str, b: str) -> int:
    """Negative if a < b, zero if equal, positive if a > b."""
    va, vb = parse_version(a), parse_version(b)
    if va == vb:
        return 0
    return -1 if va < vb else 1


def determine_bump(changes: ChangeSet) -> BumpType:
    if changes.path_changes or changes.deleted_mode_names or changes.deleted_variables:
        return "major"
    if changes.new_variables or changes.new_mode_names:
        return "minor"
    if changes.value_changes:
        return "patch"
    return "none"


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def summarize(breaking: int, additions: int, patches: int) -> str:
    parts = []
    if breaking:
        parts.append(_plural(breaking, "breaking change"))
    if additions:
        parts.append(_plural(additions, "addition"))
    if patches:
        parts.append(_plural(patches, "update"))
    return ", ".join(parts) if parts else "No changes detected"


def _token_changes(changes: ChangeSet) -> list[TokenChange]:
    out: list[TokenChange] = []

    for pc in changes.path_changes:
        out.append(
            TokenChange(
                kind="breaking",
                severity="critical",
                category="token-renamed",
                path=pc.old_path,
                description=f"Token renamed: {pc.old_path} -> {pc.new_path}",
                before=pc.old_path,
                after=pc.new_path,
            )
        )
    for mode in changes.deleted_mode_names:
        out.append(
            TokenChange(
                kind="breaking",
                severity="critical",
                category="mode-deleted",
                path=mode,
                description=f"Mode deleted: {mode}",
            )
        )
    for dv in changes.deleted_variables:
        out.append(
            TokenChange(
                kind="breaking",
                severity="critical",
                category="token-deleted",
                path=dv.path,
                description=f"Token deleted: {dv.path}",
                before=dv.value,
            )
        )
    for nv in changes.new_variables:
        out.append(
            TokenChange(
                kind="addition",
                severity="info",
                category="token-added",
                path=nv.path,
                description=f"Token added: {nv.path}",
                after=nv.value,
            )
        )
    for mode in changes.new_mode_names:
        out.append(
            TokenChange(
                kind="addition",
                severity="info",
                category="mode-added",
                path=mode,
                description=f"Mode added: {mode}",
            )
        )
    for vc in changes.value_changes:
        alias = is_alias_expression(vc.old_value) or is_alias_expression(vc.new_value)
        label = "Alias changed" if alias else "Value updated"
        out.append(
            TokenChange(
                kind="patch",
                severity="info",
                category="alias-changed" if alias else "value-changed",
                path=vc.path,
                description=f"{label}: {vc.old_value} -> {vc.new_value}",
                before=vc.old_value,
                after=vc.new_value,
            )
        )
    return out


def classify(changes: ChangeSet, current_version: str) -> VersionBump:
    """Recommend the next version for ``changes``. Does not mutate the input.

    Raises:
        MalformedInputError: ``current_version`` is not a valid semver string.
    """
    parse_version(current_version)
    change_type = determine_bump(changes)
    items = _token_changes(changes)
    breaking = sum(1 for c in items if c.kind == "breaking")
    additions = sum(1 for c in items if c.kind == "addition")
    patches = sum(1 for c in items if c.kind == "patch")

    return VersionBump(
        current=current_version,
        suggested=(
            current_version
            if change_type == "none"
            else bump_version(current_version, change_type)
        ),
        change_type=change_type,
        changes=items,
        breaking_count=breaking,
        addition_count=additions,
        patch_count=patches,
        summary=summarize(breaking, additions, patches),
    )
