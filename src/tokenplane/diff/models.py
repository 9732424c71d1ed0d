"""Diff models - categorized changes between two snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ValueChange:
    """Same variable, same mode, same path, different value."""

    variable_id: str  # prefixed id
    path: str
    old_value: Any
    new_value: Any
    type: str


@dataclass(frozen=True, slots=True)
class PathChange:
    """Same variable and mode under a new path. Breaking."""

    variable_id: str  # prefixed id
    old_path: str
    new_path: str
    value: Any
    type: str


@dataclass(frozen=True, slots=True)
class NewVariable:
    variable_id: str
    path: str
    value: Any
    type: str
    collection: str
    mode: str


@dataclass(frozen=True, slots=True)
class DeletedVariable:
    variable_id: str
    path: str
    value: Any
    type: str
    collection: str
    mode: str


@dataclass
class ChangeSet:
    """Disjoint categories of change. Breaking: path, deleted variable, deleted mode."""

    value_changes: list[ValueChange] = field(default_factory=list)
    path_changes: list[PathChange] = field(default_factory=list)
    new_variables: list[NewVariable] = field(default_factory=list)
    deleted_variables: list[DeletedVariable] = field(default_factory=list)
    new_mode_names: list[str] = field(default_factory=list)
    deleted_mode_names: list[str] = field(default_factory=list)

    def has_breaking_changes(self) -> bool:
        return bool(self.path_changes or self.deleted_variables or self.deleted_mode_names)

    def has_changes(self) -> bool:
        return bool(
            self.value_changes
            or self.path_changes
            or self.new_variables
            or self.deleted_variables
            or self.new_mode_names
            or self.deleted_mode_names
        )

    def counts(self) -> dict[str, int]:
        counts = {
            "value_changes": len(self.value_changes),
            "path_changes": len(self.path_changes),
            "new_variables": len(self.new_variables),
            "deleted_variables": len(self.deleted_variables),
            "new_modes": len(self.new_mode_names),
            "deleted_modes": len(self.deleted_mode_names),
        }
        counts["total"] = sum(counts.values())
        counts["breaking"] = (
            counts["path_changes"] + counts["deleted_variables"] + counts["deleted_modes"]
        )
        return counts
