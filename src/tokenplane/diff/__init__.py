"""Snapshot differ and change reporting."""

from tokenplane.diff.engine import canonical_value, diff_snapshots, values_equal
from tokenplane.diff.models import (
    ChangeSet,
    DeletedVariable,
    NewVariable,
    PathChange,
    ValueChange,
)
from tokenplane.diff.report import generate_diff_report, generate_summary_table

__all__ = [
    "ChangeSet",
    "DeletedVariable",
    "NewVariable",
    "PathChange",
    "ValueChange",
    "canonical_value",
    "diff_snapshots",
    "generate_diff_report",
    "generate_summary_table",
    "values_equal",
]
