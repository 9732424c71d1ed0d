"""Baseline differ.

Compares two snapshots by durable variable id, never by path, so a rename
is reported as a path change rather than a delete plus an add.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from tokenplane.baseline.models import BaselineSnapshot, TokenEntry
from tokenplane.diff.models import (
    ChangeSet,
    DeletedVariable,
    NewVariable,
    PathChange,
    ValueChange,
)

log = structlog.get_logger(__name__)


def canonical_value(value: Any) -> str:
    """Structural comparison key: key order ignored, ``1`` != ``true``."""
    return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)


def values_equal(a: Any, b: Any) -> bool:
    return canonical_value(a) == canonical_value(b)


def _index_by_variable(snapshot: BaselineSnapshot) -> dict[str, dict[str, TokenEntry]]:
    index: dict[str, dict[str, TokenEntry]] = {}
    for entry in snapshot.entries.values():
        index.setdefault(entry.variable_id, {})[entry.mode] = entry
    return index


def diff_snapshots(old: BaselineSnapshot, new: BaselineSnapshot) -> ChangeSet:
    """Classify every difference between ``old`` and ``new``.

    Pure: neither snapshot is mutated. Output lists follow sorted prefixed-id
    order so repeated runs produce identical results.
    """
    changes = ChangeSet()
    old_index = _index_by_variable(old)
    old_modes = old.mode_names
    new_modes = new.mode_names
    seen_new_modes: set[str] = set()
    present: set[tuple[str, str]] = set()
    newly_populated = 0

    for key in sorted(new.entries):
        entry = new.entries[key]
        present.add((entry.variable_id, entry.mode))
        by_mode = old_index.get(entry.variable_id)

        if by_mode is None:
            changes.new_variables.append(
                NewVariable(
                    variable_id=key,
                    path=entry.path,
                    value=entry.value,
                    type=entry.type,
                    collection=entry.collection,
                    mode=entry.mode,
                )
            )
            continue

        previous = by_mode.get(entry.mode)
        if previous is None:
            if entry.mode not in old_modes:
                if entry.mode not in seen_new_modes:
                    seen_new_modes.add(entry.mode)
                    changes.new_mode_names.append(entry.mode)
            else:
                newly_populated += 1
                log.debug("mode_newly_populated", variable_id=key, mode=entry.mode)
            continue

        if previous.path != entry.path:
            changes.path_changes.append(
                PathChange(
                    variable_id=key,
                    old_path=previous.path,
                    new_path=entry.path,
                    value=entry.value,
                    type=entry.type,
                )
            )
        elif not values_equal(previous.value, entry.value):
            changes.value_changes.append(
                ValueChange(
                    variable_id=key,
                    path=entry.path,
                    old_value=previous.value,
                    new_value=entry.value,
                    type=entry.type,
                )
            )

    changes.deleted_mode_names = sorted(old_modes - new_modes)
    deleted_modes = set(changes.deleted_mode_names)

    for key in sorted(old.entries):
        entry = old.entries[key]
        if entry.mode in deleted_modes:
            continue
        if (entry.variable_id, entry.mode) in present:
            continue
        changes.deleted_variables.append(
            DeletedVariable(
                variable_id=key,
                path=entry.path,
                value=entry.value,
                type=entry.type,
                collection=entry.collection,
                mode=entry.mode,
            )
        )

    log.info("snapshots_diffed", newly_populated=newly_populated, **changes.counts())
    return changes
