"""Markdown rendering of a ChangeSet."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from tokenplane.baseline.models import BaselineMetadata
from tokenplane.diff.models import ChangeSet

_SUMMARY_ROWS = (
    ("Value Changes", "value_changes"),
    ("Path Changes (BREAKING)", "path_changes"),
    ("New Modes", "new_modes"),
    ("Deleted Modes (BREAKING)", "deleted_modes"),
    ("New Variables", "new_variables"),
    ("Deleted Variables (BREAKING)", "deleted_variables"),
)


def _code(value: Any) -> str:
    return f"`{json.dumps(value, ensure_ascii=False, default=str)}`"


def generate_summary_table(counts: dict[str, int]) -> str:
    lines = ["| Category | Count |", "|----------|-------|"]
    lines.extend(f"| {label} | {counts[key]} |" for label, key in _SUMMARY_ROWS)
    return "\n".join(lines) + "\n"


def generate_diff_report(
    changes: ChangeSet,
    metadata: BaselineMetadata | None = None,
    *,
    generated_at: datetime | None = None,
) -> str:
    """Render a comparison report: summary table plus one section per non-empty category."""
    timestamp = (generated_at or datetime.now(UTC)).isoformat()
    source = (metadata.source_name if metadata else None) or "Unknown"
    synced = (metadata.exported_at if metadata else None) or "Unknown"

    parts = [
        "# Token Comparison Report\n",
        f"**Generated:** {timestamp}",
        f"**Source:** {source}",
        f"**Last Synced:** {synced}\n",
        "---\n",
        "## Summary\n",
        generate_summary_table(changes.counts()),
    ]

    if not changes.has_changes():
        parts.append("**No changes detected.**\n")
        return "\n".join(parts)

    if changes.value_changes:
        parts.append(f"## Value Changes ({len(changes.value_changes)})\n")
        parts.append("Changes where only the value differs (non-breaking).\n")
        for vc in changes.value_changes:
            parts.append(f"### `{vc.path}`\n")
            parts.append(
                f"- **Type:** {vc.type}\n"
                f"- **Old value:** {_code(vc.old_value)}\n"
                f"- **New value:** {_code(vc.new_value)}\n"
                f"- **Variable ID:** `{vc.variable_id}`\n"
            )

    if changes.path_changes:
        parts.append(f"## Path Changes ({len(changes.path_changes)}) - BREAKING\n")
        parts.append("Token paths changed. Code referencing the old path must be updated.\n")
        for pc in changes.path_changes:
            parts.append(f"### `{pc.old_path}` -> `{pc.new_path}`\n")
            parts.append(
                f"- **Type:** {pc.type}\n"
                f"- **Value:** {_code(pc.value)}\n"
                f"- **Variable ID:** `{pc.variable_id}`\n"
            )

    if changes.new_mode_names:
        parts.append(f"## New Modes ({len(changes.new_mode_names)})\n")
        parts.extend(f"- `{name}`" for name in changes.new_mode_names)
        parts.append("")

    if changes.deleted_mode_names:
        parts.append(f"## Deleted Modes ({len(changes.deleted_mode_names)}) - BREAKING\n")
        parts.extend(f"- `{name}`" for name in changes.deleted_mode_names)
        parts.append("")

    if changes.new_variables:
        parts.append(f"## New Variables ({len(changes.new_variables)})\n")
        parts.extend(
            f"- `{nv.path}` ({nv.type}) = {_code(nv.value)} [{nv.collection}/{nv.mode}]"
            for nv in changes.new_variables
        )
        parts.append("")

    if changes.deleted_variables:
        parts.append(f"## Deleted Variables ({len(changes.deleted_variables)}) - BREAKING\n")
        parts.extend(
            f"- `{dv.path}` ({dv.type}) [{dv.collection}/{dv.mode}]"
            for dv in changes.deleted_variables
        )
        parts.append("")

    return "\n".join(parts)
