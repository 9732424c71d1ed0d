"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides snapshot-building fixtures shared by every test package.
"""

import sys
from collections.abc import Callable, Iterator, MutableMapping
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local tokenplane package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of tokenplane modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("tokenplane"):
        del sys.modules[module_name]

from tokenplane.baseline.models import (  # noqa: E402
    BaselineMetadata,
    BaselineSnapshot,
    TokenEntry,
)

EntryFactory = Callable[..., TokenEntry]
SnapshotFactory = Callable[..., BaselineSnapshot]


@pytest.fixture
def make_entry() -> EntryFactory:
    """Build a TokenEntry; path defaults to ``<collection>.<mode>.<name>``."""

    def _make(
        variable_id: str,
        name: str,
        value: Any,
        *,
        type: str = "color",
        collection: str = "colors",
        mode: str = "light",
        path: str | None = None,
        **extra: Any,
    ) -> TokenEntry:
        return TokenEntry(
            variable_id=variable_id,
            path=path or f"{collection}.{mode}.{name}",
            value=value,
            type=type,
            collection=collection,
            mode=mode,
            **extra,
        )

    return _make


@pytest.fixture
def make_snapshot() -> SnapshotFactory:
    def _make(
        entries: list[TokenEntry],
        *,
        version: str = "1.0.0",
        source_identity: str | None = None,
        **metadata: Any,
    ) -> BaselineSnapshot:
        return BaselineSnapshot.from_entries(
            entries,
            BaselineMetadata(version=version, source_identity=source_identity, **metadata),
        )

    return _make


@pytest.fixture
def wire_snapshot() -> dict[str, Any]:
    """Snapshot in the legacy ``$metadata`` + ``baseline`` wire shape."""
    return {
        "$metadata": {
            "version": "1.2.0",
            "exportedAt": "2025-01-15T10:00:00Z",
            "fileKey": "file-abc",
            "fileName": "Design System",
            "collections": [
                {
                    "id": "VariableCollectionId:1:0",
                    "name": "primitives",
                    "modes": [{"id": "1:0", "name": "Mode 1"}],
                },
                {
                    "id": "VariableCollectionId:2:0",
                    "name": "theme",
                    "modes": [{"id": "2:0", "name": "light"}, {"id": "2:1", "name": "dark"}],
                },
            ],
        },
        "baseline": {
            "primitives:Mode 1:VariableID:1:1": {
                "path": "primitives.Mode 1.color.gray.50",
                "value": "#fafafa",
                "type": "color",
                "collection": "primitives",
                "mode": "Mode 1",
            },
            "primitives:Mode 1:VariableID:1:2": {
                "path": "primitives.Mode 1.space.md",
                "value": 16,
                "type": "dimension",
                "collection": "primitives",
                "mode": "Mode 1",
            },
            "theme:light:VariableID:2:1": {
                "path": "theme.light.color.primary",
                "value": "{color.gray.50}",
                "type": "color",
                "collection": "theme",
                "mode": "light",
                "description": "Primary brand color",
            },
            "theme:dark:VariableID:2:1": {
                "path": "theme.dark.color.primary",
                "value": "#111111",
                "type": "color",
                "collection": "theme",
                "mode": "dark",
            },
        },
    }


@pytest.fixture
def captured_events() -> Iterator[list[MutableMapping[str, Any]]]:
    """Structlog event dicts, with context-bound run fields merged in."""
    import structlog

    capture = structlog.testing.LogCapture()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])
    try:
        yield capture.entries
    finally:
        structlog.reset_defaults()
        structlog.contextvars.clear_contextvars()
