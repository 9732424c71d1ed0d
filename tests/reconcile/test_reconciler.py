"""Tests for importing snapshots into a live graph.

Covers:
- First import and idempotent re-import
- Alias resolution independent of entry order
- Source identity mismatch and version warnings
- Renames of collections, modes and variables
- Per-variable failure isolation
- Cancellation before and during alias resolution
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable
from typing import Any

import pytest

from tokenplane.baseline.parser import load_snapshot
from tokenplane.config.models import ReconcileConfig
from tokenplane.core.errors import WarningCode
from tokenplane.reconcile.graph import RGBA, InMemoryGraph, VariableAlias
from tokenplane.reconcile.reconciler import GraphReconciler, group_snapshot


def _codes(result: Any) -> list[WarningCode]:
    return [w.code for w in result.warnings]


class TestGroupSnapshot:
    def test_groups_modes_and_variables(self, wire_snapshot: dict[str, Any]) -> None:
        collections = {c.name: c for c in group_snapshot(load_snapshot(wire_snapshot))}

        theme = collections["theme"]
        assert theme.original_id == "VariableCollectionId:2:0"
        assert list(theme.modes) == ["light", "dark"]
        assert theme.modes["dark"].original_id == "2:1"
        primary = theme.variables["color/primary"]
        assert primary.values == {"light": "{color.gray.50}", "dark": "#111111"}
        assert primary.original_id == "VariableID:2:1"
        assert primary.description == "Primary brand color"
        assert set(collections["primitives"].variables) == {"color/gray/50", "space/md"}


class TestFirstImport:
    @pytest.mark.asyncio
    async def test_creates_everything(self, wire_snapshot: dict[str, Any]) -> None:
        graph = InMemoryGraph()

        result = await GraphReconciler(graph).reconcile(load_snapshot(wire_snapshot))

        assert result.success
        assert result.collections_created == 2
        assert result.modes_created == 3
        assert result.variables_created == 3
        assert result.aliases_resolved == 1
        assert result.imported_version == "1.2.0"
        assert graph.collection_count == 2
        assert graph.variable_count == 3

    @pytest.mark.asyncio
    async def test_values_and_aliases(self, wire_snapshot: dict[str, Any]) -> None:
        """color/primary = {color.gray.50} in light, #111111 in dark."""
        graph = InMemoryGraph()
        await GraphReconciler(graph).reconcile(load_snapshot(wire_snapshot))

        primary = graph.find_variable("theme", "color/primary")
        gray = graph.find_variable("primitives", "color/gray/50")
        space = graph.find_variable("primitives", "space/md")
        assert primary is not None and gray is not None and space is not None
        assert graph.value_for(primary, "light") == VariableAlias(gray.id)
        assert graph.value_for(primary, "dark") == RGBA(17 / 255, 17 / 255, 17 / 255, 1.0)
        assert graph.value_for(space, "Mode 1") == 16.0
        assert primary.description == "Primary brand color"

    @pytest.mark.asyncio
    async def test_default_mode_is_reused(self, wire_snapshot: dict[str, Any]) -> None:
        graph = InMemoryGraph()
        await GraphReconciler(graph).reconcile(load_snapshot(wire_snapshot))

        theme = graph.find_collection("theme")
        assert theme is not None
        assert [m.name for m in theme.modes] == ["light", "dark"]
        assert theme.modes[0].original_id == "2:0"

    @pytest.mark.asyncio
    async def test_alias_before_target(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        """The alias owner appears before its target in the snapshot."""
        snapshot = make_snapshot(
            [
                make_entry("v1", "color.primary", "{color.gray.50}", collection="theme"),
                make_entry("v2", "color.gray.50", "#fafafa", collection="theme"),
            ]
        )
        graph = InMemoryGraph()

        result = await GraphReconciler(graph).reconcile(snapshot)

        assert result.aliases_resolved == 1
        primary = graph.find_variable("theme", "color/primary")
        gray = graph.find_variable("theme", "color/gray/50")
        assert primary is not None and gray is not None
        assert graph.value_for(primary, "light") == VariableAlias(gray.id)

    @pytest.mark.asyncio
    async def test_unresolved_alias_is_warning(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        snapshot = make_snapshot([make_entry("v1", "color.primary", "{color.missing}")])

        result = await GraphReconciler(InMemoryGraph()).reconcile(snapshot)

        assert result.success
        assert result.aliases_failed == 1
        assert WarningCode.UNRESOLVED_ALIAS in _codes(result)

    @pytest.mark.asyncio
    async def test_unresolved_alias_keeps_placeholder(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        graph = InMemoryGraph()
        snapshot = make_snapshot(
            [
                make_entry("v1", "color.primary", "{color.missing}"),
                make_entry("v2", "space.md", "{space.missing}", type="dimension"),
            ]
        )

        result = await GraphReconciler(graph).reconcile(snapshot)

        assert result.aliases_failed == 2
        primary = graph.find_variable("colors", "color/primary")
        space = graph.find_variable("colors", "space/md")
        assert primary is not None and space is not None
        assert graph.value_for(primary, "light") == RGBA(0.0, 0.0, 0.0, 1.0)
        assert graph.value_for(space, "light") == 0.0

    @pytest.mark.asyncio
    async def test_mixed_reference_string_is_literal(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        """Two references in one value are stored verbatim, not resolved."""
        graph = InMemoryGraph()
        snapshot = make_snapshot(
            [make_entry("v1", "padding", "{space.1} {space.1}", type="string")]
        )

        result = await GraphReconciler(graph).reconcile(snapshot)

        assert result.success
        assert result.aliases_failed == 0
        assert result.warnings == []
        padding = graph.find_variable("colors", "padding")
        assert padding is not None
        assert graph.value_for(padding, "light") == "{space.1} {space.1}"

    @pytest.mark.asyncio
    async def test_rgba_function_color(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        graph = InMemoryGraph()
        snapshot = make_snapshot([make_entry("v1", "overlay", "rgba(255, 0, 0, 0.5)")])

        result = await GraphReconciler(graph).reconcile(snapshot)

        assert WarningCode.VALUE_COERCION not in _codes(result)
        overlay = graph.find_variable("colors", "overlay")
        assert overlay is not None
        assert graph.value_for(overlay, "light") == RGBA(1.0, 0.0, 0.0, 0.5)

    @pytest.mark.asyncio
    async def test_coercion_warning(self, make_entry: Callable, make_snapshot: Callable) -> None:
        snapshot = make_snapshot([make_entry("v1", "color.bad", "not-a-color")])
        graph = InMemoryGraph()

        result = await GraphReconciler(graph).reconcile(snapshot)

        assert WarningCode.VALUE_COERCION in _codes(result)
        bad = graph.find_variable("colors", "color/bad")
        assert bad is not None
        assert graph.value_for(bad, "light") == RGBA(0.0, 0.0, 0.0, 1.0)


class TestReimport:
    @pytest.mark.asyncio
    async def test_idempotent(self, wire_snapshot: dict[str, Any]) -> None:
        """Importing the same snapshot twice creates nothing the second time."""
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        snapshot = load_snapshot(wire_snapshot)

        await reconciler.reconcile(snapshot)
        second = await reconciler.reconcile(snapshot)

        assert second.entities_created == 0
        assert second.collections_updated == 2
        assert second.variables_updated == 3
        assert second.aliases_resolved == 1
        assert graph.collection_count == 2
        assert graph.variable_count == 3

    @pytest.mark.asyncio
    async def test_variable_rename(self, make_entry: Callable, make_snapshot: Callable) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        await reconciler.reconcile(make_snapshot([make_entry("v1", "color.primary", "#0000ff")]))

        result = await reconciler.reconcile(
            make_snapshot([make_entry("v1", "color.brand", "#0000ff")])
        )

        assert result.variables_created == 0
        assert graph.variable_count == 1
        assert graph.find_variable("colors", "color/brand") is not None
        assert graph.find_variable("colors", "color/primary") is None

    @pytest.mark.asyncio
    async def test_unresolved_alias_keeps_existing_value(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        await reconciler.reconcile(make_snapshot([make_entry("v1", "color.primary", "#0000ff")]))

        result = await reconciler.reconcile(
            make_snapshot([make_entry("v1", "color.primary", "{color.missing}")])
        )

        assert result.aliases_failed == 1
        primary = graph.find_variable("colors", "color/primary")
        assert primary is not None
        assert graph.value_for(primary, "light") == RGBA(0.0, 0.0, 1.0, 1.0)

    @pytest.mark.asyncio
    async def test_collection_rename(self, make_entry: Callable, make_snapshot: Callable) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        await reconciler.reconcile(
            make_snapshot([make_entry("v1", "a", "#fff", collection_id="c-1")])
        )

        result = await reconciler.reconcile(
            make_snapshot(
                [make_entry("v1", "a", "#fff", collection="palette", collection_id="c-1")]
            )
        )

        assert result.collections_created == 0
        assert graph.find_collection("palette") is not None
        assert graph.find_collection("colors") is None

    @pytest.mark.asyncio
    async def test_mode_rename(self, make_entry: Callable, make_snapshot: Callable) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        await reconciler.reconcile(make_snapshot([make_entry("v1", "a", "#fff", mode_id="m-1")]))

        result = await reconciler.reconcile(
            make_snapshot([make_entry("v1", "a", "#fff", mode="day", mode_id="m-1")])
        )

        assert result.modes_renamed == 1
        assert result.modes_created == 0
        colors = graph.find_collection("colors")
        assert colors is not None
        assert [m.name for m in colors.modes] == ["day"]

    @pytest.mark.asyncio
    async def test_new_mode_added(self, make_entry: Callable, make_snapshot: Callable) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        await reconciler.reconcile(make_snapshot([make_entry("v1", "a", "#ffffff")]))

        result = await reconciler.reconcile(
            make_snapshot(
                [make_entry("v1", "a", "#ffffff"), make_entry("v1", "a", "#000000", mode="dark")]
            )
        )

        assert result.modes_created == 1
        variable = graph.find_variable("colors", "a")
        assert variable is not None
        assert graph.value_for(variable, "dark") == RGBA(0.0, 0.0, 0.0, 1.0)

    @pytest.mark.asyncio
    async def test_type_mismatch_coerces_to_host_type(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        await reconciler.reconcile(make_snapshot([make_entry("v1", "a", "#ffffff")]))

        result = await reconciler.reconcile(
            make_snapshot([make_entry("v1", "a", 4, type="number")])
        )

        assert WarningCode.TYPE_MISMATCH in _codes(result)
        assert WarningCode.VALUE_COERCION in _codes(result)

    @pytest.mark.asyncio
    async def test_match_existing_disabled_creates(self, wire_snapshot: dict[str, Any]) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph)
        snapshot = load_snapshot(wire_snapshot)
        await reconciler.reconcile(snapshot)

        result = await reconciler.reconcile(snapshot, match_existing=False)

        assert result.collections_created == 2
        assert graph.collection_count == 4

    @pytest.mark.asyncio
    async def test_config_disables_matching(self, wire_snapshot: dict[str, Any]) -> None:
        graph = InMemoryGraph()
        reconciler = GraphReconciler(graph, ReconcileConfig(match_existing=False))
        snapshot = load_snapshot(wire_snapshot)
        await reconciler.reconcile(snapshot)
        await reconciler.reconcile(snapshot)
        assert graph.collection_count == 4


class TestSourceIdentity:
    @pytest.mark.asyncio
    async def test_mismatch_switches_to_create_only(self, wire_snapshot: dict[str, Any]) -> None:
        graph = InMemoryGraph(source_identity="file-other")
        reconciler = GraphReconciler(graph)
        snapshot = load_snapshot(wire_snapshot)
        await reconciler.reconcile(snapshot)

        result = await reconciler.reconcile(snapshot)

        assert WarningCode.IDENTITY_MISMATCH in _codes(result)
        assert result.collections_created == 2
        assert graph.collection_count == 4

    @pytest.mark.asyncio
    async def test_matching_identity_updates(self, wire_snapshot: dict[str, Any]) -> None:
        graph = InMemoryGraph(source_identity="file-abc")
        reconciler = GraphReconciler(graph)
        snapshot = load_snapshot(wire_snapshot)
        await reconciler.reconcile(snapshot)

        result = await reconciler.reconcile(snapshot)

        assert WarningCode.IDENTITY_MISMATCH not in _codes(result)
        assert result.entities_created == 0

    @pytest.mark.asyncio
    async def test_validation_can_be_disabled(self, wire_snapshot: dict[str, Any]) -> None:
        graph = InMemoryGraph(source_identity="file-other")
        reconciler = GraphReconciler(graph, ReconcileConfig(validate_source_identity=False))
        snapshot = load_snapshot(wire_snapshot)
        await reconciler.reconcile(snapshot)

        result = await reconciler.reconcile(snapshot)

        assert result.warnings == []
        assert result.entities_created == 0


class TestVersionWarnings:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("previous", "expected"),
        [
            ("2.0.0", [WarningCode.VERSION_DOWNGRADE]),
            ("1.0.0", [WarningCode.VERSION_CHANGE]),
            ("1.2.0", []),
            ("not-a-version", []),
            (None, []),
        ],
    )
    async def test_version_comparison(
        self,
        make_snapshot: Callable,
        previous: str | None,
        expected: list[WarningCode],
    ) -> None:
        result = await GraphReconciler(InMemoryGraph()).reconcile(
            make_snapshot([], version="1.2.0"), previous_version=previous
        )
        assert _codes(result) == expected
        assert result.previous_version == previous


class _RejectingGraph(InMemoryGraph):
    """Refuses plain values for variables whose name starts with ``bad``."""

    async def set_value_for_mode(self, variable_id: str, mode_id: str, value: Any) -> None:
        variable = next(v for v in await self.list_variables() if v.id == variable_id)
        if variable.name.startswith("bad"):
            raise RuntimeError("host rejected value")
        await super().set_value_for_mode(variable_id, mode_id, value)


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_value_failure_does_not_stop_pass(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        graph = _RejectingGraph()
        snapshot = make_snapshot(
            [make_entry("v1", "bad", "#ffffff"), make_entry("v2", "good", "#000000")]
        )

        result = await GraphReconciler(graph).reconcile(snapshot)

        assert not result.success
        assert len(result.errors) == 1
        assert "bad" in result.errors[0]
        good = graph.find_variable("colors", "good")
        assert good is not None
        assert graph.value_for(good, "light") == RGBA(0.0, 0.0, 0.0, 1.0)


_ORDERED_ENTRIES = [
    ("v1", "color.primary", "{color.base}", "theme"),
    ("v2", "color.base", "{color.gray}", "theme"),
    ("v3", "color.gray", "#808080", "primitives"),
    ("v4", "color.accent", "{color.gray}", "primitives"),
]


async def _dump(graph: InMemoryGraph) -> dict[str, dict[str, dict[str, Any]]]:
    """Collection -> variable -> mode -> value, with aliases named by target."""
    collections = {c.id: c for c in await graph.list_collections()}
    variables = await graph.list_variables()
    names = {v.id: v.name for v in variables}
    dump: dict[str, dict[str, dict[str, Any]]] = {c.name: {} for c in collections.values()}
    for variable in variables:
        collection = collections[variable.collection_id]
        modes = {m.id: m.name for m in collection.modes}
        dump[collection.name][variable.name] = {
            modes[mode_id]: (
                f"-> {names[value.id]}" if isinstance(value, VariableAlias) else value
            )
            for mode_id, value in variable.values.items()
        }
    return dump


class TestOrderIndependence:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "order",
        list(itertools.permutations(range(len(_ORDERED_ENTRIES)))),
        ids=lambda order: "".join(map(str, order)),
    )
    async def test_same_graph_for_every_entry_order(
        self,
        make_entry: Callable,
        make_snapshot: Callable,
        order: tuple[int, ...],
    ) -> None:
        """Alias chains across collections resolve the same way in any order."""
        entries = [
            make_entry(vid, name, value, collection=collection)
            for vid, name, value, collection in _ORDERED_ENTRIES
        ]
        graph = InMemoryGraph()

        result = await GraphReconciler(graph).reconcile(
            make_snapshot([entries[i] for i in order])
        )

        assert result.aliases_resolved == 3
        assert result.aliases_failed == 0
        gray = RGBA(128 / 255, 128 / 255, 128 / 255, 1.0)
        assert await _dump(graph) == {
            "theme": {
                "color/primary": {"light": "-> color/base"},
                "color/base": {"light": "-> color/gray"},
            },
            "primitives": {
                "color/gray": {"light": gray},
                "color/accent": {"light": "-> color/gray"},
            },
        }


class _StallingCreateGraph(InMemoryGraph):
    """Blocks forever creating a variable named ``stall``."""

    def __init__(self) -> None:
        super().__init__()
        self.stalled = asyncio.Event()

    async def create_variable(self, name: str, *args: Any, **kwargs: Any) -> Any:
        if name == "stall":
            self.stalled.set()
            await asyncio.Event().wait()
        return await super().create_variable(name, *args, **kwargs)


class _StallingResolveGraph(InMemoryGraph):
    """Holds the variable listing taken once variables exist until released."""

    def __init__(self) -> None:
        super().__init__()
        self.resolving = asyncio.Event()
        self.release = asyncio.Event()

    async def list_variables(self) -> Any:
        if self.variable_count:
            self.resolving.set()
            await self.release.wait()
        return await super().list_variables()


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_before_resolution_keeps_created(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        graph = _StallingCreateGraph()
        snapshot = make_snapshot(
            [
                make_entry("v1", "color.primary", "{color.gray}", collection="theme"),
                make_entry("v2", "color.gray", "#808080", collection="primitives"),
                make_entry("v3", "stall", "#000000", collection="primitives"),
            ]
        )
        task = asyncio.create_task(GraphReconciler(graph).reconcile(snapshot))
        await graph.stalled.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert graph.collection_count == 2
        assert graph.find_variable("primitives", "stall") is None
        primary = graph.find_variable("theme", "color/primary")
        assert primary is not None
        assert graph.value_for(primary, "light") == RGBA(0.0, 0.0, 0.0, 1.0)

    @pytest.mark.asyncio
    async def test_resolution_finishes_after_cancel(
        self, make_entry: Callable, make_snapshot: Callable
    ) -> None:
        graph = _StallingResolveGraph()
        snapshot = make_snapshot(
            [
                make_entry("v1", "color.primary", "{color.gray}", collection="theme"),
                make_entry("v2", "color.gray", "#808080", collection="primitives"),
            ]
        )
        task = asyncio.create_task(GraphReconciler(graph).reconcile(snapshot))
        await graph.resolving.wait()

        task.cancel()
        graph.release.set()
        with pytest.raises(asyncio.CancelledError):
            await task
        for _ in range(5):
            await asyncio.sleep(0)

        primary = graph.find_variable("theme", "color/primary")
        gray = graph.find_variable("primitives", "color/gray")
        assert primary is not None and gray is not None
        assert graph.value_for(primary, "light") == VariableAlias(gray.id)
