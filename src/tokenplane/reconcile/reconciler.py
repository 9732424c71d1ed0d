"""Graph reconciler: import a snapshot into a live host graph.

Matching is identity first, name second, create last; it applies
separately to collections, to modes within a matched collection, and to
variables within a matched collection. Values are set per mode; alias
values are deferred to the pass's ``AliasResolver`` and resolved after
every collection has been processed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import structlog

from tokenplane.baseline.models import BaselineSnapshot
from tokenplane.baseline.references import is_alias_expression, variable_name
from tokenplane.config.models import ReconcileConfig
from tokenplane.core.errors import MalformedInputError, SyncWarning, WarningCode
from tokenplane.core.logging import run_scope
from tokenplane.reconcile.aliases import AliasResolver
from tokenplane.reconcile.coercion import coerce_value, default_value, resolve_type
from tokenplane.reconcile.graph import (
    HostCollection,
    HostGraph,
    HostVariable,
    ResolvedType,
)
from tokenplane.reconcile.matching import MatchCandidate, MatchIndex, match_entity
from tokenplane.versioning.classifier import compare_versions

log = structlog.get_logger(__name__)


@dataclass
class ReconcileResult:
    collections_created: int = 0
    collections_updated: int = 0
    modes_created: int = 0
    modes_renamed: int = 0
    variables_created: int = 0
    variables_updated: int = 0
    aliases_resolved: int = 0
    aliases_failed: int = 0
    warnings: list[SyncWarning] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    imported_version: str | None = None
    previous_version: str | None = None

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def entities_created(self) -> int:
        return self.collections_created + self.modes_created + self.variables_created

    def absorb(self, other: ReconcileResult) -> None:
        self.collections_created += other.collections_created
        self.collections_updated += other.collections_updated
        self.modes_created += other.modes_created
        self.modes_renamed += other.modes_renamed
        self.variables_created += other.variables_created
        self.variables_updated += other.variables_updated
        self.warnings.extend(other.warnings)
        self.errors.extend(other.errors)


@dataclass
class IncomingMode:
    name: str
    original_id: str | None = None


@dataclass
class IncomingVariable:
    """One variable grouped across every mode it has a value for."""

    name: str
    type: str
    resolved_type: ResolvedType
    original_id: str | None = None
    description: str | None = None
    values: dict[str, Any] = field(default_factory=dict)  # mode name -> value
    paths: dict[str, str] = field(default_factory=dict)  # mode name -> path


@dataclass
class IncomingCollection:
    name: str
    original_id: str | None = None
    modes: dict[str, IncomingMode] = field(default_factory=dict)
    variables: dict[str, IncomingVariable] = field(default_factory=dict)


def group_snapshot(snapshot: BaselineSnapshot) -> list[IncomingCollection]:
    """Group flat entries into collections, modes and per-name variables.

    Entries sharing a variable name within one collection are the same
    variable, whatever mode they belong to. Order follows the snapshot.
    """
    collections: dict[str, IncomingCollection] = {}
    metadata = snapshot.metadata

    for entry in snapshot.entries.values():
        meta = metadata.collection(entry.collection)
        collection = collections.get(entry.collection)
        if collection is None:
            collection = IncomingCollection(
                name=entry.collection,
                original_id=(meta.id if meta else None) or entry.collection_id,
            )
            collections[entry.collection] = collection

        if entry.mode not in collection.modes:
            collection.modes[entry.mode] = IncomingMode(
                name=entry.mode,
                original_id=(meta.mode_id(entry.mode) if meta else None) or entry.mode_id,
            )

        name = variable_name(entry.path, entry.collection, entry.mode)
        variable = collection.variables.get(name)
        if variable is None:
            variable = IncomingVariable(
                name=name,
                type=entry.type,
                resolved_type=resolve_type(entry.type),
                original_id=entry.variable_id,
                description=entry.description,
            )
            collection.variables[name] = variable
        variable.values[entry.mode] = entry.value
        variable.paths[entry.mode] = entry.path
        if variable.description is None and entry.description:
            variable.description = entry.description

    return list(collections.values())


class GraphReconciler:
    """Imports snapshots into a ``HostGraph``.

    One instance may run many passes; each pass owns a fresh ``AliasResolver``.
    """

    def __init__(self, graph: HostGraph, config: ReconcileConfig | None = None) -> None:
        self._graph = graph
        self._config = config or ReconcileConfig()

    async def reconcile(
        self,
        incoming: BaselineSnapshot,
        *,
        match_existing: bool | None = None,
        previous_version: str | None = None,
    ) -> ReconcileResult:
        """Reconcile ``incoming`` into the graph.

        Args:
            incoming: Validated snapshot to import.
            match_existing: Override ``ReconcileConfig.match_existing``. False
                creates every collection, mode and variable.
            previous_version: Version of the snapshot last imported, for
                downgrade warnings.

        Raises:
            asyncio.CancelledError: cancelled before alias resolution began.
                Entities already created are left in place.
        """
        with run_scope("reconcile"):
            return await self._reconcile(
                incoming,
                match_existing=self._config.match_existing
                if match_existing is None
                else match_existing,
                previous_version=previous_version,
            )

    async def _reconcile(
        self,
        incoming: BaselineSnapshot,
        *,
        match_existing: bool,
        previous_version: str | None,
    ) -> ReconcileResult:
        metadata = incoming.metadata
        result = ReconcileResult(
            imported_version=metadata.version,
            previous_version=previous_version,
        )
        self._check_version(result)

        if match_existing and self._config.validate_source_identity:
            match_existing = await self._check_source_identity(incoming, result)

        collections = group_snapshot(incoming)
        log.info(
            "reconcile_started",
            collections=len(collections),
            entries=len(incoming),
            match_existing=match_existing,
        )

        host_collections: list[HostCollection] = []
        variables_by_collection: dict[str, list[HostVariable]] = {}
        if match_existing:
            host_collections = await self._graph.list_collections()
            for variable in await self._graph.list_variables():
                variables_by_collection.setdefault(variable.collection_id, []).append(variable)
        collection_index = MatchIndex.build(host_collections)

        resolver = AliasResolver(self._graph)
        semaphore = asyncio.Semaphore(self._config.max_concurrent_collections)

        async def run(collection: IncomingCollection) -> ReconcileResult:
            async with semaphore:
                return await self._reconcile_collection(
                    collection,
                    collection_index=collection_index if match_existing else None,
                    variables_by_collection=variables_by_collection,
                    resolver=resolver,
                )

        partials = await asyncio.gather(*(run(c) for c in collections))
        for partial in partials:
            result.absorb(partial)

        # Barrier passed: every variable exists, so aliases see the full graph
        resolution = await asyncio.shield(resolver.resolve_all())
        resolver.clear()
        result.aliases_resolved = resolution.resolved_count
        result.aliases_failed = resolution.failed_count
        result.warnings.extend(resolution.warnings)

        log.info(
            "reconcile_complete",
            collections_created=result.collections_created,
            collections_updated=result.collections_updated,
            modes_created=result.modes_created,
            variables_created=result.variables_created,
            variables_updated=result.variables_updated,
            aliases_resolved=result.aliases_resolved,
            aliases_failed=result.aliases_failed,
            warnings=len(result.warnings),
            errors=len(result.errors),
        )
        return result

    def _check_version(self, result: ReconcileResult) -> None:
        imported, previous = result.imported_version, result.previous_version
        if not previous or not imported or imported == previous:
            return
        try:
            older = compare_versions(imported, previous) < 0
        except MalformedInputError:
            log.warning("version_compare_skipped", imported=imported, previous=previous)
            return
        if older:
            result.warnings.append(
                SyncWarning(
                    code=WarningCode.VERSION_DOWNGRADE,
                    message=f"Importing older version ({imported}) over newer version "
                    f"({previous}). This may overwrite recent changes.",
                    details={"imported": imported, "previous": previous},
                )
            )
        else:
            result.warnings.append(
                SyncWarning(
                    code=WarningCode.VERSION_CHANGE,
                    message=f"Importing version {imported} (current: {previous})",
                    details={"imported": imported, "previous": previous},
                )
            )

    async def _check_source_identity(
        self, incoming: BaselineSnapshot, result: ReconcileResult
    ) -> bool:
        """Return False (create-only) when the snapshot came from another source."""
        expected = await self._graph.get_source_identity()
        actual = incoming.metadata.source_identity
        if not expected or not actual or expected == actual:
            return True
        source = incoming.metadata.source_name or "unknown"
        result.warnings.append(
            SyncWarning(
                code=WarningCode.IDENTITY_MISMATCH,
                message=f"Snapshot was exported from a different source ({source}). "
                "Entities will be created as new instead of updating existing ones.",
                details={"expected": expected, "actual": actual},
            )
        )
        log.warning("source_identity_mismatch", expected=expected, actual=actual)
        return False

    async def _reconcile_collection(
        self,
        incoming: IncomingCollection,
        *,
        collection_index: MatchIndex[HostCollection] | None,
        variables_by_collection: dict[str, list[HostVariable]],
        resolver: AliasResolver,
    ) -> ReconcileResult:
        partial = ReconcileResult()
        candidate = MatchCandidate(name=incoming.name, original_id=incoming.original_id)
        outcome = None
        if collection_index is not None:
            outcome = match_entity(candidate, collection_index)

        if outcome is None:
            collection = await self._graph.create_collection(
                incoming.name, original_id=incoming.original_id
            )
            partial.collections_created += 1
            is_new = True
            log.debug("collection_created", collection=incoming.name)
        else:
            collection = outcome.entity
            partial.collections_updated += 1
            is_new = False
            log.debug("collection_matched", collection=incoming.name, strategy=outcome.strategy)
            if collection.name != incoming.name:
                await self._graph.rename_collection(collection.id, incoming.name)
                log.info("collection_renamed", old=collection.name, new=incoming.name)

        mode_ids = await self._setup_modes(collection, incoming, is_new, partial)

        variable_index: MatchIndex[HostVariable] | None = None
        if not is_new:
            variable_index = MatchIndex.build(variables_by_collection.get(collection.id, []))

        for variable in incoming.variables.values():
            try:
                await self._reconcile_variable(
                    variable,
                    collection=collection,
                    variable_index=variable_index,
                    mode_ids=mode_ids,
                    resolver=resolver,
                    partial=partial,
                )
            except Exception as e:
                partial.errors.append(f'Failed to process variable "{variable.name}": {e}')
                log.error("variable_failed", variable=variable.name, error=str(e))

        return partial

    async def _setup_modes(
        self,
        collection: HostCollection,
        incoming: IncomingCollection,
        is_new: bool,
        partial: ReconcileResult,
    ) -> dict[str, str]:
        """Return incoming mode name -> host mode id."""
        mode_ids: dict[str, str] = {}
        modes = list(incoming.modes.values())

        if is_new:
            # The first incoming mode takes over the implicit default mode
            if modes and collection.modes:
                first, default = modes[0], collection.modes[0]
                await self._graph.rename_mode(
                    collection.id, default.id, first.name, original_id=first.original_id
                )
                mode_ids[first.name] = default.id
                partial.modes_created += 1
                modes = modes[1:]
            for mode in modes:
                created = await self._graph.add_mode(
                    collection.id, mode.name, original_id=mode.original_id
                )
                mode_ids[mode.name] = created.id
                partial.modes_created += 1
            return mode_ids

        index = MatchIndex.build(collection.modes)
        for mode in modes:
            outcome = match_entity(MatchCandidate(mode.name, mode.original_id), index)
            if outcome is None:
                created = await self._graph.add_mode(
                    collection.id, mode.name, original_id=mode.original_id
                )
                mode_ids[mode.name] = created.id
                partial.modes_created += 1
                log.debug("mode_created", collection=collection.name, mode=mode.name)
                continue
            host_mode = outcome.entity
            mode_ids[mode.name] = host_mode.id
            if host_mode.name != mode.name:
                await self._graph.rename_mode(collection.id, host_mode.id, mode.name)
                partial.modes_renamed += 1
                log.info("mode_renamed", old=host_mode.name, new=mode.name)
        return mode_ids

    async def _reconcile_variable(
        self,
        incoming: IncomingVariable,
        *,
        collection: HostCollection,
        variable_index: MatchIndex[HostVariable] | None,
        mode_ids: dict[str, str],
        resolver: AliasResolver,
        partial: ReconcileResult,
    ) -> None:
        candidate = MatchCandidate(name=incoming.name, original_id=incoming.original_id)
        outcome = None
        if variable_index is not None:
            outcome = match_entity(candidate, variable_index)

        if outcome is None:
            variable = await self._graph.create_variable(
                incoming.name,
                collection.id,
                incoming.resolved_type,
                original_id=incoming.original_id,
            )
            partial.variables_created += 1
        else:
            variable = outcome.entity
            partial.variables_updated += 1
            if variable.name != incoming.name:
                await self._graph.rename_variable(variable.id, incoming.name)
                log.info("variable_renamed", old=variable.name, new=incoming.name)
            if variable.resolved_type != incoming.resolved_type:
                partial.warnings.append(
                    SyncWarning(
                        code=WarningCode.TYPE_MISMATCH,
                        message=f"{incoming.name}: host type {variable.resolved_type} differs "
                        f"from incoming {incoming.resolved_type}; coercing to host type",
                        details={
                            "variable": incoming.name,
                            "host_type": str(variable.resolved_type),
                            "incoming_type": str(incoming.resolved_type),
                        },
                    )
                )

        if incoming.description and incoming.description != variable.description:
            await self._graph.set_description(variable.id, incoming.description)

        for mode_name, value in incoming.values.items():
            mode_id = mode_ids.get(mode_name)
            if mode_id is None:
                continue
            if is_alias_expression(value):
                # Placeholder until the alias resolves; an unresolved alias keeps it
                if mode_id not in variable.values:
                    await self._set_value(
                        variable, mode_id, default_value(variable.resolved_type),
                        incoming=incoming, mode_name=mode_name, partial=partial,
                    )
                resolver.register_alias(variable, mode_id, value)
                continue
            coerced, warning = coerce_value(
                value, variable.resolved_type, path=incoming.paths.get(mode_name, incoming.name)
            )
            if warning is not None:
                partial.warnings.append(warning)
            await self._set_value(
                variable, mode_id, coerced,
                incoming=incoming, mode_name=mode_name, partial=partial,
            )

    async def _set_value(
        self,
        variable: HostVariable,
        mode_id: str,
        value: Any,
        *,
        incoming: IncomingVariable,
        mode_name: str,
        partial: ReconcileResult,
    ) -> None:
        try:
            await self._graph.set_value_for_mode(variable.id, mode_id, value)
        except Exception as e:
            partial.errors.append(
                f'Failed to set value for "{incoming.name}" in mode "{mode_name}": {e}'
            )
            log.error("value_set_failed", variable=incoming.name, mode=mode_name, error=str(e))
