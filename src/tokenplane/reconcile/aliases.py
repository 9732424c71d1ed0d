"""Deferred alias resolution.

Alias values cannot be set while variables are still being created: the
target may not exist yet. The reconciler registers every alias here and
calls ``resolve_all`` once, after all creation has finished, so lookups
see the complete graph.

State machine::

    COLLECTING --resolve_all--> RESOLVING --> DRAINED --clear--> COLLECTING
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from tokenplane.baseline.references import alias_target_name
from tokenplane.core.errors import InternalError, SyncWarning, WarningCode
from tokenplane.reconcile.graph import HostGraph, HostVariable, VariableAlias

log = structlog.get_logger(__name__)


class ResolverState(StrEnum):
    COLLECTING = "collecting"
    RESOLVING = "resolving"
    DRAINED = "drained"


@dataclass(frozen=True, slots=True)
class AliasReference:
    """Owner variable and mode whose value should point at ``target_expression``."""

    owner: HostVariable
    mode_id: str
    target_expression: str


@dataclass
class AliasResolution:
    resolved_count: int = 0
    failed_count: int = 0
    warnings: list[SyncWarning] = field(default_factory=list)


class AliasResolver:
    """Queue of alias references for a single reconciliation pass."""

    def __init__(self, graph: HostGraph) -> None:
        self._graph = graph
        self._references: list[AliasReference] = []
        self._state = ResolverState.COLLECTING

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def pending_count(self) -> int:
        return len(self._references)

    def register_alias(self, owner: HostVariable, mode_id: str, target_expression: str) -> None:
        if self._state is not ResolverState.COLLECTING:
            raise InternalError.invalid_state("register alias", self._state)
        self._references.append(AliasReference(owner, mode_id, target_expression))

    def clear(self) -> None:
        """Drop all references and return to COLLECTING."""
        if self._state is ResolverState.RESOLVING:
            raise InternalError.invalid_state("clear aliases", self._state)
        self._references.clear()
        self._state = ResolverState.COLLECTING

    async def resolve_all(self) -> AliasResolution:
        """Point every registered alias at its target. Runs once per pass.

        Misses and host failures become warnings; the placeholder value stays.
        """
        if self._state is not ResolverState.COLLECTING:
            raise InternalError.invalid_state("resolve aliases", self._state)
        self._state = ResolverState.RESOLVING
        result = AliasResolution()

        try:
            lookup: dict[str, list[HostVariable]] = {}
            for variable in await self._graph.list_variables():
                lookup.setdefault(variable.name, []).append(variable)

            for ref in self._references:
                target_name = alias_target_name(ref.target_expression)
                target = _pick_target(lookup.get(target_name, []), ref.owner)
                if target is None:
                    result.failed_count += 1
                    result.warnings.append(
                        SyncWarning(
                            code=WarningCode.UNRESOLVED_ALIAS,
                            message=f"Alias target not found: {target_name} "
                            f"(referenced by {ref.owner.name})",
                            details={"owner": ref.owner.name, "target": target_name},
                        )
                    )
                    log.warning("alias_unresolved", owner=ref.owner.name, target=target_name)
                    continue

                try:
                    await self._graph.set_value_for_mode(
                        ref.owner.id, ref.mode_id, VariableAlias(target.id)
                    )
                except Exception as e:
                    result.failed_count += 1
                    result.warnings.append(
                        SyncWarning(
                            code=WarningCode.ALIAS_SET_FAILED,
                            message=f"Failed to create alias {ref.owner.name} -> "
                            f"{target_name}: {e}",
                            details={"owner": ref.owner.name, "target": target_name},
                        )
                    )
                    log.warning("alias_set_failed", owner=ref.owner.name, error=str(e))
                    continue

                result.resolved_count += 1
        finally:
            self._state = ResolverState.DRAINED

        log.info(
            "aliases_resolved",
            resolved=result.resolved_count,
            failed=result.failed_count,
        )
        return result


def _pick_target(candidates: list[HostVariable], owner: HostVariable) -> HostVariable | None:
    """Prefer a same-named target in the owner's collection."""
    if not candidates:
        return None
    for candidate in candidates:
        if candidate.collection_id == owner.collection_id:
            return candidate
    return candidates[0]
