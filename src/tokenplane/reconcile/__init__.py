"""Graph reconciliation: host contract, matching, coercion and alias resolution."""

from tokenplane.reconcile.aliases import (
    AliasReference,
    AliasResolution,
    AliasResolver,
    ResolverState,
)
from tokenplane.reconcile.coercion import coerce_value, default_value, parse_color, resolve_type
from tokenplane.reconcile.graph import (
    RGBA,
    HostCollection,
    HostGraph,
    HostMode,
    HostVariable,
    InMemoryGraph,
    ResolvedType,
    VariableAlias,
)
from tokenplane.reconcile.matching import (
    DEFAULT_STRATEGIES,
    MatchCandidate,
    MatchIndex,
    MatchOutcome,
    by_name,
    by_original_id,
    match_entity,
)
from tokenplane.reconcile.reconciler import GraphReconciler, ReconcileResult, group_snapshot

__all__ = [
    "DEFAULT_STRATEGIES",
    "RGBA",
    "AliasReference",
    "AliasResolution",
    "AliasResolver",
    "GraphReconciler",
    "HostCollection",
    "HostGraph",
    "HostMode",
    "HostVariable",
    "InMemoryGraph",
    "MatchCandidate",
    "MatchIndex",
    "MatchOutcome",
    "ReconcileResult",
    "ResolvedType",
    "ResolverState",
    "VariableAlias",
    "by_name",
    "by_original_id",
    "coerce_value",
    "default_value",
    "group_snapshot",
    "match_entity",
    "parse_color",
    "resolve_type",
]
