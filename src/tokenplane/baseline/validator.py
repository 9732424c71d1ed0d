"""Pre-flight alias validation for a snapshot.

Reports alias expressions whose target does not exist in the snapshot and
chains of aliases that loop back on themselves. The report is read-only
and advisory: reconciliation never consults it, and the alias resolver
treats aliases as references, so a loop still resolves to valid handles.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tokenplane.baseline.models import BaselineSnapshot
from tokenplane.baseline.references import (
    alias_target_name,
    is_alias_expression,
    variable_name,
)


@dataclass(frozen=True, slots=True)
class BrokenAlias:
    key: str
    path: str
    expression: str
    target: str


@dataclass
class AliasValidation:
    broken_aliases: list[BrokenAlias] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.broken_aliases and not self.cycles

    @property
    def error_count(self) -> int:
        return len(self.broken_aliases) + len(self.cycles)


def validate_aliases(snapshot: BaselineSnapshot) -> AliasValidation:
    names: set[str] = set()
    edges: dict[str, set[str]] = {}
    result = AliasValidation()

    for entry in snapshot.entries.values():
        names.add(variable_name(entry.path, entry.collection, entry.mode))

    for key, entry in sorted(snapshot.entries.items()):
        if not is_alias_expression(entry.value):
            continue
        owner = variable_name(entry.path, entry.collection, entry.mode)
        target = alias_target_name(entry.value)
        if target not in names:
            result.broken_aliases.append(
                BrokenAlias(key=key, path=entry.path, expression=entry.value, target=target)
            )
            continue
        edges.setdefault(owner, set()).add(target)

    result.cycles = _find_cycles(edges)
    return result


def _find_cycles(edges: dict[str, set[str]]) -> list[list[str]]:
    """Depth-first search; each cycle is reported once, starting at its smallest name."""
    cycles: list[list[str]] = []
    seen: set[tuple[str, ...]] = set()
    done: set[str] = set()

    def visit(node: str, stack: list[str], on_stack: set[str]) -> None:
        if node in on_stack:
            cycle = stack[stack.index(node) :]
            pivot = cycle.index(min(cycle))
            canonical = tuple(cycle[pivot:] + cycle[:pivot])
            if canonical not in seen:
                seen.add(canonical)
                cycles.append([*canonical, canonical[0]])
            return
        if node in done:
            return
        stack.append(node)
        on_stack.add(node)
        for target in sorted(edges.get(node, ())):
            visit(target, stack, on_stack)
        stack.pop()
        on_stack.discard(node)
        done.add(node)

    for start in sorted(edges):
        visit(start, [], set())
    return cycles
