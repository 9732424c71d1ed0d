"""Identity-then-name matching of incoming entities against the live graph.

A strategy is a pure function ``(candidate, index) -> entity | None``.
Strategies are tried in order; the first hit wins. No hit means create.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar


class Matchable(Protocol):
    id: str
    name: str
    original_id: str | None


T = TypeVar("T", bound=Matchable)


@dataclass(frozen=True, slots=True)
class MatchCandidate:
    """What an incoming entity knows about itself."""

    name: str
    original_id: str | None = None


@dataclass
class MatchIndex(Generic[T]):
    """Lookup tables over existing entities.

    ``by_id`` holds both the host id and any stored ``original_id``, so an
    entity created by an earlier import is found by the id in the snapshot.
    """

    by_id: dict[str, T] = field(default_factory=dict)
    by_name: dict[str, T] = field(default_factory=dict)

    @classmethod
    def build(cls, entities: Iterable[T]) -> MatchIndex[T]:
        index: MatchIndex[T] = cls()
        for entity in entities:
            index.add(entity)
        return index

    def add(self, entity: T) -> None:
        self.by_id.setdefault(entity.id, entity)
        if entity.original_id:
            self.by_id.setdefault(entity.original_id, entity)
        self.by_name.setdefault(entity.name, entity)


MatchStrategy = Callable[[MatchCandidate, MatchIndex[T]], T | None]


def by_original_id(candidate: MatchCandidate, index: MatchIndex[T]) -> T | None:
    if not candidate.original_id:
        return None
    return index.by_id.get(candidate.original_id)


def by_name(candidate: MatchCandidate, index: MatchIndex[T]) -> T | None:
    return index.by_name.get(candidate.name)


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (by_original_id, by_name)


@dataclass(frozen=True)
class MatchOutcome(Generic[T]):
    entity: T
    strategy: str


def match_entity(
    candidate: MatchCandidate,
    index: MatchIndex[T],
    strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES,
) -> MatchOutcome[T] | None:
    for strategy in strategies:
        hit = strategy(candidate, index)
        if hit is not None:
            return MatchOutcome(entity=hit, strategy=strategy.__name__)
    return None
