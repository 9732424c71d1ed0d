"""Data models for baseline snapshots.

All models are plain dataclasses. Both historical wire shapes are
normalized into ``TokenEntry`` by the parser, so nothing downstream
branches on shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tokenplane.config.constants import DEFAULT_VERSION, PREFIXED_ID_DELIMITER


def make_prefixed_id(collection: str, mode: str, variable_id: str) -> str:
    return PREFIXED_ID_DELIMITER.join((collection, mode, variable_id))


@dataclass(frozen=True, slots=True)
class TokenEntry:
    """One variable's value in one mode.

    ``variable_id`` is the durable identity; ``path`` is cosmetic and may
    move between snapshots.
    """

    variable_id: str
    path: str
    value: Any
    type: str
    collection: str
    mode: str
    description: str | None = None
    collection_id: str | None = None
    mode_id: str | None = None

    @property
    def prefixed_id(self) -> str:
        return make_prefixed_id(self.collection, self.mode, self.variable_id)


@dataclass(frozen=True, slots=True)
class ModeMeta:
    id: str
    name: str


@dataclass(frozen=True, slots=True)
class CollectionMeta:
    """Original collection identity as recorded by the exporting tool."""

    id: str
    name: str
    modes: tuple[ModeMeta, ...] = ()

    def mode_id(self, name: str) -> str | None:
        for mode in self.modes:
            if mode.name == name:
                return mode.id
        return None


@dataclass(frozen=True, slots=True)
class BaselineMetadata:
    version: str = DEFAULT_VERSION
    exported_at: str | None = None
    source_identity: str | None = None
    source_name: str | None = None
    collections: tuple[CollectionMeta, ...] = ()

    def collection(self, name: str) -> CollectionMeta | None:
        for meta in self.collections:
            if meta.name == name:
                return meta
        return None


@dataclass
class BaselineSnapshot:
    """A complete point-in-time export of the token graph.

    ``entries`` is keyed by ``<collection>:<mode>:<variableId>``.
    """

    metadata: BaselineMetadata = field(default_factory=BaselineMetadata)
    entries: dict[str, TokenEntry] = field(default_factory=dict)

    @classmethod
    def from_entries(
        cls,
        entries: list[TokenEntry],
        metadata: BaselineMetadata | None = None,
    ) -> BaselineSnapshot:
        return cls(
            metadata=metadata or BaselineMetadata(),
            entries={entry.prefixed_id: entry for entry in entries},
        )

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def mode_names(self) -> set[str]:
        return {entry.mode for entry in self.entries.values()}

    @property
    def collection_names(self) -> set[str]:
        return {entry.collection for entry in self.entries.values()}
