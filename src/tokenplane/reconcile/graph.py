"""Host graph contract and an in-memory reference host.

The live graph is ``Collection -> Mode[] -> Variable[]``. Every entity may
carry an ``original_id`` recorded by a previous import so a later import of
the same snapshot matches it again even though the host assigned new ids.
"""

from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, NamedTuple, Protocol

DEFAULT_MODE_NAME = "Mode 1"


class ResolvedType(StrEnum):
    """Value kinds a host variable can hold."""

    COLOR = "COLOR"
    FLOAT = "FLOAT"
    STRING = "STRING"
    BOOLEAN = "BOOLEAN"


class RGBA(NamedTuple):
    """Color with channels normalized to [0, 1]."""

    r: float
    g: float
    b: float
    a: float = 1.0


@dataclass(frozen=True, slots=True)
class VariableAlias:
    """A value that references another variable by host id."""

    id: str


@dataclass
class HostMode:
    id: str
    name: str
    original_id: str | None = None


@dataclass
class HostCollection:
    id: str
    name: str
    modes: list[HostMode] = field(default_factory=list)
    original_id: str | None = None

    def mode_by_id(self, mode_id: str) -> HostMode | None:
        for mode in self.modes:
            if mode.id == mode_id:
                return mode
        return None


@dataclass
class HostVariable:
    id: str
    name: str
    collection_id: str
    resolved_type: ResolvedType
    original_id: str | None = None
    description: str | None = None
    values: dict[str, Any] = field(default_factory=dict)  # mode id -> value


class HostGraph(Protocol):
    """Protocol for a live token graph.

    Every call is awaited; hosts may perform I/O. Returned entities are
    snapshots, so callers re-list to observe later changes.
    """

    async def get_source_identity(self) -> str | None:
        """Identity of the source this graph was synchronized from, if recorded."""
        ...

    async def list_collections(self) -> list[HostCollection]: ...

    async def list_variables(self) -> list[HostVariable]: ...

    async def create_collection(
        self, name: str, *, original_id: str | None = None
    ) -> HostCollection:
        """Create a collection. It starts with exactly one implicit default mode."""
        ...

    async def rename_collection(self, collection_id: str, name: str) -> None: ...

    async def add_mode(
        self, collection_id: str, name: str, *, original_id: str | None = None
    ) -> HostMode: ...

    async def rename_mode(
        self,
        collection_id: str,
        mode_id: str,
        name: str,
        *,
        original_id: str | None = None,
    ) -> None: ...

    async def create_variable(
        self,
        name: str,
        collection_id: str,
        resolved_type: ResolvedType,
        *,
        original_id: str | None = None,
    ) -> HostVariable: ...

    async def rename_variable(self, variable_id: str, name: str) -> None: ...

    async def set_description(self, variable_id: str, description: str) -> None: ...

    async def set_value_for_mode(self, variable_id: str, mode_id: str, value: Any) -> None:
        """Set one mode's value. ``value`` may be a ``VariableAlias``.

        Raises:
            KeyError: unknown variable.
            ValueError: the mode does not belong to the variable's collection,
                or an alias points at an unknown variable.
        """
        ...


class InMemoryGraph:
    """Dict-backed ``HostGraph`` used for tests and offline reconciliation."""

    def __init__(self, source_identity: str | None = None) -> None:
        self.source_identity = source_identity
        self._collections: dict[str, HostCollection] = {}
        self._variables: dict[str, HostVariable] = {}
        self._ids = itertools.count(1)

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _collection(self, collection_id: str) -> HostCollection:
        try:
            return self._collections[collection_id]
        except KeyError:
            raise KeyError(f"Unknown collection: {collection_id}") from None

    def _variable(self, variable_id: str) -> HostVariable:
        try:
            return self._variables[variable_id]
        except KeyError:
            raise KeyError(f"Unknown variable: {variable_id}") from None

    # HostGraph

    async def get_source_identity(self) -> str | None:
        return self.source_identity

    async def list_collections(self) -> list[HostCollection]:
        return [copy.deepcopy(c) for c in self._collections.values()]

    async def list_variables(self) -> list[HostVariable]:
        return [copy.deepcopy(v) for v in self._variables.values()]

    async def create_collection(
        self, name: str, *, original_id: str | None = None
    ) -> HostCollection:
        collection = HostCollection(
            id=self._next_id("collection"),
            name=name,
            modes=[HostMode(id=self._next_id("mode"), name=DEFAULT_MODE_NAME)],
            original_id=original_id,
        )
        self._collections[collection.id] = collection
        return copy.deepcopy(collection)

    async def rename_collection(self, collection_id: str, name: str) -> None:
        self._collection(collection_id).name = name

    async def add_mode(
        self, collection_id: str, name: str, *, original_id: str | None = None
    ) -> HostMode:
        mode = HostMode(id=self._next_id("mode"), name=name, original_id=original_id)
        self._collection(collection_id).modes.append(mode)
        return copy.deepcopy(mode)

    async def rename_mode(
        self,
        collection_id: str,
        mode_id: str,
        name: str,
        *,
        original_id: str | None = None,
    ) -> None:
        mode = self._collection(collection_id).mode_by_id(mode_id)
        if mode is None:
            raise KeyError(f"Unknown mode {mode_id} in collection {collection_id}")
        mode.name = name
        if original_id is not None:
            mode.original_id = original_id

    async def create_variable(
        self,
        name: str,
        collection_id: str,
        resolved_type: ResolvedType,
        *,
        original_id: str | None = None,
    ) -> HostVariable:
        self._collection(collection_id)
        variable = HostVariable(
            id=self._next_id("variable"),
            name=name,
            collection_id=collection_id,
            resolved_type=resolved_type,
            original_id=original_id,
        )
        self._variables[variable.id] = variable
        return copy.deepcopy(variable)

    async def rename_variable(self, variable_id: str, name: str) -> None:
        self._variable(variable_id).name = name

    async def set_description(self, variable_id: str, description: str) -> None:
        self._variable(variable_id).description = description

    async def set_value_for_mode(self, variable_id: str, mode_id: str, value: Any) -> None:
        variable = self._variable(variable_id)
        if self._collection(variable.collection_id).mode_by_id(mode_id) is None:
            raise ValueError(
                f"Mode {mode_id} does not belong to collection {variable.collection_id}"
            )
        if isinstance(value, VariableAlias) and value.id not in self._variables:
            raise ValueError(f"Alias target does not exist: {value.id}")
        variable.values[mode_id] = value

    # Inspection helpers

    def find_collection(self, name: str) -> HostCollection | None:
        for collection in self._collections.values():
            if collection.name == name:
                return collection
        return None

    def find_variable(self, collection_name: str, name: str) -> HostVariable | None:
        collection = self.find_collection(collection_name)
        if collection is None:
            return None
        for variable in self._variables.values():
            if variable.collection_id == collection.id and variable.name == name:
                return variable
        return None

    def value_for(self, variable: HostVariable, mode_name: str) -> Any:
        collection = self._collection(variable.collection_id)
        for mode in collection.modes:
            if mode.name == mode_name:
                return self._variable(variable.id).values.get(mode.id)
        raise KeyError(f"Unknown mode {mode_name!r} in collection {collection.name!r}")

    @property
    def variable_count(self) -> int:
        return len(self._variables)

    @property
    def collection_count(self) -> int:
        return len(self._collections)
