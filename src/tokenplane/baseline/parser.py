"""Baseline ingestion: wire JSON -> BaselineSnapshot.

Accepts both historical wire shapes:

- ``{"$metadata": {...}, "baseline": {key: {"path", "value", "type", ...}}}``
- ``{"metadata": {...}, "entries": {key: {"path", "$value", "$type", ...}}}``

and normalizes them into one ``TokenEntry`` structure. Any structural
problem raises ``MalformedInputError`` before a caller can mutate state.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from tokenplane.baseline.models import (
    BaselineMetadata,
    BaselineSnapshot,
    CollectionMeta,
    ModeMeta,
    TokenEntry,
)
from tokenplane.config.constants import DEFAULT_VERSION, PREFIXED_ID_DELIMITER
from tokenplane.core.errors import MalformedInputError

log = structlog.get_logger(__name__)

_METADATA_KEYS = ("$metadata", "metadata")
_ENTRIES_KEYS = ("entries", "baseline")
_MISSING = object()


def parse_prefixed_id(prefixed_id: str) -> tuple[str, str, str]:
    """Split ``collection:mode:variableId``.

    The variable id may itself contain the delimiter (``VariableID:1:2``);
    collection and mode never do.
    """
    parts = prefixed_id.split(PREFIXED_ID_DELIMITER, 2)
    if len(parts) != 3 or not all(parts):
        raise MalformedInputError.invalid_entry(
            prefixed_id, "key must have the form <collection>:<mode>:<variableId>"
        )
    collection, mode, variable_id = parts
    return collection, mode, variable_id


def load_snapshot(data: Any) -> BaselineSnapshot:
    """Build a snapshot from decoded JSON data.

    Raises:
        MalformedInputError: missing entries, malformed keys or entries.
    """
    if not isinstance(data, Mapping):
        raise MalformedInputError.unparseable("expected a JSON object at top level")

    raw_entries = _first_present(data, _ENTRIES_KEYS)
    if raw_entries is _MISSING:
        raise MalformedInputError.missing_field("entries")
    if not isinstance(raw_entries, Mapping):
        raise MalformedInputError.invalid_entry("entries", "must be an object keyed by prefixed id")

    raw_metadata = _first_present(data, _METADATA_KEYS)
    metadata = _parse_metadata({} if raw_metadata is _MISSING else raw_metadata)

    entries: dict[str, TokenEntry] = {}
    for key, raw in raw_entries.items():
        entry = _parse_entry(str(key), raw)
        entries[entry.prefixed_id] = entry

    log.debug("snapshot_loaded", entries=len(entries), version=metadata.version)
    return BaselineSnapshot(metadata=metadata, entries=entries)


def loads_snapshot(text: str) -> BaselineSnapshot:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError.unparseable(str(e)) from e
    return load_snapshot(data)


def read_snapshot(path: Path) -> BaselineSnapshot:
    return loads_snapshot(path.read_text(encoding="utf-8"))


def dump_snapshot(snapshot: BaselineSnapshot) -> dict[str, Any]:
    """Serialize to the canonical wire shape (``$metadata`` + ``entries``)."""
    meta = snapshot.metadata
    metadata: dict[str, Any] = {"version": meta.version}
    if meta.exported_at is not None:
        metadata["exportedAt"] = meta.exported_at
    if meta.source_identity is not None:
        metadata["sourceIdentity"] = meta.source_identity
    if meta.source_name is not None:
        metadata["sourceName"] = meta.source_name
    if meta.collections:
        metadata["collections"] = [
            {
                "id": c.id,
                "name": c.name,
                "modes": [{"id": m.id, "name": m.name} for m in c.modes],
            }
            for c in meta.collections
        ]

    entries: dict[str, Any] = {}
    for key, entry in snapshot.entries.items():
        raw: dict[str, Any] = {
            "path": entry.path,
            "value": entry.value,
            "type": entry.type,
            "collection": entry.collection,
            "mode": entry.mode,
        }
        if entry.description is not None:
            raw["description"] = entry.description
        if entry.collection_id is not None:
            raw["collectionId"] = entry.collection_id
        if entry.mode_id is not None:
            raw["modeId"] = entry.mode_id
        entries[key] = raw

    return {"$metadata": metadata, "entries": entries}


def dumps_snapshot(snapshot: BaselineSnapshot) -> str:
    return json.dumps(dump_snapshot(snapshot), ensure_ascii=False)


def _first_present(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return _MISSING


def _parse_metadata(raw: Any) -> BaselineMetadata:
    if not isinstance(raw, Mapping):
        raise MalformedInputError.invalid_entry("$metadata", "must be an object")

    collections: list[CollectionMeta] = []
    for col in raw.get("collections") or []:
        if not isinstance(col, Mapping) or "id" not in col or "name" not in col:
            raise MalformedInputError.invalid_entry(
                "$metadata.collections", "each collection needs 'id' and 'name'"
            )
        modes = tuple(
            ModeMeta(id=str(m["id"]), name=str(m["name"]))
            for m in col.get("modes") or []
            if isinstance(m, Mapping) and "id" in m and "name" in m
        )
        collections.append(CollectionMeta(id=str(col["id"]), name=str(col["name"]), modes=modes))

    return BaselineMetadata(
        version=str(raw.get("version") or DEFAULT_VERSION),
        exported_at=raw.get("exportedAt"),
        source_identity=raw.get("sourceIdentity") or raw.get("fileKey"),
        source_name=raw.get("sourceName") or raw.get("fileName"),
        collections=tuple(collections),
    )


def _parse_entry(key: str, raw: Any) -> TokenEntry:
    collection, mode, variable_id = parse_prefixed_id(key)
    if not isinstance(raw, Mapping):
        raise MalformedInputError.invalid_entry(key, "entry must be an object")

    path = raw.get("path")
    if not isinstance(path, str) or not path:
        raise MalformedInputError.invalid_entry(key, "missing 'path'")

    value = raw.get("$value", raw.get("value", _MISSING))
    if value is _MISSING:
        raise MalformedInputError.invalid_entry(key, "missing 'value'")

    token_type = raw.get("$type", raw.get("type"))
    if not isinstance(token_type, str) or not token_type:
        raise MalformedInputError.invalid_entry(key, "missing 'type'")

    # Entry fields, when present, must agree with the key
    for field_name, expected in (("collection", collection), ("mode", mode)):
        declared = raw.get(field_name)
        if declared is not None and declared != expected:
            raise MalformedInputError.invalid_entry(
                key, f"{field_name} {declared!r} does not match key component {expected!r}"
            )

    description = raw.get("$description", raw.get("description"))
    return TokenEntry(
        variable_id=variable_id,
        path=path,
        value=value,
        type=token_type,
        collection=collection,
        mode=mode,
        description=description,
        collection_id=raw.get("collectionId"),
        mode_id=raw.get("modeId"),
    )
