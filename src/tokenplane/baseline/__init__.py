"""Baseline snapshots: model, ingestion, chunked storage and alias checks."""

from tokenplane.baseline.chunking import ChunkedPayload, ChunkTransport, chunk_text, join_chunks
from tokenplane.baseline.models import (
    BaselineMetadata,
    BaselineSnapshot,
    CollectionMeta,
    ModeMeta,
    TokenEntry,
    make_prefixed_id,
)
from tokenplane.baseline.parser import (
    dump_snapshot,
    dumps_snapshot,
    load_snapshot,
    loads_snapshot,
    parse_prefixed_id,
    read_snapshot,
)
from tokenplane.baseline.validator import AliasValidation, BrokenAlias, validate_aliases

__all__ = [
    "AliasValidation",
    "BaselineMetadata",
    "BaselineSnapshot",
    "BrokenAlias",
    "ChunkTransport",
    "ChunkedPayload",
    "CollectionMeta",
    "ModeMeta",
    "TokenEntry",
    "chunk_text",
    "dump_snapshot",
    "dumps_snapshot",
    "join_chunks",
    "load_snapshot",
    "loads_snapshot",
    "make_prefixed_id",
    "parse_prefixed_id",
    "read_snapshot",
    "validate_aliases",
]
