"""Chunked storage contract for serialized snapshots.

Hosts cap the size of a single stored value, so a serialized snapshot is
split into ordered chunks of at most ``chunk_size`` characters. Chunks are
rejoined by plain in-order concatenation before JSON parsing. The chunk
count is stored alongside the chunks under ``<namespace>:chunkCount``.
"""

from __future__ import annotations

from collections.abc import MutableMapping, Sequence
from dataclasses import dataclass

import structlog

from tokenplane.baseline.models import BaselineSnapshot
from tokenplane.baseline.parser import dumps_snapshot, loads_snapshot
from tokenplane.config.constants import CHUNK_COUNT_KEY, DEFAULT_CHUNK_SIZE
from tokenplane.config.models import TransportConfig
from tokenplane.core.errors import MalformedInputError

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ChunkedPayload:
    chunks: tuple[str, ...]
    total_size: int

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)


def chunk_text(data: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split ``data`` into ordered pieces of at most ``chunk_size`` characters."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return [data[i : i + chunk_size] for i in range(0, len(data), chunk_size)]


def join_chunks(chunks: Sequence[str]) -> str:
    return "".join(chunks)


class ChunkTransport:
    """Stores snapshots as chunks in a flat string key/value store.

    The store is whatever per-key storage the host offers; the namespace and
    chunk size come from ``TransportConfig`` rather than module globals.
    """

    def __init__(
        self,
        store: MutableMapping[str, str],
        config: TransportConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or TransportConfig()

    @property
    def namespace(self) -> str:
        return self._config.namespace

    def _chunk_key(self, index: int) -> str:
        return f"{self.namespace}:chunk_{index}"

    @property
    def _count_key(self) -> str:
        return f"{self.namespace}:{CHUNK_COUNT_KEY}"

    def chunk(self, snapshot: BaselineSnapshot) -> ChunkedPayload:
        text = dumps_snapshot(snapshot)
        return ChunkedPayload(
            chunks=tuple(chunk_text(text, self._config.chunk_size)),
            total_size=len(text),
        )

    def save(self, snapshot: BaselineSnapshot) -> ChunkedPayload:
        """Write the snapshot's chunks, then the chunk count.

        Stale chunks from a previous, longer save are removed.
        """
        payload = self.chunk(snapshot)
        previous = self._stored_count()
        for index, chunk in enumerate(payload.chunks):
            self._store[self._chunk_key(index)] = chunk
        for index in range(payload.chunk_count, previous):
            self._store.pop(self._chunk_key(index), None)
        self._store[self._count_key] = str(payload.chunk_count)
        log.debug(
            "snapshot_chunked",
            namespace=self.namespace,
            chunks=payload.chunk_count,
            size=payload.total_size,
        )
        return payload

    def load(self) -> BaselineSnapshot | None:
        """Rejoin stored chunks. Returns None when nothing was saved.

        Raises:
            MalformedInputError: a chunk is missing or the joined text is not JSON.
        """
        count = self._stored_count()
        if count == 0 and self._count_key not in self._store:
            return None
        chunks: list[str] = []
        for index in range(count):
            key = self._chunk_key(index)
            if key not in self._store:
                raise MalformedInputError.unparseable(f"missing chunk {index} of {count}")
            chunks.append(self._store[key])
        return loads_snapshot(join_chunks(chunks))

    def _stored_count(self) -> int:
        raw = self._store.get(self._count_key)
        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError as e:
            raise MalformedInputError.unparseable(f"invalid chunk count {raw!r}") from e
