"""Migration operations - propagate breaking renames into source trees.

Old platform literals are matched with a token-boundary regex, so
``--color-primary`` never matches inside ``--color-primary-hover``. All
mappings of a run are applied in one combined pass per file, so
``a -> b`` and ``b -> c`` never chain into ``a -> c``.

Files are read and rewritten on a thread pool; concurrent applies that
touch the same resolved path are serialized. A dry run reports the files it
would rewrite without writing them.
"""

from __future__ import annotations

import asyncio
import contextvars
import re
from collections.abc import AsyncIterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import structlog

from tokenplane.config.models import MigrationConfig, PlatformConfig, TransformConfig
from tokenplane.core.errors import FileWriteError
from tokenplane.core.logging import run_scope
from tokenplane.diff.models import ChangeSet, PathChange
from tokenplane.migration.files import PlatformFileSet
from tokenplane.migration.models import (
    FileMatch,
    LineMatch,
    MigrationResult,
    PlatformScanResult,
    RenameMapping,
)
from tokenplane.migration.naming import build_replacements

log = structlog.get_logger(__name__)

# Characters that continue a token literal in css/scss/js/swift/kotlin sources
_TOKEN_CHAR = r"[A-Za-z0-9_-]"


def token_pattern(tokens: Sequence[str]) -> re.Pattern[str]:
    """Alternation of literals, longest first, bounded on both sides."""
    ordered = sorted(set(tokens), key=lambda t: (-len(t), t))
    body = "|".join(re.escape(t) for t in ordered)
    return re.compile(rf"(?<!{_TOKEN_CHAR})(?:{body})(?!{_TOKEN_CHAR})")


@dataclass
class _FileOutcome:
    match: FileMatch | None
    modified: bool = False
    error: FileWriteError | None = None


class MigrationOps:
    """Scan and rewrite source files for renamed tokens.

    Args:
        root: Directory relative paths are resolved against.
        max_workers: Thread pool size for file I/O.
    """

    def __init__(self, root: Path, *, max_workers: int = 8) -> None:
        self._root = root
        self._max_workers = max_workers
        # path -> (lock, holders + waiters); entries go away with their last user
        self._locks: dict[Path, tuple[asyncio.Lock, int]] = {}

    @classmethod
    def from_config(cls, root: Path, config: MigrationConfig) -> MigrationOps:
        return cls(root, max_workers=config.max_workers)

    def _resolve(self, path: Path) -> Path:
        return (path if path.is_absolute() else self._root / path).resolve()

    def _display(self, path: Path) -> str:
        try:
            return path.relative_to(self._root.resolve()).as_posix()
        except ValueError:
            return str(path)

    @asynccontextmanager
    async def _path_lock(self, path: Path) -> AsyncIterator[None]:
        lock, users = self._locks.get(path) or (asyncio.Lock(), 0)
        self._locks[path] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[path]
            if users == 1:
                del self._locks[path]
            else:
                self._locks[path] = (lock, users - 1)

    def build_replacements(
        self,
        path_changes: Sequence[PathChange],
        transform: TransformConfig,
        strip_segments: Sequence[str] | None = None,
    ) -> list[RenameMapping]:
        return build_replacements(path_changes, transform, strip_segments)

    async def scan(
        self, mappings: Sequence[RenameMapping], files: Sequence[Path]
    ) -> list[FileMatch]:
        """Read-only: report where old tokens occur. Files without matches are omitted."""
        result = await self._run(mappings, files, write=False, dry_run=True)
        return result.matches

    async def apply(
        self,
        mappings: Sequence[RenameMapping],
        files: Sequence[Path],
        *,
        dry_run: bool = False,
    ) -> MigrationResult:
        """Rewrite every file. Per-file failures are collected, not raised."""
        with run_scope("migration"):
            return await self._run(mappings, files, write=True, dry_run=dry_run)

    async def scan_platforms(
        self,
        changes: ChangeSet,
        platforms: Mapping[str, PlatformConfig],
        strip_segments: Sequence[str] | None = None,
    ) -> list[PlatformScanResult]:
        """Build mappings and scan usages for every enabled platform."""
        results: list[PlatformScanResult] = []
        for name, platform in platforms.items():
            if not platform.enabled:
                continue
            mappings = build_replacements(changes.path_changes, platform.transform, strip_segments)
            files = PlatformFileSet.from_platform(self._root, platform).resolve()
            matches = await self.scan(mappings, files) if mappings else []
            results.append(
                PlatformScanResult(
                    platform=name,
                    mappings=mappings,
                    files_scanned=len(files),
                    matches=matches,
                )
            )
            log.info(
                "platform_scanned",
                platform=name,
                mappings=len(mappings),
                files=len(files),
                usages=sum(m.replacements for m in matches),
            )
        return results

    async def _run(
        self,
        mappings: Sequence[RenameMapping],
        files: Sequence[Path],
        *,
        write: bool,
        dry_run: bool,
    ) -> MigrationResult:
        result = MigrationResult(dry_run=dry_run)
        if not mappings or not files:
            return result

        lookup = {m.old_token: m.new_token for m in mappings}
        pattern = token_pattern(list(lookup))
        loop = asyncio.get_running_loop()
        resolved = sorted({self._resolve(f) for f in files})

        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:

            def submit(path: Path, rewrite: bool) -> asyncio.Future[_FileOutcome]:
                # Worker threads log under the caller's run id
                ctx = contextvars.copy_context()
                return loop.run_in_executor(
                    executor, ctx.run, self._process_sync, path, pattern, lookup, rewrite
                )

            async def process(path: Path) -> _FileOutcome:
                if not write or dry_run:
                    return await submit(path, False)
                async with self._path_lock(path):
                    return await submit(path, True)

            outcomes = await asyncio.gather(*(process(p) for p in resolved))

        for outcome in outcomes:
            if outcome.error is not None:
                result.errors.append(outcome.error)
            if outcome.match is not None:
                result.matches.append(outcome.match)
                result.total_replacements += outcome.match.replacements
            if outcome.modified:
                result.files_modified += 1

        log.info(
            "migration_applied" if write and not dry_run else "migration_scanned",
            files=len(resolved),
            files_modified=result.files_modified,
            replacements=result.total_replacements,
            errors=len(result.errors),
            dry_run=dry_run,
        )
        return result

    def _process_sync(
        self,
        path: Path,
        pattern: re.Pattern[str],
        lookup: dict[str, str],
        write: bool,
    ) -> _FileOutcome:
        """Synchronous scan/rewrite - runs in thread pool."""
        display = self._display(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("file_read_failed", path=display, error=str(e))
            if write:
                return _FileOutcome(match=None, error=FileWriteError.for_path(display, str(e)))
            return _FileOutcome(match=None)

        lines: list[LineMatch] = []
        for number, line in enumerate(text.splitlines(), start=1):
            tokens = [m.group(0) for m in pattern.finditer(line)]
            if tokens:
                lines.append(LineMatch(line=number, content=line.strip(), tokens=tokens))
        if not lines:
            return _FileOutcome(match=None)

        new_text, count = pattern.subn(lambda m: lookup[m.group(0)], text)
        match = FileMatch(path=display, replacements=count, lines=lines)
        if not write or new_text == text:
            return _FileOutcome(match=match, modified=new_text != text)

        try:
            path.write_text(new_text, encoding="utf-8")
        except OSError as e:
            log.error("file_write_failed", path=display, error=str(e))
            return _FileOutcome(match=match, error=FileWriteError.for_path(display, str(e)))
        return _FileOutcome(match=match, modified=True)
