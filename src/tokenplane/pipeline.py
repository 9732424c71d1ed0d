"""Sync pipeline: diff -> classify -> gate -> migrate.

Breaking changes stop the pipeline before anything downstream runs unless
the caller forces it (or ``versioning.allow_breaking`` is set).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from tokenplane.baseline.models import BaselineSnapshot
from tokenplane.config.models import TokenPlaneConfig
from tokenplane.core.errors import BreakingChangeBlocked
from tokenplane.core.logging import run_scope
from tokenplane.diff.engine import diff_snapshots
from tokenplane.diff.models import ChangeSet
from tokenplane.migration.files import PlatformFileSet
from tokenplane.migration.models import MigrationResult
from tokenplane.migration.naming import build_replacements
from tokenplane.migration.ops import MigrationOps
from tokenplane.versioning.classifier import VersionBump, classify

log = structlog.get_logger(__name__)


@dataclass
class SyncPlan:
    changes: ChangeSet
    bump: VersionBump

    @property
    def has_breaking_changes(self) -> bool:
        return self.changes.has_breaking_changes()


class SyncPipeline:
    def __init__(self, config: TokenPlaneConfig | None = None) -> None:
        self._config = config or TokenPlaneConfig()

    @property
    def config(self) -> TokenPlaneConfig:
        return self._config

    def plan(
        self,
        old: BaselineSnapshot,
        new: BaselineSnapshot,
        *,
        current_version: str | None = None,
        force: bool = False,
    ) -> SyncPlan:
        """Diff and classify.

        ``current_version`` defaults to the old snapshot's version.

        Raises:
            BreakingChangeBlocked: breaking changes found and not forced.
            MalformedInputError: ``current_version`` is not valid semver.
        """
        changes = diff_snapshots(old, new)
        version = current_version or old.metadata.version or self._config.versioning.initial_version
        bump = classify(changes, version)
        log.info(
            "sync_planned",
            change_type=bump.change_type,
            current=bump.current,
            suggested=bump.suggested,
            summary=bump.summary,
        )

        if changes.has_breaking_changes() and not (
            force or self._config.versioning.allow_breaking
        ):
            counts = changes.counts()
            raise BreakingChangeBlocked.from_counts(counts["breaking"], counts)
        return SyncPlan(changes=changes, bump=bump)

    async def migrate(
        self,
        plan: SyncPlan,
        *,
        root: Path,
        dry_run: bool = False,
    ) -> dict[str, MigrationResult]:
        """Propagate the plan's path changes into every enabled platform's files.

        Every platform's apply logs under one run id.
        """
        migration = self._config.migration
        ops = MigrationOps.from_config(root, migration)
        results: dict[str, MigrationResult] = {}

        with run_scope("migration"):
            for name, platform in migration.platforms.items():
                if not platform.enabled:
                    continue
                mappings = build_replacements(
                    plan.changes.path_changes, platform.transform, migration.strip_segments
                )
                files = PlatformFileSet.from_platform(root, platform).resolve()
                results[name] = await ops.apply(mappings, files, dry_run=dry_run)
                log.info(
                    "platform_migrated",
                    platform=name,
                    mappings=len(mappings),
                    files_modified=results[name].files_modified,
                    dry_run=dry_run,
                )
        return results
