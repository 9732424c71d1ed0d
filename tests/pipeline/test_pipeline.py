"""Tests for the diff -> classify -> gate -> migrate pipeline."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from tokenplane.config.models import TokenPlaneConfig, VersioningConfig
from tokenplane.core.errors import BreakingChangeBlocked, ErrorCode, MalformedInputError
from tokenplane.pipeline import SyncPipeline


@pytest.fixture
def renamed(make_entry: Callable, make_snapshot: Callable) -> tuple:
    old = make_snapshot([make_entry("v1", "primary", "#0000ff")], version="1.4.0")
    new = make_snapshot([make_entry("v1", "brand.primary", "#0000ff")], version="1.4.0")
    return old, new


class TestPlan:
    def test_non_breaking_plan(self, make_entry: Callable, make_snapshot: Callable) -> None:
        old = make_snapshot([make_entry("v1", "bg", "#ffffff")], version="2.1.0")
        new = make_snapshot([make_entry("v1", "bg", "#f5f5f5")])

        plan = SyncPipeline().plan(old, new)

        assert not plan.has_breaking_changes
        assert plan.bump.change_type == "patch"
        assert plan.bump.current == "2.1.0"
        assert plan.bump.suggested == "2.1.1"

    def test_breaking_blocked(self, renamed: tuple) -> None:
        old, new = renamed

        with pytest.raises(BreakingChangeBlocked) as exc_info:
            SyncPipeline().plan(old, new)

        assert exc_info.value.code == ErrorCode.BREAKING_CHANGE_BLOCKED
        assert exc_info.value.details["breaking"] == 1

    def test_force_allows_breaking(self, renamed: tuple) -> None:
        old, new = renamed
        plan = SyncPipeline().plan(old, new, force=True)
        assert plan.has_breaking_changes
        assert plan.bump.suggested == "2.0.0"

    def test_config_allows_breaking(self, renamed: tuple) -> None:
        old, new = renamed
        config = TokenPlaneConfig(versioning=VersioningConfig(allow_breaking=True))
        assert SyncPipeline(config).plan(old, new).bump.change_type == "major"

    def test_explicit_current_version(self, renamed: tuple) -> None:
        old, new = renamed
        plan = SyncPipeline().plan(old, new, current_version="0.3.1", force=True)
        assert plan.bump.suggested == "1.0.0"

    def test_invalid_version_raises(self, renamed: tuple) -> None:
        old, new = renamed
        with pytest.raises(MalformedInputError):
            SyncPipeline().plan(old, new, current_version="next", force=True)


class TestMigrate:
    @pytest.mark.asyncio
    async def test_rewrites_enabled_platforms(self, tmp_path: Path, renamed: tuple) -> None:
        css = tmp_path / "styles" / "button.css"
        css.parent.mkdir()
        css.write_text(".b { color: var(--colors-primary); }\n", encoding="utf-8")
        pipeline = SyncPipeline()
        plan = pipeline.plan(*renamed, force=True)

        results = await pipeline.migrate(plan, root=tmp_path)

        assert set(results) == {"css"}
        assert results["css"].files_modified == 1
        assert css.read_text(encoding="utf-8") == ".b { color: var(--colors-brand-primary); }\n"

    @pytest.mark.asyncio
    async def test_dry_run(self, tmp_path: Path, renamed: tuple) -> None:
        css = tmp_path / "a.css"
        css.write_text("x { color: var(--colors-primary); }\n", encoding="utf-8")
        pipeline = SyncPipeline()
        plan = pipeline.plan(*renamed, force=True)

        results = await pipeline.migrate(plan, root=tmp_path, dry_run=True)

        assert results["css"].total_replacements == 1
        assert results["css"].files_modified == 1
        assert "--colors-primary" in css.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_one_run_id_per_migration(
        self, tmp_path: Path, renamed: tuple, captured_events: list
    ) -> None:
        (tmp_path / "a.css").write_text("x { color: var(--colors-primary); }\n", encoding="utf-8")
        pipeline = SyncPipeline()
        plan = pipeline.plan(*renamed, force=True)

        await pipeline.migrate(plan, root=tmp_path)
        await pipeline.migrate(plan, root=tmp_path, dry_run=True)

        migrated = [e for e in captured_events if e["event"] == "platform_migrated"]
        applied = [e for e in captured_events if e["event"] == "migration_applied"]
        assert migrated and applied
        first, second = migrated[0]["run_id"], migrated[-1]["run_id"]
        assert first != second
        assert applied[0]["run_id"] == first
        assert {e["run_kind"] for e in migrated} == {"migration"}
