"""Tests for semantic version classification."""

from __future__ import annotations

import pytest

from tokenplane.core.errors import MalformedInputError
from tokenplane.diff.models import (
    ChangeSet,
    DeletedVariable,
    NewVariable,
    PathChange,
    ValueChange,
)
from tokenplane.versioning.classifier import (
    SemVer,
    bump_version,
    classify,
    compare_versions,
    determine_bump,
    parse_version,
    summarize,
)


def _value_change(old: object = "#ffffff", new: object = "#f5f5f5") -> ValueChange:
    return ValueChange("colors:light:v1", "colors.light.bg", old, new, "color")


def _path_change() -> PathChange:
    return PathChange(
        "colors:light:v2", "colors.light.primary", "colors.light.brand.primary", "#00f", "color"
    )


def _new_variable() -> NewVariable:
    return NewVariable("colors:light:v3", "colors.light.accent", "#f00", "color", "colors", "light")


def _deleted_variable() -> DeletedVariable:
    return DeletedVariable(
        "colors:light:v4", "colors.light.old", "#0f0", "color", "colors", "light"
    )


class TestParseVersion:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1.2.3", SemVer(1, 2, 3)),
            ("v0.0.1", SemVer(0, 0, 1)),
            (" 10.20.30 ", SemVer(10, 20, 30)),
        ],
    )
    def test_valid(self, raw: str, expected: SemVer) -> None:
        assert parse_version(raw) == expected

    @pytest.mark.parametrize("raw", ["1.2", "1.2.3.4", "a.b.c", "", "1.2.3-beta"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(MalformedInputError):
            parse_version(raw)

    def test_str(self) -> None:
        assert str(SemVer(1, 4, 0)) == "1.4.0"


class TestBumpAndCompare:
    @pytest.mark.parametrize(
        ("part", "expected"),
        [("major", "2.0.0"), ("minor", "1.3.0"), ("patch", "1.2.4"), ("none", "1.2.3")],
    )
    def test_bump(self, part: str, expected: str) -> None:
        assert bump_version("1.2.3", part) == expected  # type: ignore[arg-type]

    def test_compare_is_numeric(self) -> None:
        assert compare_versions("1.10.0", "1.9.0") == 1
        assert compare_versions("1.0.0", "2.0.0") == -1
        assert compare_versions("v1.0.0", "1.0.0") == 0


class TestDetermineBump:
    def test_empty_is_none(self) -> None:
        assert determine_bump(ChangeSet()) == "none"

    def test_value_only_is_patch(self) -> None:
        assert determine_bump(ChangeSet(value_changes=[_value_change()])) == "patch"

    def test_additions_beat_patch(self) -> None:
        changes = ChangeSet(value_changes=[_value_change()], new_mode_names=["dark"])
        assert determine_bump(changes) == "minor"

    @pytest.mark.parametrize(
        "changes",
        [
            ChangeSet(path_changes=[_path_change()]),
            ChangeSet(deleted_variables=[_deleted_variable()]),
            ChangeSet(deleted_mode_names=["dark"], new_variables=[_new_variable()]),
        ],
    )
    def test_breaking_is_major(self, changes: ChangeSet) -> None:
        assert determine_bump(changes) == "major"


class TestClassify:
    def test_no_changes_keeps_version(self) -> None:
        bump = classify(ChangeSet(), "1.2.3")
        assert bump.change_type == "none"
        assert bump.suggested == "1.2.3"
        assert bump.summary == "No changes detected"
        assert bump.changes == []

    def test_mixed_changes(self) -> None:
        """Breaking wins; every change is still itemised."""
        changes = ChangeSet(
            value_changes=[_value_change()],
            path_changes=[_path_change()],
            new_variables=[_new_variable()],
            deleted_mode_names=["dark"],
        )

        bump = classify(changes, "1.4.2")

        assert bump.change_type == "major"
        assert bump.suggested == "2.0.0"
        assert bump.breaking_count == 2
        assert bump.addition_count == 1
        assert bump.patch_count == 1
        assert bump.summary == "2 breaking changes, 1 addition, 1 update"
        assert [c.category for c in bump.changes] == [
            "token-renamed",
            "mode-deleted",
            "token-added",
            "value-changed",
        ]

    def test_alias_retarget_is_patch(self) -> None:
        changes = ChangeSet(value_changes=[_value_change("{color.gray.50}", "{color.gray.100}")])

        bump = classify(changes, "1.0.0")

        assert bump.change_type == "patch"
        assert bump.suggested == "1.0.1"
        assert bump.changes[0].category == "alias-changed"
        assert bump.changes[0].before == "{color.gray.50}"

    def test_new_mode_is_minor(self) -> None:
        bump = classify(ChangeSet(new_mode_names=["contrast"]), "1.4.2")
        assert bump.suggested == "1.5.0"
        assert bump.changes[0].category == "mode-added"

    def test_deleted_variable_is_critical(self) -> None:
        bump = classify(ChangeSet(deleted_variables=[_deleted_variable()]), "0.9.0")
        assert bump.suggested == "1.0.0"
        assert bump.changes[0].severity == "critical"
        assert bump.changes[0].category == "token-deleted"

    def test_invalid_current_version_raises(self) -> None:
        with pytest.raises(MalformedInputError):
            classify(ChangeSet(value_changes=[_value_change()]), "latest")

    def test_input_not_mutated(self) -> None:
        changes = ChangeSet(value_changes=[_value_change()])
        classify(changes, "1.0.0")
        assert len(changes.value_changes) == 1


class TestSummarize:
    def test_singular_and_plural(self) -> None:
        assert summarize(1, 0, 0) == "1 breaking change"
        assert summarize(0, 2, 3) == "2 additions, 3 updates"
