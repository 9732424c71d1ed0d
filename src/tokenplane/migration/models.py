"""Migration models - rename mappings, file matches and results."""

from __future__ import annotations

from dataclasses import dataclass, field

from tokenplane.core.errors import FileWriteError


@dataclass(frozen=True, slots=True)
class RenameMapping:
    """Platform literal rename derived from one path change."""

    old_token: str
    new_token: str
    old_path: str = ""
    new_path: str = ""


@dataclass
class LineMatch:
    line: int  # 1-based
    content: str
    tokens: list[str] = field(default_factory=list)


@dataclass
class FileMatch:
    """Occurrences of old tokens in one file."""

    path: str
    replacements: int = 0
    lines: list[LineMatch] = field(default_factory=list)


@dataclass
class MigrationResult:
    dry_run: bool
    files_modified: int = 0
    total_replacements: int = 0
    matches: list[FileMatch] = field(default_factory=list)
    errors: list[FileWriteError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class PlatformScanResult:
    platform: str
    mappings: list[RenameMapping] = field(default_factory=list)
    files_scanned: int = 0
    matches: list[FileMatch] = field(default_factory=list)

    @property
    def total_usages(self) -> int:
        return sum(m.replacements for m in self.matches)
