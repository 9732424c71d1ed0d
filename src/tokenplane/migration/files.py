"""Platform file-set resolution."""

from __future__ import annotations

import fnmatch
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from tokenplane.config.models import PlatformConfig


@dataclass
class PlatformFileSet:
    """Include globs relative to ``root`` minus fnmatch exclusions."""

    root: Path
    include: Sequence[str] = field(default_factory=list)
    exclude: Sequence[str] = field(default_factory=list)

    @classmethod
    def from_platform(cls, root: Path, platform: PlatformConfig) -> PlatformFileSet:
        return cls(root=root, include=platform.include, exclude=platform.exclude)

    def _excluded(self, rel_str: str) -> bool:
        for pattern in self.exclude:
            if fnmatch.fnmatch(rel_str, pattern):
                return True
            # "**/x/**" should also match at the root
            if pattern.startswith("**/") and fnmatch.fnmatch(rel_str, pattern[3:]):
                return True
        return False

    def resolve(self) -> list[Path]:
        """Sorted, de-duplicated files under ``root``."""
        root = self.root.resolve()
        found: set[Path] = set()
        for pattern in self.include:
            for path in root.glob(pattern):
                if not path.is_file():
                    continue
                rel_str = path.relative_to(root).as_posix()
                if self._excluded(rel_str):
                    continue
                found.add(path)
        return sorted(found)
