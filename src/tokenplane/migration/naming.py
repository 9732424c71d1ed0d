"""Token path -> platform literal naming."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from tokenplane.config.constants import DEFAULT_STRIP_SEGMENTS, PATH_DELIMITER
from tokenplane.config.models import CaseStyle, TransformConfig
from tokenplane.diff.models import PathChange
from tokenplane.migration.models import RenameMapping

# Split on separators and lower->Upper transitions; digits stay attached
_SEPARATORS_RE = re.compile(r"[\s_\-]+")
_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def split_words(text: str) -> list[str]:
    words: list[str] = []
    for chunk in _SEPARATORS_RE.split(text):
        if chunk:
            words.extend(w for w in _CAMEL_RE.split(chunk) if w)
    return words


def transform_case(text: str, case: CaseStyle) -> str:
    words = split_words(text)
    if not words:
        return ""
    if case == "kebab":
        return "-".join(w.lower() for w in words)
    if case == "snake":
        return "_".join(w.lower() for w in words)
    if case == "constant":
        return "_".join(w.upper() for w in words)
    if case == "camel":
        return words[0].lower() + "".join(w[:1].upper() + w[1:].lower() for w in words[1:])
    if case == "pascal":
        return "".join(w[:1].upper() + w[1:].lower() for w in words)
    raise ValueError(f"Unknown case style: {case}")


def build_platform_token_name(
    path: str,
    transform: TransformConfig,
    strip_segments: Iterable[str] | None = None,
) -> str:
    """``colors.light.brand.primary`` -> ``--colors-brand-primary`` for css.

    Structural segments are dropped case-insensitively. With an empty
    separator, camel and pascal names read as one identifier.
    """
    if transform.strip_segments is not None:
        strip_segments = transform.strip_segments
    elif strip_segments is None:
        strip_segments = DEFAULT_STRIP_SEGMENTS
    strip = {s.lower() for s in strip_segments}
    segments = [s for s in path.split(PATH_DELIMITER) if s and s.lower() not in strip]
    if not segments:
        return ""

    if transform.separator == "" and transform.case in ("camel", "pascal"):
        name = transform_case(" ".join(segments), transform.case)
    else:
        name = transform.separator.join(transform_case(s, transform.case) for s in segments)
    return f"{transform.prefix}{name}"


def path_change_to_replacement(
    change: PathChange,
    transform: TransformConfig,
    strip_segments: Iterable[str] | None = None,
) -> RenameMapping | None:
    """None when both paths collapse to the same literal."""
    old_token = build_platform_token_name(change.old_path, transform, strip_segments)
    new_token = build_platform_token_name(change.new_path, transform, strip_segments)
    if not old_token or not new_token or old_token == new_token:
        return None
    return RenameMapping(
        old_token=old_token,
        new_token=new_token,
        old_path=change.old_path,
        new_path=change.new_path,
    )


def build_replacements(
    path_changes: Sequence[PathChange],
    transform: TransformConfig,
    strip_segments: Iterable[str] | None = None,
) -> list[RenameMapping]:
    """One mapping per distinct old literal, in path-change order."""
    strip = list(strip_segments) if strip_segments is not None else None
    mappings: list[RenameMapping] = []
    seen: set[str] = set()
    for change in path_changes:
        mapping = path_change_to_replacement(change, transform, strip)
        if mapping is None or mapping.old_token in seen:
            continue
        seen.add(mapping.old_token)
        mappings.append(mapping)
    return mappings
