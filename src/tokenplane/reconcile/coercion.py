"""Token type mapping and value coercion for host variables.

Coercion never fails: malformed input is replaced by a default and a
``VALUE_COERCION`` warning is returned alongside.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from tokenplane.core.errors import SyncWarning, WarningCode
from tokenplane.reconcile.graph import RGBA, ResolvedType

TYPE_MAP: dict[str, ResolvedType] = {
    "color": ResolvedType.COLOR,
    "number": ResolvedType.FLOAT,
    "dimension": ResolvedType.FLOAT,
    "spacing": ResolvedType.FLOAT,
    "fontSize": ResolvedType.FLOAT,
    "fontFamily": ResolvedType.STRING,
    "fontWeight": ResolvedType.STRING,
    "string": ResolvedType.STRING,
    "boolean": ResolvedType.BOOLEAN,
}

FALLBACK_COLOR = RGBA(0.0, 0.0, 0.0, 1.0)

_TYPE_LOOKUP = {name.lower(): kind for name, kind in TYPE_MAP.items()}
_DEFAULTS: dict[ResolvedType, Any] = {
    ResolvedType.COLOR: FALLBACK_COLOR,
    ResolvedType.FLOAT: 0.0,
    ResolvedType.STRING: "",
    ResolvedType.BOOLEAN: False,
}

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_RGB_RE = re.compile(
    r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*(\d*\.?\d+)\s*)?\)$", re.IGNORECASE
)
# Leading numeric prefix, so "16px" -> 16.0
_NUMBER_RE = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off", ""}


def resolve_type(token_type: str) -> ResolvedType:
    """Map a token type to its host kind, ignoring case. Unknown types are STRING."""
    return _TYPE_LOOKUP.get(token_type.lower(), ResolvedType.STRING)


def default_value(resolved_type: ResolvedType) -> Any:
    """Value a variable holds before anything better is known."""
    return _DEFAULTS[resolved_type]


def parse_color(value: Any) -> RGBA:
    """Parse hex (``#RGB`` to ``#RRGGBBAA``), ``rgb()``/``rgba()`` or an ``{r, g, b, a}`` mapping.

    Raises:
        ValueError: unrecognized color.
    """
    if isinstance(value, RGBA):
        return value
    if isinstance(value, Mapping):
        try:
            channels = [float(value[c]) for c in ("r", "g", "b")]
            alpha = float(value.get("a", 1.0))
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid color mapping: {value!r}") from e
        if not all(0.0 <= c <= 1.0 for c in (*channels, alpha)):
            raise ValueError(f"Color channels out of range: {value!r}")
        return RGBA(*channels, alpha)
    if not isinstance(value, str):
        raise ValueError(f"Invalid color: {value!r}")

    text = value.strip()
    rgb = _RGB_RE.match(text)
    if rgb is not None:
        ints = [int(c) for c in rgb.group(1, 2, 3)]
        alpha = float(rgb.group(4)) if rgb.group(4) is not None else 1.0
        if any(c > 255 for c in ints) or alpha > 1.0:
            raise ValueError(f"Color channels out of range: {value!r}")
        return RGBA(*(c / 255 for c in ints), alpha)

    match = _HEX_RE.match(text)
    if match is None:
        raise ValueError(f"Invalid color: {value!r}")
    digits = match.group(1)
    if len(digits) in (3, 4):
        digits = "".join(ch * 2 for ch in digits)
    channels = [int(digits[i : i + 2], 16) / 255 for i in range(0, len(digits), 2)]
    return RGBA(*channels)


def parse_float(value: Any) -> float:
    """Raises ValueError when no leading number can be read."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        match = _NUMBER_RE.match(value)
        if match:
            return float(match.group(1))
    raise ValueError(f"Invalid number: {value!r}")


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"Invalid boolean: {value!r}")
    if isinstance(value, int | float):
        return bool(value)
    raise ValueError(f"Invalid boolean: {value!r}")


def _to_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping | list):
        return json.dumps(value, sort_keys=True, ensure_ascii=False)
    return str(value)


def coerce_value(
    value: Any,
    resolved_type: ResolvedType,
    *,
    path: str = "",
) -> tuple[Any, SyncWarning | None]:
    """Convert a snapshot value into the host representation for ``resolved_type``."""
    if resolved_type is ResolvedType.STRING:
        return _to_string(value), None

    parsers = {
        ResolvedType.COLOR: parse_color,
        ResolvedType.FLOAT: parse_float,
        ResolvedType.BOOLEAN: parse_bool,
    }
    parser, fallback = parsers[resolved_type], default_value(resolved_type)
    try:
        return parser(value), None
    except ValueError as e:
        warning = SyncWarning(
            code=WarningCode.VALUE_COERCION,
            message=f"{path or 'value'}: {e}; using {fallback!r}",
            details={
                "path": path,
                "value": value,
                "resolved_type": str(resolved_type),
                "fallback": fallback,
            },
        )
        return fallback, warning
