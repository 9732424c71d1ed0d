"""Token path, variable name and alias expression helpers.

A token path such as ``primitives.Mode 1.color.gray.50`` carries its
collection and mode as leading segments; the host variable name drops them
and uses slashes: ``color/gray/50``. Alias expressions (``{color.gray.50}``)
are normalized into the same slash convention for lookup.
"""

from __future__ import annotations

from typing import Any

from tokenplane.config.constants import (
    ALIAS_CLOSE,
    ALIAS_OPEN,
    PATH_DELIMITER,
    VARIABLE_NAME_SEPARATOR,
)


def is_alias_expression(value: Any) -> bool:
    """True only for a whole-value reference; ``"{a} {b}"`` is a literal string."""
    if not isinstance(value, str) or len(value) <= 2:
        return False
    if not (value.startswith(ALIAS_OPEN) and value.endswith(ALIAS_CLOSE)):
        return False
    inner = value[len(ALIAS_OPEN) : -len(ALIAS_CLOSE)]
    return ALIAS_OPEN not in inner and ALIAS_CLOSE not in inner


def alias_target_path(expression: str) -> str:
    """``{color.gray.50}`` -> ``color.gray.50``."""
    text = expression.strip()
    if text.startswith(ALIAS_OPEN):
        text = text[len(ALIAS_OPEN) :]
    if text.endswith(ALIAS_CLOSE):
        text = text[: -len(ALIAS_CLOSE)]
    return text.strip()


def alias_target_name(expression: str) -> str:
    """``{color.gray.50}`` -> ``color/gray/50``."""
    return alias_target_path(expression).replace(PATH_DELIMITER, VARIABLE_NAME_SEPARATOR)


def variable_name(path: str, collection: str, mode: str) -> str:
    """Strip leading collection and mode segments, then dots -> slashes."""
    name = path
    collection_prefix = collection + PATH_DELIMITER
    if name.startswith(collection_prefix):
        name = name[len(collection_prefix) :]
    mode_prefix = mode + PATH_DELIMITER
    if name.startswith(mode_prefix):
        name = name[len(mode_prefix) :]
    return name.replace(PATH_DELIMITER, VARIABLE_NAME_SEPARATOR)
