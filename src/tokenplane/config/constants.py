"""Configuration constants.

Protocol constraints and wire-format literals that are NOT user-configurable.
For configurable values, see models.py.
"""

# =============================================================================
# Baseline wire format
# =============================================================================

PREFIXED_ID_DELIMITER = ":"
"""Separator in ``<collection>:<mode>:<variableId>`` entry keys."""

PATH_DELIMITER = "."
"""Separator between token path segments."""

VARIABLE_NAME_SEPARATOR = "/"
"""Separator between segments of a host variable name."""

ALIAS_OPEN = "{"
ALIAS_CLOSE = "}"
"""Delimiters wrapping an alias reference expression."""

DEFAULT_VERSION = "1.0.0"
"""Version assumed when a snapshot carries none."""

# =============================================================================
# Transport
# =============================================================================

DEFAULT_CHUNK_SIZE = 90_000
"""Characters per stored chunk, below the host's 100 KB per-key limit."""

MAX_CHUNK_SIZE = 100_000
"""Host per-key hard limit."""

DEFAULT_TRANSPORT_NAMESPACE = "tokenplane"

CHUNK_COUNT_KEY = "chunkCount"
"""Key suffix storing the number of chunks next to the chunks themselves."""

# =============================================================================
# Migration
# =============================================================================

DEFAULT_STRIP_SEGMENTS = ("primitives", "themes", "brands", "light", "dark", "value")
"""Structural qualifiers dropped from paths before building token literals."""
