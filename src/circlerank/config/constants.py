"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
For configurable values, see models.py.
"""

# =============================================================================
# On-disk layout
# =============================================================================

CONFIG_DIR_NAME = ".circlerank"
"""Per-deployment directory holding config and the default database."""

CONFIG_FILE_NAME = "config.yaml"

DB_FILE_NAME = "rankings.db"

# =============================================================================
# Storage keys
# =============================================================================

UNFILTERED_KEY = ""
"""Filter key stored for the unfiltered aggregate (SQL NULL is not unique-safe)."""

SCOPE_KEY_SEPARATOR = ":"
"""Separator in the printable scope key (container:item_type)."""

MANIFEST_FILE_NAME = "manifest.yaml"
"""Default YAML manifest of active items and groups used by the CLI."""
