"""
Global configuration and environment handling.

This module is responsible for:
- Defining global constants and defaults
- Reading the few environment overrides the CLI honours

Nothing in this file should depend on:
- the filesystem
- the manifest structure
- rule generation
- CLI arguments

If something here changes, every generated identifier may change too.
"""

from __future__ import annotations

import os
from typing import Final

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

SUPPORTED_MANIFEST_VERSION: Final[int] = 1
TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Generated resources
# ---------------------------------------------------------------------------

# Resource type that means "append this content fragment to this target file".
RESOURCE_TYPE: Final[str] = "concat::fragment"

TABLES_DIR: Final[str] = "/var/lib/puppet/iptables/tables"
IDENTIFIER_PREFIX: Final[str] = "iptables_rule"

# Fixed namespacing token between rule name and content hash.
IDENTIFIER_ORDER_TOKEN: Final[str] = "20"

IP_VERSIONS: Final[tuple] = ("4", "6")

# ---------------------------------------------------------------------------
# Manifest defaults
# ---------------------------------------------------------------------------

DEFAULT_MANIFEST: Final[str] = "iptables.yml"
DEFAULT_OUTPUT_DIR: Final[str] = "tables"
DEFAULT_TABLE: Final[str] = "filter"
DEFAULT_COMMAND: Final[str] = "-A"
DEFAULT_CHAIN: Final[str] = "INPUT"
DEFAULT_TARGET: Final[str] = "ACCEPT"
DEFAULT_ORDER: Final[int] = 100
DEFAULT_ENSURE: Final[str] = "present"

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_MANIFEST: Final[str] = "IPTGEN_MANIFEST"
ENV_OUTPUT_DIR: Final[str] = "IPTGEN_OUTPUT_DIR"

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def inactive_version(ip_version: str) -> str:
    """Return the other IP version of {4, 6}."""
    return "6" if ip_version == "4" else "4"


def get_manifest_path() -> str:
    """
    Return the manifest path used when none is given on the command line.

    Returns:
        str: value of IPTGEN_MANIFEST, or the default manifest name
    """

    return os.getenv(ENV_MANIFEST) or DEFAULT_MANIFEST


def get_output_dir() -> str:
    """
    Return the directory assembled table files are written to.

    Returns:
        str: value of IPTGEN_OUTPUT_DIR, or the default output directory
    """

    return os.getenv(ENV_OUTPUT_DIR) or DEFAULT_OUTPUT_DIR
