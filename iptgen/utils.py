"""
Shared utility helpers.

This module contains small, reusable helpers that do not belong
to rule generation, match formatting, or fragment registration.
"""

from __future__ import annotations

import hashlib
import ipaddress
from pathlib import Path
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Hashing / identifiers
# ---------------------------------------------------------------------------


def content_hash(text: str) -> str:
    """Return the SHA-1 hex digest of a UTF-8 encoded string."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def to_text(value: Any) -> str:
    """Render a manifest value the way it appears in a rule line."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim the ends."""
    return " ".join(text.split())


# ---------------------------------------------------------------------------
# Address helpers
# ---------------------------------------------------------------------------


def address_family(address: str) -> Optional[str]:
    """
    Return "4" or "6" for an IP address or network, None otherwise.

    Hostnames and anything else ipaddress cannot parse have no family.
    """
    value = address.strip().lstrip("!").strip()
    try:
        return str(ipaddress.ip_network(value, strict=False).version)
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Filesystem helpers
# ---------------------------------------------------------------------------


def ensure_parent_dir(path: Path) -> None:
    """Ensure the parent directory of a file exists."""
    path.parent.mkdir(parents=True, exist_ok=True)
