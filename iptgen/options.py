"""
Per-IP-version option resolution.

Option mappings (target options, explicit match options) may tag a key
with a `_v4` or `_v6` suffix. For a given IP version this module decides
which entries apply and under which name, so that every logical option
contributes at most one flag.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from .config import inactive_version
from .utils import to_text


@dataclass(frozen=True)
class OptionEntry:
    key: str
    version: Optional[str]
    value: Any

    @classmethod
    def parse(cls, key: str, value: Any) -> "OptionEntry":
        # Plain 3-character tail test: any key ending in _v4/_v6 is tagged.
        tail = key[-3:]
        if tail in ("_v4", "_v6"):
            return cls(key=key[:-3], version=tail[-1], value=value)
        return cls(key=key, version=None, value=value)


def resolve_versioned_options(
    options: Mapping[str, Any],
    ip_version: str,
) -> List[Tuple[str, Any]]:
    """
    Resolve per-version overrides in a flat option mapping.

    Keys are visited in sorted order. A key tagged for the other IP version
    is dropped, any key is dropped when `<key>_v<active>` is set, and a key
    tagged for the active version loses its suffix. Entries set to None
    count as unset.

    Returns:
        (key, value) pairs, at most one per logical option
    """

    active = ip_version
    inactive = inactive_version(ip_version)
    resolved: List[Tuple[str, Any]] = []

    for key in sorted(options):
        entry = OptionEntry.parse(key, options[key])
        if entry.value is None or entry.version == inactive:
            continue
        if options.get(f"{key}_v{active}") is not None:
            continue
        resolved.append((entry.key if entry.version == active else key, entry.value))

    return resolved


def merge_target_options(options: Mapping[str, Any], ip_version: str) -> str:
    """Render resolved target options as `--key "value" ` flags."""
    return "".join(
        f'--{key} "{to_text(value)}" '
        for key, value in resolve_versioned_options(options, ip_version)
    )
