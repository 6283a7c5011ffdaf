"""
In-memory fragment registry.

This module receives batches of `concat::fragment` resources and
assembles them into table files:
- one fragment per rule line, keyed by its identifier
- fragments grouped by target file and ordered by (order, identifier)
- absent fragments excluded from the assembled text

This module does NOT:
- compose rule lines
- load manifests
- activate anything it writes
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from .config import RESOURCE_TYPE
from .utils import ensure_parent_dir

logger = logging.getLogger(__name__)

FRAGMENT_ATTRIBUTES = ("target", "content", "order", "ensure")


class FragmentRegistry:
    def __init__(self) -> None:
        self.fragments_by_id: Dict[str, Dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Registration API
    # ------------------------------------------------------------------

    def register(self, resource_type: str, resources: Dict[str, Dict[str, Any]]) -> None:
        """
        Register a batch of fragment resources.

        The whole batch is checked before any of it is stored, so a
        failing batch leaves the registry unchanged.

        Raises:
            RuntimeError: on an unsupported resource type, a fragment missing
                attributes, or an identifier re-declared with other attributes
        """

        if resource_type != RESOURCE_TYPE:
            raise RuntimeError(f"Unsupported resource type: {resource_type}")

        for identifier, attributes in resources.items():
            missing = [name for name in FRAGMENT_ATTRIBUTES if name not in attributes]
            if missing:
                raise RuntimeError(
                    f"Fragment '{identifier}' missing attribute(s): {', '.join(missing)}"
                )

            existing = self.fragments_by_id.get(identifier)
            if existing is not None and existing != dict(attributes):
                raise RuntimeError(f"Duplicate declaration: {resource_type}[{identifier}]")

        for identifier, attributes in resources.items():
            self.fragments_by_id[identifier] = dict(attributes)

        logger.debug("Registered %d fragment(s), %d total", len(resources), len(self))

    def __len__(self) -> int:
        return len(self.fragments_by_id)

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def targets(self) -> List[str]:
        """Return every target file that has at least one fragment."""
        return sorted({fragment["target"] for fragment in self.fragments_by_id.values()})

    def fragments(self, target: str) -> List[Dict[str, Any]]:
        """
        Return the present fragments of a target, in assembly order.
        """

        selected = [
            dict(fragment, identifier=identifier)
            for identifier, fragment in self.fragments_by_id.items()
            if fragment["target"] == target and fragment["ensure"] != "absent"
        ]
        return sorted(selected, key=lambda item: (item["order"], item["identifier"]))

    def render(self, target: str) -> str:
        """Concatenate the content of a target's fragments."""
        return "".join(fragment["content"] for fragment in self.fragments(target))

    def write(self, output_dir: str | Path, dry_run: bool = False) -> List[Path]:
        """
        Write every assembled target into output_dir, named after the target.

        Returns:
            List[Path]: the files written (or that would be written)
        """

        output_dir = Path(output_dir)
        written: List[Path] = []

        for target in self.targets():
            path = output_dir / Path(target).name
            if not dry_run:
                ensure_parent_dir(path)
                path.write_text(self.render(target), encoding="utf-8")
                logger.info("Wrote %s", path)
            written.append(path)

        return written
