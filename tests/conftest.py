"""Shared fixtures for iptgen tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

import pytest
import yaml


class RecordingRegistrar:
    """Registrar double that records every batch it receives."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Dict[str, Any]]]] = []

    def __call__(self, resource_type: str, resources: Dict[str, Dict[str, Any]]) -> None:
        self.calls.append((resource_type, dict(resources)))


@pytest.fixture
def registrar() -> RecordingRegistrar:
    return RecordingRegistrar()


@pytest.fixture
def web_args() -> Dict[str, Any]:
    """Keyword arguments of the single-pair `web` rule."""
    return {
        "name": "web",
        "cartesian_product": [("10.0.0.1", "10.0.0.2")],
        "implicit_matches": {},
        "explicit_matches": {},
        "ip_version": "4",
        "order": 100,
        "ensure": "present",
        "table": "filter",
        "command": "iptables",
        "chain": "INPUT",
        "target": "ACCEPT",
        "target_options": {},
        "rule": "",
    }


@pytest.fixture
def write_manifest(tmp_path: Path) -> Callable[[Dict[str, Any]], Path]:
    def _write(data: Dict[str, Any]) -> Path:
        path = tmp_path / "iptables.yml"
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write
