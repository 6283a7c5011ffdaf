"""
Manifest loading, validation, and normalization.

This module answers one question:
    "Which rules should be generated, and over which addresses?"

Responsibilities:
- Load the manifest YAML file
- Validate structure and version
- Merge defaults into every rule
- Build one RuleSpec per rule and IP version, including the cartesian
  product of its source and destination addresses

This module does NOT:
- Format matches
- Compose rule lines or identifiers
- Write table files
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import (
    DEFAULT_CHAIN,
    DEFAULT_COMMAND,
    DEFAULT_ENSURE,
    DEFAULT_ORDER,
    DEFAULT_TABLE,
    DEFAULT_TARGET,
    IP_VERSIONS,
    SUPPORTED_MANIFEST_VERSION,
)
from .rules import AddressPair, RuleSpec
from .utils import address_family


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


RULE_KEYS = {
    "name",
    "ip_version",
    "source",
    "source_v4",
    "source_v6",
    "destination",
    "destination_v4",
    "destination_v6",
    "implicit_matches",
    "explicit_matches",
    "order",
    "ensure",
    "table",
    "command",
    "chain",
    "target",
    "target_options",
    "rule",
}

# Keys that identify a single rule and cannot be shared through defaults.
PER_RULE_KEYS = {"name", "rule"}


@dataclass
class RuleConfig:
    name: str
    ip_versions: List[str] = field(default_factory=lambda: list(IP_VERSIONS))
    addresses: Dict[str, List[str]] = field(default_factory=dict)
    implicit_matches: Dict[str, Any] = field(default_factory=dict)
    explicit_matches: Dict[str, Any] = field(default_factory=dict)
    order: int = DEFAULT_ORDER
    ensure: str = DEFAULT_ENSURE
    table: str = DEFAULT_TABLE
    command: str = DEFAULT_COMMAND
    chain: str = DEFAULT_CHAIN
    target: str = DEFAULT_TARGET
    target_options: Dict[str, Any] = field(default_factory=dict)
    rule: str = ""

    def addresses_for(self, direction: str, ip_version: str) -> List[str]:
        """
        Return the addresses of one direction for one IP version.

        A `<direction>_v<version>` list wins over the generic list; generic
        entries that parse as the other address family are dropped.
        No addresses given means "any", represented as [""]. A generic list
        with nothing left for this version yields [], so the version gets
        no rules instead of an unrestricted one.
        """

        versioned = self.addresses.get(f"{direction}_v{ip_version}")
        if versioned:
            return list(versioned)

        generic = self.addresses.get(direction, [])
        if not generic:
            return [""]

        return [
            address
            for address in generic
            if address_family(address) in (None, ip_version)
        ]

    def cartesian_product(self, ip_version: str) -> List[AddressPair]:
        return [
            AddressPair(source, destination)
            for source, destination in itertools.product(
                self.addresses_for("source", ip_version),
                self.addresses_for("destination", ip_version),
            )
        ]

    def to_specs(self) -> List[RuleSpec]:
        """Return one RuleSpec per configured IP version that has address pairs."""
        products = {version: self.cartesian_product(version) for version in self.ip_versions}
        return [
            RuleSpec(
                name=self.name,
                cartesian_product=products[version],
                implicit_matches=self.implicit_matches,
                explicit_matches=self.explicit_matches,
                ip_version=version,
                order=self.order,
                ensure=self.ensure,
                table=self.table,
                command=self.command,
                chain=self.chain,
                target=self.target,
                target_options=self.target_options,
                rule=self.rule,
            )
            for version in self.ip_versions
            if products[version]
        ]


@dataclass
class Manifest:
    version: int
    rules: List[RuleConfig]

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "Manifest":
        """
        Load and validate a manifest file.

        Args:
            path: Path to the manifest YAML file

        Raises:
            RuntimeError: if the manifest is invalid

        Returns:
            Manifest
        """

        path = Path(path)
        if not path.exists():
            raise RuntimeError(f"Manifest file not found: {path}")

        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}

        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        if not isinstance(data, dict):
            raise RuntimeError("Manifest must be a mapping")

        version = data.get("version")
        if version != SUPPORTED_MANIFEST_VERSION:
            raise RuntimeError(
                f"Unsupported manifest version: {version}"
            )

        defaults = data.get("defaults") or {}
        if not isinstance(defaults, dict):
            raise RuntimeError("'defaults' must be a mapping")
        cls._check_keys("defaults", defaults)
        per_rule = sorted(set(defaults) & PER_RULE_KEYS)
        if per_rule:
            raise RuntimeError(f"Key(s) not allowed in defaults: {', '.join(per_rule)}")

        rules_raw = data.get("rules") or []
        if not isinstance(rules_raw, list):
            raise RuntimeError("'rules' must be a list")

        rules: List[RuleConfig] = []
        for idx, rule in enumerate(rules_raw):
            if not isinstance(rule, dict):
                raise RuntimeError(f"Rule #{idx} must be a mapping")
            merged = dict(defaults)
            merged.update(rule)
            parsed = cls._parse_rule(merged, idx)
            if any(existing.name == parsed.name for existing in rules):
                raise RuntimeError(f"Duplicate rule name: {parsed.name}")
            rules.append(parsed)

        return cls(version=version, rules=rules)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_keys(where: str, data: Dict[str, Any]) -> None:
        unknown = sorted(set(data) - RULE_KEYS)
        if unknown:
            raise RuntimeError(f"Unknown key(s) in {where}: {', '.join(unknown)}")

    @classmethod
    def _parse_rule(cls, data: Dict[str, Any], idx: int) -> RuleConfig:
        if "name" not in data or not str(data["name"]).strip():
            raise RuntimeError(f"Rule #{idx} missing 'name'")
        name = str(data["name"]).strip()
        cls._check_keys(f"rule '{name}'", data)

        addresses: Dict[str, List[str]] = {}
        for key in ("source", "source_v4", "source_v6",
                    "destination", "destination_v4", "destination_v6"):
            if data.get(key) is not None:
                addresses[key] = cls._as_list(data[key])

        try:
            order = int(data.get("order", DEFAULT_ORDER))
        except (TypeError, ValueError):
            raise RuntimeError(f"Rule '{name}' has a non-integer order: {data.get('order')!r}")

        return RuleConfig(
            name=name,
            ip_versions=cls._parse_ip_versions(name, data.get("ip_version")),
            addresses=addresses,
            implicit_matches=cls._as_mapping(name, "implicit_matches", data),
            explicit_matches=cls._as_mapping(name, "explicit_matches", data),
            order=order,
            ensure=str(data.get("ensure", DEFAULT_ENSURE)),
            table=str(data.get("table", DEFAULT_TABLE)),
            command=str(data.get("command", DEFAULT_COMMAND)),
            chain=str(data.get("chain", DEFAULT_CHAIN)),
            target=str(data.get("target", DEFAULT_TARGET)),
            target_options=cls._as_mapping(name, "target_options", data),
            rule=str(data.get("rule") or ""),
        )

    @staticmethod
    def _parse_ip_versions(name: str, raw: Any) -> List[str]:
        if raw is None:
            return list(IP_VERSIONS)
        values = raw if isinstance(raw, list) else [raw]
        versions: List[str] = []
        for value in values:
            version = str(value)
            if version not in IP_VERSIONS:
                raise RuntimeError(f"Rule '{name}' has an unsupported ip_version: {value!r}")
            if version not in versions:
                versions.append(version)
        return versions

    @staticmethod
    def _as_list(value: Any) -> List[str]:
        if isinstance(value, list):
            return [str(item) for item in value]
        return [str(value)]

    @staticmethod
    def _as_mapping(name: str, key: str, data: Dict[str, Any]) -> Dict[str, Any]:
        value = data.get(key) or {}
        if not isinstance(value, dict):
            raise RuntimeError(f"Rule '{name}': '{key}' must be a mapping")
        return dict(value)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def get_rule(self, name: str) -> RuleConfig:
        """
        Return a rule by name.
        """

        for rule in self.rules:
            if rule.name == name:
                return rule
        raise RuntimeError(f"Rule not found: {name}")

    def specs(self, names: Optional[List[str]] = None) -> List[RuleSpec]:
        """Return the RuleSpecs of all rules, or of the named ones."""
        rules = [self.get_rule(name) for name in names] if names else self.rules
        return [spec for rule in rules for spec in rule.to_specs()]
