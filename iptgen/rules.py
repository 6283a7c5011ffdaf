"""
Cartesian rule generation.

Given a rule specification and the cartesian product of its
(source, destination) pairs, this module computes:
- one iptables rule line per pair
- a stable, content-derived identifier for each line
- the fragment resources describing where each line belongs

Rules DO NOT apply anything. Match formatting and resource registration
are injected collaborators; this module only composes text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from .config import (
    IDENTIFIER_ORDER_TOKEN,
    IDENTIFIER_PREFIX,
    IP_VERSIONS,
    RESOURCE_TYPE,
    TABLES_DIR,
)
from .matches import compose_explicit_matches, compose_implicit_matches
from .options import merge_target_options
from .utils import collapse_whitespace, content_hash

logger = logging.getLogger(__name__)

ComposeMatches = Callable[[Mapping[str, Any], bool], str]
Register = Callable[[str, Dict[str, Dict[str, Any]]], None]

REQUIRED_PARAMETERS: Tuple[str, ...] = (
    "cartesian_product",
    "implicit_matches",
    "ip_version",
    "order",
    "ensure",
    "table",
)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class InvalidParameterError(ValueError):
    """A rule parameter is present but unusable."""


class MissingParameterError(InvalidParameterError):
    """A required rule parameter was not supplied."""

    def __init__(self, parameter: str):
        super().__init__(f"Must specify a {parameter}")
        self.parameter = parameter


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


class AddressPair(NamedTuple):
    """A (source, destination) pair; an empty string matches any address."""

    source: str
    destination: str


@dataclass(frozen=True)
class RuleSpec:
    name: str
    cartesian_product: Optional[Sequence[Tuple[str, str]]]
    implicit_matches: Optional[Mapping[str, Any]]
    explicit_matches: Optional[Mapping[str, Any]] = None
    ip_version: Optional[str] = None
    order: Optional[int] = None
    ensure: Optional[str] = None
    table: Optional[str] = None
    command: str = ""
    chain: str = ""
    target: str = ""
    target_options: Mapping[str, Any] = field(default_factory=dict)
    rule: str = ""

    def validate(self) -> None:
        """
        Check required parameters before any rule is generated.

        Raises:
            MissingParameterError: if a required parameter is None
            InvalidParameterError: if ip_version is not 4 or 6
        """

        for parameter in REQUIRED_PARAMETERS:
            if getattr(self, parameter) is None:
                raise MissingParameterError(parameter)

        if str(self.ip_version) not in IP_VERSIONS:
            raise InvalidParameterError(
                f"Unsupported ip_version: {self.ip_version!r} (expected 4 or 6)"
            )

    @property
    def version(self) -> str:
        return str(self.ip_version)

    @property
    def pairs(self) -> List[AddressPair]:
        return [AddressPair(*pair) for pair in self.cartesian_product or ()]

    @property
    def table_path(self) -> str:
        return f"{TABLES_DIR}/v{self.version}_{self.table}"


@dataclass(frozen=True)
class GeneratedRule:
    identifier: str
    target: str
    content: str
    order: int
    ensure: str

    def as_resource(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "content": self.content,
            "order": self.order,
            "ensure": self.ensure,
        }


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


def instantiate_matches(
    template: Mapping[str, Any],
    pair: AddressPair,
    ip_version: str,
) -> Dict[str, Any]:
    """Return a private copy of the template with the pair's addresses set."""
    matches = dict(template)
    if pair.source != "":
        matches[f"source_v{ip_version}"] = pair.source
    if pair.destination != "":
        matches[f"destination_v{ip_version}"] = pair.destination
    return matches


def compose_rule_line(
    command: str,
    chain: str,
    target: str,
    implicit_matches: str = "",
    explicit_matches: str = "",
    target_options: str = "",
    rule: str = "",
) -> str:
    """
    Assemble one newline-terminated rule line.

    A raw rule replaces the match clauses and target options and is used
    verbatim; otherwise whitespace in the joined line is normalized.
    """

    if rule:
        return f"{command} {chain} {rule} -j {target}\n"

    line = " ".join(
        [command, chain, implicit_matches, explicit_matches, "-j", target, target_options]
    )
    return collapse_whitespace(line) + "\n"


def rule_identifier(name: str, ip_version: str, line: str) -> str:
    """Return `iptables_rule_v<version>_<name>-20-<sha1 of line>`."""
    return (
        f"{IDENTIFIER_PREFIX}_v{ip_version}_{name}"
        f"-{IDENTIFIER_ORDER_TOKEN}-{content_hash(line)}"
    )


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class RuleGenerator:
    def __init__(
        self,
        compose_implicit: ComposeMatches = compose_implicit_matches,
        compose_explicit: ComposeMatches = compose_explicit_matches,
        register: Optional[Register] = None,
    ):
        self.compose_implicit = compose_implicit
        self.compose_explicit = compose_explicit
        self.register = register

    def generate(self, spec: RuleSpec) -> Dict[str, GeneratedRule]:
        """
        Expand a rule specification over its cartesian product.

        Raises:
            MissingParameterError / InvalidParameterError on bad input,
            before anything is composed. Formatter errors propagate.

        Returns:
            mapping of identifier -> GeneratedRule, in pair order
        """

        spec.validate()
        version = spec.version
        is_ipv6 = version == "6"
        rules: Dict[str, GeneratedRule] = {}

        for pair in spec.pairs:
            matches = instantiate_matches(spec.implicit_matches, pair, version)
            implicit_str = self.compose_implicit(matches, is_ipv6)
            explicit_str = self.compose_explicit(spec.explicit_matches or {}, is_ipv6)
            options_str = merge_target_options(spec.target_options or {}, version)

            line = compose_rule_line(
                spec.command,
                spec.chain,
                spec.target,
                implicit_matches=implicit_str,
                explicit_matches=explicit_str,
                target_options=options_str,
                rule=spec.rule or "",
            )
            identifier = rule_identifier(spec.name, version, line)
            logger.debug("%s: %s -> %s", spec.name, tuple(pair), identifier)

            rules[identifier] = GeneratedRule(
                identifier=identifier,
                target=spec.table_path,
                content=line,
                order=spec.order,
                ensure=spec.ensure,
            )

        return rules

    def emit(self, spec: RuleSpec) -> Dict[str, GeneratedRule]:
        """
        Generate every rule for a specification and register them in one batch.

        Raises:
            RuntimeError: if no registrar was configured
        """

        if self.register is None:
            raise RuntimeError("No resource registrar configured")

        rules = self.generate(spec)
        resources = {identifier: rule.as_resource() for identifier, rule in rules.items()}
        logger.info(
            "Registering %d %s resource(s) for %s (v%s)",
            len(resources), RESOURCE_TYPE, spec.name, spec.version,
        )
        self.register(RESOURCE_TYPE, resources)
        return rules


def add_cartesian_rules(
    name: str,
    cartesian_product: Optional[Sequence[Tuple[str, str]]],
    implicit_matches: Optional[Mapping[str, Any]],
    explicit_matches: Optional[Mapping[str, Any]],
    ip_version: Optional[str],
    order: Optional[int],
    ensure: Optional[str],
    table: Optional[str],
    command: str,
    chain: str,
    target: str,
    target_options: Optional[Mapping[str, Any]],
    rule: str = "",
    *,
    register: Register,
    compose_implicit: ComposeMatches = compose_implicit_matches,
    compose_explicit: ComposeMatches = compose_explicit_matches,
) -> Dict[str, GeneratedRule]:
    """Positional entry point: build a RuleSpec and emit its rules."""
    spec = RuleSpec(
        name=name,
        cartesian_product=cartesian_product,
        implicit_matches=implicit_matches,
        explicit_matches=explicit_matches,
        ip_version=None if ip_version is None else str(ip_version),
        order=order,
        ensure=ensure,
        table=table,
        command=command,
        chain=chain,
        target=target,
        target_options=target_options or {},
        rule=rule or "",
    )
    generator = RuleGenerator(
        compose_implicit=compose_implicit,
        compose_explicit=compose_explicit,
        register=register,
    )
    return generator.emit(spec)
