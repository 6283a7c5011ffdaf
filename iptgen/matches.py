"""
Default match clause formatters.

Implicit matches are the built-in iptables selectors (protocol, addresses,
interfaces, ports). Explicit matches are `-m <module>` extensions with
their own options. Both formatters take a template mapping and an IPv6
flag and return the clause text, or an empty string for an empty template.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Tuple

from .options import OptionEntry, resolve_versioned_options
from .utils import to_text

# Field name -> flag, in the order clauses appear in a rule.
IMPLICIT_MATCH_FLAGS: Tuple[Tuple[str, str], ...] = (
    ("protocol", "-p"),
    ("source", "-s"),
    ("destination", "-d"),
    ("incoming_interface", "-i"),
    ("outgoing_interface", "-o"),
    ("source_port", "--sport"),
    ("destination_port", "--dport"),
)

_KNOWN_FIELDS = {name for name, _ in IMPLICIT_MATCH_FLAGS}


def _clause(flag: str, value: Any) -> str:
    text = to_text(value).strip()
    if text.startswith("!"):
        return f"! {flag} {text[1:].strip()}"
    return f"{flag} {text}"


def compose_implicit_matches(template: Mapping[str, Any], is_ipv6: bool) -> str:
    """
    Render implicit matches such as `-p tcp -s 10.0.0.1`.

    A `<field>_v<active>` entry wins over the generic `<field>`; entries for
    the other IP version are ignored.

    Raises:
        ValueError: if the template names an unknown field
    """

    for key in template:
        if OptionEntry.parse(key, None).key not in _KNOWN_FIELDS:
            raise ValueError(f"Unknown implicit match: {key}")

    version = "6" if is_ipv6 else "4"
    resolved = dict(resolve_versioned_options(template, version))

    clauses: List[str] = []
    for name, flag in IMPLICIT_MATCH_FLAGS:
        value = resolved.get(name)
        if value is None or to_text(value).strip() == "":
            continue
        clauses.append(_clause(flag, value))

    return " ".join(clauses)


def _explicit_option(name: str, value: Any) -> str:
    if value is True:
        return f"--{name}"
    if isinstance(value, (list, tuple)):
        value = ",".join(to_text(item) for item in value)
    return _clause(f"--{name}", value)


def compose_explicit_matches(template: Mapping[str, Any], is_ipv6: bool) -> str:
    """
    Render explicit matches such as `-m state --state NEW,ESTABLISHED`.

    Modules are emitted in sorted order. Module names and option names both
    follow the `_v4`/`_v6` override rules of target options. A module set
    to None is loaded without options. An option set to True is a bare
    flag; False or None drops it.
    """

    version = "6" if is_ipv6 else "4"
    modules = {name: {} if options is None else options for name, options in template.items()}
    clauses: List[str] = []

    for module, options in resolve_versioned_options(modules, version):
        clauses.append(f"-m {module}")
        if not options:
            continue
        if not isinstance(options, Mapping):
            raise ValueError(f"Options for match module '{module}' must be a mapping")
        for name, value in resolve_versioned_options(options, version):
            if value is False:
                continue
            clauses.append(_explicit_option(name, value))

    return " ".join(clauses)
