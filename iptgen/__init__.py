"""
iptgen

Generates iptables rule fragments from a cartesian product of
source/destination addresses, naming every line after a hash of its
content so configuration runs stay idempotent.
"""

__version__ = "0.1.0"

from .manifest import Manifest, RuleConfig
from .registry import FragmentRegistry
from .rules import (
    AddressPair,
    GeneratedRule,
    InvalidParameterError,
    MissingParameterError,
    RuleGenerator,
    RuleSpec,
    add_cartesian_rules,
)

__all__ = [
    "Manifest",
    "RuleConfig",
    "FragmentRegistry",
    "AddressPair",
    "GeneratedRule",
    "InvalidParameterError",
    "MissingParameterError",
    "RuleGenerator",
    "RuleSpec",
    "add_cartesian_rules",
]
