"""Default implicit and explicit match formatters."""

from __future__ import annotations

import pytest

from iptgen.matches import compose_explicit_matches, compose_implicit_matches


def test_empty_templates_render_nothing():
    assert compose_implicit_matches({}, False) == ""
    assert compose_explicit_matches({}, True) == ""


def test_implicit_fields_in_fixed_order_per_version():
    template = {
        "destination_port": 22,
        "source_v6": "fd00::1",
        "source_v4": "10.0.0.1",
        "protocol": "tcp",
    }
    assert compose_implicit_matches(template, False) == "-p tcp -s 10.0.0.1 --dport 22"
    assert compose_implicit_matches(template, True) == "-p tcp -s fd00::1 --dport 22"


def test_versioned_field_wins_over_generic():
    template = {"source": "192.0.2.1", "source_v4": "198.51.100.1"}
    assert compose_implicit_matches(template, False) == "-s 198.51.100.1"
    assert compose_implicit_matches(template, True) == "-s 192.0.2.1"


def test_negated_and_empty_values():
    template = {"incoming_interface": "!eth0", "outgoing_interface": "", "protocol": None}
    assert compose_implicit_matches(template, False) == "! -i eth0"


def test_unknown_implicit_field_rejected():
    with pytest.raises(ValueError, match="Unknown implicit match: state"):
        compose_implicit_matches({"state": "NEW"}, False)


def test_explicit_modules_sorted_with_options():
    template = {
        "tcp": {"syn": True, "dport": 22},
        "state": {"state": ["NEW", "ESTABLISHED"]},
    }
    assert compose_explicit_matches(template, False) == (
        "-m state --state NEW,ESTABLISHED -m tcp --dport 22 --syn"
    )


def test_explicit_module_selected_per_version():
    template = {
        "icmp_v4": {"icmp-type": "echo-request"},
        "icmp6_v6": {"icmpv6-type": "echo-request"},
    }
    assert compose_explicit_matches(template, False) == "-m icmp --icmp-type echo-request"
    assert compose_explicit_matches(template, True) == "-m icmp6 --icmpv6-type echo-request"


def test_explicit_module_without_options_and_dropped_flags():
    template = {"conntrack": None, "tcp": {"syn": False, "dport": "!80"}}
    assert compose_explicit_matches(template, False) == "-m conntrack -m tcp ! --dport 80"


def test_explicit_options_must_be_mapping():
    with pytest.raises(ValueError, match="must be a mapping"):
        compose_explicit_matches({"tcp": "dport 22"}, False)
