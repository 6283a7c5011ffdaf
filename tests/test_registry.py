"""Fragment registry assembly."""

from __future__ import annotations

import pytest

from iptgen.registry import FragmentRegistry

V4_FILTER = "/var/lib/puppet/iptables/tables/v4_filter"
V6_FILTER = "/var/lib/puppet/iptables/tables/v6_filter"


def fragment(content, order=100, ensure="present", target=V4_FILTER):
    return {"target": target, "content": content, "order": order, "ensure": ensure}


def test_rejects_other_resource_types():
    registry = FragmentRegistry()
    with pytest.raises(RuntimeError, match="Unsupported resource type: file"):
        registry.register("file", {"a": fragment("x\n")})


def test_rejects_incomplete_fragments():
    registry = FragmentRegistry()
    with pytest.raises(RuntimeError, match="missing attribute"):
        registry.register("concat::fragment", {"a": {"target": V4_FILTER, "content": "x\n"}})
    assert len(registry) == 0


def test_identical_redeclaration_is_idempotent():
    registry = FragmentRegistry()
    registry.register("concat::fragment", {"a": fragment("x\n")})
    registry.register("concat::fragment", {"a": fragment("x\n")})
    assert len(registry) == 1


def test_conflicting_redeclaration_rejects_whole_batch():
    registry = FragmentRegistry()
    registry.register("concat::fragment", {"a": fragment("x\n")})

    with pytest.raises(RuntimeError, match=r"Duplicate declaration: concat::fragment\[a\]"):
        registry.register(
            "concat::fragment",
            {"b": fragment("y\n"), "a": fragment("x\n", ensure="absent")},
        )

    assert len(registry) == 1
    assert registry.render(V4_FILTER) == "x\n"


def test_fragments_ordered_and_absent_excluded():
    registry = FragmentRegistry()
    registry.register(
        "concat::fragment",
        {
            "a": fragment("late\n", order=200),
            "z": fragment("early\n", order=100),
            "m": fragment("gone\n", order=50, ensure="absent"),
            "b": fragment("v6\n", target=V6_FILTER),
        },
    )

    assert registry.targets() == [V4_FILTER, V6_FILTER]
    assert [item["identifier"] for item in registry.fragments(V4_FILTER)] == ["z", "a"]
    assert registry.render(V4_FILTER) == "early\nlate\n"


def test_write_assembles_files(tmp_path):
    registry = FragmentRegistry()
    registry.register(
        "concat::fragment",
        {"a": fragment("-A INPUT -j ACCEPT\n"), "b": fragment("-A INPUT -j DROP\n", target=V6_FILTER)},
    )

    paths = registry.write(tmp_path / "out")

    assert paths == [tmp_path / "out" / "v4_filter", tmp_path / "out" / "v6_filter"]
    assert (tmp_path / "out" / "v4_filter").read_text(encoding="utf-8") == "-A INPUT -j ACCEPT\n"


def test_write_dry_run_touches_nothing(tmp_path):
    registry = FragmentRegistry()
    registry.register("concat::fragment", {"a": fragment("x\n")})

    paths = registry.write(tmp_path / "out", dry_run=True)

    assert paths == [tmp_path / "out" / "v4_filter"]
    assert not (tmp_path / "out").exists()
