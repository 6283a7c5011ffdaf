"""Command-line interface."""

from __future__ import annotations

import json

import pytest

from iptgen.cli import main

SSH_LINE = "-A INPUT -p tcp -s 10.0.0.1 -m tcp --dport 22 -j ACCEPT\n"


@pytest.fixture
def manifest_path(write_manifest):
    return write_manifest(
        {
            "version": 1,
            "rules": [
                {
                    "name": "ssh",
                    "ip_version": 4,
                    "source": ["10.0.0.1"],
                    "implicit_matches": {"protocol": "tcp"},
                    "explicit_matches": {"tcp": {"dport": 22}},
                }
            ],
        }
    )


def test_generate_prints_lines(manifest_path, capsys):
    assert main(["-m", str(manifest_path), "generate"]) == 0
    assert capsys.readouterr().out == SSH_LINE


def test_generate_json(manifest_path, capsys):
    assert main(["-m", str(manifest_path), "generate", "--json", "ssh"]) == 0

    resources = json.loads(capsys.readouterr().out)["concat::fragment"]
    [(identifier, attributes)] = resources.items()
    assert identifier.startswith("iptables_rule_v4_ssh-20-")
    assert attributes == {
        "target": "/var/lib/puppet/iptables/tables/v4_filter",
        "content": SSH_LINE,
        "order": 100,
        "ensure": "present",
    }


def test_generate_unknown_rule(manifest_path, capsys):
    assert main(["-m", str(manifest_path), "generate", "web"]) == 1
    assert "Rule not found: web" in capsys.readouterr().err


def test_apply_writes_tables(manifest_path, tmp_path):
    out = tmp_path / "out"
    assert main(["-m", str(manifest_path), "-q", "apply", "-o", str(out)]) == 0
    assert (out / "v4_filter").read_text(encoding="utf-8") == SSH_LINE


def test_apply_uses_output_dir_from_environment(manifest_path, tmp_path, monkeypatch):
    out = tmp_path / "env-out"
    monkeypatch.setenv("IPTGEN_OUTPUT_DIR", str(out))
    assert main(["-m", str(manifest_path), "-q", "apply"]) == 0
    assert (out / "v4_filter").exists()


def test_apply_dry_run(manifest_path, tmp_path, capsys):
    out = tmp_path / "out"
    assert main(["-m", str(manifest_path), "-n", "apply", "-o", str(out)]) == 0
    assert not out.exists()
    assert "Would write 1 file(s) from 1 fragment(s)" in capsys.readouterr().out


def test_explain_shows_identifiers(manifest_path, capsys):
    assert main(["-m", str(manifest_path), "explain", "ssh"]) == 0
    out = capsys.readouterr().out
    assert "iptables_rule_v4_ssh-20-" in out
    assert SSH_LINE.rstrip() in out


def test_rules_lists_configuration(manifest_path, capsys):
    assert main(["-m", str(manifest_path), "rules"]) == 0
    out = capsys.readouterr().out
    assert "ssh:" in out
    assert "Pairs (v4):  1" in out


def test_missing_manifest_exits(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["-m", str(tmp_path / "nope.yml"), "rules"])
    assert excinfo.value.code == 1
    assert "Failed to load manifest" in capsys.readouterr().err


def test_no_command_shows_help(capsys):
    assert main([]) == 0
    assert "COMMANDS:" in capsys.readouterr().out
