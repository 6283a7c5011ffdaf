"""
Command-line interface for the iptgen tool.

This module orchestrates all other components and provides
the user-facing CLI commands:
- generate
- apply
- explain
- rules
- help
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import (
    RESOURCE_TYPE,
    TOOL_VERSION,
    get_manifest_path,
    get_output_dir,
)
from .manifest import Manifest
from .options import resolve_versioned_options
from .registry import FragmentRegistry
from .rules import RuleGenerator


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    """Print success message."""
    print(colored(f"✓ {msg}", Colors.GREEN))


def print_warning(msg: str) -> None:
    """Print warning message."""
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW))


def print_info(msg: str) -> None:
    """Print info message."""
    print(colored(f"ℹ {msg}", Colors.CYAN))


def configure_logging(verbose: bool) -> None:
    """Send library log records to stderr; debug records only when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(
        self,
        manifest_path: str,
        verbose: bool,
        quiet: bool,
        dry_run: bool,
    ):
        self.manifest_path = Path(manifest_path)
        self.verbose = verbose
        self.quiet = quiet
        self.dry_run = dry_run

        # Lazy-loaded
        self._manifest: Optional[Manifest] = None

    @property
    def manifest(self) -> Manifest:
        """Load manifest lazily."""
        if self._manifest is None:
            try:
                self._manifest = Manifest.load(self.manifest_path)
            except Exception as e:
                print_error(f"Failed to load manifest: {e}")
                sys.exit(1)
        return self._manifest

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)

    def log_verbose(self, msg: str) -> None:
        """Log message if verbose."""
        if self.verbose:
            print(colored(f"  → {msg}", Colors.BLUE))


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def cmd_generate(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Print generated rule lines, or the fragment resources as JSON.
    """
    generator = RuleGenerator()
    resources: Dict[str, Dict[str, Any]] = {}

    for spec in ctx.manifest.specs(args.names):
        ctx.log_verbose(f"Generating {spec.name} (v{spec.version}, {len(spec.pairs)} pair(s))")
        for identifier, rule in generator.generate(spec).items():
            resources[identifier] = rule.as_resource()
            if not args.json:
                sys.stdout.write(rule.content)

    if args.json:
        print(json.dumps({RESOURCE_TYPE: resources}, indent=2, sort_keys=True))

    return 0


def cmd_apply(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Register every rule and write the assembled table files.
    """
    registry = FragmentRegistry()
    generator = RuleGenerator(register=registry.register)
    output_dir = Path(args.output_dir or get_output_dir())

    for spec in ctx.manifest.specs():
        rules = generator.emit(spec)
        ctx.log_verbose(f"{spec.name} (v{spec.version}): {len(rules)} fragment(s)")

    if ctx.dry_run:
        ctx.log(colored("[DRY RUN] Preview of changes:", Colors.YELLOW))

    paths = registry.write(output_dir, dry_run=ctx.dry_run)
    for path in paths:
        ctx.log(f"  {colored('→', Colors.CYAN)} {path}")

    ctx.log("")
    if ctx.dry_run:
        ctx.log(colored("[DRY RUN] Preview complete - no files were written", Colors.YELLOW))
        ctx.log(f"Would write {len(paths)} file(s) from {len(registry)} fragment(s)")
        return 0

    if not paths:
        print_warning("No rules generated")
        return 0

    print_success(f"Wrote {len(paths)} file(s) from {len(registry)} fragment(s)")
    return 0


def cmd_explain(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Explain how a rule expands: address pairs, resolved options, identifiers.
    """
    rule = ctx.manifest.get_rule(args.name)
    generator = RuleGenerator()

    ctx.log(colored(f"\n{'='*60}", Colors.CYAN))
    ctx.log(colored(f"Rule Expansion: {rule.name}", Colors.BOLD))
    ctx.log(colored(f"{'='*60}", Colors.CYAN))

    for spec in rule.to_specs():
        ctx.log(f"\n{colored(f'IPv{spec.version}', Colors.BOLD)} → {spec.table_path}")
        ctx.log(f"  Pairs:      {len(spec.pairs)}")

        options = resolve_versioned_options(spec.target_options, spec.version)
        if options:
            ctx.log("  Options:")
            for key, value in options:
                ctx.log(f"    --{key} {value}")
        else:
            ctx.log("  Options:    none")

        if spec.rule:
            print_info("raw rule set; matches and target options are ignored")

        seen = set()
        for pair in spec.pairs:
            single = replace(spec, cartesian_product=[pair])
            for identifier, generated_rule in generator.generate(single).items():
                ctx.log(f"\n  {colored('→', Colors.CYAN)} {pair.source or 'any'} → {pair.destination or 'any'}")
                ctx.log(f"    Id:   {identifier}")
                ctx.log(f"    Line: {generated_rule.content.rstrip()}")
                if identifier in seen:
                    print_warning("duplicate of an earlier pair; collapses to one fragment")
                seen.add(identifier)

    ctx.log(colored(f"\n{'='*60}\n", Colors.CYAN))
    return 0


def cmd_rules(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    List the rules configured in the manifest.
    """
    manifest = ctx.manifest

    ctx.log(colored(f"Rules in {ctx.manifest_path}", Colors.BOLD))
    ctx.log("")

    for rule in manifest.rules:
        ctx.log(colored(f"{rule.name}:", Colors.CYAN))
        ctx.log(f"  IP versions: {', '.join(rule.ip_versions)}")
        ctx.log(f"  Table/chain: {rule.table}/{rule.chain}")
        ctx.log(f"  Target:      {rule.target}")
        ctx.log(f"  Order:       {rule.order}")
        ctx.log(f"  Ensure:      {rule.ensure}")
        if rule.rule:
            ctx.log(f"  Raw rule:    {rule.rule}")
        for version in rule.ip_versions:
            ctx.log(f"  Pairs (v{version}):  {len(rule.cartesian_product(version))}")
        ctx.log("")

    return 0


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    help_text = f"""
{colored('iptgen', Colors.BOLD)} — generate iptables rule fragments from a manifest

{colored('USAGE:', Colors.CYAN)}
  iptgen <command> [options]

{colored('DESCRIPTION:', Colors.CYAN)}
  iptgen expands each rule of the manifest over the cartesian product of
  its source and destination addresses, and names every resulting line
  after a hash of its content so re-runs are idempotent.

  Nothing is activated. Lines are printed or written to table files.

{colored('COMMANDS:', Colors.CYAN)}
  generate    Print generated rule lines (--json for fragment resources)
  apply       Write assembled table files
  explain     Show how one rule expands
  rules       List configured rules
  help        Show this help message

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -m, --manifest PATH       Path to manifest file
                            (default: $IPTGEN_MANIFEST or iptables.yml)
  -n, --dry-run             Show what would happen without writing files
  -v, --verbose             Enable verbose output
  -q, --quiet               Suppress non-error output
  -h, --help                Show this help message and exit

{colored('ENVIRONMENT:', Colors.CYAN)}
  IPTGEN_MANIFEST           Default manifest path
  IPTGEN_OUTPUT_DIR         Default output directory for apply

{colored('EXAMPLES:', Colors.CYAN)}
  iptgen generate
  iptgen generate --json ssh
  iptgen apply -o /tmp/tables --dry-run
  iptgen explain ssh

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="iptgen",
        description="Generate iptables rule fragments",
        add_help=False,
    )

    # Global options
    parser.add_argument(
        "-m", "--manifest",
        default=None,
        help="Path to manifest file",
    )
    parser.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="Show what would happen without writing files",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show help message",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    generate_parser = subparsers.add_parser("generate", help="Print generated rule lines")
    generate_parser.add_argument("names", nargs="*", help="Only generate these rules")
    generate_parser.add_argument("--json", action="store_true", help="Output fragment resources as JSON")

    apply_parser = subparsers.add_parser("apply", help="Write assembled table files")
    apply_parser.add_argument("-o", "--output-dir", help="Directory to write table files to")

    explain_parser = subparsers.add_parser("explain", help="Explain rule expansion")
    explain_parser.add_argument("name", help="Rule name to explain")

    subparsers.add_parser("rules", help="List configured rules")

    subparsers.add_parser("help", help="Show help message")

    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command:
        return cmd_help(None, args)

    configure_logging(args.verbose)

    ctx = CLIContext(
        manifest_path=args.manifest or get_manifest_path(),
        verbose=args.verbose,
        quiet=args.quiet,
        dry_run=args.dry_run,
    )

    commands = {
        "generate": cmd_generate,
        "apply": cmd_apply,
        "explain": cmd_explain,
        "rules": cmd_rules,
        "help": cmd_help,
    }

    cmd_func = commands.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return 130
    except Exception as e:
        print_error(str(e))
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
