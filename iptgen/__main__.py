"""
Main entry point for running iptgen as a module.

Usage:
    python -m iptgen <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
