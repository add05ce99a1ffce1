"""CLI commands for dotctl.

This package contains all subcommand implementations.
"""

from dotctl.cli.commands import config, gate, install, reinstall, status, uninstall, update, usage

__all__ = ["config", "gate", "install", "reinstall", "status", "uninstall", "update", "usage"]
