"""Utility modules for dotctl.

This module exports commonly used utility functions.
"""

from dotctl.utils.files import ensure_private_dir, write_private_file
from dotctl.utils.formatting import (
    console,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from dotctl.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "ensure_private_dir",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
    "write_private_file",
]
