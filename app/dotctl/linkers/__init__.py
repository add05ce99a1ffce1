"""Symlink linker adapters.

Linkers wrap the external tool that creates and removes package
symlinks. dotctl never manipulates package links itself.
"""

from dotctl.linkers.base import Linker, LinkerError, LinkerUnavailableError
from dotctl.linkers.stow import StowLinker

__all__ = ["Linker", "LinkerError", "LinkerUnavailableError", "StowLinker"]
