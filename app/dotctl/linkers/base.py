"""Abstract base class for symlink linkers.

This module defines the Linker interface the reconciliation engine
drives. A linker reports, in simulation mode, what it would change and
performs the change when applied.
"""

from abc import ABC, abstractmethod
from pathlib import Path

from dotctl.utils.shell import CommandResult


class LinkerError(Exception):
    """Base exception for linker errors."""


class LinkerUnavailableError(LinkerError):
    """Raised when the linker executable is not installed."""


class Linker(ABC):
    """Abstract base class for symlink linkers.

    Attributes:
        dotfiles_dir: Directory containing the package directories.

    Example:
        >>> linker = StowLinker(Path("~/.dotfiles").expanduser())
        >>> if linker.is_available():
        ...     result = linker.simulate("git", "/home/u")
        ...     print(result.stderr)
    """

    def __init__(self, dotfiles_dir: Path) -> None:
        """Initialize the linker.

        Args:
            dotfiles_dir: Directory containing the package directories.
        """
        self._dotfiles_dir = dotfiles_dir

    @property
    def dotfiles_dir(self) -> Path:
        return self._dotfiles_dir

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable linker name used in messages."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the linker executable is available.

        Returns:
            True if the linker can be used, False otherwise.
        """

    @abstractmethod
    def simulate(self, package: str, target: str) -> CommandResult:
        """Report what linking ``package`` into ``target`` would change.

        Args:
            package: Package directory name.
            target: Target directory.

        Returns:
            CommandResult of the dry-run invocation.
        """

    @abstractmethod
    def apply(self, package: str, target: str) -> CommandResult:
        """Link ``package`` into ``target``, replacing stale links.

        Args:
            package: Package directory name.
            target: Target directory.

        Returns:
            CommandResult of the invocation.
        """

    @abstractmethod
    def remove(self, package: str, target: str) -> CommandResult:
        """Remove the links of ``package`` from ``target``.

        Args:
            package: Package directory name.
            target: Target directory.

        Returns:
            CommandResult of the invocation.
        """

    def require_available(self) -> None:
        """Raise if the linker cannot be used.

        Raises:
            LinkerUnavailableError: If the executable is missing.
        """
        if not self.is_available():
            msg = f"{self.name} is not installed"
            raise LinkerUnavailableError(msg)
