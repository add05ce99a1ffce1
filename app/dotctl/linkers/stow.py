"""GNU Stow linker implementation.

Links packages with ``stow --restow``. Simulation uses ``--no`` together
with ``--verbose`` so stow reports each LINK/UNLINK/MKDIR it would
perform on stderr.
"""

import logging
import subprocess
from pathlib import Path

from dotctl.linkers.base import Linker
from dotctl.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)


class StowLinker(Linker):
    """Linker backed by GNU Stow.

    Attributes:
        command: Stow executable name or path.
        timeout: Timeout in seconds for each invocation.
    """

    def __init__(
        self,
        dotfiles_dir: Path,
        command: str = "stow",
        timeout: float = 60.0,
    ) -> None:
        super().__init__(dotfiles_dir)
        self._command = command
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "GNU Stow"

    def is_available(self) -> bool:
        """Check if stow is available."""
        return command_exists(self._command)

    def simulate(self, package: str, target: str) -> CommandResult:
        """Run a verbose restow in simulation mode."""
        return self._run(["--no", "--verbose", "--restow"], package, target)

    def apply(self, package: str, target: str) -> CommandResult:
        """Restow the package for real."""
        return self._run(["--restow"], package, target)

    def remove(self, package: str, target: str) -> CommandResult:
        """Delete the package's links."""
        return self._run(["--delete"], package, target)

    def _run(self, flags: list[str], package: str, target: str) -> CommandResult:
        """Invoke stow against the dotfiles directory.

        A timeout is reported as a failed CommandResult so that a single
        hung package never aborts a whole reconciliation run.

        Args:
            flags: Mode flags for stow.
            package: Package directory name.
            target: Target directory.

        Returns:
            CommandResult of the invocation.
        """
        args = [
            self._command,
            *flags,
            f"--dir={self.dotfiles_dir}",
            f"--target={target}",
            package,
        ]
        logger.debug("Running %s", " ".join(args))

        try:
            return run_command(args, timeout=self._timeout)
        except subprocess.TimeoutExpired:
            msg = f"stow timed out after {self._timeout:.0f}s"
            logger.warning("%s for package %s", msg, package)
            return CommandResult(stdout="", stderr=msg, returncode=124)
