"""XDG-compliant path management for dotctl.

This module provides standardized paths following the XDG Base Directory
specification for dotctl's own settings, plus the locations of the
machine-local credential fragments it provisions.

XDG defaults:
- Config: ~/.config/dotctl/
- Machine fragments: ~/.config/git/, ~/.config/ssh/, ~/.config/gpg/
"""

import os
from dataclasses import dataclass
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "dotctl"

# File name shared by every machine-local fragment
MACHINE_CONFIG_NAME = "machine.config"


def get_xdg_config_home() -> Path:
    """Get the XDG configuration base directory.

    Returns:
        $XDG_CONFIG_HOME if set and non-empty, otherwise ~/.config.
    """
    base = os.environ.get("XDG_CONFIG_HOME")
    if base:
        return Path(base)
    return Path.home() / ".config"


def get_config_dir() -> Path:
    """Get the dotctl configuration directory path.

    Returns:
        Path to ~/.config/dotctl/ (or XDG_CONFIG_HOME/dotctl/).
    """
    return get_xdg_config_home() / APP_NAME


def get_settings_path() -> Path:
    """Get the settings file path.

    Returns:
        Path to ~/.config/dotctl/config.toml.
    """
    return get_config_dir() / "config.toml"


@dataclass(frozen=True, slots=True)
class MachinePaths:
    """Locations of every machine-local file dotctl reads or writes.

    None of these live inside the shared dotfiles tree.

    Attributes:
        home: The user's home directory.
        xdg_config: XDG configuration base directory.
        ssh_key_dir: Directory scanned for SSH private keys.
    """

    home: Path
    xdg_config: Path
    ssh_key_dir: Path

    @classmethod
    def default(cls, ssh_key_dir: Path | None = None) -> "MachinePaths":
        """Build paths from the current user's environment.

        Args:
            ssh_key_dir: Override for the SSH key directory (default ~/.ssh).

        Returns:
            MachinePaths rooted at the current home and XDG config dirs.
        """
        home = Path.home()
        return cls(
            home=home,
            xdg_config=get_xdg_config_home(),
            ssh_key_dir=ssh_key_dir or home / ".ssh",
        )

    @property
    def git_dir(self) -> Path:
        return self.xdg_config / "git"

    @property
    def ssh_dir(self) -> Path:
        return self.xdg_config / "ssh"

    @property
    def gpg_dir(self) -> Path:
        return self.xdg_config / "gpg"

    @property
    def git_config(self) -> Path:
        """Machine git fragment holding identity and signing key."""
        return self.git_dir / MACHINE_CONFIG_NAME

    @property
    def ssh_config(self) -> Path:
        """Machine SSH fragment holding IdentityFile entries."""
        return self.ssh_dir / MACHINE_CONFIG_NAME

    @property
    def gpg_config(self) -> Path:
        """Machine GPG fragment holding the default signing key."""
        return self.gpg_dir / MACHINE_CONFIG_NAME

    @property
    def gnupg_home(self) -> Path:
        return self.home / ".gnupg"

    @property
    def gpg_conf(self) -> Path:
        """Fully materialized gpg.conf (template plus machine block)."""
        return self.gnupg_home / "gpg.conf"

    @property
    def gpg_agent_conf(self) -> Path:
        return self.gnupg_home / "gpg-agent.conf"

    @property
    def ssh_sockets_dir(self) -> Path:
        """Control socket directory for SSH connection multiplexing."""
        return self.home / ".ssh" / "sockets"

    def private_dirs(self) -> tuple[Path, ...]:
        """Directories that must be owner-only (0700).

        Returns:
            Tuple of directories in creation order.
        """
        return (
            self.git_dir,
            self.ssh_dir,
            self.gpg_dir,
            self.gnupg_home,
            self.ssh_sockets_dir,
        )
