"""dotctl settings and their TOML persistence.

Settings are stored in ~/.config/dotctl/config.toml. Every field has a
default, so the file is optional. The dotfiles directory is resolved with
the precedence: explicit override > $DOTCTL_DIR > settings file > ~/.dotfiles.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dotctl.core.paths import get_settings_path

logger = logging.getLogger(__name__)

# Environment variable that points at the shared dotfiles tree
DOTFILES_DIR_ENV = "DOTCTL_DIR"


def _default_dotfiles_dir() -> Path:
    return Path.home() / ".dotfiles"


def _default_ssh_key_dir() -> Path:
    return Path.home() / ".ssh"


class DotctlSettings(BaseModel):
    """User settings for dotctl.

    Attributes:
        dotfiles_dir: Root of the shared dotfiles tree (package directories).
        packages_file: Package registry file name, relative to dotfiles_dir.
        versions_file: Version requirements file name, relative to dotfiles_dir.
        ssh_key_dir: Directory scanned for SSH private keys.
        linker_command: Executable of the symlink-linking tool.
        linker_timeout: Timeout in seconds for each linker invocation.
        probe_timeout: Timeout in seconds for the passphrase probes.
        use_keychain: Register encrypted SSH keys with the platform credential store.
    """

    model_config = ConfigDict(extra="forbid")

    dotfiles_dir: Annotated[
        Path,
        Field(default_factory=_default_dotfiles_dir, description="Shared dotfiles tree"),
    ]
    packages_file: Annotated[str, Field(description="Package registry file")] = (
        "packages.config"
    )
    versions_file: Annotated[str, Field(description="Version requirements file")] = (
        "versions.config"
    )
    ssh_key_dir: Annotated[
        Path,
        Field(default_factory=_default_ssh_key_dir, description="SSH key directory"),
    ]
    linker_command: Annotated[str, Field(description="Symlink linker executable")] = "stow"
    linker_timeout: Annotated[
        float,
        Field(gt=0, le=600, description="Linker timeout in seconds"),
    ] = 60.0
    probe_timeout: Annotated[
        float,
        Field(gt=0, le=30, description="Passphrase probe timeout in seconds"),
    ] = 3.0
    use_keychain: Annotated[
        bool,
        Field(description="Store encrypted SSH keys in the platform credential store"),
    ] = True

    @property
    def packages_path(self) -> Path:
        return self.dotfiles_dir / self.packages_file

    @property
    def versions_path(self) -> Path:
        return self.dotfiles_dir / self.versions_file

    @property
    def gpg_template_path(self) -> Path:
        """Shared gpg.conf template inside the dotfiles tree."""
        return self.dotfiles_dir / "gnupg" / "gpg.conf"


class SettingsError(Exception):
    """Base exception for settings errors."""


class SettingsParseError(SettingsError):
    """Raised when the settings file cannot be parsed."""


def load_settings(
    path: Path | None = None,
    dotfiles_dir: Path | None = None,
) -> DotctlSettings:
    """Load settings, falling back to defaults when no file exists.

    Args:
        path: Settings file. If None, uses the default settings path.
        dotfiles_dir: Explicit dotfiles directory override (e.g. from the CLI).

    Returns:
        Validated DotctlSettings.

    Raises:
        SettingsParseError: If the TOML syntax is invalid.
        SettingsError: If the file cannot be read or fails validation.
    """
    settings_path = path or get_settings_path()
    data: dict[str, object] = {}

    if settings_path.exists():
        try:
            with open(settings_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise SettingsParseError(f"Invalid TOML syntax in {settings_path}: {e}") from e
        except OSError as e:
            raise SettingsError(f"Failed to read settings: {e}") from e
        logger.debug("Loaded settings from %s", settings_path)

    env_dir = os.environ.get(DOTFILES_DIR_ENV)
    if dotfiles_dir is not None:
        data["dotfiles_dir"] = str(dotfiles_dir)
    elif env_dir:
        data["dotfiles_dir"] = env_dir

    try:
        settings = DotctlSettings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid settings in {settings_path}: {e}") from e

    return settings.model_copy(
        update={
            "dotfiles_dir": settings.dotfiles_dir.expanduser(),
            "ssh_key_dir": settings.ssh_key_dir.expanduser(),
        }
    )


def save_settings(settings: DotctlSettings, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        settings: The settings to save.
        path: Destination. If None, uses the default settings path.

    Returns:
        Path where the settings were saved.

    Raises:
        SettingsError: If the file cannot be written.
    """
    settings_path = path or get_settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    data = settings.model_dump(mode="json")

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=settings_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(settings_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise SettingsError(f"Failed to write settings: {e}") from e

    return settings_path
