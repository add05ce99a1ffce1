"""Package registry parsing.

The registry file (``packages.config``) lists one package per line in
``name[:target]`` form. Blank lines and ``#`` comments are ignored. A
missing target means the user's home directory.

Targets are expanded by whitelist substitution only: a leading ``~``,
``$HOME``/``${HOME}`` and ``$XDG_CONFIG_DIR``/``${XDG_CONFIG_DIR}``. Nothing
is ever passed to a shell, and any other ``$`` reference makes the line
malformed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotctl.core.paths import get_xdg_config_home

logger = logging.getLogger(__name__)

# Recognized variable names, mapped to their keys in the variables map
_VARIABLE_PATTERN = re.compile(r"\$\{(\w+)\}|\$(\w+)")
HOME_VAR = "HOME"
XDG_CONFIG_VAR = "XDG_CONFIG_DIR"


class RegistryError(Exception):
    """Base exception for registry errors."""


class RegistryNotFoundError(RegistryError):
    """Raised when the registry file does not exist."""


class RegistryParseError(RegistryError):
    """Raised for a single malformed registry line.

    Attributes:
        line_number: 1-based line number in the registry file.
        line: The offending line, stripped.
    """

    def __init__(self, message: str, line_number: int = 0, line: str = "") -> None:
        super().__init__(message)
        self.line_number = line_number
        self.line = line


@dataclass(frozen=True, slots=True)
class PackageEntry:
    """A package and the directory its files are linked into.

    Attributes:
        name: Package directory name inside the dotfiles tree.
        target_path: Absolute directory that receives the symlinks.
    """

    name: str
    target_path: str


@dataclass(frozen=True, slots=True)
class PackageRegistry:
    """Parsed registry: valid entries plus the lines that were skipped.

    Attributes:
        entries: Entries in file order.
        errors: Parse errors for skipped lines.
    """

    entries: tuple[PackageEntry, ...]
    errors: tuple[RegistryParseError, ...] = field(default=())

    def __iter__(self) -> Iterator[PackageEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def default_variables(home: Path | None = None, xdg_config: Path | None = None) -> dict[str, str]:
    """Build the variable map for target expansion.

    Args:
        home: Home directory. Defaults to the current user's home.
        xdg_config: XDG config directory. Defaults to $XDG_CONFIG_HOME or ~/.config.

    Returns:
        Mapping of recognized variable names to their values.
    """
    return {
        HOME_VAR: str(home or Path.home()),
        XDG_CONFIG_VAR: str(xdg_config or get_xdg_config_home()),
    }


def expand_target(raw: str, variables: Mapping[str, str]) -> str:
    """Expand recognized variables in a target path.

    Args:
        raw: Target text from the registry.
        variables: Recognized variable values (see :func:`default_variables`).

    Returns:
        The expanded target path.

    Raises:
        RegistryParseError: If the text references an unknown variable.
    """
    text = raw
    if text == "~" or text.startswith("~/"):
        text = variables[HOME_VAR] + text[1:]

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1) or match.group(2)
        if name not in variables:
            msg = f"Unknown variable '${name}' in target '{raw}'"
            raise RegistryParseError(msg)
        return variables[name]

    return _VARIABLE_PATTERN.sub(_substitute, text)


def parse_line(line: str, variables: Mapping[str, str]) -> PackageEntry | None:
    """Parse one registry line.

    Args:
        line: Raw line from the registry file.
        variables: Recognized variable values.

    Returns:
        PackageEntry, or None for blank and comment lines.

    Raises:
        RegistryParseError: If the line is malformed.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    name, sep, raw_target = stripped.partition(":")
    name = name.strip()

    if not name:
        raise RegistryParseError(f"Missing package name in '{stripped}'")
    if "/" in name or name in (".", ".."):
        raise RegistryParseError(f"Invalid package name '{name}'")

    if not sep:
        return PackageEntry(name=name, target_path=variables[HOME_VAR])

    raw_target = raw_target.strip()
    if not raw_target:
        raise RegistryParseError(f"Empty target for package '{name}'")

    target = expand_target(raw_target, variables)
    if not target.startswith("/"):
        raise RegistryParseError(f"Target for package '{name}' is not absolute: '{target}'")

    return PackageEntry(name=name, target_path=target)


def load_registry(path: Path, variables: Mapping[str, str] | None = None) -> PackageRegistry:
    """Load a registry file, skipping malformed lines.

    Args:
        path: Registry file path.
        variables: Recognized variable values. Defaults to :func:`default_variables`.

    Returns:
        PackageRegistry with entries and per-line errors.

    Raises:
        RegistryNotFoundError: If the file doesn't exist.
        RegistryError: If the file cannot be read.
    """
    if variables is None:
        variables = default_variables()

    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise RegistryNotFoundError(f"Package registry not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise RegistryError(f"Failed to read package registry {path}: {e}") from e

    entries: list[PackageEntry] = []
    errors: list[RegistryParseError] = []

    for line_number, line in enumerate(text.splitlines(), start=1):
        try:
            entry = parse_line(line, variables)
        except RegistryParseError as e:
            e.line_number = line_number
            e.line = line.strip()
            logger.info("Skipping registry line %d in %s: %s", line_number, path, e)
            errors.append(e)
            continue
        if entry is not None:
            entries.append(entry)

    return PackageRegistry(entries=tuple(entries), errors=tuple(errors))


def parse_registry(path: Path, variables: Mapping[str, str] | None = None) -> list[PackageEntry]:
    """Parse a registry file into package entries.

    Args:
        path: Registry file path.
        variables: Recognized variable values.

    Returns:
        Valid entries in file order.

    Raises:
        RegistryNotFoundError: If the file doesn't exist.
        RegistryError: If the file cannot be read.
    """
    return list(load_registry(path, variables).entries)
