"""Version requirements and compliance checks.

Minimum tool versions are declared in ``versions.config`` as
``tool:version`` lines. Detected versions come from each tool's own
version command. Version strings are compared numerically after
stripping any leading non-digit prefix such as ``v`` or ``go``.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass
from itertools import zip_longest
from pathlib import Path

from dotctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# First dotted numeric token on a line, e.g. "24.3.0" in "v24.3.0"
_VERSION_TOKEN = re.compile(r"\d+(?:\.\d+)+")
_LEADING_NON_DIGITS = re.compile(r"^\D+")
_LEADING_DIGITS = re.compile(r"^\d+")

# Tools whose version command is not "<tool> --version"
VERSION_COMMANDS: dict[str, list[str]] = {
    "go": ["go", "version"],
    "gopls": ["gopls", "version"],
    "python": ["python3", "--version"],
}

_DETECT_TIMEOUT = 10.0


class VersionCheckError(Exception):
    """Raised when a tool version cannot be determined or parsed."""


@dataclass(frozen=True, slots=True)
class VersionRequirement:
    """Minimum version declared for a tool.

    Attributes:
        tool: Tool name as used on the command line.
        min_version: Minimum version string as written in the file.
    """

    tool: str
    min_version: str


@dataclass(frozen=True, slots=True)
class VersionCheck:
    """Outcome of comparing a detected version with a requirement.

    Attributes:
        tool: Tool name.
        required: Minimum version string.
        detected: Detected version, None if absent or unparseable.
        satisfied: Whether the detected version meets the requirement.
        error: Why detection failed, if it did.
    """

    tool: str
    required: str
    detected: str | None
    satisfied: bool
    error: str | None = None

    @property
    def is_absent(self) -> bool:
        return self.detected is None


class VersionRegistry:
    """Lookup table of tool version requirements.

    Example:
        >>> registry = VersionRegistry.load(Path("versions.config"))
        >>> registry.requirement("node")
        'v24.1.0'
    """

    def __init__(self, requirements: list[VersionRequirement] | None = None) -> None:
        self._requirements: dict[str, VersionRequirement] = {}
        for req in requirements or []:
            self._requirements[req.tool] = req

    @classmethod
    def load(cls, path: Path) -> VersionRegistry:
        """Parse a requirements file.

        A missing or unreadable file yields an empty registry. Malformed
        lines are logged and skipped.

        Args:
            path: Path to versions.config.

        Returns:
            VersionRegistry with one requirement per valid line.
        """
        if not path.exists():
            logger.debug("No version requirements file at %s", path)
            return cls()

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable version requirements %s: %s", path, e)
            return cls()

        requirements: list[VersionRequirement] = []
        for line_number, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            tool, sep, version = stripped.partition(":")
            tool, version = tool.strip(), version.strip()
            if not sep or not tool or not version:
                logger.warning(
                    "Skipping malformed version line %d in %s: %r", line_number, path, line
                )
                continue
            requirements.append(VersionRequirement(tool=tool, min_version=version))

        return cls(requirements)

    def requirement(self, tool: str) -> str | None:
        """Get the minimum version for a tool.

        Args:
            tool: Tool name.

        Returns:
            Version string, or None if the tool has no requirement.
        """
        req = self._requirements.get(tool)
        return req.min_version if req else None

    def __iter__(self) -> Iterator[VersionRequirement]:
        return iter(self._requirements.values())

    def __len__(self) -> int:
        return len(self._requirements)

    def __contains__(self, tool: object) -> bool:
        return tool in self._requirements


def normalize_version(version: str) -> tuple[int, ...]:
    """Convert a version string to a comparable tuple of integers.

    The leading non-digit run is stripped ("v24.1.0" -> "24.1.0",
    "go1.24.1" -> "1.24.1"). Each dot-separated component contributes
    its leading digits, so "0-rc1" counts as 0.

    Args:
        version: Version string.

    Returns:
        Tuple of integer components.

    Raises:
        VersionCheckError: If no numeric version can be read.
    """
    text = _LEADING_NON_DIGITS.sub("", version.strip())
    if not text:
        raise VersionCheckError(f"No numeric version in '{version}'")

    parts: list[int] = []
    for component in text.split("."):
        match = _LEADING_DIGITS.match(component)
        if match is None:
            break
        parts.append(int(match.group()))

    if not parts:
        raise VersionCheckError(f"No numeric version in '{version}'")
    return tuple(parts)


def compare_versions(left: str, right: str) -> int:
    """Compare two version strings.

    Shorter versions are zero-padded on the right, so "3.11" equals "3.11.0".

    Returns:
        Negative if left < right, zero if equal, positive if left > right.

    Raises:
        VersionCheckError: If either version cannot be parsed.
    """
    for a, b in zip_longest(normalize_version(left), normalize_version(right), fillvalue=0):
        if a != b:
            return -1 if a < b else 1
    return 0


def meets_requirement(detected: str | None, required: str) -> bool:
    """Check whether a detected version satisfies a minimum.

    Args:
        detected: Detected version, or None if the tool is absent.
        required: Minimum version.

    Returns:
        True iff detected >= required. Absent or unparseable versions
        never satisfy a requirement.
    """
    if detected is None:
        return False
    try:
        return compare_versions(detected, required) >= 0
    except VersionCheckError as e:
        logger.debug("Cannot compare %r with %r: %s", detected, required, e)
        return False


def extract_version(output: str) -> str | None:
    """Extract the first dotted numeric version from a command's first line.

    Args:
        output: Version command output.

    Returns:
        Version string such as "24.3.0", or None if none was found.
    """
    lines = output.strip().splitlines()
    if not lines:
        return None
    match = _VERSION_TOKEN.search(lines[0])
    return match.group() if match else None


def detect_version(tool: str) -> str:
    """Detect the installed version of a tool.

    Args:
        tool: Tool name.

    Returns:
        The detected version string.

    Raises:
        VersionCheckError: If the tool is not installed or its output
            contains no version.
    """
    args = VERSION_COMMANDS.get(tool, [tool, "--version"])
    if not command_exists(args[0]):
        raise VersionCheckError(f"{tool} is not installed")

    try:
        result = run_command(args, timeout=_DETECT_TIMEOUT)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise VersionCheckError(f"Failed to run {' '.join(args)}: {e}") from e

    version = extract_version(result.stdout) or extract_version(result.stderr)
    if version is None:
        raise VersionCheckError(f"Could not read a version from '{' '.join(args)}'")
    return version


def check_version(requirement: VersionRequirement) -> VersionCheck:
    """Check one requirement against the installed tool.

    Never raises: detection problems are reported in the result.

    Args:
        requirement: The requirement to check.

    Returns:
        VersionCheck describing the outcome.
    """
    try:
        detected = detect_version(requirement.tool)
    except VersionCheckError as e:
        logger.info("Version check for %s: %s", requirement.tool, e)
        return VersionCheck(
            tool=requirement.tool,
            required=requirement.min_version,
            detected=None,
            satisfied=False,
            error=str(e),
        )

    return VersionCheck(
        tool=requirement.tool,
        required=requirement.min_version,
        detected=detected,
        satisfied=meets_requirement(detected, requirement.min_version),
    )


def check_versions(registry: VersionRegistry) -> list[VersionCheck]:
    """Check every requirement in a registry.

    Args:
        registry: Version requirements.

    Returns:
        One VersionCheck per requirement, in file order.
    """
    return [check_version(req) for req in registry]
