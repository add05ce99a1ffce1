"""Host tool checks run before commands that depend on them."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from dotctl.utils.shell import command_exists

# Install commands for the tools dotctl shells out to
INSTALL_HINTS: dict[str, str] = {
    "stow": "brew install stow",
    "git": "brew install git",
    "gpg": "brew install gnupg",
    "ssh-keygen": "brew install openssh",
    "ssh-add": "brew install openssh",
}

CREDENTIAL_TOOLS: tuple[str, ...] = ("git", "gpg", "ssh-keygen", "ssh-add")


@dataclass(frozen=True, slots=True)
class MissingTool:
    """A required executable that is not on PATH.

    Attributes:
        tool: Executable name.
        hint: Command that installs it.
    """

    tool: str
    hint: str

    def to_dict(self) -> dict[str, str]:
        return {"tool": self.tool, "hint": self.hint}


def required_tools(linker_command: str = "stow") -> list[str]:
    """Executables needed by install and status, linker first."""
    return [linker_command, *CREDENTIAL_TOOLS]


def find_missing_tools(tools: Iterable[str]) -> list[MissingTool]:
    """Check each tool, keeping the given order.

    Args:
        tools: Executable names.

    Returns:
        One MissingTool per executable not found, with its install hint.
    """
    missing: list[MissingTool] = []
    for tool in tools:
        if not command_exists(tool):
            missing.append(MissingTool(tool, INSTALL_HINTS.get(tool, f"brew install {tool}")))
    return missing
