"""Rendering and parsing of machine-local configuration fragments.

Every fragment dotctl writes is read back by the credential cache (for
interactive defaults) and by the Security Gate, so both directions live
here side by side.
"""

from __future__ import annotations

import re
import shutil
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from dotctl.credentials.models import GpgKey, MachineIdentity

NO_GPG_KEY_MARKER = "# No GPG key selected - commits will fail due to required signing"
NO_SSH_KEYS_MARKER = "# No SSH keys selected"

MACHINE_BLOCK_START = "# === MACHINE-SPECIFIC CONFIG ==="
MACHINE_BLOCK_END = "# === END MACHINE-SPECIFIC CONFIG ==="

# Preferred pinentry programs, best first
PINENTRY_PROGRAMS: tuple[str, ...] = (
    "pinentry-mac",
    "pinentry-curses",
    "pinentry-tty",
    "pinentry",
)

_SECTION = re.compile(r"^\[\s*([\w.-]+)\s*\]$")
_MACHINE_BLOCK = re.compile(
    rf"\n*{re.escape(MACHINE_BLOCK_START)}.*?{re.escape(MACHINE_BLOCK_END)}\n?",
    re.DOTALL,
)


def _header(tool: str, hostname: str, generated_at: datetime) -> list[str]:
    return [
        f"# Machine-specific {tool} configuration for: {hostname}",
        f"# Generated by dotctl on {generated_at:%Y-%m-%d %H:%M:%S}",
        "",
    ]


def render_git_fragment(
    identity: MachineIdentity,
    gpg_key: GpgKey | None,
    hostname: str,
    generated_at: datetime,
) -> str:
    """Render the machine git fragment ([user] name, email, signingkey)."""
    lines = _header("Git", hostname, generated_at)
    lines += [
        "[user]",
        f"    name = {identity.name}",
        f"    email = {identity.email}",
    ]
    if gpg_key is not None:
        lines.append(f"    signingkey = {gpg_key.key_id}")
    else:
        lines += ["", NO_GPG_KEY_MARKER]
    return "\n".join(lines) + "\n"


def render_gpg_fragment(gpg_key: GpgKey | None, hostname: str, generated_at: datetime) -> str:
    """Render the machine GPG fragment holding the default key."""
    lines = _header("GPG", hostname, generated_at)
    lines.append(f"default-key {gpg_key.key_id}" if gpg_key else NO_GPG_KEY_MARKER)
    return "\n".join(lines) + "\n"


def render_ssh_fragment(keys: Sequence[Path], hostname: str, generated_at: datetime) -> str:
    """Render the machine SSH fragment.

    All selected keys share a single ``Host *`` block. ``IgnoreUnknown``
    keeps non-Apple OpenSSH builds from rejecting ``UseKeychain``.
    """
    lines = _header("SSH", hostname, generated_at)
    if not keys:
        lines.append(NO_SSH_KEYS_MARKER)
        return "\n".join(lines) + "\n"

    lines += [
        "# Default identity files for this machine",
        "Host *",
        "    IgnoreUnknown UseKeychain",
    ]
    lines += [f"    IdentityFile {key}" for key in keys]
    lines += [
        "    IdentitiesOnly yes",
        "    UseKeychain yes",
        "    AddKeysToAgent yes",
    ]
    return "\n".join(lines) + "\n"


def strip_machine_block(text: str) -> str:
    """Remove a previously appended machine block from gpg.conf text."""
    return _MACHINE_BLOCK.sub("\n", text).rstrip() + "\n"


def render_gpg_conf(
    template: str,
    gpg_key: GpgKey | None,
    hostname: str,
    generated_at: datetime,
) -> str:
    """Materialize gpg.conf from the shared template plus a machine block.

    gpg.conf has no include directive, so the machine settings are
    appended between delimiter comments.
    """
    lines = [
        strip_machine_block(template).rstrip(),
        "",
        MACHINE_BLOCK_START,
        f"# Generated by dotctl on {generated_at:%Y-%m-%d %H:%M:%S} for: {hostname}",
        f"default-key {gpg_key.key_id}" if gpg_key else NO_GPG_KEY_MARKER,
        MACHINE_BLOCK_END,
    ]
    return "\n".join(lines) + "\n"


def detect_pinentry() -> str | None:
    """Find the best available pinentry program.

    Returns:
        Absolute path of the program, or None for the gpg default.
    """
    for program in PINENTRY_PROGRAMS:
        found = shutil.which(program)
        if found:
            return found
    return None


def render_gpg_agent_conf(pinentry: str | None, hostname: str, generated_at: datetime) -> str:
    """Render gpg-agent.conf with cache TTLs and SSH support."""
    lines = [
        "# GPG Agent configuration",
        f"# Generated by dotctl on {generated_at:%Y-%m-%d %H:%M:%S} for: {hostname}",
        "",
    ]
    if pinentry:
        lines.append(f"pinentry-program {pinentry}")
    else:
        lines.append("# Using system default pinentry")
    lines += [
        "",
        "# Cache passphrases for 8 hours, at most 24 hours",
        "default-cache-ttl 28800",
        "max-cache-ttl 86400",
        "",
        "enable-ssh-support",
        "no-allow-external-cache",
    ]
    return "\n".join(lines) + "\n"


def parse_identity(text: str) -> MachineIdentity:
    """Read name and email from the [user] section of a git config."""
    values: dict[str, str] = {}
    section = ""
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue
        match = _SECTION.match(line)
        if match:
            section = match.group(1).lower()
            continue
        if section != "user" or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip().lower()] = value.strip().strip('"')
    return MachineIdentity(name=values.get("name", ""), email=values.get("email", ""))


def parse_signing_key(text: str) -> str | None:
    """Read user.signingkey from a git config, if present."""
    for raw in text.splitlines():
        key, sep, value = raw.strip().partition("=")
        if sep and key.strip().lower() == "signingkey" and value.strip():
            return value.strip()
    return None


def expand_home(raw: str, home: Path) -> Path:
    """Expand a leading ``~`` or ``$HOME`` against the given home directory."""
    value = raw.strip().strip('"')
    if value == "~" or value.startswith("~/"):
        return home / value[2:]
    for marker in ("${HOME}", "$HOME"):
        if value.startswith(marker):
            return home / value[len(marker):].lstrip("/")
    return Path(value)


def parse_identity_files(text: str, home: Path) -> list[Path]:
    """Extract IdentityFile paths from an SSH config, in file order."""
    keys: list[Path] = []
    for raw in text.splitlines():
        parts = raw.strip().split(None, 1)
        if len(parts) == 2 and parts[0].lower() == "identityfile":
            keys.append(expand_home(parts[1], home))
    return keys


def parse_default_key(text: str) -> str | None:
    """Read the ``default-key`` option from GPG configuration text."""
    for raw in text.splitlines():
        parts = raw.strip().split(None, 1)
        if len(parts) == 2 and parts[0] == "default-key":
            return parts[1].strip()
    return None


def has_marker(text: str, marker: str) -> bool:
    return any(line.strip() == marker for line in text.splitlines())
