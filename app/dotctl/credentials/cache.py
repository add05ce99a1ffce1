"""Recovery of previous credential choices.

Reads the machine fragments written by an earlier provisioning run and
turns them back into interactive defaults. Every method here is a pure
read: nothing is written and nothing is prompted.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from dotctl.core.paths import MachinePaths
from dotctl.credentials.fragments import (
    NO_GPG_KEY_MARKER,
    NO_SSH_KEYS_MARKER,
    has_marker,
    parse_default_key,
    parse_identity,
    parse_identity_files,
    parse_signing_key,
)
from dotctl.credentials.models import ALL_SENTINEL, NONE_SENTINEL, GpgKey, MachineIdentity
from dotctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

_GIT_TIMEOUT = 10.0


def _read(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Cannot read %s: %s", path, e)
        return None


def _same_key(left: str, right: str) -> bool:
    """Compare key ids, allowing a long id to match its fingerprint."""
    a, b = left.upper().removeprefix("0X"), right.upper().removeprefix("0X")
    return a.endswith(b) or b.endswith(a)


class CredentialCache:
    """Reader for previously provisioned credential choices.

    Example:
        >>> cache = CredentialCache(MachinePaths.default())
        >>> cache.recover_ssh_selection(scan_ssh_keys(Path.home() / ".ssh"))
        'all'
    """

    def __init__(self, paths: MachinePaths) -> None:
        self._paths = paths

    def recover_identity(self) -> MachineIdentity:
        """Recover the git identity.

        The machine git fragment wins; missing fields fall back to the
        global git configuration (includes resolved).

        Returns:
            MachineIdentity, with empty fields when nothing is known.
        """
        identity = MachineIdentity()
        text = _read(self._paths.git_config)
        if text is not None:
            identity = parse_identity(text)

        name = identity.name or self._git_global("user.name")
        email = identity.email or self._git_global("user.email")
        return MachineIdentity(name=name, email=email)

    def _git_global(self, key: str) -> str:
        if not command_exists("git"):
            return ""
        try:
            result = run_command(
                ["git", "config", "--global", "--includes", "--get", key],
                timeout=_GIT_TIMEOUT,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("git config lookup for %s failed: %s", key, e)
            return ""
        return result.stdout.strip() if result.success else ""

    def recover_ssh_selection(self, scanned_keys: Sequence[Path]) -> str | None:
        """Recover the SSH key selection as it would be typed.

        Cached IdentityFile paths are matched against the current scan.
        Paths that no longer exist in the scan are dropped, so indices are
        recomputed when the key set changed.

        Args:
            scanned_keys: Keys in current scan order.

        Returns:
            "all" when every scanned key was selected, a comma list such
            as "1,3", "none" when the previous run selected no keys, or
            None when there is nothing to recover.
        """
        text = _read(self._paths.ssh_config)
        if text is None:
            return None

        cached = parse_identity_files(text, self._paths.home)
        if not cached:
            return NONE_SENTINEL if has_marker(text, NO_SSH_KEYS_MARKER) else None

        positions = {os.path.normpath(key): index for index, key in enumerate(scanned_keys, 1)}
        indices = sorted(
            {
                positions[os.path.normpath(path)]
                for path in cached
                if os.path.normpath(path) in positions
            }
        )
        if not indices:
            return None
        if len(indices) == len(scanned_keys):
            return ALL_SENTINEL
        return ",".join(str(i) for i in indices)

    def recover_gpg_selection(self, scanned_keys: Sequence[GpgKey]) -> str | None:
        """Recover the signing key selection as it would be typed.

        Args:
            scanned_keys: Secret keys in current listing order.

        Returns:
            1-based index string of the previously configured key, "none"
            when the previous run explicitly selected no key, or None.
        """
        key_id: str | None = None
        no_key = False

        for path, parse in (
            (self._paths.gpg_config, parse_default_key),
            (self._paths.git_config, parse_signing_key),
        ):
            text = _read(path)
            if text is None:
                continue
            key_id = parse(text)
            if key_id:
                break
            no_key = no_key or has_marker(text, NO_GPG_KEY_MARKER)

        if not key_id:
            return NONE_SENTINEL if no_key else None

        for index, key in enumerate(scanned_keys, 1):
            if _same_key(key.key_id, key_id):
                return str(index)

        logger.info("Previously configured GPG key %s is no longer in the keyring", key_id)
        return None
