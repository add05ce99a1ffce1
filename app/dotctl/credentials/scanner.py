"""Discovery of SSH and GPG keys available on this machine."""

import logging
import subprocess
from pathlib import Path

from dotctl.credentials.models import GpgKey
from dotctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Private key file name prefix produced by ssh-keygen
SSH_KEY_PATTERN = "id_*"

_GPG_TIMEOUT = 15.0


def scan_ssh_keys(key_dir: Path) -> list[Path]:
    """List SSH private keys in a directory.

    Private keys are the ``id_*`` files without a ``.pub`` suffix. The
    order is stable (sorted by name), so 1-based indices stay meaningful
    between runs as long as the key set does not change.

    Args:
        key_dir: Directory to scan, usually ~/.ssh.

    Returns:
        Absolute paths of the private keys found.
    """
    if not key_dir.is_dir():
        logger.debug("SSH key directory does not exist: %s", key_dir)
        return []

    return sorted(
        path.absolute()
        for path in key_dir.glob(SSH_KEY_PATTERN)
        if path.is_file() and path.suffix != ".pub"
    )


def parse_secret_keys(output: str) -> list[GpgKey]:
    """Parse ``gpg --list-secret-keys --with-colons`` output.

    Each ``sec`` record starts a key; field 5 holds the long key id. The
    first ``uid`` record after it (field 10) becomes the key's user id.

    Args:
        output: Colon-delimited listing.

    Returns:
        Keys in listing order.
    """
    keys: list[GpgKey] = []
    key_id: str | None = None
    uid = ""

    for line in output.splitlines():
        fields = line.split(":")
        record = fields[0]
        if record == "sec" and len(fields) > 4:
            if key_id:
                keys.append(GpgKey(key_id=key_id, uid=uid))
            key_id, uid = fields[4], ""
        elif record == "uid" and key_id and not uid and len(fields) > 9:
            uid = fields[9]

    if key_id:
        keys.append(GpgKey(key_id=key_id, uid=uid))
    return keys


def scan_gpg_keys() -> list[GpgKey]:
    """List secret keys in the local GPG keyring.

    Returns:
        Secret keys, or an empty list when gpg is unavailable.
    """
    if not command_exists("gpg"):
        logger.info("gpg not found, skipping GPG key scan")
        return []

    try:
        result = run_command(
            ["gpg", "--list-secret-keys", "--with-colons", "--keyid-format=long"],
            timeout=_GPG_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Failed to list GPG secret keys: %s", e)
        return []

    if not result.success:
        logger.warning("gpg --list-secret-keys failed: %s", result.stderr.strip())
        return []
    return parse_secret_keys(result.stdout)


def gpg_secret_key_exists(key_id: str, timeout: float = _GPG_TIMEOUT) -> bool:
    """Check whether a secret key is present in the local keyring.

    Args:
        key_id: Key id or fingerprint.
        timeout: Timeout in seconds for the gpg call.

    Returns:
        True if gpg lists a ``sec`` record for the key.
    """
    try:
        result = run_command(
            ["gpg", "--list-secret-keys", "--with-colons", key_id],
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Cannot query keyring for %s: %s", key_id, e)
        return False
    return result.success and any(line.startswith("sec:") for line in result.stdout.splitlines())
