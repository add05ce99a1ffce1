"""Platform credential store for SSH key passphrases.

On macOS, ``ssh-add --apple-use-keychain`` stores the passphrase in the
login keychain so later sessions load the key without prompting.
Elsewhere the key is only added to the running agent. Every operation is
best-effort: failures are logged and reported, never raised.
"""

import logging
import subprocess
from pathlib import Path

from dotctl.utils.shell import command_exists, is_macos, run_command, run_interactive

logger = logging.getLogger(__name__)

# ssh-add prompts for the passphrase once; leave the operator time to type it
_STORE_TIMEOUT = 300.0
_REMOVE_TIMEOUT = 10.0


def store_key(key_path: Path) -> bool:
    """Add a passphrase-protected key to the credential store.

    Args:
        key_path: Private key file.

    Returns:
        True if ssh-add succeeded.
    """
    if not command_exists("ssh-add"):
        logger.warning("ssh-add not found, cannot store %s", key_path.name)
        return False

    args = ["ssh-add", str(key_path)]
    if is_macos():
        args.insert(1, "--apple-use-keychain")

    logger.info("Adding %s to the credential store", key_path.name)
    try:
        returncode = run_interactive(args, timeout=_STORE_TIMEOUT)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Failed to store %s: %s", key_path.name, e)
        return False

    if returncode != 0:
        logger.warning("ssh-add exited with %d for %s", returncode, key_path.name)
    return returncode == 0


def remove_key(key_path: Path) -> bool:
    """Remove a key from the agent (and with it from the keychain).

    A key that was never loaded is not an error worth surfacing.

    Args:
        key_path: Private key file.

    Returns:
        True if ssh-add removed the key.
    """
    if not command_exists("ssh-add"):
        return False
    try:
        result = run_command(["ssh-add", "-d", str(key_path)], timeout=_REMOVE_TIMEOUT)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("ssh-add -d %s failed: %s", key_path, e)
        return False

    if not result.success:
        logger.debug("%s was not loaded in the agent", key_path.name)
    return result.success
