"""Security Gate: refuse to continue while managed keys lack a passphrase.

Every SSH key referenced by the machine SSH fragment and the default GPG
signing key are checked without ever prompting:

- SSH: ``ssh-keygen -y -P ""`` succeeds only for a key without passphrase.
- GPG: a running, responsive gpg-agent is taken as evidence that the key
  is protected. This is a known approximation: an agent would also run for
  an unprotected key. Without an agent, a time-boxed detached signature with
  an empty passphrase is attempted; success means the key is unprotected.
  The probe itself starts a gpg-agent, so later runs in the same login
  usually take the agent path instead of probing again.

An SSH key that cannot be probed, for example because ssh-keygen is
missing, is reported as unverified rather than protected.

A failure is fatal for the calling session. A passing result is cached on
the SessionContext so the probes run once per session. A result with
unverified keys is not cached.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotctl.core.paths import MachinePaths
from dotctl.core.session import SessionContext
from dotctl.credentials.fragments import parse_default_key, parse_identity_files
from dotctl.credentials.scanner import gpg_secret_key_exists
from dotctl.security.agents import gpg_agent_responsive
from dotctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 3.0


class SecurityGateError(Exception):
    """Base exception for Security Gate failures."""


class UnencryptedKeyError(SecurityGateError):
    """Raised when a managed private key has no passphrase.

    Attributes:
        key_name: Key file name or GPG key id.
        key_path: Key file, None for GPG keys.
        remediation: Command that adds a passphrase.
    """

    def __init__(self, key_name: str, key_path: Path | None, remediation: str) -> None:
        self.key_name = key_name
        self.key_path = key_path
        self.remediation = remediation
        super().__init__(f"Unencrypted key detected: {key_name}")


class GpgKeyStatus(Enum):
    """Verification state of the default signing key.

    Attributes:
        NOT_CONFIGURED: No signing key selected for this machine.
        NOT_IN_KEYRING: The configured key is missing from the keyring.
        AGENT_VERIFIED: A responsive gpg-agent was taken as protection.
        PROBE_VERIFIED: Signing with an empty passphrase failed.
        GPG_UNAVAILABLE: gpg is not installed, nothing to check.
    """

    NOT_CONFIGURED = "not_configured"
    NOT_IN_KEYRING = "not_in_keyring"
    AGENT_VERIFIED = "agent_verified"
    PROBE_VERIFIED = "probe_verified"
    GPG_UNAVAILABLE = "gpg_unavailable"


@dataclass(frozen=True, slots=True)
class GateReport:
    """A passing gate result.

    Attributes:
        ssh_keys: SSH keys verified as passphrase-protected.
        unverified_ssh_keys: Configured SSH keys that could not be probed.
        gpg_key: Configured signing key id, if any.
        gpg_status: How the signing key was judged.
        cached: Whether the result came from an earlier run in this session.
    """

    ssh_keys: tuple[Path, ...]
    gpg_key: str | None
    gpg_status: GpgKeyStatus
    cached: bool = False
    unverified_ssh_keys: tuple[Path, ...] = ()

    @property
    def signing_key_configured(self) -> bool:
        return self.gpg_status != GpgKeyStatus.NOT_CONFIGURED

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ssh_keys": [str(k) for k in self.ssh_keys],
            "unverified_ssh_keys": [str(k) for k in self.unverified_ssh_keys],
            "gpg_key": self.gpg_key,
            "gpg_status": self.gpg_status.value,
            "cached": self.cached,
        }


def ssh_key_is_unencrypted(
    key_path: Path, timeout: float = DEFAULT_PROBE_TIMEOUT
) -> bool | None:
    """Check whether an SSH private key opens with an empty passphrase.

    Args:
        key_path: Private key file.
        timeout: Probe timeout in seconds.

    Returns:
        True if the public key can be derived without a passphrase, None
        if the key could not be probed.
    """
    if not command_exists("ssh-keygen"):
        logger.warning("ssh-keygen not found, cannot verify %s", key_path)
        return None
    try:
        result = run_command(["ssh-keygen", "-y", "-P", "", "-f", str(key_path)], timeout=timeout)
    except subprocess.TimeoutExpired:
        return False
    except OSError as e:
        logger.warning("Cannot probe %s: %s", key_path, e)
        return None
    return result.success


def gpg_key_is_unencrypted(key_id: str, timeout: float = DEFAULT_PROBE_TIMEOUT) -> bool:
    """Check whether a GPG secret key signs with an empty passphrase.

    A timeout counts as protected.

    Args:
        key_id: Key id to sign with.
        timeout: Probe timeout in seconds.

    Returns:
        True if the detached signature succeeded.
    """
    args = [
        "gpg",
        "--batch",
        "--yes",
        "--pinentry-mode",
        "loopback",
        "--passphrase",
        "",
        "--local-user",
        key_id,
        "--armor",
        "--detach-sign",
    ]
    try:
        result = run_command(args, timeout=timeout, input_text="test")
    except subprocess.TimeoutExpired:
        logger.debug("GPG probe for %s timed out", key_id)
        return False
    except OSError as e:
        logger.warning("Cannot probe GPG key %s: %s", key_id, e)
        return False
    return result.success


class SecurityGate:
    """Validates that every managed private key is passphrase-protected.

    Example:
        >>> gate = SecurityGate(MachinePaths.default(), SessionContext.from_environment())
        >>> report = gate.validate()  # raises UnencryptedKeyError on failure
    """

    def __init__(
        self,
        paths: MachinePaths,
        session: SessionContext | None = None,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self._paths = paths
        self._session = session if session is not None else SessionContext()
        self._probe_timeout = probe_timeout

    @property
    def session(self) -> SessionContext:
        return self._session

    def configured_ssh_keys(self) -> list[Path]:
        """IdentityFile entries of the machine SSH fragment that exist."""
        try:
            text = self._paths.ssh_config.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        keys = parse_identity_files(text, self._paths.home)
        return [key for key in keys if key.is_file()]

    def configured_gpg_key(self) -> str | None:
        """default-key of the machine GPG fragment."""
        try:
            text = self._paths.gpg_config.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return parse_default_key(text)

    def validate(self, *, force: bool = False) -> GateReport:
        """Run the gate.

        Args:
            force: Re-run the probes even if the session is validated.

        Returns:
            GateReport for a passing result.

        Raises:
            UnencryptedKeyError: For the first key found without passphrase.
        """
        if self._session.is_validated and not force:
            if self._session.report is not None:
                return self._session.report
            logger.debug("Key security already validated in this session")
            return GateReport(
                ssh_keys=(),
                gpg_key=None,
                gpg_status=GpgKeyStatus.NOT_CONFIGURED,
                cached=True,
            )

        ssh_keys, unverified = self._check_ssh_keys()
        gpg_key = self.configured_gpg_key()
        gpg_status = self._check_gpg_key(gpg_key)

        report = GateReport(
            ssh_keys=tuple(ssh_keys),
            gpg_key=gpg_key,
            gpg_status=gpg_status,
            unverified_ssh_keys=tuple(unverified),
        )
        if not unverified:
            self._session.mark_validated(report)
        return report

    def _check_ssh_keys(self) -> tuple[list[Path], list[Path]]:
        verified: list[Path] = []
        unverified: list[Path] = []
        for key in self.configured_ssh_keys():
            logger.debug("Probing SSH key %s", key)
            unencrypted = ssh_key_is_unencrypted(key, self._probe_timeout)
            if unencrypted is None:
                unverified.append(key)
            elif unencrypted:
                raise UnencryptedKeyError(key.name, key, f"ssh-keygen -p -f {key}")
            else:
                verified.append(key)
        return verified, unverified

    def _check_gpg_key(self, key_id: str | None) -> GpgKeyStatus:
        if not key_id:
            return GpgKeyStatus.NOT_CONFIGURED
        if not command_exists("gpg"):
            return GpgKeyStatus.GPG_UNAVAILABLE
        if not gpg_secret_key_exists(key_id):
            logger.warning("Configured GPG key %s is not in the keyring", key_id)
            return GpgKeyStatus.NOT_IN_KEYRING
        if gpg_agent_responsive():
            return GpgKeyStatus.AGENT_VERIFIED

        logger.debug("Probing GPG key %s", key_id)
        if gpg_key_is_unencrypted(key_id, self._probe_timeout):
            raise UnencryptedKeyError(key_id, None, f"gpg --edit-key {key_id} passwd")
        return GpgKeyStatus.PROBE_VERIFIED
