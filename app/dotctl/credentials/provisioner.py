"""Machine credential provisioning.

Asks for the git identity, the SSH keys to load and the GPG signing key,
pre-filling every prompt with the previous answer recovered from the
machine fragments, then writes those fragments with owner-only
permissions. Nothing is written until every answer is known and valid.
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Callable, Sequence
from datetime import datetime
from pathlib import Path

from dotctl.core.paths import MachinePaths
from dotctl.credentials import keychain
from dotctl.credentials.cache import CredentialCache
from dotctl.credentials.fragments import (
    detect_pinentry,
    render_git_fragment,
    render_gpg_agent_conf,
    render_gpg_conf,
    render_gpg_fragment,
    render_ssh_fragment,
)
from dotctl.credentials.models import (
    NONE_SENTINEL,
    CredentialValidationError,
    GpgKey,
    MachineIdentity,
    ProvisionResult,
    parse_selection,
    resolve_selection,
)
from dotctl.credentials.scanner import scan_gpg_keys, scan_ssh_keys
from dotctl.security.gate import DEFAULT_PROBE_TIMEOUT, ssh_key_is_unencrypted
from dotctl.utils.files import ensure_private_dir, write_private_file

logger = logging.getLogger(__name__)

# (label, default) -> raw operator input
PromptFn = Callable[[str, str], str]


def resolve_input(raw: str, default: str) -> str:
    """Empty input takes the default."""
    value = raw.strip()
    return value if value else default


def short_hostname() -> str:
    return socket.gethostname().split(".")[0]


class MachineProvisioner:
    """Interactive writer of the machine-local credential fragments.

    Example:
        >>> provisioner = MachineProvisioner(paths, template, prompt=ask)
        >>> result = provisioner.provision()
        >>> result.written
        (PosixPath('/home/u/.config/git/machine.config'), ...)
    """

    def __init__(
        self,
        paths: MachinePaths,
        gpg_template: Path,
        prompt: PromptFn,
        *,
        cache: CredentialCache | None = None,
        use_keychain: bool = True,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT,
        hostname: str | None = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the provisioner.

        Args:
            paths: Machine-local file locations.
            gpg_template: Shared gpg.conf template in the dotfiles tree.
            prompt: Callable asking the operator for one value.
            cache: Reader for previous answers (default: from paths).
            use_keychain: Store passphrase-protected SSH keys in the
                platform credential store.
            probe_timeout: Timeout for the SSH passphrase probe.
            hostname: Machine name for file headers (default: short hostname).
            now: Clock for file headers.
        """
        self._paths = paths
        self._gpg_template = gpg_template
        self._prompt = prompt
        self._cache = cache or CredentialCache(paths)
        self._use_keychain = use_keychain
        self._probe_timeout = probe_timeout
        self._hostname = hostname or short_hostname()
        self._now = now

    def provision(
        self,
        ssh_keys: Sequence[Path] | None = None,
        gpg_keys: Sequence[GpgKey] | None = None,
    ) -> ProvisionResult:
        """Ask for every credential choice and write the fragments.

        Args:
            ssh_keys: Scanned SSH keys (default: scan the key directory).
            gpg_keys: Scanned GPG secret keys (default: list the keyring).

        Returns:
            ProvisionResult describing the choices and written files.

        Raises:
            CredentialValidationError: If name or email is empty; raised
                before any file is written.
            OSError: If a fragment cannot be written.
        """
        if ssh_keys is None:
            ssh_keys = scan_ssh_keys(self._paths.ssh_key_dir)
        if gpg_keys is None:
            gpg_keys = scan_gpg_keys()

        identity = self.ask_identity()
        selected_ssh = self.ask_ssh_keys(ssh_keys)
        selected_gpg, notes = self.ask_gpg_key(gpg_keys)

        written, skipped = self.write_fragments(identity, selected_ssh, selected_gpg)
        stored, failed = self.store_keys(selected_ssh)

        return ProvisionResult(
            identity=identity,
            ssh_keys=tuple(selected_ssh),
            gpg_key=selected_gpg,
            written=tuple(written),
            stored_keys=tuple(stored),
            store_failures=tuple(failed),
            skipped=tuple(notes + skipped),
        )

    def ask_identity(self) -> MachineIdentity:
        """Prompt for name and email, defaulting to the cached identity.

        Raises:
            CredentialValidationError: If a field is empty after resolution.
        """
        cached = self._cache.recover_identity()
        name = resolve_input(self._prompt("Git user name", cached.name), cached.name)
        if not name:
            raise CredentialValidationError("name")
        email = resolve_input(self._prompt("Git user email", cached.email), cached.email)
        if not email:
            raise CredentialValidationError("email")
        return MachineIdentity(name=name, email=email)

    def ask_ssh_keys(self, scanned: Sequence[Path]) -> list[Path]:
        """Prompt for the SSH keys to load.

        Accepts "all", "none" or a comma list of 1-based indices. Without
        scanned keys no prompt is shown.
        """
        if not scanned:
            logger.info("No SSH keys found in %s", self._paths.ssh_key_dir)
            return []

        default = self._cache.recover_ssh_selection(scanned) or NONE_SENTINEL
        raw = self._prompt("SSH keys to load (numbers, 'all' or 'none')", default)
        selection = parse_selection(resolve_input(raw, default))
        return resolve_selection(selection, scanned)

    def ask_gpg_key(self, scanned: Sequence[GpgKey]) -> tuple[GpgKey | None, list[str]]:
        """Prompt for the signing key.

        Returns:
            Selected key (None for no key) and notes about the choice.
        """
        if not scanned:
            return None, ["No GPG secret keys found (generate one with: gpg --full-generate-key)"]

        default = self._cache.recover_gpg_selection(scanned) or NONE_SENTINEL
        raw = self._prompt("GPG signing key (number or 'none')", default)
        choice = resolve_input(raw, default).lower()

        if choice == NONE_SENTINEL:
            return None, []
        if choice.isdigit() and 1 <= int(choice) <= len(scanned):
            return scanned[int(choice) - 1], []

        logger.warning("Invalid GPG key selection %r, no signing key configured", choice)
        return None, [f"Invalid GPG key selection '{choice}', no signing key configured"]

    def write_fragments(
        self,
        identity: MachineIdentity,
        ssh_keys: Sequence[Path],
        gpg_key: GpgKey | None,
    ) -> tuple[list[Path], list[str]]:
        """Write every machine fragment in order.

        Returns:
            Written files and notes about skipped files.
        """
        for directory in self._paths.private_dirs():
            ensure_private_dir(directory)

        host, now = self._hostname, self._now()
        written: list[Path] = []
        skipped: list[str] = []

        written.append(
            write_private_file(
                self._paths.git_config,
                render_git_fragment(identity, gpg_key, host, now),
            )
        )
        written.append(
            write_private_file(self._paths.gpg_config, render_gpg_fragment(gpg_key, host, now))
        )

        if self._gpg_template.is_file():
            template = self._gpg_template.read_text(encoding="utf-8")
            written.append(
                write_private_file(
                    self._paths.gpg_conf,
                    render_gpg_conf(template, gpg_key, host, now),
                )
            )
        else:
            logger.warning("GPG template not found at %s, skipping gpg.conf", self._gpg_template)
            skipped.append(f"GPG template not found at {self._gpg_template}, gpg.conf not written")

        written.append(
            write_private_file(
                self._paths.gpg_agent_conf,
                render_gpg_agent_conf(detect_pinentry(), host, now),
            )
        )
        written.append(
            write_private_file(self._paths.ssh_config, render_ssh_fragment(ssh_keys, host, now))
        )

        for path in written:
            logger.debug("Wrote %s", path)
        return written, skipped

    def store_keys(self, ssh_keys: Sequence[Path]) -> tuple[list[Path], list[Path]]:
        """Register passphrase-protected keys with the credential store.

        Unprotected keys are skipped; the Security Gate reports them.

        Returns:
            Stored keys and keys whose registration failed.
        """
        stored: list[Path] = []
        failed: list[Path] = []
        if not self._use_keychain:
            return stored, failed

        for key in ssh_keys:
            if ssh_key_is_unencrypted(key, self._probe_timeout):
                logger.warning("%s has no passphrase, credential store not used", key.name)
                continue
            if keychain.store_key(key):
                stored.append(key)
            else:
                failed.append(key)
        return stored, failed
