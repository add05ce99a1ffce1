"""Credential data models.

Identity, key selections, and the outcome of provisioning. Selections
typed by the operator (``all``, ``none`` or ``1,3``) are parsed once into
a Selection variant and never compared as strings afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

ALL_SENTINEL = "all"
NONE_SENTINEL = "none"


class CredentialError(Exception):
    """Base exception for credential provisioning errors."""


class CredentialValidationError(CredentialError):
    """Raised when a required credential field is empty.

    Attributes:
        field: Name of the missing field ("name" or "email").
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Git user {field} is required but was empty")


@dataclass(frozen=True, slots=True)
class MachineIdentity:
    """Identity used for commits on this machine.

    Attributes:
        name: Git user name.
        email: Git user email.
    """

    name: str = ""
    email: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.email


@dataclass(frozen=True, slots=True)
class GpgKey:
    """A secret key found in the local GPG keyring.

    Attributes:
        key_id: Long key id.
        uid: Primary user id, e.g. "Jane Doe <jane@example.com>".
    """

    key_id: str
    uid: str = ""

    def __str__(self) -> str:
        return f"{self.key_id} {self.uid}".strip()


@dataclass(frozen=True, slots=True)
class AllSelected:
    """Every scanned key."""

    def __str__(self) -> str:
        return ALL_SENTINEL


@dataclass(frozen=True, slots=True)
class NoneSelected:
    """No key at all."""

    def __str__(self) -> str:
        return NONE_SENTINEL


@dataclass(frozen=True, slots=True)
class IndexSelection:
    """Explicit 1-based positions in the current scan order.

    Attributes:
        indices: Positions, duplicates removed, in the order given.
    """

    indices: tuple[int, ...] = ()

    def __str__(self) -> str:
        return ",".join(str(i) for i in self.indices)


Selection = AllSelected | NoneSelected | IndexSelection


def parse_selection(raw: str) -> Selection:
    """Parse operator input into a Selection.

    Args:
        raw: "all", "none", or a comma-separated list of 1-based indices.
            Tokens that are not positive integers are ignored.

    Returns:
        The parsed Selection. Empty input means NoneSelected.
    """
    text = raw.strip().lower()
    if text == ALL_SENTINEL:
        return AllSelected()
    if not text or text == NONE_SENTINEL:
        return NoneSelected()

    indices: list[int] = []
    for token in text.split(","):
        token = token.strip()
        if not token.isdigit():
            if token:
                logger.debug("Ignoring selection token %r", token)
            continue
        index = int(token)
        if index > 0 and index not in indices:
            indices.append(index)
    return IndexSelection(tuple(indices))


def resolve_selection(selection: Selection, scanned: Sequence[Path]) -> list[Path]:
    """Map a Selection onto the scanned keys.

    Args:
        selection: Parsed selection.
        scanned: Keys in scan order.

    Returns:
        Selected key paths. Out-of-range indices are dropped.
    """
    if isinstance(selection, AllSelected):
        return list(scanned)
    if isinstance(selection, NoneSelected):
        return []
    return [scanned[i - 1] for i in selection.indices if 1 <= i <= len(scanned)]


@dataclass(frozen=True, slots=True)
class ProvisionResult:
    """What a provisioning run decided and wrote.

    Attributes:
        identity: Identity written to the git fragment.
        ssh_keys: Selected SSH private keys (absolute paths).
        gpg_key: Selected signing key, None when no key was selected.
        written: Files written, in write order.
        stored_keys: SSH keys registered with the platform credential store.
        store_failures: SSH keys that could not be registered.
        skipped: Human-readable notes about steps that were skipped.
    """

    identity: MachineIdentity
    ssh_keys: tuple[Path, ...] = ()
    gpg_key: GpgKey | None = None
    written: tuple[Path, ...] = ()
    stored_keys: tuple[Path, ...] = ()
    store_failures: tuple[Path, ...] = ()
    skipped: tuple[str, ...] = field(default=())
