"""Machine credential handling.

This module exports the credential models, key scanners and the cache
reader. The provisioner is imported from dotctl.credentials.provisioner.
"""

from dotctl.credentials.cache import CredentialCache
from dotctl.credentials.models import (
    AllSelected,
    CredentialError,
    CredentialValidationError,
    GpgKey,
    IndexSelection,
    MachineIdentity,
    NoneSelected,
    ProvisionResult,
    Selection,
    parse_selection,
    resolve_selection,
)
from dotctl.credentials.scanner import scan_gpg_keys, scan_ssh_keys

__all__ = [
    "AllSelected",
    "CredentialCache",
    "CredentialError",
    "CredentialValidationError",
    "GpgKey",
    "IndexSelection",
    "MachineIdentity",
    "NoneSelected",
    "ProvisionResult",
    "Selection",
    "parse_selection",
    "resolve_selection",
    "scan_gpg_keys",
    "scan_ssh_keys",
]
