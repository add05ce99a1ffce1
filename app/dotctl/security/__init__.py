"""Key security validation.

This module exports the Security Gate and agent inspection helpers.
"""

from dotctl.security.agents import AgentStatus, agent_status, gpg_agent_responsive
from dotctl.security.gate import (
    GateReport,
    GpgKeyStatus,
    SecurityGate,
    SecurityGateError,
    UnencryptedKeyError,
    gpg_key_is_unencrypted,
    ssh_key_is_unencrypted,
)

__all__ = [
    "AgentStatus",
    "GateReport",
    "GpgKeyStatus",
    "SecurityGate",
    "SecurityGateError",
    "UnencryptedKeyError",
    "agent_status",
    "gpg_agent_responsive",
    "gpg_key_is_unencrypted",
    "ssh_key_is_unencrypted",
]
