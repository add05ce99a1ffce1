"""SSH and GPG agent inspection."""

import logging
import os
import subprocess
from dataclasses import dataclass

from dotctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

_AGENT_TIMEOUT = 5.0


@dataclass(frozen=True, slots=True)
class AgentStatus:
    """Snapshot of the authentication agents.

    Attributes:
        ssh_agent_running: Whether an SSH agent answers on $SSH_AUTH_SOCK.
        ssh_keys_loaded: Number of identities loaded, None if no agent.
        gpg_agent_running: Whether gpg-agent is running and responsive.
    """

    ssh_agent_running: bool
    ssh_keys_loaded: int | None
    gpg_agent_running: bool

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        return {
            "ssh_agent_running": self.ssh_agent_running,
            "ssh_keys_loaded": self.ssh_keys_loaded,
            "gpg_agent_running": self.gpg_agent_running,
        }


def _succeeds(args: list[str], timeout: float) -> bool:
    try:
        return run_command(args, timeout=timeout).success
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("%s failed: %s", args[0], e)
        return False


def gpg_agent_responsive(timeout: float = _AGENT_TIMEOUT) -> bool:
    """Check that gpg-agent is running and answers a no-op request.

    The process check comes first because gpg-connect-agent would
    otherwise start a new agent.
    """
    if not (command_exists("pgrep") and command_exists("gpg-connect-agent")):
        return False
    if not _succeeds(["pgrep", "-x", "gpg-agent"], timeout):
        return False
    return _succeeds(["gpg-connect-agent", "--quiet", "/bye"], timeout)


def _ssh_agent_keys(timeout: float) -> int | None:
    """Count identities in the SSH agent; None when no agent is reachable."""
    if not os.environ.get("SSH_AUTH_SOCK") or not command_exists("ssh-add"):
        return None
    try:
        result = run_command(["ssh-add", "-l"], timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("ssh-add -l failed: %s", e)
        return None

    # Exit 1 means the agent is up but holds no identities
    if result.returncode == 0:
        return len([line for line in result.stdout.splitlines() if line.strip()])
    if result.returncode == 1:
        return 0
    return None


def agent_status(timeout: float = _AGENT_TIMEOUT) -> AgentStatus:
    """Inspect the SSH and GPG agents.

    Returns:
        AgentStatus; purely informational.
    """
    loaded = _ssh_agent_keys(timeout)
    return AgentStatus(
        ssh_agent_running=loaded is not None,
        ssh_keys_loaded=loaded,
        gpg_agent_running=gpg_agent_responsive(timeout),
    )
