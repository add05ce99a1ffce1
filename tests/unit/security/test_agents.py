"""Unit tests for agent inspection."""

from unittest.mock import patch

import pytest
from dotctl.security.agents import agent_status, gpg_agent_responsive
from dotctl.utils.shell import CommandResult


class TestGpgAgentResponsive:
    """Tests for gpg_agent_responsive function."""

    def test_running_agent(self) -> None:
        with (
            patch("dotctl.security.agents.command_exists", return_value=True),
            patch(
                "dotctl.security.agents.run_command",
                return_value=CommandResult("", "", 0),
            ) as run,
        ):
            assert gpg_agent_responsive()

        assert [c.args[0][0] for c in run.call_args_list] == ["pgrep", "gpg-connect-agent"]

    def test_no_process_never_starts_agent(self) -> None:
        """gpg-connect-agent is not called when no agent process exists."""
        with (
            patch("dotctl.security.agents.command_exists", return_value=True),
            patch(
                "dotctl.security.agents.run_command",
                return_value=CommandResult("", "", 1),
            ) as run,
        ):
            assert not gpg_agent_responsive()

        assert run.call_count == 1


class TestAgentStatus:
    """Tests for agent_status function."""

    @pytest.mark.parametrize(
        ("result", "loaded"),
        [
            (CommandResult("256 SHA256:a k1 (ED25519)\n2048 SHA256:b k2 (RSA)\n", "", 0), 2),
            (CommandResult("The agent has no identities.\n", "", 1), 0),
        ],
    )
    def test_ssh_agent(
        self, monkeypatch: pytest.MonkeyPatch, result: CommandResult, loaded: int
    ) -> None:
        monkeypatch.setenv("SSH_AUTH_SOCK", "/tmp/agent.sock")
        with (
            patch("dotctl.security.agents.command_exists", return_value=True),
            patch("dotctl.security.agents.run_command", return_value=result),
            patch("dotctl.security.agents.gpg_agent_responsive", return_value=False),
        ):
            status = agent_status()

        assert status.ssh_agent_running
        assert status.ssh_keys_loaded == loaded

    def test_no_ssh_agent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SSH_AUTH_SOCK", raising=False)
        with patch("dotctl.security.agents.gpg_agent_responsive", return_value=True):
            status = agent_status()

        assert status.to_dict() == {
            "ssh_agent_running": False,
            "ssh_keys_loaded": None,
            "gpg_agent_running": True,
        }
