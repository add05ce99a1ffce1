"""Unit tests for the Security Gate."""

import subprocess
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from dotctl.core.paths import MachinePaths
from dotctl.core.session import SessionContext
from dotctl.credentials.fragments import render_gpg_fragment, render_ssh_fragment
from dotctl.credentials.models import GpgKey
from dotctl.security.gate import (
    GpgKeyStatus,
    SecurityGate,
    UnencryptedKeyError,
    gpg_key_is_unencrypted,
    ssh_key_is_unencrypted,
)
from dotctl.utils.shell import CommandResult

NOW = datetime(2026, 3, 1, 9, 30, 0)
KEY_ID = "0123456789ABCDEF"


def _configure(paths: MachinePaths, ssh_keys: list[Path], gpg_key: str | None) -> None:
    for path in (paths.ssh_config, paths.gpg_config):
        path.parent.mkdir(parents=True, exist_ok=True)
    paths.ssh_config.write_text(render_ssh_fragment(ssh_keys, "laptop", NOW))
    key = GpgKey(gpg_key) if gpg_key else None
    paths.gpg_config.write_text(render_gpg_fragment(key, "laptop", NOW))


@pytest.fixture
def probes() -> Iterator[dict[str, MagicMock]]:
    """Patch every external probe; defaults describe a protected machine."""
    with (
        patch("dotctl.security.gate.ssh_key_is_unencrypted", return_value=False) as ssh,
        patch("dotctl.security.gate.command_exists", return_value=True) as exists,
        patch("dotctl.security.gate.gpg_secret_key_exists", return_value=True) as in_keyring,
        patch("dotctl.security.gate.gpg_agent_responsive", return_value=False) as agent,
        patch("dotctl.security.gate.gpg_key_is_unencrypted", return_value=False) as gpg,
    ):
        yield {
            "ssh": ssh,
            "exists": exists,
            "in_keyring": in_keyring,
            "agent": agent,
            "gpg": gpg,
        }


class TestSecurityGate:
    """Tests for SecurityGate.validate method."""

    def test_nothing_configured(
        self, machine_paths: MachinePaths, probes: dict[str, MagicMock]
    ) -> None:
        report = SecurityGate(machine_paths).validate()

        assert report.ssh_keys == ()
        assert report.gpg_status == GpgKeyStatus.NOT_CONFIGURED
        assert not report.signing_key_configured

    def test_protected_keys_pass(
        self,
        machine_paths: MachinePaths,
        ssh_keys: list[Path],
        probes: dict[str, MagicMock],
    ) -> None:
        _configure(machine_paths, ssh_keys[:2], KEY_ID)
        session = SessionContext()

        report = SecurityGate(machine_paths, session).validate()

        assert report.ssh_keys == tuple(ssh_keys[:2])
        assert report.gpg_key == KEY_ID
        assert report.gpg_status == GpgKeyStatus.PROBE_VERIFIED
        assert session.is_validated
        assert session.report is report

    def test_unencrypted_ssh_key_fails(
        self,
        machine_paths: MachinePaths,
        ssh_keys: list[Path],
        probes: dict[str, MagicMock],
    ) -> None:
        """The error names the key and the command that fixes it."""
        _configure(machine_paths, ssh_keys, None)
        probes["ssh"].side_effect = lambda key, timeout: key.name == "id_ed25519"
        session = SessionContext()

        with pytest.raises(UnencryptedKeyError) as exc_info:
            SecurityGate(machine_paths, session).validate()

        error = exc_info.value
        assert str(error) == "Unencrypted key detected: id_ed25519"
        assert error.remediation == f"ssh-keygen -p -f {ssh_keys[1]}"
        assert not session.is_validated

    def test_missing_key_files_ignored(
        self, machine_paths: MachinePaths, probes: dict[str, MagicMock]
    ) -> None:
        """IdentityFile entries that no longer exist are not probed."""
        _configure(machine_paths, [machine_paths.home / ".ssh" / "id_gone"], None)

        report = SecurityGate(machine_paths).validate()

        assert report.ssh_keys == ()
        probes["ssh"].assert_not_called()

    def test_unencrypted_gpg_key_fails(
        self, machine_paths: MachinePaths, probes: dict[str, MagicMock]
    ) -> None:
        _configure(machine_paths, [], KEY_ID)
        probes["gpg"].return_value = True

        with pytest.raises(UnencryptedKeyError) as exc_info:
            SecurityGate(machine_paths).validate()

        assert exc_info.value.key_path is None
        assert exc_info.value.remediation == f"gpg --edit-key {KEY_ID} passwd"

    def test_agent_counts_as_protection(
        self, machine_paths: MachinePaths, probes: dict[str, MagicMock]
    ) -> None:
        _configure(machine_paths, [], KEY_ID)
        probes["agent"].return_value = True

        report = SecurityGate(machine_paths).validate()

        assert report.gpg_status == GpgKeyStatus.AGENT_VERIFIED
        probes["gpg"].assert_not_called()

    def test_key_not_in_keyring(
        self, machine_paths: MachinePaths, probes: dict[str, MagicMock]
    ) -> None:
        _configure(machine_paths, [], KEY_ID)
        probes["in_keyring"].return_value = False

        assert SecurityGate(machine_paths).validate().gpg_status == GpgKeyStatus.NOT_IN_KEYRING

    def test_gpg_not_installed(
        self, machine_paths: MachinePaths, probes: dict[str, MagicMock]
    ) -> None:
        _configure(machine_paths, [], KEY_ID)
        probes["exists"].return_value = False

        assert SecurityGate(machine_paths).validate().gpg_status == GpgKeyStatus.GPG_UNAVAILABLE

    def test_validated_session_skips_probes(
        self,
        machine_paths: MachinePaths,
        ssh_keys: list[Path],
        probes: dict[str, MagicMock],
    ) -> None:
        """A session validated by the shell is trusted until forced."""
        _configure(machine_paths, ssh_keys, KEY_ID)
        gate = SecurityGate(machine_paths, SessionContext(is_validated=True))

        report = gate.validate()

        assert report.cached
        probes["ssh"].assert_not_called()

        gate.validate(force=True)
        assert probes["ssh"].call_count == len(ssh_keys)

    def test_second_run_reuses_report(
        self, machine_paths: MachinePaths, probes: dict[str, MagicMock]
    ) -> None:
        _configure(machine_paths, [], KEY_ID)
        gate = SecurityGate(machine_paths)

        first = gate.validate()

        assert gate.validate() is first
        assert probes["gpg"].call_count == 1

    def test_unprobed_ssh_keys_are_unverified(
        self,
        machine_paths: MachinePaths,
        ssh_keys: list[Path],
        probes: dict[str, MagicMock],
    ) -> None:
        """Keys that could not be probed are neither protected nor cached."""
        _configure(machine_paths, ssh_keys[:2], None)
        probes["ssh"].side_effect = lambda key, timeout: None if key == ssh_keys[1] else False
        session = SessionContext()

        report = SecurityGate(machine_paths, session).validate()

        assert report.ssh_keys == (ssh_keys[0],)
        assert report.unverified_ssh_keys == (ssh_keys[1],)
        assert report.to_dict()["unverified_ssh_keys"] == [str(ssh_keys[1])]
        assert not session.is_validated


class TestProbes:
    """Tests for the passphrase probe functions."""

    def test_ssh_probe_command(self, tmp_path: Path) -> None:
        key = tmp_path / "id_ed25519"
        with (
            patch("dotctl.security.gate.command_exists", return_value=True),
            patch(
                "dotctl.security.gate.run_command",
                return_value=CommandResult("ssh-ed25519 AAAA", "", 0),
            ) as run,
        ):
            assert ssh_key_is_unencrypted(key, timeout=2.0)

        run.assert_called_once_with(
            ["ssh-keygen", "-y", "-P", "", "-f", str(key)], timeout=2.0
        )

    def test_ssh_probe_protected(self, tmp_path: Path) -> None:
        with (
            patch("dotctl.security.gate.command_exists", return_value=True),
            patch(
                "dotctl.security.gate.run_command",
                return_value=CommandResult("", "incorrect passphrase supplied", 255),
            ),
        ):
            assert not ssh_key_is_unencrypted(tmp_path / "id_rsa")

    def test_ssh_probe_timeout(self, tmp_path: Path) -> None:
        with (
            patch("dotctl.security.gate.command_exists", return_value=True),
            patch(
                "dotctl.security.gate.run_command",
                side_effect=subprocess.TimeoutExpired(["ssh-keygen"], 3),
            ),
        ):
            assert not ssh_key_is_unencrypted(tmp_path / "id_rsa")

    def test_ssh_probe_without_ssh_keygen(self, tmp_path: Path) -> None:
        """Without ssh-keygen the key cannot be judged either way."""
        with (
            patch("dotctl.security.gate.command_exists", return_value=False),
            patch("dotctl.security.gate.run_command") as run,
        ):
            assert ssh_key_is_unencrypted(tmp_path / "id_rsa") is None

        run.assert_not_called()

    def test_gpg_probe_signs_with_empty_passphrase(self) -> None:
        with patch(
            "dotctl.security.gate.run_command",
            return_value=CommandResult("-----BEGIN PGP SIGNATURE-----", "", 0),
        ) as run:
            assert gpg_key_is_unencrypted(KEY_ID)

        args = run.call_args.args[0]
        assert args[args.index("--passphrase") + 1] == ""
        assert args[args.index("--local-user") + 1] == KEY_ID
        assert run.call_args.kwargs["input_text"] == "test"

    def test_gpg_probe_timeout_counts_as_protected(self) -> None:
        with patch(
            "dotctl.security.gate.run_command",
            side_effect=subprocess.TimeoutExpired(["gpg"], 3),
        ):
            assert not gpg_key_is_unencrypted(KEY_ID)
