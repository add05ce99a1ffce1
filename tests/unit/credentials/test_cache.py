"""Unit tests for recovering previous credential choices."""

from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from dotctl.core.paths import MachinePaths
from dotctl.credentials.cache import CredentialCache
from dotctl.credentials.fragments import (
    render_git_fragment,
    render_gpg_fragment,
    render_ssh_fragment,
)
from dotctl.credentials.models import GpgKey, MachineIdentity
from dotctl.utils.shell import CommandResult

NOW = datetime(2026, 3, 1, 9, 30, 0)
GPG_KEYS = [GpgKey("1111222233334444"), GpgKey("0123456789ABCDEF")]


@pytest.fixture
def cache(machine_paths: MachinePaths) -> Iterator[CredentialCache]:
    """Cache over the fake home, with no global git config."""
    with patch("dotctl.credentials.cache.command_exists", return_value=False):
        yield CredentialCache(machine_paths)


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


class TestRecoverIdentity:
    """Tests for CredentialCache.recover_identity method."""

    def test_from_fragment(self, cache: CredentialCache, machine_paths: MachinePaths) -> None:
        identity = MachineIdentity("Jane Doe", "jane@example.com")
        _write(machine_paths.git_config, render_git_fragment(identity, None, "laptop", NOW))

        assert cache.recover_identity() == identity

    def test_nothing_known(self, cache: CredentialCache) -> None:
        assert cache.recover_identity() == MachineIdentity()

    def test_falls_back_to_global_git(self, machine_paths: MachinePaths) -> None:
        """Fields missing from the fragment come from git config --global."""
        _write(machine_paths.git_config, "[user]\n    name = Jane Doe\n")
        with (
            patch("dotctl.credentials.cache.command_exists", return_value=True),
            patch(
                "dotctl.credentials.cache.run_command",
                return_value=CommandResult("jane@global.example\n", "", 0),
            ) as run,
        ):
            identity = CredentialCache(machine_paths).recover_identity()

        assert identity == MachineIdentity("Jane Doe", "jane@global.example")
        run.assert_called_once_with(
            ["git", "config", "--global", "--includes", "--get", "user.email"],
            timeout=10.0,
        )


class TestRecoverSshSelection:
    """Tests for CredentialCache.recover_ssh_selection method."""

    def test_no_fragment(self, cache: CredentialCache, ssh_keys: list[Path]) -> None:
        assert cache.recover_ssh_selection(ssh_keys) is None

    def test_subset(
        self, cache: CredentialCache, machine_paths: MachinePaths, ssh_keys: list[Path]
    ) -> None:
        """Keys one and three come back as "1,3"."""
        fragment = render_ssh_fragment([ssh_keys[2], ssh_keys[0]], "laptop", NOW)
        _write(machine_paths.ssh_config, fragment)

        assert cache.recover_ssh_selection(ssh_keys) == "1,3"

    def test_every_key_is_all(
        self, cache: CredentialCache, machine_paths: MachinePaths, ssh_keys: list[Path]
    ) -> None:
        _write(machine_paths.ssh_config, render_ssh_fragment(ssh_keys, "laptop", NOW))

        assert cache.recover_ssh_selection(ssh_keys) == "all"

    def test_none_marker(
        self, cache: CredentialCache, machine_paths: MachinePaths, ssh_keys: list[Path]
    ) -> None:
        _write(machine_paths.ssh_config, render_ssh_fragment([], "laptop", NOW))

        assert cache.recover_ssh_selection(ssh_keys) == "none"

    def test_indices_follow_current_scan(
        self, cache: CredentialCache, machine_paths: MachinePaths, ssh_keys: list[Path]
    ) -> None:
        """A removed key shifts the recovered indices."""
        _write(
            machine_paths.ssh_config,
            render_ssh_fragment([ssh_keys[0], ssh_keys[2]], "laptop", NOW),
        )

        assert cache.recover_ssh_selection([ssh_keys[1], ssh_keys[2]]) == "2"

    def test_tilde_paths_match(
        self, cache: CredentialCache, machine_paths: MachinePaths, ssh_keys: list[Path]
    ) -> None:
        """Hand-edited ~ paths match the scanned absolute paths."""
        _write(machine_paths.ssh_config, "Host *\n    IdentityFile ~/.ssh/id_ed25519\n")

        assert cache.recover_ssh_selection(ssh_keys) == "2"

    def test_unknown_keys_only(
        self, cache: CredentialCache, machine_paths: MachinePaths, ssh_keys: list[Path]
    ) -> None:
        _write(machine_paths.ssh_config, "Host *\n    IdentityFile /elsewhere/id_old\n")

        assert cache.recover_ssh_selection(ssh_keys) is None


class TestRecoverGpgSelection:
    """Tests for CredentialCache.recover_gpg_selection method."""

    def test_no_fragment(self, cache: CredentialCache) -> None:
        assert cache.recover_gpg_selection(GPG_KEYS) is None

    def test_default_key(self, cache: CredentialCache, machine_paths: MachinePaths) -> None:
        _write(
            machine_paths.gpg_config,
            render_gpg_fragment(GPG_KEYS[1], "laptop", NOW),
        )

        assert cache.recover_gpg_selection(GPG_KEYS) == "2"

    def test_signing_key_fallback(
        self, cache: CredentialCache, machine_paths: MachinePaths
    ) -> None:
        """Without a GPG fragment the git signingkey is used; short ids match."""
        _write(machine_paths.git_config, "[user]\n    signingkey = 0x89abcdef\n")

        assert cache.recover_gpg_selection(GPG_KEYS) == "2"

    def test_none_marker(self, cache: CredentialCache, machine_paths: MachinePaths) -> None:
        identity = MachineIdentity("Jane", "j@x.org")
        _write(machine_paths.gpg_config, render_gpg_fragment(None, "laptop", NOW))
        _write(machine_paths.git_config, render_git_fragment(identity, None, "laptop", NOW))

        assert cache.recover_gpg_selection(GPG_KEYS) == "none"

    def test_key_gone_from_keyring(
        self, cache: CredentialCache, machine_paths: MachinePaths
    ) -> None:
        _write(machine_paths.gpg_config, "default-key DEADBEEFDEADBEEF\n")

        assert cache.recover_gpg_selection(GPG_KEYS) is None
