"""Unit tests for XDG path management."""

import os
from pathlib import Path
from unittest.mock import patch

from dotctl.core.paths import (
    APP_NAME,
    MachinePaths,
    get_config_dir,
    get_settings_path,
    get_xdg_config_home,
)


class TestConfigDirs:
    """Tests for dotctl's own config locations."""

    def test_default_config_dir(self) -> None:
        """Without XDG_CONFIG_HOME the config lives under ~/.config."""
        with patch.dict(os.environ, {"HOME": "/home/u"}, clear=True):
            result = get_config_dir()

        assert result == Path("/home/u/.config") / APP_NAME

    def test_respects_xdg_config_home(self, tmp_path: Path) -> None:
        """XDG_CONFIG_HOME relocates the config directory."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            assert get_config_dir() == tmp_path / APP_NAME
            assert get_settings_path() == tmp_path / APP_NAME / "config.toml"

    def test_empty_xdg_config_home_ignored(self) -> None:
        """An empty XDG_CONFIG_HOME counts as unset."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": ""}):
            assert get_xdg_config_home() == Path.home() / ".config"


class TestMachinePaths:
    """Tests for MachinePaths class."""

    def test_fragment_locations(self, machine_paths: MachinePaths, home: Path) -> None:
        """Fragments live under the XDG config dir, gpg files under ~/.gnupg."""
        config = home / ".config"
        assert machine_paths.git_config == config / "git" / "machine.config"
        assert machine_paths.ssh_config == config / "ssh" / "machine.config"
        assert machine_paths.gpg_config == config / "gpg" / "machine.config"
        assert machine_paths.gpg_conf == home / ".gnupg" / "gpg.conf"
        assert machine_paths.gpg_agent_conf == home / ".gnupg" / "gpg-agent.conf"

    def test_private_dirs(self, machine_paths: MachinePaths, home: Path) -> None:
        """Every fragment directory plus the gnupg home and socket dir is private."""
        dirs = machine_paths.private_dirs()

        assert machine_paths.git_dir in dirs
        assert home / ".gnupg" in dirs
        assert home / ".ssh" / "sockets" in dirs

    def test_default_uses_override(self, tmp_path: Path) -> None:
        """An explicit SSH key dir replaces ~/.ssh."""
        paths = MachinePaths.default(ssh_key_dir=tmp_path)

        assert paths.ssh_key_dir == tmp_path
        assert paths.home == Path.home()
