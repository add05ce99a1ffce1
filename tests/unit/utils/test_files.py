"""Unit tests for owner-only file helpers."""

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest
from dotctl.utils.files import ensure_private_dir, write_private_file


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestEnsurePrivateDir:
    """Tests for ensure_private_dir function."""

    def test_creates_with_parents(self, tmp_path: Path) -> None:
        path = ensure_private_dir(tmp_path / "a" / "b")

        assert path.is_dir()
        assert _mode(path) == 0o700

    def test_tightens_existing(self, tmp_path: Path) -> None:
        path = tmp_path / "open"
        path.mkdir(mode=0o755)

        ensure_private_dir(path)

        assert _mode(path) == 0o700


class TestWritePrivateFile:
    """Tests for write_private_file function."""

    def test_writes_owner_only(self, tmp_path: Path) -> None:
        path = write_private_file(tmp_path / "sub" / "machine.config", "[user]\n")

        assert path.read_text() == "[user]\n"
        assert _mode(path) == 0o600

    def test_replaces_existing_mode(self, tmp_path: Path) -> None:
        """A world-readable file is replaced by an owner-only one."""
        path = tmp_path / "machine.config"
        path.write_text("old")
        os.chmod(path, 0o644)

        write_private_file(path, "new")

        assert path.read_text() == "new"
        assert _mode(path) == 0o600

    def test_replaces_symlink(self, tmp_path: Path) -> None:
        """A symlink is replaced, its target is untouched."""
        target = tmp_path / "shared.config"
        target.write_text("shared")
        link = tmp_path / "machine.config"
        link.symlink_to(target)

        write_private_file(link, "local")

        assert not link.is_symlink()
        assert link.read_text() == "local"
        assert target.read_text() == "shared"

    def test_cleans_up_on_failure(self, tmp_path: Path) -> None:
        with (
            patch("dotctl.utils.files.os.replace", side_effect=OSError("disk full")),
            pytest.raises(OSError, match="disk full"),
        ):
            write_private_file(tmp_path / "machine.config", "x")

        assert list(tmp_path.iterdir()) == []
