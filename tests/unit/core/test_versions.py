"""Unit tests for version requirements and comparison."""

from pathlib import Path
from unittest.mock import patch

import pytest
from dotctl.core.versions import (
    VersionCheckError,
    VersionRegistry,
    VersionRequirement,
    check_version,
    check_versions,
    compare_versions,
    detect_version,
    extract_version,
    meets_requirement,
    normalize_version,
)
from dotctl.utils.shell import CommandResult


class TestVersionRegistry:
    """Tests for VersionRegistry class."""

    def test_load(self, tmp_path: Path) -> None:
        """Requirements are read from tool:version lines."""
        path = tmp_path / "versions.config"
        path.write_text("# minimums\nnode:v24.1.0\n\ngo: 1.24.1\n")

        registry = VersionRegistry.load(path)

        assert registry.requirement("node") == "v24.1.0"
        assert registry.requirement("go") == "1.24.1"
        assert len(registry) == 2
        assert "node" in registry

    def test_unknown_tool_is_absent(self) -> None:
        """Unknown tools have no requirement."""
        assert VersionRegistry().requirement("zig") is None

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        """A missing file yields an empty registry."""
        assert len(VersionRegistry.load(tmp_path / "none.config")) == 0

    def test_malformed_lines_skipped(self, tmp_path: Path) -> None:
        """Lines without tool or version are skipped."""
        path = tmp_path / "versions.config"
        path.write_text("node\n:1.0\njq:\nrg:14.1.0\n")

        registry = VersionRegistry.load(path)

        assert [r.tool for r in registry] == ["rg"]

    def test_undecodable_file_is_empty(self, tmp_path: Path) -> None:
        """A file that is not valid UTF-8 is ignored with a warning."""
        path = tmp_path / "versions.config"
        path.write_bytes(b"\xff")

        assert len(VersionRegistry.load(path)) == 0

    def test_unreadable_path_is_empty(self, tmp_path: Path) -> None:
        """A directory in place of the file is ignored."""
        path = tmp_path / "versions.config"
        path.mkdir()

        assert len(VersionRegistry.load(path)) == 0


class TestNormalizeVersion:
    """Tests for normalize_version function."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("24.1.0", (24, 1, 0)),
            ("v24.1.0", (24, 1, 0)),
            ("go1.24.1", (1, 24, 1)),
            ("3.12", (3, 12)),
            ("1.2.0-rc1", (1, 2, 0)),
        ],
    )
    def test_prefixes_stripped(self, raw: str, expected: tuple[int, ...]) -> None:
        """Leading non-digits are stripped before splitting."""
        assert normalize_version(raw) == expected

    @pytest.mark.parametrize("raw", ["", "latest", "v"])
    def test_unparseable(self, raw: str) -> None:
        """Strings without digits raise VersionCheckError."""
        with pytest.raises(VersionCheckError):
            normalize_version(raw)


class TestMeetsRequirement:
    """Tests for meets_requirement and compare_versions."""

    def test_equal_versions_satisfy(self) -> None:
        """Equal versions after normalization satisfy the requirement."""
        assert meets_requirement("24.1.0", "v24.1.0") is True
        assert meets_requirement("1.24.1", "go1.24.1") is True

    def test_one_patch_below_fails(self) -> None:
        """A version one patch level below the minimum fails."""
        assert meets_requirement("24.0.9", "24.1.0") is False
        assert meets_requirement("1.24.0", "1.24.1") is False

    def test_node_scenario(self) -> None:
        """node:v24.1.0 accepts 24.3.0 and rejects 24.0.0."""
        assert meets_requirement("24.3.0", "v24.1.0") is True
        assert meets_requirement("24.0.0", "v24.1.0") is False

    def test_zero_padding(self) -> None:
        """Shorter versions are padded with zeros."""
        assert compare_versions("3.11", "3.11.0") == 0
        assert meets_requirement("3.12", "3.11.4") is True
        assert meets_requirement("3", "3.0.1") is False

    def test_numeric_not_lexicographic(self) -> None:
        """Components compare as integers."""
        assert meets_requirement("1.10.0", "1.9.0") is True

    def test_absent_or_unparseable(self) -> None:
        """Missing or garbage versions never satisfy."""
        assert meets_requirement(None, "1.0") is False
        assert meets_requirement("unknown", "1.0") is False


class TestDetectVersion:
    """Tests for version detection."""

    def test_extract_version(self) -> None:
        """The first dotted token of the first line is used."""
        assert extract_version("go version go1.24.1 darwin/arm64\n") == "1.24.1"
        assert extract_version("v24.3.0") == "24.3.0"
        assert extract_version("ripgrep 14.1.0\n\nfeatures:+pcre2 1.2") == "14.1.0"
        assert extract_version("no version here\n1.2.3") is None
        assert extract_version("") is None

    def test_detect_uses_override_command(self) -> None:
        """go is queried with 'go version'."""
        with (
            patch("dotctl.core.versions.command_exists", return_value=True),
            patch("dotctl.core.versions.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult("go version go1.24.1 linux/amd64\n", "", 0)

            assert detect_version("go") == "1.24.1"

        assert mock_run.call_args.args[0] == ["go", "version"]

    def test_detect_reads_stderr(self) -> None:
        """Tools printing their version on stderr are supported."""
        with (
            patch("dotctl.core.versions.command_exists", return_value=True),
            patch("dotctl.core.versions.run_command") as mock_run,
        ):
            mock_run.return_value = CommandResult("", "tool 2.0.1\n", 0)

            assert detect_version("tool") == "2.0.1"

        assert mock_run.call_args.args[0] == ["tool", "--version"]

    def test_detect_missing_tool(self) -> None:
        """A tool not on PATH raises VersionCheckError."""
        with patch("dotctl.core.versions.command_exists", return_value=False):
            with pytest.raises(VersionCheckError, match="not installed"):
                detect_version("node")


class TestCheckVersions:
    """Tests for check_version and check_versions."""

    def test_absent_tool_reported_not_raised(self) -> None:
        """Detection errors end up in the result."""
        with patch("dotctl.core.versions.command_exists", return_value=False):
            check = check_version(VersionRequirement("node", "v24.1.0"))

        assert check.satisfied is False
        assert check.is_absent is True
        assert check.error is not None

    def test_checks_every_requirement(self) -> None:
        """One check per requirement, in order."""
        registry = VersionRegistry(
            [VersionRequirement("node", "v24.1.0"), VersionRequirement("jq", "1.7")]
        )
        outputs = {"node": "v24.3.0\n", "jq": "jq-1.6\n"}

        with (
            patch("dotctl.core.versions.command_exists", return_value=True),
            patch("dotctl.core.versions.run_command") as mock_run,
        ):
            mock_run.side_effect = lambda args, **_: CommandResult(outputs[args[0]], "", 0)
            checks = check_versions(registry)

        assert [(c.tool, c.detected, c.satisfied) for c in checks] == [
            ("node", "24.3.0", True),
            ("jq", "1.6", False),
        ]
