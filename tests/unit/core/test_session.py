"""Unit tests for the session context."""

import pytest
from dotctl.core.session import SESSION_VALIDATED_ENV, SessionContext
from dotctl.security.gate import GateReport, GpgKeyStatus


class TestSessionContext:
    """Tests for SessionContext class."""

    def test_validated_from_environment(self) -> None:
        """Only the exact value "1" marks the session as validated."""
        assert SessionContext.from_environment({SESSION_VALIDATED_ENV: "1"}).is_validated
        assert not SessionContext.from_environment({SESSION_VALIDATED_ENV: "true"}).is_validated
        assert not SessionContext.from_environment({}).is_validated

    def test_defaults_to_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a mapping the process environment is read."""
        monkeypatch.setenv(SESSION_VALIDATED_ENV, "1")
        assert SessionContext.from_environment().is_validated

    def test_mark_validated(self) -> None:
        """Marking stores the report and flips the flag."""
        report = GateReport(ssh_keys=(), gpg_key=None, gpg_status=GpgKeyStatus.NOT_CONFIGURED)
        session = SessionContext()

        session.mark_validated(report)

        assert session.is_validated
        assert session.report is report

    def test_export_line(self) -> None:
        """The export line is a shell statement for eval."""
        assert SessionContext().export_line() == f"export {SESSION_VALIDATED_ENV}=1"
