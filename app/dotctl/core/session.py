"""Session-scoped state shared by dotctl components.

The Security Gate result is valid for the lifetime of the calling shell
session. It is passed around explicitly as a SessionContext instead of
being read from ambient globals; only the CLI boundary translates it to
and from the environment variable the shell exports.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dotctl.security.gate import GateReport

# Exported by the shell once the gate has passed in this session
SESSION_VALIDATED_ENV = "DOTCTL_KEY_SECURITY_VALIDATED"


@dataclass(slots=True)
class SessionContext:
    """Per-session cache of the Security Gate outcome.

    Attributes:
        is_validated: Whether keys were already verified in this session.
        report: Gate report from this process, if the gate ran here.
    """

    is_validated: bool = False
    report: GateReport | None = field(default=None)

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> SessionContext:
        """Build a context from the calling shell's environment.

        Args:
            environ: Environment mapping (default os.environ).

        Returns:
            SessionContext, validated iff the marker variable equals "1".
        """
        env = os.environ if environ is None else environ
        return cls(is_validated=env.get(SESSION_VALIDATED_ENV) == "1")

    def mark_validated(self, report: GateReport) -> None:
        """Record a passing gate result for the rest of the session."""
        self.is_validated = True
        self.report = report

    def export_line(self) -> str:
        """Shell statement that carries the validation into the session."""
        return f"export {SESSION_VALIDATED_ENV}=1"
