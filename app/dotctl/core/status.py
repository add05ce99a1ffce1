"""Status reporting.

Aggregates a dry-run reconciliation, the version checks and the Security
Gate into one report. Collecting a report never changes the filesystem.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from dotctl.core.preflight import MissingTool, find_missing_tools
from dotctl.core.reconcile import (
    ReconcileMode,
    ReconcileResult,
    ReconciliationEngine,
)
from dotctl.core.registry import PackageEntry
from dotctl.core.versions import VersionCheck, VersionRegistry, check_versions
from dotctl.linkers.base import LinkerError
from dotctl.security.agents import AgentStatus, agent_status
from dotctl.security.gate import GateReport, GpgKeyStatus, SecurityGate, UnencryptedKeyError

logger = logging.getLogger(__name__)

# Human-readable signing key states, always shown in the report
SIGNING_KEY_LABELS: dict[GpgKeyStatus, str] = {
    GpgKeyStatus.NOT_CONFIGURED: "no key selected",
    GpgKeyStatus.NOT_IN_KEYRING: "configured key missing from keyring",
    GpgKeyStatus.AGENT_VERIFIED: "protected (gpg-agent running)",
    GpgKeyStatus.PROBE_VERIFIED: "protected (passphrase required)",
    GpgKeyStatus.GPG_UNAVAILABLE: "gpg not installed",
}


@dataclass(slots=True)
class StatusReport:
    """Aggregated status of packages, tool versions and key security.

    Attributes:
        reconciliation: Dry-run result per package.
        versions: Version check per requirement.
        gate_report: Passing gate result, None if the gate failed.
        gate_error: UnencryptedKeyError raised by the gate, if any.
        agents: Agent snapshot, None if not collected.
        linker_error: Why reconciliation could not run, if it could not.
        registry_errors: Skipped registry lines.
        gpg_key: Signing key configured for this machine, if any.
        missing_tools: Required executables not on PATH.
    """

    reconciliation: list[ReconcileResult] = field(default_factory=list)
    versions: list[VersionCheck] = field(default_factory=list)
    gate_report: GateReport | None = None
    gate_error: UnencryptedKeyError | None = None
    agents: AgentStatus | None = None
    linker_error: str | None = None
    registry_errors: list[str] = field(default_factory=list)
    gpg_key: str | None = None
    missing_tools: list[MissingTool] = field(default_factory=list)

    @property
    def packages_clean(self) -> bool:
        return self.linker_error is None and all(r.is_clean for r in self.reconciliation)

    @property
    def versions_ok(self) -> bool:
        return all(check.satisfied for check in self.versions)

    @property
    def gate_passed(self) -> bool:
        return self.gate_error is None

    @property
    def passed(self) -> bool:
        """Whether packages, versions and key security all pass."""
        return self.packages_clean and self.versions_ok and self.gate_passed

    @property
    def signing_key_state(self) -> str:
        if self.gate_report is not None:
            return SIGNING_KEY_LABELS[self.gate_report.gpg_status]
        if self.gate_error is not None and self.gate_error.key_path is None:
            return "UNPROTECTED"
        if self.gpg_key is None:
            return SIGNING_KEY_LABELS[GpgKeyStatus.NOT_CONFIGURED]
        return "not checked"

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        gate: dict[str, object] = {"passed": self.gate_passed}
        if self.gate_report is not None:
            gate.update(self.gate_report.to_dict())
        if self.gate_error is not None:
            gate["error"] = str(self.gate_error)
            gate["key"] = self.gate_error.key_name
            gate["remediation"] = self.gate_error.remediation
        gate.setdefault("gpg_key", self.gpg_key)
        gate["signing_key"] = self.signing_key_state

        return {
            "passed": self.passed,
            "packages": [r.to_dict() for r in self.reconciliation],
            "linker_error": self.linker_error,
            "registry_errors": self.registry_errors,
            "versions": [
                {
                    "tool": c.tool,
                    "required": c.required,
                    "detected": c.detected,
                    "satisfied": c.satisfied,
                    "error": c.error,
                }
                for c in self.versions
            ],
            "security": gate,
            "agents": self.agents.to_dict() if self.agents else None,
            "missing_tools": [m.to_dict() for m in self.missing_tools],
        }


class StatusReporter:
    """Collects a StatusReport.

    Example:
        >>> reporter = StatusReporter(engine, registry.entries, versions, gate)
        >>> report = reporter.collect()
        >>> report.passed
        True
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        entries: Sequence[PackageEntry],
        versions: VersionRegistry,
        gate: SecurityGate,
        *,
        registry_errors: Sequence[str] = (),
        include_agents: bool = True,
        required_tools: Sequence[str] = (),
    ) -> None:
        self._engine = engine
        self._entries = entries
        self._versions = versions
        self._gate = gate
        self._registry_errors = list(registry_errors)
        self._include_agents = include_agents
        self._required_tools = list(required_tools)

    def collect(self) -> StatusReport:
        """Run every read-only check.

        Returns:
            StatusReport; problems are recorded, never raised.
        """
        report = StatusReport(registry_errors=self._registry_errors)
        report.missing_tools = find_missing_tools(self._required_tools)

        try:
            report.reconciliation = self._engine.reconcile(self._entries, ReconcileMode.DRY_RUN)
        except LinkerError as e:
            logger.warning("Reconciliation skipped: %s", e)
            report.linker_error = str(e)

        report.versions = check_versions(self._versions)
        report.gpg_key = self._gate.configured_gpg_key()

        try:
            report.gate_report = self._gate.validate(force=True)
        except UnencryptedKeyError as e:
            report.gate_error = e

        if self._include_agents:
            report.agents = agent_status()
        return report
