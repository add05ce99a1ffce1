"""Shared Rich display functions for dotctl commands.

Table builders and summary printers for reconciliation results, version
checks, scanned keys, update plans and the status report.
"""

from collections.abc import Sequence
from pathlib import Path

from rich.table import Table

from dotctl.core.reconcile import ReconcileResult, ReconciliationState
from dotctl.core.status import StatusReport
from dotctl.core.updater import UpdateOutcome, UpdateStep
from dotctl.core.versions import VersionCheck
from dotctl.credentials.models import GpgKey, ProvisionResult
from dotctl.security.gate import GpgKeyStatus
from dotctl.utils.formatting import console, create_table, print_success

# Display text and style per reconciliation state
STATE_DISPLAY: dict[ReconciliationState, tuple[str, str]] = {
    ReconciliationState.CLEAN: ("clean", "state_clean"),
    ReconciliationState.WOULD_LINK: ("would link", "state_pending"),
    ReconciliationState.CONFLICT: ("conflict", "state_conflict"),
    ReconciliationState.NOT_FOUND: ("not found", "state_missing"),
}


def _state_text(result: ReconcileResult) -> str:
    label, style = STATE_DISPLAY[result.state]
    if result.applied:
        return f"[success]linked[/success] [muted]({label})[/muted]"
    if result.error:
        return f"[error]failed[/error] [muted]({label})[/muted]"
    return f"[{style}]{label}[/{style}]"


def create_reconcile_table(results: Sequence[ReconcileResult], title: str = "Packages") -> Table:
    """Create a table with one row per package.

    Args:
        results: Reconciliation results.
        title: Table title.

    Returns:
        Rich Table with Package, Target, State and Detail columns.
    """
    table = create_table(title, "Package", "Target", "State", "Detail")
    for result in results:
        detail = result.error or result.detail or ""
        table.add_row(
            result.entry.name,
            f"[muted]{result.entry.target_path}[/muted]",
            _state_text(result),
            f"[muted]{detail}[/muted]",
        )
    return table


def create_versions_table(checks: Sequence[VersionCheck]) -> Table:
    """Create a table of version checks."""
    table = create_table("Tool Versions", "Tool", "Required", "Detected", "Status")
    for check in checks:
        if check.satisfied:
            status = "[success]OK[/success]"
        elif check.is_absent:
            status = "[error]missing[/error]"
        else:
            status = "[warning]outdated[/warning]"
        table.add_row(check.tool, check.required, check.detected or "-", status)
    return table


def create_ssh_keys_table(keys: Sequence[Path]) -> Table:
    """Create a numbered table of scanned SSH keys."""
    table = create_table("SSH Keys", "#", "Key")
    for index, key in enumerate(keys, 1):
        table.add_row(str(index), f"[key_name]{key.name}[/key_name] [muted]{key}[/muted]")
    return table


def create_gpg_keys_table(keys: Sequence[GpgKey]) -> Table:
    """Create a numbered table of GPG secret keys."""
    table = create_table("GPG Secret Keys", "#", "Key ID", "User ID")
    for index, key in enumerate(keys, 1):
        table.add_row(str(index), f"[key_name]{key.key_id}[/key_name]", key.uid)
    return table


def create_update_plan_table(steps: Sequence[UpdateStep], dry_run: bool = False) -> Table:
    """Create a table of planned update steps."""
    title = "Update Plan (Dry Run)" if dry_run else "Update Plan"
    table = create_table(title, "Tool", "Step", "Command")
    for step in steps:
        if step.command is not None:
            command = " ".join(step.command)
        else:
            command = f"[warning]manual:[/warning] {step.hint or ''}"
        table.add_row(step.tool, step.description, command)
    return table


def create_update_results_table(outcomes: Sequence[UpdateOutcome]) -> Table:
    """Create a table of executed update steps."""
    table = create_table("Results", "Status", "Tool", "Message")
    for outcome in outcomes:
        status = "[success]OK[/success]" if outcome.success else "[error]FAIL[/error]"
        table.add_row(status, outcome.step.tool, f"[muted]{outcome.error or ''}[/muted]")
    return table


def print_reconcile_summary(results: Sequence[ReconcileResult]) -> None:
    """Print counts per state after a reconciliation."""
    counts = {state: 0 for state in ReconciliationState}
    for result in results:
        counts[result.state] += 1

    parts: list[str] = []
    for state, count in counts.items():
        if count:
            label, style = STATE_DISPLAY[state]
            parts.append(f"[{style}]{count} {label}[/{style}]")
    if parts:
        console.print(f"\nSummary: {', '.join(parts)}")


def print_provision_summary(result: ProvisionResult) -> None:
    """Print what provisioning configured."""
    console.print(
        f"\n[header]Identity:[/header] {result.identity.name} <{result.identity.email}>"
    )
    if result.ssh_keys:
        names = ", ".join(key.name for key in result.ssh_keys)
        console.print(f"[header]SSH keys:[/header] {names}")
    else:
        console.print("[header]SSH keys:[/header] [muted]none selected[/muted]")
    if result.gpg_key is not None:
        console.print(f"[header]Signing key:[/header] {result.gpg_key}")
    else:
        console.print(
            "[header]Signing key:[/header] [warning]no key selected[/warning] "
            "[muted](signed commits will fail)[/muted]"
        )
    for path in result.written:
        console.print(f"  [muted]wrote {path}[/muted]")
    for key in result.store_failures:
        console.print(f"  [warning]could not store {key.name} in the credential store[/warning]")
    for note in result.skipped:
        console.print(f"  [warning]{note}[/warning]")


def print_status_report(report: StatusReport) -> None:
    """Print the full human-readable status report."""
    if report.linker_error:
        console.print(f"[error]Packages not checked:[/error] {report.linker_error}")
    elif report.reconciliation:
        console.print(create_reconcile_table(report.reconciliation))
        print_reconcile_summary(report.reconciliation)
    else:
        console.print("[muted]No packages registered.[/muted]")

    for error in report.registry_errors:
        console.print(f"[warning]Skipped registry line:[/warning] {error}")

    console.print()
    if report.versions:
        console.print(create_versions_table(report.versions))
    else:
        console.print("[muted]No version requirements declared.[/muted]")

    console.print()
    console.print("[header]Security[/header]")
    if report.gate_error is not None:
        console.print(f"  [error]Unencrypted key:[/error] {report.gate_error.key_name}")
        console.print(f"  [info]Fix with:[/info] {report.gate_error.remediation}")
    elif report.gate_report is not None:
        count = len(report.gate_report.ssh_keys)
        console.print(f"  [success]SSH keys protected:[/success] {count}")
        for key in report.gate_report.unverified_ssh_keys:
            console.print(f"  [warning]SSH key unverified:[/warning] {key.name}")
    verified = report.gate_report is not None and report.gate_report.gpg_status in (
        GpgKeyStatus.AGENT_VERIFIED,
        GpgKeyStatus.PROBE_VERIFIED,
    )
    signing_style = "success" if verified else "warning"
    console.print(f"  Signing key: [{signing_style}]{report.signing_key_state}[/{signing_style}]")

    if report.agents is not None:
        agents = report.agents
        ssh_state = (
            f"running, {agents.ssh_keys_loaded} key(s) loaded"
            if agents.ssh_agent_running
            else "not running"
        )
        gpg_state = "running" if agents.gpg_agent_running else "not running"
        console.print(f"  [muted]SSH agent: {ssh_state}; GPG agent: {gpg_state}[/muted]")

    if report.missing_tools:
        console.print()
        console.print("[header]Missing tools[/header]")
        for missing in report.missing_tools:
            console.print(f"  [warning]{missing.tool}:[/warning] {missing.hint}")

    console.print()
    if report.passed:
        print_success("All checks passed.")
    else:
        console.print("[error]Some checks failed.[/error]")
