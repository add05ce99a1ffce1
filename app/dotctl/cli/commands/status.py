"""Status command implementation.

Read-only report of package links, tool versions and key security.
"""

import json
from typing import Annotated

import typer

from dotctl.cli.display import print_status_report
from dotctl.cli.types import get_engine, get_machine_paths, get_settings, require_registry
from dotctl.core.preflight import required_tools
from dotctl.core.session import SessionContext
from dotctl.core.status import StatusReporter
from dotctl.core.versions import VersionRegistry
from dotctl.security.gate import SecurityGate

app = typer.Typer(
    help="Show installation status.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def status(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output as JSON.",
        ),
    ] = False,
) -> None:
    """Check packages, tool versions and key security.

    Nothing is changed. The exit code is 0 only if every package is
    linked, every tool meets its minimum version and every key is
    passphrase-protected.

    Examples:
        dotctl status           # Human-readable report
        dotctl status --json    # JSON output for scripting
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = get_settings(ctx)
    registry = require_registry(settings)

    reporter = StatusReporter(
        get_engine(settings),
        registry.entries,
        VersionRegistry.load(settings.versions_path),
        SecurityGate(
            get_machine_paths(settings),
            SessionContext(),
            probe_timeout=settings.probe_timeout,
        ),
        registry_errors=[f"line {e.line_number}: {e}" for e in registry.errors],
        required_tools=required_tools(settings.linker_command),
    )
    report = reporter.collect()

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        print_status_report(report)

    if not report.passed:
        raise typer.Exit(code=1)
