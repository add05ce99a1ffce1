"""Update command implementation.

Brings tools declared in versions.config up to date.
"""

from typing import Annotated

import typer

from dotctl.cli.display import create_update_plan_table, create_update_results_table
from dotctl.cli.types import get_settings
from dotctl.core.updater import EnvironmentUpdater, UpdateStep
from dotctl.core.versions import VersionRegistry
from dotctl.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    help="Update development tools to the declared versions.",
    invoke_without_command=True,
)


def _announce(step: UpdateStep) -> None:
    console.print(f"[info]{step.tool}:[/info] {step.description}")


@app.callback(invoke_without_command=True)
def update(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes.",
        ),
    ] = False,
) -> None:
    """Install or upgrade tools listed in versions.config.

    Tools with a non-interactive recipe (Homebrew formulas, uv-managed
    Python, gopls) are updated directly. Others are listed with the
    command to run by hand.

    Examples:
        dotctl update --dry-run   # Preview the plan
        dotctl update             # Run it
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = get_settings(ctx)
    registry = VersionRegistry.load(settings.versions_path)
    if not registry:
        print_info(f"No version requirements in {settings.versions_path}.")
        return

    updater = EnvironmentUpdater(registry)
    steps = updater.plan()
    if not steps:
        print_success("All tools are up to date.")
        return

    console.print(create_update_plan_table(steps, dry_run=dry_run))
    if dry_run:
        print_info("Dry run, nothing was changed.")
        return

    outcomes = updater.run(steps, on_step=_announce)
    if outcomes:
        console.print(create_update_results_table(outcomes))

    manual = [s for s in steps if s.is_manual]
    for step in manual:
        print_warning(f"{step.tool}: run manually: {step.hint}")

    if any(not o.success for o in outcomes):
        raise typer.Exit(code=1)
    print_success("Environment updated.")
