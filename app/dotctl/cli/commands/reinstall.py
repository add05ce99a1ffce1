"""Reinstall command implementation."""

from typing import Annotated

import typer

from dotctl.cli.commands.install import install_packages
from dotctl.cli.commands.uninstall import uninstall_packages
from dotctl.cli.types import get_settings
from dotctl.utils.formatting import console, print_info

app = typer.Typer(
    help="Unlink and reinstall everything.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def reinstall(
    ctx: typer.Context,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Skip confirmation prompt and proceed.",
        ),
    ] = False,
) -> None:
    """Uninstall, then install again.

    Previous credential answers are offered as defaults, so pressing
    enter at every prompt reproduces the current configuration.
    """
    if ctx.invoked_subcommand is not None:
        return

    if not yes and not typer.confirm("Unlink and reinstall all dotfiles?", default=False):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    settings = get_settings(ctx)
    uninstall_packages(settings)
    console.print()
    install_packages(settings)
