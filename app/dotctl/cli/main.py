"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from pathlib import Path
from typing import Annotated

import typer

from dotctl import __version__
from dotctl.cli.commands import config, gate, install, reinstall, status, uninstall, update, usage
from dotctl.core.settings import SettingsError, load_settings
from dotctl.utils.formatting import print_error, print_info
from dotctl.utils.log import setup_logging

# Create main Typer app
app = typer.Typer(
    name="dotctl",
    help="Dotfiles and machine credential manager.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"dotctl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    dotfiles_dir: Annotated[
        Path | None,
        typer.Option(
            "--dotfiles-dir",
            "-d",
            help="Dotfiles directory (overrides $DOTCTL_DIR and the settings file).",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
) -> None:
    """dotctl - Dotfiles and machine credential manager.

    Links shared configuration packages into your home directory,
    keeps machine-specific identity and keys out of the shared tree,
    and refuses to run with unencrypted keys.
    """
    setup_logging(verbose=verbose, quiet=quiet)

    try:
        settings = load_settings(dotfiles_dir=dotfiles_dir)
    except SettingsError as e:
        print_error(str(e))
        print_info("Fix the settings file or recreate it with: dotctl config --init --force")
        raise typer.Exit(code=1) from e

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings


# Register commands
app.add_typer(install.app, name="install")
app.add_typer(uninstall.app, name="uninstall")
app.add_typer(reinstall.app, name="reinstall")
app.add_typer(status.app, name="status")
app.add_typer(update.app, name="update")
app.add_typer(gate.app, name="gate")
app.add_typer(config.app, name="config")
app.add_typer(usage.app, name="help")


if __name__ == "__main__":
    app()
