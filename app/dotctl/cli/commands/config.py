"""Config command implementation.

Shows the effective dotctl settings and creates the settings file.
"""

from typing import Annotated

import typer

from dotctl.cli.types import get_settings
from dotctl.core.paths import get_settings_path
from dotctl.core.settings import SettingsError, save_settings
from dotctl.utils.formatting import console, create_table, print_error, print_info, print_success

app = typer.Typer(
    help="Show or initialize dotctl settings.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def config(
    ctx: typer.Context,
    init: Annotated[
        bool,
        typer.Option(
            "--init",
            help="Write a settings file with the current values.",
        ),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing settings file.",
        ),
    ] = False,
) -> None:
    """Show the effective settings.

    Values come from ~/.config/dotctl/config.toml, with the dotfiles
    directory overridable by $DOTCTL_DIR or --dotfiles-dir.

    Examples:
        dotctl config           # Show effective settings
        dotctl config --init    # Create the settings file
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = get_settings(ctx)
    path = get_settings_path()

    if init:
        if path.exists() and not force:
            print_error(f"Settings file already exists: {path}")
            print_info("Use --force to overwrite it.")
            raise typer.Exit(code=1)
        try:
            written = save_settings(settings, path)
        except SettingsError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        print_success(f"Settings written to {written}")
        return

    table = create_table("Settings", "Setting", "Value")
    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))
    console.print(table)
    source = path if path.exists() else f"{path} (not created, defaults in use)"
    console.print(f"[muted]Settings file: {source}[/muted]")
