"""Help command implementation."""

import typer

app = typer.Typer(
    help="Show usage information.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def show_help(ctx: typer.Context) -> None:
    """Show the list of commands and global options."""
    if ctx.invoked_subcommand is not None:
        return

    root = ctx.find_root()
    typer.echo(root.get_help())
