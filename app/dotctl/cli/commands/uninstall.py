"""Uninstall command implementation.

Removes the links of every registered package. Machine credential
fragments are left in place.
"""

from typing import Annotated

import typer

from dotctl.cli.display import create_reconcile_table
from dotctl.cli.types import (
    get_engine,
    get_machine_paths,
    get_settings,
    require_linker,
    require_registry,
)
from dotctl.core.settings import DotctlSettings
from dotctl.credentials import keychain
from dotctl.security.gate import SecurityGate
from dotctl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Remove all package links.",
    invoke_without_command=True,
)


def uninstall_packages(settings: DotctlSettings) -> None:
    """Unlink every package and unload the managed SSH keys.

    Raises:
        typer.Exit: If any package could not be unlinked.
    """
    registry = require_registry(settings)
    linker = require_linker(settings)
    paths = get_machine_paths(settings)

    if settings.use_keychain:
        for key in SecurityGate(paths).configured_ssh_keys():
            if keychain.remove_key(key):
                print_info(f"Removed {key.name} from the SSH agent.")

    results = get_engine(settings, linker).unlink(registry.entries)
    console.print(create_reconcile_table(results, title="Unlinked Packages"))

    failed = [r for r in results if r.error is not None]
    if failed:
        for result in failed:
            print_error(f"Package '{result.entry.name}' was not unlinked: {result.error}")
        raise typer.Exit(code=1)

    print_success("Uninstall complete.")
    print_info(f"Machine credentials were kept in {paths.xdg_config}.")


@app.callback(invoke_without_command=True)
def uninstall(
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
    """Remove the symlinks of every registered package.

    Machine-local credential files (git, ssh and gpg fragments) are never
    deleted.

    Examples:
        dotctl uninstall        # Ask before unlinking
        dotctl uninstall --yes  # Unlink without confirmation
    """
    if ctx.invoked_subcommand is not None:
        return

    if not yes and not typer.confirm("Remove all dotfile links?", default=False):
        print_info("Aborted.")
        raise typer.Exit(code=0)

    uninstall_packages(get_settings(ctx))
