"""Gate command implementation.

Meant for shell startup files:

    eval "$(dotctl gate --print-env)" || return

The shell is blocked until every managed key has a passphrase; once the
gate passes, the exported variable skips the probes for the rest of the
session.
"""

from typing import Annotated

import typer

from dotctl.cli.types import get_machine_paths, get_settings
from dotctl.core.session import SessionContext
from dotctl.security.gate import SecurityGate, UnencryptedKeyError
from dotctl.utils.formatting import (
    err_console,
    print_error,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Block the session while keys lack a passphrase.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def gate(
    ctx: typer.Context,
    print_env: Annotated[
        bool,
        typer.Option(
            "--print-env",
            help="Print the export statement that marks the session as validated.",
        ),
    ] = False,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Re-run the checks even if this session was already validated.",
        ),
    ] = False,
) -> None:
    """Verify that every managed SSH and GPG key is passphrase-protected.

    Exits with code 1 and the command that fixes the key when an
    unprotected key is found.
    """
    if ctx.invoked_subcommand is not None:
        return

    settings = get_settings(ctx)
    session = SessionContext.from_environment()
    security_gate = SecurityGate(
        get_machine_paths(settings),
        session,
        probe_timeout=settings.probe_timeout,
    )

    try:
        report = security_gate.validate(force=force)
    except UnencryptedKeyError as e:
        print_error(f"{e}. Cannot proceed with unencrypted keys.")
        # stdout is eval'd by the shell, keep the hint on stderr
        err_console.print(f"[info]Encrypt it with:[/] {e.remediation}")
        raise typer.Exit(code=1) from e

    for key in report.unverified_ssh_keys:
        print_warning(f"Could not verify {key.name}, is ssh-keygen installed?")

    if print_env:
        if session.is_validated:
            typer.echo(session.export_line())
    elif report.unverified_ssh_keys:
        return
    elif not report.cached:
        print_success("All managed keys are passphrase-protected.")
