"""Install command implementation.

Provisions machine credentials, links every registered package and then
runs the Security Gate, in that order.
"""

from typing import Annotated

import typer

from dotctl.cli.display import (
    create_gpg_keys_table,
    create_reconcile_table,
    create_ssh_keys_table,
    print_provision_summary,
    print_reconcile_summary,
)
from dotctl.cli.types import (
    get_engine,
    get_machine_paths,
    get_settings,
    require_linker,
    require_registry,
    require_tools,
)
from dotctl.core.reconcile import ReconcileMode
from dotctl.core.session import SessionContext
from dotctl.core.settings import DotctlSettings
from dotctl.credentials.models import CredentialValidationError
from dotctl.credentials.provisioner import MachineProvisioner
from dotctl.credentials.scanner import scan_gpg_keys, scan_ssh_keys
from dotctl.security.gate import SecurityGate, UnencryptedKeyError
from dotctl.utils.formatting import (
    console,
    print_error,
    print_info,
    print_success,
    print_warning,
)

app = typer.Typer(
    help="Provision credentials and link all packages.",
    invoke_without_command=True,
)


def _prompt(label: str, default: str) -> str:
    return typer.prompt(label, default=default, show_default=bool(default))


def provision_credentials(settings: DotctlSettings) -> None:
    """Run the interactive credential provisioning.

    Raises:
        typer.Exit: If a required identity field is empty or a fragment
            cannot be written.
    """
    paths = get_machine_paths(settings)
    ssh_keys = scan_ssh_keys(paths.ssh_key_dir)
    gpg_keys = scan_gpg_keys()

    if ssh_keys:
        console.print(create_ssh_keys_table(ssh_keys))
    else:
        print_warning(f"No SSH private keys found in {paths.ssh_key_dir}")
        print_info("Generate one with: ssh-keygen -t ed25519 -C 'you@example.com'")
    if gpg_keys:
        console.print(create_gpg_keys_table(gpg_keys))

    provisioner = MachineProvisioner(
        paths,
        settings.gpg_template_path,
        prompt=_prompt,
        use_keychain=settings.use_keychain,
        probe_timeout=settings.probe_timeout,
    )
    try:
        result = provisioner.provision(ssh_keys=ssh_keys, gpg_keys=gpg_keys)
    except CredentialValidationError as e:
        print_error(str(e))
        print_info(f"Run 'dotctl install' again and enter a git user {e.field}.")
        raise typer.Exit(code=1) from e
    except OSError as e:
        print_error(f"Failed to write machine configuration: {e}")
        raise typer.Exit(code=1) from e

    print_provision_summary(result)


def install_packages(settings: DotctlSettings, skip_credentials: bool = False) -> None:
    """Full install workflow: provision, link, validate.

    Raises:
        typer.Exit: On any fatal condition, with code 1.
    """
    registry = require_registry(settings)
    require_tools(settings)
    linker = require_linker(settings)

    if skip_credentials:
        print_info("Keeping existing machine credentials.")
    else:
        provision_credentials(settings)

    console.print()
    results = get_engine(settings, linker).reconcile(registry.entries, ReconcileMode.APPLY)
    console.print(create_reconcile_table(results, title="Linked Packages"))
    print_reconcile_summary(results)

    gate = SecurityGate(
        get_machine_paths(settings),
        SessionContext.from_environment(),
        probe_timeout=settings.probe_timeout,
    )
    try:
        gate.validate(force=True)
    except UnencryptedKeyError as e:
        print_error(f"{e}. Sessions stay blocked until it has a passphrase.")
        print_info(f"Encrypt it with: {e.remediation}")
        raise typer.Exit(code=1) from e

    failed = [r for r in results if r.error is not None]
    if failed:
        for result in failed:
            print_error(f"Package '{result.entry.name}' was not linked: {result.error}")
        print_info("Move the conflicting files out of the way, then run 'dotctl install' again.")
        raise typer.Exit(code=1)

    for result in results:
        if result.is_not_found:
            print_warning(f"Package directory '{result.entry.name}' not found, skipped.")

    print_success("Installation complete.")
    print_info("Restart your shell to apply the changes.")


@app.callback(invoke_without_command=True)
def install(
    ctx: typer.Context,
    skip_credentials: Annotated[
        bool,
        typer.Option(
            "--skip-credentials",
            "-s",
            help="Keep the existing machine credentials and only link packages.",
        ),
    ] = False,
) -> None:
    """Install dotfiles on this machine.

    Asks for the git identity, SSH keys and GPG signing key (previous
    answers are offered as defaults), links every package listed in
    packages.config, then verifies that all configured keys carry a
    passphrase.

    Examples:
        dotctl install                      # Full installation
        dotctl install --skip-credentials   # Only (re)link packages
    """
    if ctx.invoked_subcommand is not None:
        return

    install_packages(get_settings(ctx), skip_credentials=skip_credentials)
