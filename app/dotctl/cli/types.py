"""Shared helpers for CLI commands.

Builds the runtime objects every command needs from the settings the
main callback stored on the Typer context.
"""

import typer

from dotctl.core.paths import MachinePaths
from dotctl.core.preflight import find_missing_tools, required_tools
from dotctl.core.reconcile import ReconciliationEngine
from dotctl.core.registry import (
    PackageRegistry,
    RegistryError,
    RegistryNotFoundError,
    default_variables,
    load_registry,
)
from dotctl.core.settings import DotctlSettings, load_settings
from dotctl.linkers.base import Linker, LinkerUnavailableError
from dotctl.linkers.stow import StowLinker
from dotctl.utils.formatting import print_error, print_info, print_warning


def get_settings(ctx: typer.Context) -> DotctlSettings:
    """Settings loaded by the main callback, or loaded now as a fallback."""
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    settings = obj.get("settings")
    if isinstance(settings, DotctlSettings):
        return settings
    return load_settings()


def get_machine_paths(settings: DotctlSettings) -> MachinePaths:
    return MachinePaths.default(ssh_key_dir=settings.ssh_key_dir)


def get_linker(settings: DotctlSettings) -> Linker:
    return StowLinker(
        settings.dotfiles_dir,
        command=settings.linker_command,
        timeout=settings.linker_timeout,
    )


def require_linker(settings: DotctlSettings) -> Linker:
    """Get the linker, exiting with a remediation hint if it is missing.

    Raises:
        typer.Exit: If the linker executable is not installed.
    """
    linker = get_linker(settings)
    try:
        linker.require_available()
    except LinkerUnavailableError as e:
        print_error(str(e))
        print_info(f"Install it first, e.g.: brew install {settings.linker_command}")
        raise typer.Exit(code=1) from e
    return linker


def require_tools(settings: DotctlSettings) -> None:
    """Exit listing every required tool that is not installed.

    Raises:
        typer.Exit: If any required executable is missing.
    """
    missing = find_missing_tools(required_tools(settings.linker_command))
    if not missing:
        return
    for tool in missing:
        print_error(f"Required tool not found: {tool.tool}")
        print_info(f"Install it with: {tool.hint}")
    print_info("Install the missing tools and try again.")
    raise typer.Exit(code=1)


def get_engine(settings: DotctlSettings, linker: Linker | None = None) -> ReconciliationEngine:
    return ReconciliationEngine(linker or get_linker(settings), settings.dotfiles_dir)


def require_registry(settings: DotctlSettings) -> PackageRegistry:
    """Load the package registry, exiting if it cannot be read.

    Skipped lines are reported as warnings.

    Raises:
        typer.Exit: If the registry file is missing or unreadable.
    """
    paths = get_machine_paths(settings)
    try:
        registry = load_registry(
            settings.packages_path,
            default_variables(paths.home, paths.xdg_config),
        )
    except RegistryNotFoundError as e:
        print_error(str(e))
        print_info(
            f"Create {settings.packages_path} or point dotctl at your dotfiles "
            "with --dotfiles-dir or $DOTCTL_DIR."
        )
        raise typer.Exit(code=1) from e
    except RegistryError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    for error in registry.errors:
        print_warning(f"Skipped {settings.packages_file} line {error.line_number}: {error}")
    return registry
