"""Development environment updates driven by versions.config.

Tools with a known non-interactive recipe get a command step; the rest
get a manual hint, printed but never executed. An installed Homebrew
tool is upgraded only when it is below its minimum version or listed by
``brew outdated``.
"""

from __future__ import annotations

import logging
import re
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from dotctl.core.versions import VersionRegistry, VersionRequirement, check_version
from dotctl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

# Tools installed through Homebrew, mapped to their formula names
BREW_FORMULAS: dict[str, str] = {
    "just": "just",
    "duckdb": "duckdb",
    "stow": "stow",
    "jq": "jq",
    "rg": "ripgrep",
}

GOPLS_MODULE = "golang.org/x/tools/gopls@latest"

# Manual recipes for tools managed by shell-function version managers
MANUAL_HINTS: dict[str, str] = {
    "node": "nvm install {version} && nvm alias default {version}",
    "go": "gvm install go{version} --binary && gvm use go{version} --default",
}

_STEP_TIMEOUT = 900.0
_OUTDATED_TIMEOUT = 60.0
_LEADING_NON_DIGITS = re.compile(r"^\D+")


@dataclass(frozen=True, slots=True)
class UpdateStep:
    """One planned update.

    Attributes:
        tool: Tool name from versions.config.
        description: What the step does.
        command: Command to run, None for a manual step.
        hint: Command the operator has to run by hand.
    """

    tool: str
    description: str
    command: tuple[str, ...] | None = None
    hint: str | None = None

    @property
    def is_manual(self) -> bool:
        return self.command is None


@dataclass(frozen=True, slots=True)
class UpdateOutcome:
    """Result of running one step.

    Attributes:
        step: The executed step.
        success: Whether the command exited with 0.
        error: Error detail for failed steps.
    """

    step: UpdateStep
    success: bool
    error: str | None = None


def _bare_version(version: str) -> str:
    return _LEADING_NON_DIGITS.sub("", version.strip())


def brew_outdated(formula: str, timeout: float = _OUTDATED_TIMEOUT) -> bool:
    """Check whether Homebrew has a newer version of an installed formula.

    Args:
        formula: Formula name.
        timeout: Command timeout in seconds.

    Returns:
        True if ``brew outdated`` lists the formula.
    """
    try:
        result = run_command(["brew", "outdated", "--quiet", formula], timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("Cannot check whether %s is outdated: %s", formula, e)
        return False
    return bool(result.stdout.strip())


class EnvironmentUpdater:
    """Plans and runs tool updates for every declared requirement.

    Example:
        >>> updater = EnvironmentUpdater(VersionRegistry.load(path))
        >>> steps = updater.plan()
        >>> outcomes = updater.run(steps)
    """

    def __init__(self, registry: VersionRegistry, timeout: float = _STEP_TIMEOUT) -> None:
        self._registry = registry
        self._timeout = timeout

    def plan(self) -> list[UpdateStep]:
        """Build one step per requirement, in file order."""
        steps: list[UpdateStep] = []
        for requirement in self._registry:
            step = self._plan_requirement(requirement)
            if step is not None:
                steps.append(step)
        return steps

    def _plan_requirement(self, requirement: VersionRequirement) -> UpdateStep | None:
        tool = requirement.tool
        version = _bare_version(requirement.min_version)

        if tool in BREW_FORMULAS:
            formula = BREW_FORMULAS[tool]
            if not command_exists("brew"):
                return UpdateStep(
                    tool=tool,
                    description="Homebrew not found",
                    hint=f"brew install {formula}",
                )
            if not command_exists(tool):
                return UpdateStep(
                    tool=tool,
                    description=f"install {formula} with Homebrew",
                    command=("brew", "install", formula),
                )
            if check_version(requirement).satisfied and not brew_outdated(formula):
                logger.debug("%s is up to date", tool)
                return None
            return UpdateStep(
                tool=tool,
                description=f"upgrade {formula} with Homebrew",
                command=("brew", "upgrade", formula),
            )

        if tool == "python":
            if not command_exists("uv"):
                return UpdateStep(
                    tool=tool,
                    description="uv not found",
                    hint=f"uv python install {version}",
                )
            return UpdateStep(
                tool=tool,
                description=f"install Python {version} with uv",
                command=("uv", "python", "install", version),
            )

        if tool == "gopls":
            if not command_exists("go"):
                return UpdateStep(
                    tool=tool,
                    description="go not found",
                    hint=f"go install {GOPLS_MODULE}",
                )
            return UpdateStep(
                tool=tool,
                description="install latest gopls",
                command=("go", "install", GOPLS_MODULE),
            )

        if check_version(requirement).satisfied:
            logger.debug("%s already satisfies %s", tool, requirement.min_version)
            return None

        template = MANUAL_HINTS.get(tool)
        hint = template.format(version=version) if template else None
        return UpdateStep(
            tool=tool,
            description=f"{tool} >= {requirement.min_version} required",
            hint=hint or f"install {tool} {requirement.min_version} or newer",
        )

    def run(
        self,
        steps: Sequence[UpdateStep],
        on_step: Callable[[UpdateStep], None] | None = None,
    ) -> list[UpdateOutcome]:
        """Execute command steps sequentially.

        Manual steps are skipped. A failing step does not stop the rest.

        Args:
            steps: Planned steps.
            on_step: Called before each command step runs.

        Returns:
            One UpdateOutcome per command step.
        """
        outcomes: list[UpdateOutcome] = []
        for step in steps:
            if step.command is None:
                continue
            if on_step is not None:
                on_step(step)

            logger.info("Running %s", " ".join(step.command))
            try:
                result = run_command(list(step.command), timeout=self._timeout)
            except (OSError, subprocess.TimeoutExpired) as e:
                outcomes.append(UpdateOutcome(step=step, success=False, error=str(e)))
                continue

            error = None
            if not result.success:
                lines = result.stderr.strip().splitlines()
                error = lines[-1] if lines else f"exit code {result.returncode}"
            outcomes.append(UpdateOutcome(step=step, success=result.success, error=error))
        return outcomes
