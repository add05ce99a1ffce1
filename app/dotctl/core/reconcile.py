"""Reconciliation engine for package links.

Compares the desired placement of each registry package with the actual
filesystem by asking the linker what a restow would change, classifies
the answer into a ReconciliationState, and optionally applies it.

The engine never computes symlink changes itself. The linker is the
oracle; the engine only decides what counts as clean and what must be
escalated to the operator.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dotctl.core.registry import PackageEntry
    from dotctl.linkers.base import Linker
    from dotctl.utils.shell import CommandResult

logger = logging.getLogger(__name__)

# Action line prefixes printed by `stow --verbose`
ACTION_PREFIXES: tuple[str, ...] = ("LINK:", "UNLINK:", "MKDIR:", "RMDIR:", "MV:")

# Marker on a LINK line that merely re-creates the link it just removed
REVERT_MARKER = "(reverts previous action)"

# Phrases stow prints when it refuses to touch a target
CONFLICT_MARKERS: tuple[str, ...] = (
    "would cause conflicts",
    "existing target is",
    "All operations aborted",
)

# Informational lines that are never an error
_NOISE_PREFIXES: tuple[str, ...] = ("WARNING: in simulation mode",)


class ReconciliationState(Enum):
    """Per-package reconciliation outcome.

    Attributes:
        CLEAN: Already linked as desired.
        WOULD_LINK: The linker reports pending link/unlink/mkdir operations.
        CONFLICT: A pre-existing non-symlink file occupies the target.
        NOT_FOUND: The package directory does not exist.
    """

    CLEAN = "clean"
    WOULD_LINK = "would_link"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


class ReconcileMode(Enum):
    """Whether reconciliation only reports or also applies changes."""

    DRY_RUN = "dry_run"
    APPLY = "apply"


@dataclass(frozen=True, slots=True)
class Classification:
    """State derived from one simulation, with the line that explains it."""

    state: ReconciliationState
    detail: str | None = None


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Outcome of reconciling a single package.

    Attributes:
        entry: The registry entry.
        state: State observed before any change was applied.
        detail: First pending action line (WOULD_LINK) or first error line
            (CONFLICT), verbatim from the linker.
        applied: Whether the change was applied successfully.
        error: Error from the apply step, if it failed.
    """

    entry: PackageEntry
    state: ReconciliationState
    detail: str | None = None
    applied: bool = False
    error: str | None = None

    @property
    def is_clean(self) -> bool:
        return self.state == ReconciliationState.CLEAN

    @property
    def is_conflict(self) -> bool:
        return self.state == ReconciliationState.CONFLICT

    @property
    def is_not_found(self) -> bool:
        return self.state == ReconciliationState.NOT_FOUND

    @property
    def is_resolved(self) -> bool:
        """Whether the package ends this run linked as desired."""
        return self.is_clean or self.applied

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, object] = {
            "package": self.entry.name,
            "target": self.entry.target_path,
            "state": self.state.value,
        }
        if self.detail is not None:
            result["detail"] = self.detail
        if self.applied:
            result["applied"] = True
        if self.error is not None:
            result["error"] = self.error
        return result


def _is_action_line(line: str) -> bool:
    return line.startswith(ACTION_PREFIXES)


def _action_path(line: str) -> str:
    """Return the path an action line refers to ("LINK: a => b" -> "a")."""
    _, _, rest = line.partition(":")
    rest = rest.replace(REVERT_MARKER, "")
    return rest.split("=>", 1)[0].strip()


def _first_error_line(result: CommandResult) -> str:
    """Pick the first meaningful error line from linker output.

    Stderr is preferred; simulation-mode notices and action lines are
    skipped.
    """
    for text in (result.stderr, result.stdout):
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith(_NOISE_PREFIXES) or _is_action_line(line):
                continue
            return line
    return f"linker exited with code {result.returncode}"


def classify_simulation(result: CommandResult) -> Classification:
    """Classify the output of a simulated restow.

    Rules, in order:
    - conflict text or a non-zero exit: CONFLICT, with the first error line;
    - no action lines: CLEAN;
    - only refresh actions (an UNLINK followed by a LINK that reverts it): CLEAN;
    - anything else: WOULD_LINK, with the first pending action line.

    Args:
        result: CommandResult of the linker's simulate call.

    Returns:
        Classification with state and explanatory detail.
    """
    output = result.output
    if not result.success or any(marker in output for marker in CONFLICT_MARKERS):
        return Classification(ReconciliationState.CONFLICT, _first_error_line(result))

    actions = [line.strip() for line in output.splitlines() if _is_action_line(line.strip())]
    if not actions:
        return Classification(ReconciliationState.CLEAN)

    reverted = {
        _action_path(line)
        for line in actions
        if line.startswith("LINK:") and REVERT_MARKER in line
    }

    for line in actions:
        if line.startswith("LINK:") and REVERT_MARKER in line:
            continue
        if line.startswith("UNLINK:") and _action_path(line) in reverted:
            continue
        return Classification(ReconciliationState.WOULD_LINK, line)

    return Classification(ReconciliationState.CLEAN)


class ReconciliationEngine:
    """Engine that reconciles registry packages with their link targets.

    Example:
        >>> engine = ReconciliationEngine(StowLinker(dotfiles_dir), dotfiles_dir)
        >>> results = engine.reconcile(registry.entries, ReconcileMode.DRY_RUN)
        >>> conflicts = [r for r in results if r.is_conflict]
    """

    def __init__(self, linker: Linker, dotfiles_dir: Path) -> None:
        """Initialize the engine.

        Args:
            linker: Linker used to simulate and apply links.
            dotfiles_dir: Directory containing package directories.
        """
        self._linker = linker
        self._dotfiles_dir = dotfiles_dir

    def package_dir(self, entry: PackageEntry) -> Path:
        return self._dotfiles_dir / entry.name

    def reconcile(
        self,
        entries: Iterable[PackageEntry],
        mode: ReconcileMode = ReconcileMode.DRY_RUN,
    ) -> list[ReconcileResult]:
        """Reconcile each entry, in order.

        No entry aborts the run: every package is attempted and its
        outcome returned.

        Args:
            entries: Registry entries.
            mode: DRY_RUN to only report, APPLY to also restow.

        Returns:
            One ReconcileResult per entry.

        Raises:
            LinkerUnavailableError: If the linker is not installed.
        """
        self._linker.require_available()

        results: list[ReconcileResult] = []
        for entry in entries:
            result = self._reconcile_entry(entry)
            if mode == ReconcileMode.APPLY and result.state in (
                ReconciliationState.WOULD_LINK,
                ReconciliationState.CONFLICT,
            ):
                result = self._apply_entry(result)
            results.append(result)
        return results

    def _reconcile_entry(self, entry: PackageEntry) -> ReconcileResult:
        if not self.package_dir(entry).is_dir():
            logger.info("Package directory missing: %s", self.package_dir(entry))
            return ReconcileResult(entry=entry, state=ReconciliationState.NOT_FOUND)

        if not Path(entry.target_path).is_dir():
            # Stow refuses a missing target dir; linking would create it
            return ReconcileResult(
                entry=entry,
                state=ReconciliationState.WOULD_LINK,
                detail=f"MKDIR: {entry.target_path}",
            )

        classification = classify_simulation(self._linker.simulate(entry.name, entry.target_path))
        logger.debug("%s -> %s", entry.name, classification.state.value)
        return ReconcileResult(
            entry=entry,
            state=classification.state,
            detail=classification.detail,
        )

    def _apply_entry(self, result: ReconcileResult) -> ReconcileResult:
        entry = result.entry
        try:
            Path(entry.target_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return ReconcileResult(
                entry=entry,
                state=result.state,
                detail=result.detail,
                error=f"Cannot create target {entry.target_path}: {e}",
            )

        logger.info("Linking %s into %s", entry.name, entry.target_path)
        outcome = self._linker.apply(entry.name, entry.target_path)
        if outcome.success:
            return ReconcileResult(
                entry=entry,
                state=result.state,
                detail=result.detail,
                applied=True,
            )
        return ReconcileResult(
            entry=entry,
            state=result.state,
            detail=result.detail,
            error=_first_error_line(outcome),
        )

    def unlink(self, entries: Iterable[PackageEntry]) -> list[ReconcileResult]:
        """Remove the links of every existing package.

        Missing packages are reported as NOT_FOUND and skipped.

        Args:
            entries: Registry entries.

        Returns:
            One ReconcileResult per entry; ``applied`` marks removed packages.

        Raises:
            LinkerUnavailableError: If the linker is not installed.
        """
        self._linker.require_available()

        results: list[ReconcileResult] = []
        for entry in entries:
            if not self.package_dir(entry).is_dir():
                results.append(ReconcileResult(entry=entry, state=ReconciliationState.NOT_FOUND))
                continue
            if not Path(entry.target_path).is_dir():
                results.append(ReconcileResult(entry=entry, state=ReconciliationState.CLEAN))
                continue

            logger.info("Unlinking %s from %s", entry.name, entry.target_path)
            outcome = self._linker.remove(entry.name, entry.target_path)
            results.append(
                ReconcileResult(
                    entry=entry,
                    state=ReconciliationState.CLEAN,
                    applied=outcome.success,
                    error=None if outcome.success else _first_error_line(outcome),
                )
            )
        return results
