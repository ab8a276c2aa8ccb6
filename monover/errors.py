"""Exception types raised by monover.

Every failure that should reach the caller derives from MonoverError so a
CLI or service can catch one type and report it. Local, recoverable issues
(an already-updated dependent, a specifier we don't know how to rewrite) are
skipped by the engine and never raised.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import CircularDependency


class MonoverError(Exception):
    """Base class for all monover errors."""


class ConfigError(MonoverError):
    """Configuration could not be loaded or contains an invalid value."""


class InvalidBumpTypeError(ConfigError):
    """A bump string is not one of major, minor, patch or none."""

    def __init__(self, bump_type: str) -> None:
        self.bump_type = bump_type
        super().__init__(
            f"Invalid bump type '{bump_type}'. Must be one of: major, minor, patch, none"
        )


class PackageNotFoundError(MonoverError):
    """A package named by a changeset (or dependency) was not discovered."""

    def __init__(self, name: str, workspace_root: Path | str | None = None) -> None:
        self.name = name
        self.workspace_root = Path(workspace_root) if workspace_root else None
        where = f" in workspace {self.workspace_root}" if self.workspace_root else ""
        super().__init__(f"Package '{name}' not found{where}")


class CircularDependencyError(MonoverError):
    """Raised only when fail_on_circular is enabled and cycles were found."""

    def __init__(self, cycles: list[CircularDependency]) -> None:
        self.cycles = list(cycles)
        rendered = "; ".join(c.display_cycle() for c in self.cycles)
        super().__init__(f"Circular dependencies detected: {rendered}")


class GraphConstructionError(MonoverError):
    """Package records were malformed and no graph could be built."""

    def __init__(self, reason: str, package: str | None = None) -> None:
        self.reason = reason
        self.package = package
        prefix = f"{package}: " if package else ""
        super().__init__(f"Failed to build dependency graph: {prefix}{reason}")


class ManifestError(MonoverError):
    """A package manifest could not be read or parsed."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class ApplyFailedError(MonoverError):
    """Writing manifests failed; every backup taken in the call was restored.

    Attributes:
        path: The manifest whose write failed.
        reason: Description of the underlying failure.
        statuses: Per-package outcome at the time of failure.
        restored: Manifests restored from backup.
    """

    def __init__(
        self,
        path: Path | str,
        reason: str,
        statuses: list[Any] | None = None,
        restored: list[Path] | None = None,
    ) -> None:
        self.path = Path(path)
        self.reason = reason
        self.statuses = list(statuses or [])
        self.restored = list(restored or [])
        super().__init__(f"Failed to apply versions to {self.path}: {reason}")


class SnapshotFormatError(MonoverError):
    """A snapshot template is invalid or produced an empty version."""
