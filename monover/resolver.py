"""Version resolution: discover → graph → cycles → resolve → propagate.

``resolve`` is the synchronous core over already-loaded packages.
``VersionResolver`` adds package discovery and applying the result, the
only steps that touch the filesystem.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .apply import ApplyEngine, ApplyResult
from .config import DependencyConfig, MonoverConfig
from .discovery import PackageDiscovery, discover_packages
from .errors import CircularDependencyError, GraphConstructionError
from .fs import FileSystem, LocalFileSystem
from .graph import DependencyGraphBuilder
from .models import (
    Changeset,
    CircularDependency,
    PackageInfo,
    VersioningStrategy,
    VersionResolution,
)
from .propagation import DependencyPropagator
from .resolution import VersionResolutionEngine

logger = logging.getLogger(__name__)


def resolve(
    packages: Iterable[PackageInfo],
    changeset: Changeset,
    config: DependencyConfig | None = None,
    strategy: VersioningStrategy = VersioningStrategy.INDEPENDENT,
) -> VersionResolution:
    """Resolve a changeset against already-discovered packages.

    Raises:
        PackageNotFoundError: If the changeset names an unknown package.
        GraphConstructionError: If two packages share a name.
        CircularDependencyError: If fail_on_circular is set and cycles exist.
        InvalidBumpTypeError: If the propagation bump is invalid.
    """
    config = config or DependencyConfig()
    package_list = list(packages)
    package_map: dict[str, PackageInfo] = {}
    for info in package_list:
        if info.name in package_map:
            raise GraphConstructionError("duplicate package name", info.name)
        package_map[info.name] = info

    graph = None
    cycles: list[CircularDependency] = []
    # Without propagation or cycle reporting the graph is never needed
    if config.propagate_updates or config.detect_circular:
        graph = DependencyGraphBuilder(config).build(package_list)
        if config.detect_circular:
            cycles = graph.detect_cycles()

    resolution = VersionResolutionEngine(strategy).resolve(changeset, package_map)
    resolution.circular_dependencies = cycles

    if cycles and config.fail_on_circular:
        raise CircularDependencyError(cycles)

    if graph is not None and config.propagate_updates:
        DependencyPropagator(graph, package_map, config).propagate(resolution)

    logger.debug(
        "Resolved %d update(s), %d cycle(s)",
        resolution.update_count,
        len(resolution.circular_dependencies),
    )
    return resolution


class VersionResolver:
    """Resolves and applies versions for the workspace at ``workspace_root``."""

    def __init__(
        self,
        workspace_root: Path,
        config: MonoverConfig | None = None,
        fs: FileSystem | None = None,
        discovery: PackageDiscovery | None = None,
    ) -> None:
        self.workspace_root = Path(workspace_root)
        self.config = config or MonoverConfig()
        self.fs = fs or LocalFileSystem()
        self.discovery = discovery or discover_packages

    @property
    def strategy(self) -> VersioningStrategy:
        return self.config.strategy

    async def discover_packages(self) -> list[PackageInfo]:
        return await self.discovery(self.workspace_root, self.fs)

    async def resolve_versions(self, changeset: Changeset) -> VersionResolution:
        """Resolve ``changeset`` against the workspace's current packages.

        Any failure aborts the call; no partial resolution is returned.
        """
        packages = await self.discover_packages()
        return resolve(packages, changeset, self.config.dependency, self.strategy)

    async def apply_versions(
        self, changeset: Changeset, dry_run: bool = False, keep_backups: bool = False
    ) -> ApplyResult:
        """Resolve ``changeset`` and write the result to the manifests."""
        resolution = await self.resolve_versions(changeset)
        engine = ApplyEngine(self.fs, keep_backups=keep_backups)
        return await engine.apply(resolution, dry_run=dry_run)
