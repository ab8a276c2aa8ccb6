"""Dependency propagation.

When a package's version changes, the packages that depend on it need a
new release too, and their specifiers for the changed package should
follow the new version. Propagation walks dependents breadth-first, one
level at a time, so every package is reached at its shallowest depth.

Level structure for ``d → c → b → a`` (arrows point at dependencies) when
``a`` is bumped::

    frontier 0: [a]        direct change
    depth 1:    [b]        triggered_by a
    depth 2:    [c]        triggered_by b
    depth 3:    [d]        triggered_by c

Each package is updated at most once per resolution, which together with
the depth limit guarantees termination on cyclic graphs.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import semver

from .config import DependencyConfig
from .deps import rewrite_spec, should_skip_spec
from .errors import PackageNotFoundError
from .graph import DependencyGraph
from .models import (
    DependencyPropagation,
    DependencyUpdate,
    PackageInfo,
    PackageUpdate,
    VersionResolution,
)
from .versions import bump_version

logger = logging.getLogger(__name__)


class DependencyPropagator:
    """Extends a resolution with updates for dependents of changed packages."""

    def __init__(
        self,
        graph: DependencyGraph,
        packages: Mapping[str, PackageInfo],
        config: DependencyConfig | None = None,
    ) -> None:
        self.graph = graph
        self.packages = packages
        self.config = config or DependencyConfig()

    def propagate(self, resolution: VersionResolution) -> VersionResolution:
        """Append propagated updates and dependency rewrites to ``resolution``.

        Modifies ``resolution`` in place and also returns it.

        Raises:
            InvalidBumpTypeError: If the configured propagation bump is invalid.
            PackageNotFoundError: If the graph names a package missing from
                the package map.
        """
        if not self.config.propagate_updates:
            return resolution

        bump = self.config.bump()
        updated = {u.name for u in resolution.updates}
        frontier = [u.name for u in resolution.updates]
        depth = 1

        while frontier and self.config.depth_allowed(depth):
            next_frontier: list[str] = []
            for name in frontier:
                for dependent in self.graph.dependents(name):
                    if dependent in updated or not self._carries_bump(dependent, name):
                        continue
                    info = self._package(dependent)
                    update = PackageUpdate(
                        name=dependent,
                        path=info.path,
                        current_version=info.version,
                        next_version=bump_version(info.version, bump),
                        reason=DependencyPropagation(triggered_by=name, depth=depth),
                    )
                    resolution.updates.append(update)
                    updated.add(dependent)
                    logger.debug(
                        "%s: %s -> %s (depends on %s, depth %d)",
                        dependent,
                        update.current_version,
                        update.next_version,
                        name,
                        depth,
                    )
                    # An unchanged version gives its own dependents nothing to follow
                    if update.version_changed:
                        next_frontier.append(dependent)
            frontier = next_frontier
            depth += 1

        if frontier:
            logger.debug(
                "Stopped propagation at max depth %d; %d package(s) not expanded",
                self.config.max_propagation_depth,
                len(frontier),
            )

        self._rewrite_dependency_specs(resolution)
        return resolution

    def _carries_bump(self, dependent: str, dependency: str) -> bool:
        return any(
            self.config.propagates(edge.dep_type)
            for edge in self.graph.edges_between(dependent, dependency)
        )

    def _package(self, name: str) -> PackageInfo:
        try:
            return self.packages[name]
        except KeyError:
            raise PackageNotFoundError(name) from None

    def _rewrite_dependency_specs(self, resolution: VersionResolution) -> None:
        """Point every updated package's specifiers at the new versions.

        Every declared dependency type is rewritten, whether or not its edges
        carry propagated bumps.
        """
        new_versions: dict[str, semver.Version] = {
            u.name: u.next_version for u in resolution.updates if u.version_changed
        }
        if not new_versions:
            return

        for update in resolution.updates:
            info = self._package(update.name)
            already = {(d.name, d.dep_type) for d in update.dependency_updates}
            for dep_name, old_spec, dep_type in info.all_dependencies():
                if dep_name not in new_versions or dep_name not in self.graph:
                    continue
                if (dep_name, dep_type) in already:
                    continue
                if should_skip_spec(old_spec, self.config.skip_protocols):
                    continue
                new_spec = rewrite_spec(old_spec, new_versions[dep_name])
                if new_spec is None or new_spec == old_spec:
                    continue
                update.dependency_updates.append(
                    DependencyUpdate(
                        name=dep_name,
                        dep_type=dep_type,
                        old_spec=old_spec,
                        new_spec=new_spec,
                    )
                )
