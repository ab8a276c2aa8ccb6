"""Dependency graph of workspace packages.

Packages live in an arena indexed by insertion order; edges are adjacency
lists of integer indices in both directions, so lookups by name and the
cycle search never chase object references.

Edges point from dependents to their dependencies: if ``a`` depends on
``b`` there is an edge ``a → b``, and ``b`` lists ``a`` among its
dependents. Only workspace-internal dependencies become edges.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from .config import DependencyConfig
from .deps import ProtocolKind, detect_protocol
from .errors import GraphConstructionError
from .models import CircularDependency, DependencyEdge, PackageInfo

logger = logging.getLogger(__name__)


class DependencyGraph:
    """A directed graph of workspace package dependencies."""

    def __init__(self) -> None:
        self._packages: list[PackageInfo] = []
        self._index: dict[str, int] = {}
        self._edges: list[DependencyEdge] = []
        # node index → indices into _edges
        self._out_edges: list[list[int]] = []
        self._in_edges: list[list[int]] = []
        # node index → distinct neighbour node indices, in first-seen order
        self._succ: list[list[int]] = []
        self._pred: list[list[int]] = []
        self._pairs: set[tuple[int, int]] = set()

    def add_package(self, package: PackageInfo) -> None:
        """Add a node.

        Raises:
            GraphConstructionError: If a package with this name exists.
        """
        if package.name in self._index:
            raise GraphConstructionError("duplicate package name", package.name)
        self._index[package.name] = len(self._packages)
        self._packages.append(package)
        self._out_edges.append([])
        self._in_edges.append([])
        self._succ.append([])
        self._pred.append([])

    def add_edge(self, edge: DependencyEdge) -> None:
        """Add a dependent → dependency edge between existing nodes.

        Raises:
            GraphConstructionError: If either endpoint is not a node.
        """
        try:
            src = self._index[edge.dependent]
            dst = self._index[edge.dependency]
        except KeyError as exc:
            raise GraphConstructionError(
                f"edge endpoint {exc.args[0]!r} is not a workspace package",
                edge.dependent,
            ) from None
        edge_id = len(self._edges)
        self._edges.append(edge)
        self._out_edges[src].append(edge_id)
        self._in_edges[dst].append(edge_id)
        if (src, dst) not in self._pairs:
            self._pairs.add((src, dst))
            self._succ[src].append(dst)
            self._pred[dst].append(src)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._packages)

    def contains(self, name: str) -> bool:
        return name in self._index

    @property
    def package_count(self) -> int:
        return len(self._packages)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    @property
    def names(self) -> list[str]:
        """Package names in insertion order."""
        return [p.name for p in self._packages]

    @property
    def edges(self) -> list[DependencyEdge]:
        return list(self._edges)

    def package(self, name: str) -> PackageInfo | None:
        idx = self._index.get(name)
        return None if idx is None else self._packages[idx]

    def dependencies(self, name: str) -> list[str]:
        """Names of packages that ``name`` depends on directly."""
        idx = self._index.get(name)
        if idx is None:
            return []
        return [self._packages[i].name for i in self._succ[idx]]

    def dependents(self, name: str) -> list[str]:
        """Names of packages that depend on ``name`` directly."""
        idx = self._index.get(name)
        if idx is None:
            return []
        return [self._packages[i].name for i in self._pred[idx]]

    def edges_from(self, name: str) -> list[DependencyEdge]:
        idx = self._index.get(name)
        if idx is None:
            return []
        return [self._edges[e] for e in self._out_edges[idx]]

    def edges_to(self, name: str) -> list[DependencyEdge]:
        idx = self._index.get(name)
        if idx is None:
            return []
        return [self._edges[e] for e in self._in_edges[idx]]

    def edges_between(self, dependent: str, dependency: str) -> list[DependencyEdge]:
        """All edges (one per dependency type) from dependent to dependency."""
        return [e for e in self.edges_from(dependent) if e.dependency == dependency]

    def transitive_dependents(self, name: str) -> list[str]:
        """Every package that depends on ``name`` directly or indirectly (BFS)."""
        return self._reachable(name, self._pred)

    def transitive_dependencies(self, name: str) -> list[str]:
        """Every package ``name`` depends on directly or indirectly (BFS)."""
        return self._reachable(name, self._succ)

    def _reachable(self, name: str, adjacency: list[list[int]]) -> list[str]:
        start = self._index.get(name)
        if start is None:
            return []
        seen = {start}
        order: list[str] = []
        queue = deque(adjacency[start])
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            order.append(self._packages[current].name)
            queue.extend(adjacency[current])
        return order

    def detect_cycles(self) -> list[CircularDependency]:
        """Find every dependency cycle with Tarjan's SCC algorithm.

        Each strongly connected component with more than one package is
        reported once, its members ordered by DFS discovery. A package
        that only depends on itself is not a cycle.

        Runs in O(V + E); iterative so deep chains can't hit the recursion
        limit.
        """
        count = len(self._packages)
        index_of = [-1] * count
        lowlink = [0] * count
        on_stack = [False] * count
        stack: list[int] = []
        components: list[list[int]] = []
        counter = 0

        for root in range(count):
            if index_of[root] != -1:
                continue
            index_of[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack[root] = True
            # (node, position in its successor list)
            work = [(root, 0)]

            while work:
                node, pos = work[-1]
                successors = self._succ[node]
                if pos < len(successors):
                    work[-1] = (node, pos + 1)
                    succ = successors[pos]
                    if index_of[succ] == -1:
                        index_of[succ] = lowlink[succ] = counter
                        counter += 1
                        stack.append(succ)
                        on_stack[succ] = True
                        work.append((succ, 0))
                    elif on_stack[succ]:
                        lowlink[node] = min(lowlink[node], index_of[succ])
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])

                if lowlink[node] == index_of[node]:
                    members: list[int] = []
                    while True:
                        member = stack.pop()
                        on_stack[member] = False
                        members.append(member)
                        if member == node:
                            break
                    if len(members) > 1:
                        members.sort(key=index_of.__getitem__)
                        components.append(members)

        cycles = [
            CircularDependency(cycle=tuple(self._packages[i].name for i in members))
            for members in components
        ]
        if cycles:
            logger.warning(
                "Detected %d dependency cycle(s): %s",
                len(cycles),
                "; ".join(c.display_cycle() for c in cycles),
            )
        else:
            logger.debug("No dependency cycles detected")
        return cycles


class DependencyGraphBuilder:
    """Builds a DependencyGraph from discovered package records.

    Runtime dependencies are always considered; dev, peer and optional
    dependencies only when enabled in the configuration.
    """

    def __init__(self, config: DependencyConfig | None = None) -> None:
        self.config = config or DependencyConfig()

    def build(
        self, packages: Iterable[PackageInfo | Mapping[str, Any]]
    ) -> DependencyGraph:
        """Build the graph.

        A declared dependency becomes an edge when its name is another
        workspace package and its specifier is a workspace, local or
        semver one. Dependencies on packages outside the workspace, and
        git/URL/alias specifiers, are external and skipped.

        Raises:
            GraphConstructionError: If a record is malformed or two
                packages share a name.
        """
        graph = DependencyGraph()
        records = [self._validate(p) for p in packages]
        for package in records:
            graph.add_package(package)

        for package in records:
            for dep_name, spec, dep_type in package.all_dependencies():
                if dep_name not in graph or not self.config.includes(dep_type):
                    continue
                protocol = detect_protocol(spec)
                if protocol.kind is ProtocolKind.EXTERNAL:
                    logger.debug(
                        "%s: treating %s@%s as external", package.name, dep_name, spec
                    )
                    continue
                graph.add_edge(
                    DependencyEdge(
                        dependent=package.name,
                        dependency=dep_name,
                        dep_type=dep_type,
                        spec=spec,
                        protocol=protocol,
                    )
                )

        logger.debug(
            "Built dependency graph: %d packages, %d edges",
            graph.package_count,
            graph.edge_count,
        )
        return graph

    @staticmethod
    def _validate(record: PackageInfo | Mapping[str, Any]) -> PackageInfo:
        if isinstance(record, PackageInfo):
            return record
        if not isinstance(record, Mapping):
            raise GraphConstructionError(
                f"expected a package record, got {type(record).__name__}"
            )
        try:
            return PackageInfo.model_validate(record)
        except ValidationError as exc:
            raise GraphConstructionError(str(exc), record.get("name")) from exc
