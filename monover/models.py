"""Data models for monover.

These Pydantic models represent the core data structures passed between
graph building, version resolution, propagation and apply.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

import semver
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)

from .deps import VersionProtocol
from .versions import VersionBump, parse_version

__all__ = [
    "Changeset",
    "CircularDependency",
    "DependencyEdge",
    "DependencyPropagation",
    "DependencyType",
    "DependencyUpdate",
    "DirectChange",
    "PackageInfo",
    "PackageUpdate",
    "UnifiedStrategy",
    "UpdateReason",
    "Version",
    "VersionBump",
    "VersionResolution",
    "VersioningStrategy",
]


def _coerce_version(value: object) -> object:
    if isinstance(value, str):
        return parse_version(value)
    return value


# semver.Version inside models; strings are parsed, dumps render as strings
Version = Annotated[
    semver.Version,
    BeforeValidator(_coerce_version),
    PlainSerializer(str, return_type=str, when_used="json"),
]


class VersioningStrategy(str, Enum):
    """How versions relate across the workspace.

    INDEPENDENT: each package keeps its own version.
    UNIFIED: every package shares one version number.
    """

    INDEPENDENT = "independent"
    UNIFIED = "unified"


class DependencyType(str, Enum):
    RUNTIME = "runtime"
    DEV = "dev"
    PEER = "peer"
    OPTIONAL = "optional"

    @property
    def manifest_field(self) -> str:
        """The package.json key holding dependencies of this type."""
        return _MANIFEST_FIELDS[self]


_MANIFEST_FIELDS = {
    DependencyType.RUNTIME: "dependencies",
    DependencyType.DEV: "devDependencies",
    DependencyType.PEER: "peerDependencies",
    DependencyType.OPTIONAL: "optionalDependencies",
}


class PackageInfo(BaseModel):
    """Metadata for a single package in the monorepo workspace.

    Dependency maps accept both snake_case and the camelCase keys used in
    package.json, so a parsed manifest plus a ``path`` validates directly.

    Attributes:
        name: Package name, unique within the workspace.
        version: Current version from package.json.
        path: Directory containing the package's package.json.
        dependencies: Runtime dependency name → raw specifier.
        dev_dependencies: devDependencies name → raw specifier.
        peer_dependencies: peerDependencies name → raw specifier.
        optional_dependencies: optionalDependencies name → raw specifier.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    name: str = Field(min_length=1)
    version: Version
    path: Path
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )
    peer_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="peerDependencies"
    )
    optional_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="optionalDependencies"
    )

    def dependencies_of(self, dep_type: DependencyType) -> dict[str, str]:
        return {
            DependencyType.RUNTIME: self.dependencies,
            DependencyType.DEV: self.dev_dependencies,
            DependencyType.PEER: self.peer_dependencies,
            DependencyType.OPTIONAL: self.optional_dependencies,
        }[dep_type]

    def all_dependencies(self) -> Iterator[tuple[str, str, DependencyType]]:
        """Yield (name, specifier, type) for every declared dependency."""
        for dep_type in DependencyType:
            for dep_name, spec in self.dependencies_of(dep_type).items():
                yield dep_name, spec, dep_type


class DependencyEdge(BaseModel):
    """Directed edge from a dependent package to one of its dependencies."""

    model_config = ConfigDict(frozen=True)

    dependent: str
    dependency: str
    dep_type: DependencyType
    spec: str
    protocol: VersionProtocol


class CircularDependency(BaseModel):
    """A set of packages that depend on each other in a loop."""

    model_config = ConfigDict(frozen=True)

    cycle: tuple[str, ...] = Field(min_length=2)

    def display_cycle(self) -> str:
        """Render the cycle closed on its first member: "a -> b -> c -> a"."""
        return " -> ".join((*self.cycle, self.cycle[0]))

    def involves(self, name: str) -> bool:
        return name in self.cycle

    def __len__(self) -> int:
        return len(self.cycle)

    def __str__(self) -> str:
        return self.display_cycle()


class Changeset(BaseModel):
    """A record of intended changes awaiting version resolution.

    Produced by changeset storage; consumed read-only here.
    """

    model_config = ConfigDict(frozen=True)

    branch: str = ""
    bump: VersionBump
    environments: list[str] = Field(default_factory=list)
    packages: frozenset[str] = Field(default_factory=frozenset)
    commits: frozenset[str] = Field(default_factory=frozenset)


class DirectChange(BaseModel):
    """The package is named by the changeset."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["direct_change"] = "direct_change"


class DependencyPropagation(BaseModel):
    """The package was bumped because a dependency changed.

    Attributes:
        triggered_by: The updated dependency that caused this update.
        depth: 1-based breadth-first level from the direct changes.
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["dependency_propagation"] = "dependency_propagation"
    triggered_by: str
    depth: int = Field(ge=1)


class UnifiedStrategy(BaseModel):
    """The package moved only to keep a unified workspace on one version."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["unified_strategy"] = "unified_strategy"


UpdateReason = Annotated[
    Union[DirectChange, DependencyPropagation, UnifiedStrategy],
    Field(discriminator="kind"),
]


class DependencyUpdate(BaseModel):
    """A dependency specifier rewritten because its target changed version."""

    model_config = ConfigDict(frozen=True)

    name: str
    dep_type: DependencyType
    old_spec: str
    new_spec: str


class PackageUpdate(BaseModel):
    """A version change decided for one package.

    Attributes:
        name: Package name.
        path: Package directory.
        current_version: Version before the update.
        next_version: Version after the update.
        reason: Why the package is updated.
        dependency_updates: This package's own dependency specifiers that
            are rewritten to follow updated workspace packages.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    path: Path
    current_version: Version
    next_version: Version
    reason: UpdateReason
    dependency_updates: list[DependencyUpdate] = Field(default_factory=list)

    @property
    def is_direct_change(self) -> bool:
        return isinstance(self.reason, DirectChange)

    @property
    def is_propagated(self) -> bool:
        return isinstance(self.reason, DependencyPropagation)

    @property
    def version_changed(self) -> bool:
        return self.current_version != self.next_version


class VersionResolution(BaseModel):
    """Result of resolving a changeset against a workspace.

    Built incrementally within one resolve call (direct updates, then
    detected cycles, then propagated updates) and returned finished.
    """

    updates: list[PackageUpdate] = Field(default_factory=list)
    circular_dependencies: list[CircularDependency] = Field(default_factory=list)

    @property
    def has_updates(self) -> bool:
        return bool(self.updates)

    @property
    def update_count(self) -> int:
        return len(self.updates)

    @property
    def has_circular_dependencies(self) -> bool:
        return bool(self.circular_dependencies)

    def names(self) -> list[str]:
        return [u.name for u in self.updates]

    def get(self, name: str) -> PackageUpdate | None:
        """Return the update for ``name``, or None if it isn't updated."""
        for update in self.updates:
            if update.name == name:
                return update
        return None
