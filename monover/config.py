"""Configuration models for version resolution.

Configuration is passed explicitly into every component; there is no
process-wide state. ``load_config`` reads it from ``monover.toml`` or the
``[tool.monover]`` table of ``pyproject.toml`` at the workspace root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .deps import DEFAULT_SKIP_PROTOCOLS
from .errors import ConfigError
from .models import DependencyType, VersioningStrategy
from .toml import get_tool_table, load_toml, normalize_keys
from .versions import VersionBump

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "monover.toml"
DEFAULT_SNAPSHOT_FORMAT = "{version}-snapshot.{commit}"


class DependencyConfig(BaseModel):
    """Controls graph building and dependency propagation.

    Attributes:
        propagate_updates: Propagate bumps to dependents at all. When False
            the dependency graph is not even built.
        propagate_dev_dependencies: Follow devDependencies edges.
        include_peer_dependencies: Follow peerDependencies edges.
        include_optional_dependencies: Follow optionalDependencies edges.
        max_propagation_depth: Deepest BFS level to propagate to (0 means
            unlimited).
        propagation_bump: Bump applied to propagated dependents. Also
            accepted as ``dependency_update_bump``. Parsed when used.
        detect_circular: Run cycle detection and report cycles.
        fail_on_circular: Abort resolution when cycles are found.
        skip_protocols: Specifier protocols never rewritten by propagation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    propagate_updates: bool = True
    propagate_dev_dependencies: bool = False
    include_peer_dependencies: bool = True
    include_optional_dependencies: bool = False
    max_propagation_depth: int = Field(default=10, ge=0)
    propagation_bump: str = Field(
        default="patch",
        validation_alias=AliasChoices("propagation_bump", "dependency_update_bump"),
    )
    detect_circular: bool = True
    fail_on_circular: bool = False
    skip_protocols: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_PROTOCOLS)
    )

    def bump(self) -> VersionBump:
        """Return the propagation bump.

        Raises:
            InvalidBumpTypeError: If propagation_bump isn't a known bump.
        """
        return VersionBump.parse(self.propagation_bump)

    def includes(self, dep_type: DependencyType) -> bool:
        """Whether edges of this type belong in the dependency graph."""
        if dep_type is DependencyType.DEV:
            return self.propagate_dev_dependencies
        if dep_type is DependencyType.PEER:
            return self.include_peer_dependencies
        if dep_type is DependencyType.OPTIONAL:
            return self.include_optional_dependencies
        return True

    def propagates(self, dep_type: DependencyType) -> bool:
        """Whether an edge of this type carries a bump to its dependent."""
        return self.propagate_updates and self.includes(dep_type)

    def depth_allowed(self, depth: int) -> bool:
        return self.max_propagation_depth == 0 or depth <= self.max_propagation_depth

    def validate_values(self) -> None:
        """Check values that are otherwise only parsed at the point of use."""
        self.bump()


class MonoverConfig(BaseModel):
    """Top-level configuration for a workspace."""

    model_config = ConfigDict(extra="forbid")

    strategy: VersioningStrategy = VersioningStrategy.INDEPENDENT
    dependency: DependencyConfig = Field(default_factory=DependencyConfig)
    snapshot_format: str = DEFAULT_SNAPSHOT_FORMAT


def parse_config(data: dict) -> MonoverConfig:
    """Validate raw configuration data into a MonoverConfig.

    Raises:
        ConfigError: If any value is invalid.
    """
    try:
        config = MonoverConfig.model_validate(normalize_keys(data))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    config.dependency.validate_values()
    return config


def load_config(root: Path) -> MonoverConfig:
    """Load configuration for the workspace at ``root``.

    Looks for monover.toml first, then [tool.monover] in pyproject.toml.
    Returns defaults when neither exists.
    """
    config_file = root / CONFIG_FILENAME
    if config_file.exists():
        logger.debug("Loading configuration from %s", config_file)
        return parse_config(load_toml(config_file).unwrap())

    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        table = get_tool_table(load_toml(pyproject), "monover")
        if table is not None:
            logger.debug("Loading configuration from %s [tool.monover]", pyproject)
            return parse_config(table)

    return MonoverConfig()
