"""Direct version resolution.

Applies a changeset's bump to the packages it names, following the
workspace's versioning strategy. Propagation to dependents happens
afterwards in :mod:`monover.propagation`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from .errors import PackageNotFoundError
from .models import (
    Changeset,
    DirectChange,
    PackageInfo,
    PackageUpdate,
    UnifiedStrategy,
    VersioningStrategy,
    VersionResolution,
)
from .versions import bump_version

logger = logging.getLogger(__name__)


class VersionResolutionEngine:
    """Computes the direct updates for a changeset.

    Under ``INDEPENDENT`` only the named packages change, each from its own
    current version. Under ``UNIFIED`` the highest current version in the
    workspace is bumped once and becomes the version of every package.
    """

    def __init__(
        self, strategy: VersioningStrategy = VersioningStrategy.INDEPENDENT
    ) -> None:
        self.strategy = strategy

    def resolve(
        self, changeset: Changeset, packages: Mapping[str, PackageInfo]
    ) -> VersionResolution:
        """Return a resolution holding only direct updates.

        Raises:
            PackageNotFoundError: If the changeset names an unknown package.
                Nothing is resolved in that case.
        """
        for name in sorted(changeset.packages):
            if name not in packages:
                raise PackageNotFoundError(name)

        if self.strategy is VersioningStrategy.UNIFIED:
            resolution = self._resolve_unified(changeset, packages)
        else:
            resolution = self._resolve_independent(changeset, packages)

        logger.debug(
            "Resolved %d direct update(s) with %s strategy",
            resolution.update_count,
            self.strategy.value,
        )
        return resolution

    def _resolve_independent(
        self, changeset: Changeset, packages: Mapping[str, PackageInfo]
    ) -> VersionResolution:
        resolution = VersionResolution()
        for name in sorted(changeset.packages):
            info = packages[name]
            resolution.updates.append(
                PackageUpdate(
                    name=name,
                    path=info.path,
                    current_version=info.version,
                    next_version=bump_version(info.version, changeset.bump),
                    reason=DirectChange(),
                )
            )
        return resolution

    def _resolve_unified(
        self, changeset: Changeset, packages: Mapping[str, PackageInfo]
    ) -> VersionResolution:
        resolution = VersionResolution()
        if not changeset.packages:
            return resolution

        # Highest current version in the workspace, bumped once
        target = bump_version(
            max(info.version for info in packages.values()), changeset.bump
        )
        # Direct changes first so propagation seeds from them in order
        named = sorted(changeset.packages)
        others = [name for name in packages if name not in changeset.packages]
        for name in named + others:
            info = packages[name]
            reason = (
                DirectChange() if name in changeset.packages else UnifiedStrategy()
            )
            resolution.updates.append(
                PackageUpdate(
                    name=name,
                    path=info.path,
                    current_version=info.version,
                    next_version=target,
                    reason=reason,
                )
            )
        return resolution
