"""Workspace package discovery.

Reads the ``workspaces`` globs from the root package.json (either a list or
the ``{"packages": [...]}`` form), expands them and loads each member's
package.json into a PackageInfo. A root without workspaces is treated as a
single-package repository.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from .errors import ManifestError, PackageNotFoundError
from .fs import FileSystem, LocalFileSystem
from .manifest import manifest_path, parse_manifest
from .models import PackageInfo

logger = logging.getLogger(__name__)


class PackageDiscovery(Protocol):
    async def __call__(self, root: Path, fs: FileSystem) -> list[PackageInfo]: ...


def get_workspace_globs(manifest: dict[str, Any]) -> list[str]:
    """Extract workspace member glob patterns from a root package.json."""
    workspaces = manifest.get("workspaces")
    if isinstance(workspaces, dict):
        workspaces = workspaces.get("packages")
    if not isinstance(workspaces, list):
        return []
    return [str(pattern) for pattern in workspaces]


async def load_package_info(package_dir: Path, fs: FileSystem) -> PackageInfo:
    """Load one package's manifest into a PackageInfo.

    Raises:
        ManifestError: If the manifest is missing, unreadable or invalid.
    """
    path = manifest_path(package_dir)
    try:
        text = await fs.read_text(path)
    except OSError as exc:
        raise ManifestError(path, f"failed to read manifest: {exc}") from exc
    data = parse_manifest(text, path)
    data.setdefault("name", package_dir.name)
    data.setdefault("version", "0.0.0")
    try:
        return PackageInfo.model_validate({**data, "path": package_dir})
    except ValidationError as exc:
        raise ManifestError(path, f"invalid package record: {exc}") from exc


async def discover_packages(
    root: Path, fs: FileSystem | None = None
) -> list[PackageInfo]:
    """Scan the workspace and discover all packages.

    Packages are returned in glob order, each pattern's matches sorted,
    without duplicates.

    Raises:
        ManifestError: If a member's manifest can't be loaded.
        PackageNotFoundError: If no package is found.
    """
    fs = fs or LocalFileSystem()
    root = Path(root)
    root_manifest = manifest_path(root)
    if not await fs.exists(root_manifest):
        raise PackageNotFoundError("any package", root)

    root_data = parse_manifest(await fs.read_text(root_manifest), root_manifest)
    globs = get_workspace_globs(root_data)
    if not globs:
        return [await load_package_info(root, fs)]

    member_dirs: list[Path] = []
    for pattern in globs:
        for match in await fs.glob(root, pattern):
            if match not in member_dirs and await fs.exists(manifest_path(match)):
                member_dirs.append(match)

    if not member_dirs:
        raise PackageNotFoundError("any package", root)

    packages = [await load_package_info(d, fs) for d in member_dirs]
    for info in packages:
        logger.debug("Discovered %s %s (%s)", info.name, info.version, info.path)
    return packages
