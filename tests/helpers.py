"""Builders for package records and workspace files used across tests."""

from __future__ import annotations

import json
from pathlib import Path

from monover.models import PackageInfo


def make_package(
    name: str,
    version: str = "1.0.0",
    deps: dict[str, str] | None = None,
    dev: dict[str, str] | None = None,
    peer: dict[str, str] | None = None,
    optional: dict[str, str] | None = None,
) -> PackageInfo:
    """Build a PackageInfo living at packages/<name>."""
    return PackageInfo(
        name=name,
        version=version,
        path=Path("packages") / name,
        dependencies=deps or {},
        dev_dependencies=dev or {},
        peer_dependencies=peer or {},
        optional_dependencies=optional or {},
    )


def manifest_text(package: PackageInfo) -> str:
    """Render a package.json for a PackageInfo, as npm would write it."""
    data: dict = {"name": package.name, "version": str(package.version)}
    for key, deps in (
        ("dependencies", package.dependencies),
        ("devDependencies", package.dev_dependencies),
        ("peerDependencies", package.peer_dependencies),
        ("optionalDependencies", package.optional_dependencies),
    ):
        if deps:
            data[key] = dict(deps)
    return json.dumps(data, indent=2) + "\n"


def workspace_files(root: Path, packages: list[PackageInfo]) -> dict[Path, str]:
    """Files for a workspace whose members live under root/packages/*."""
    files = {
        root / "package.json": json.dumps(
            {"name": "root", "private": True, "workspaces": ["packages/*"]}, indent=2
        )
        + "\n"
    }
    for package in packages:
        files[root / package.path / "package.json"] = manifest_text(package)
    return files
