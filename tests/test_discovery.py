"""Tests for monover.discovery."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from monover.discovery import discover_packages, get_workspace_globs
from monover.errors import ManifestError, PackageNotFoundError
from monover.fs import MemoryFileSystem

ROOT = Path("/repo")


def _fs(root_manifest: dict, members: dict[str, dict]) -> MemoryFileSystem:
    files = {ROOT / "package.json": json.dumps(root_manifest)}
    for rel, manifest in members.items():
        files[ROOT / rel / "package.json"] = json.dumps(manifest)
    return MemoryFileSystem(files)


class TestGetWorkspaceGlobs:
    def test_list_form(self) -> None:
        assert get_workspace_globs({"workspaces": ["packages/*", "apps/*"]}) == [
            "packages/*",
            "apps/*",
        ]

    def test_object_form(self) -> None:
        assert get_workspace_globs({"workspaces": {"packages": ["libs/*"]}}) == [
            "libs/*"
        ]

    def test_missing(self) -> None:
        assert get_workspace_globs({"name": "solo"}) == []


class TestDiscoverPackages:
    @pytest.mark.asyncio
    async def test_discovers_members(self, memory_workspace) -> None:
        root, fs = memory_workspace
        packages = await discover_packages(root, fs)

        assert [p.name for p in packages] == ["app", "core", "ui"]
        app = packages[0]
        assert app.path == root / "packages" / "app"
        assert app.dependencies["core"] == "workspace:*"
        assert str(app.version) == "1.0.0"

    @pytest.mark.asyncio
    async def test_globs_in_order_without_duplicates(self) -> None:
        fs = _fs(
            {"workspaces": ["apps/*", "packages/*", "apps/web"]},
            {
                "apps/web": {"name": "web", "version": "0.1.0"},
                "packages/core": {"name": "core", "version": "2.0.0"},
            },
        )
        packages = await discover_packages(ROOT, fs)
        assert [p.name for p in packages] == ["web", "core"]

    @pytest.mark.asyncio
    async def test_directories_without_manifest_skipped(self) -> None:
        fs = _fs({"workspaces": ["packages/*"]}, {"packages/a": {"name": "a"}})
        fs.files[ROOT / "packages" / "docs" / "README.md"] = "docs"
        packages = await discover_packages(ROOT, fs)
        assert [p.name for p in packages] == ["a"]
        assert str(packages[0].version) == "0.0.0"

    @pytest.mark.asyncio
    async def test_single_package_repository(self) -> None:
        fs = _fs({"name": "solo", "version": "3.1.4"}, {})
        [package] = await discover_packages(ROOT, fs)
        assert package.name == "solo"
        assert package.path == ROOT

    @pytest.mark.asyncio
    async def test_missing_root_manifest(self) -> None:
        with pytest.raises(PackageNotFoundError):
            await discover_packages(ROOT, MemoryFileSystem())

    @pytest.mark.asyncio
    async def test_no_members(self) -> None:
        fs = _fs({"workspaces": ["packages/*"]}, {})
        with pytest.raises(PackageNotFoundError):
            await discover_packages(ROOT, fs)

    @pytest.mark.asyncio
    async def test_invalid_member_manifest(self) -> None:
        fs = _fs({"workspaces": ["packages/*"]}, {"packages/a": {"name": "a"}})
        fs.files[ROOT / "packages" / "a" / "package.json"] = "{broken"
        with pytest.raises(ManifestError):
            await discover_packages(ROOT, fs)

    @pytest.mark.asyncio
    async def test_invalid_member_version(self) -> None:
        fs = _fs(
            {"workspaces": ["packages/*"]},
            {"packages/a": {"name": "a", "version": "one"}},
        )
        with pytest.raises(ManifestError, match="invalid package record"):
            await discover_packages(ROOT, fs)
