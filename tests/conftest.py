"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from monover.fs import MemoryFileSystem
from monover.models import PackageInfo
from tests.helpers import make_package, workspace_files


@pytest.fixture
def chain_packages() -> list[PackageInfo]:
    """a ← b ← c ← d: each package depends on the previous one."""
    return [
        make_package("a"),
        make_package("b", deps={"a": "^1.0.0"}),
        make_package("c", deps={"b": "^1.0.0"}),
        make_package("d", deps={"c": "^1.0.0"}),
    ]


@pytest.fixture
def memory_workspace() -> tuple[Path, MemoryFileSystem]:
    """In-memory workspace: app depends on ui (^) and core (workspace:*)."""
    root = Path("/workspace")
    packages = [
        make_package("core"),
        make_package("ui", deps={"core": "^1.0.0"}),
        make_package(
            "app",
            deps={"ui": "^1.0.0", "core": "workspace:*", "left-pad": "^1.3.0"},
        ),
    ]
    return root, MemoryFileSystem(workspace_files(root, packages))
