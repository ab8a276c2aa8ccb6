"""Filesystem capability used by discovery and apply.

Only reading and writing package manifests touches the disk, so the rest
of the engine stays synchronous. Callers inject a FileSystem; the local
implementation uses aiofiles and MemoryFileSystem keeps everything in a
dict for tests and previews.
"""

from __future__ import annotations

import asyncio
import uuid
from fnmatch import fnmatchcase
from pathlib import Path, PurePath
from typing import Protocol, runtime_checkable

import aiofiles
import aiofiles.os


@runtime_checkable
class FileSystem(Protocol):
    async def read_text(self, path: Path) -> str: ...

    async def write_text(self, path: Path, content: str, *, atomic: bool = True) -> None: ...

    async def exists(self, path: Path) -> bool: ...

    async def remove(self, path: Path) -> None: ...

    async def glob(self, root: Path, pattern: str) -> list[Path]: ...


class LocalFileSystem:
    """The real filesystem.

    Atomic writes go to a temporary file in the target's directory and are
    then renamed over the target, so readers see either the old or the new
    content, never a partial file.
    """

    async def read_text(self, path: Path) -> str:
        async with aiofiles.open(path, "r", encoding="utf-8") as fh:
            return await fh.read()

    async def write_text(self, path: Path, content: str, *, atomic: bool = True) -> None:
        if not atomic:
            async with aiofiles.open(path, "w", encoding="utf-8") as fh:
                await fh.write(content)
            return

        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp, "w", encoding="utf-8") as fh:
                await fh.write(content)
            await aiofiles.os.replace(tmp, path)
        finally:
            if await aiofiles.os.path.exists(tmp):
                await aiofiles.os.remove(tmp)

    async def exists(self, path: Path) -> bool:
        return await aiofiles.os.path.exists(path)

    async def remove(self, path: Path) -> None:
        await aiofiles.os.remove(path)

    async def glob(self, root: Path, pattern: str) -> list[Path]:
        return await asyncio.to_thread(lambda: sorted(root.glob(pattern)))


class MemoryFileSystem:
    """A dict-backed filesystem.

    Directories exist implicitly as parents of stored files. ``glob``
    matches one path component per pattern component (no ``**``).
    """

    def __init__(self, files: dict[Path | str, str] | None = None) -> None:
        self.files: dict[Path, str] = {
            Path(path): content for path, content in (files or {}).items()
        }

    async def read_text(self, path: Path) -> str:
        try:
            return self.files[Path(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    async def write_text(self, path: Path, content: str, *, atomic: bool = True) -> None:
        self.files[Path(path)] = content

    async def exists(self, path: Path) -> bool:
        path = Path(path)
        return path in self.files or any(path in f.parents for f in self.files)

    async def remove(self, path: Path) -> None:
        try:
            del self.files[Path(path)]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    async def glob(self, root: Path, pattern: str) -> list[Path]:
        root = Path(root)
        pattern_parts = PurePath(pattern).parts
        candidates: set[Path] = set()
        for file in self.files:
            candidates.add(file)
            candidates.update(file.parents)
        matches = []
        for candidate in candidates:
            try:
                parts = candidate.relative_to(root).parts
            except ValueError:
                continue
            if len(parts) == len(pattern_parts) and all(
                fnmatchcase(part, pat) for part, pat in zip(parts, pattern_parts)
            ):
                matches.append(candidate)
        return sorted(matches)
