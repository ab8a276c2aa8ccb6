"""Applying a version resolution to package manifests.

Apply is all-or-nothing across the batch:

1. Plan: read every manifest and compute its new text. Nothing is written;
   a dry run stops here and reports the plan.
2. Back up every manifest that will change (``package.json.monover-bak``).
3. Write each manifest atomically (temp file + rename).
4. On the first failed write, restore the manifests written so far (and
   the one that failed) from their backups and raise ApplyFailedError.
5. On success, remove the backups unless asked to keep them.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from .errors import ApplyFailedError, ManifestError
from .fs import FileSystem, LocalFileSystem
from .manifest import manifest_path, rewrite_manifest
from .models import VersionResolution

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".monover-bak"


class ApplyStatus(str, Enum):
    PLANNED = "planned"
    UNCHANGED = "unchanged"
    WRITTEN = "written"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"
    NOT_ATTEMPTED = "not_attempted"


class ManifestChange(BaseModel):
    """New content computed for one manifest."""

    package: str
    path: Path
    original: str
    updated: str


class PackageApplyStatus(BaseModel):
    name: str
    manifest_path: Path
    status: ApplyStatus
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status in (
            ApplyStatus.PLANNED,
            ApplyStatus.UNCHANGED,
            ApplyStatus.WRITTEN,
        )


class ApplySummary(BaseModel):
    packages_updated: int = 0
    direct_updates: int = 0
    propagated_updates: int = 0
    dependency_updates: int = 0
    circular_dependencies: int = 0
    files_modified: int = 0

    @classmethod
    def from_resolution(
        cls, resolution: VersionResolution, files_modified: int
    ) -> ApplySummary:
        return cls(
            packages_updated=resolution.update_count,
            direct_updates=sum(u.is_direct_change for u in resolution.updates),
            propagated_updates=sum(u.is_propagated for u in resolution.updates),
            dependency_updates=sum(
                len(u.dependency_updates) for u in resolution.updates
            ),
            circular_dependencies=len(resolution.circular_dependencies),
            files_modified=files_modified,
        )


class ApplyResult(BaseModel):
    """Outcome of applying (or previewing) a resolution.

    Attributes:
        dry_run: True when nothing was written.
        resolution: The applied resolution.
        modified_files: Manifests written, or that would be written.
        changes: Original and new text for each of those manifests.
        statuses: Per-package outcome.
        summary: Counts for reporting.
    """

    dry_run: bool
    resolution: VersionResolution
    modified_files: list[Path] = Field(default_factory=list)
    changes: list[ManifestChange] = Field(default_factory=list)
    statuses: list[PackageApplyStatus] = Field(default_factory=list)
    summary: ApplySummary = Field(default_factory=ApplySummary)

    @property
    def success(self) -> bool:
        return all(s.success for s in self.statuses)

    @property
    def has_modified_files(self) -> bool:
        return bool(self.modified_files)


class ApplyEngine:
    """Writes resolved versions into package.json manifests."""

    def __init__(self, fs: FileSystem | None = None, *, keep_backups: bool = False) -> None:
        self.fs = fs or LocalFileSystem()
        self.keep_backups = keep_backups

    async def apply(self, resolution: VersionResolution, dry_run: bool = False) -> ApplyResult:
        """Apply ``resolution``, or only compute what would change.

        Raises:
            ManifestError: If a manifest can't be read or parsed. Raised
                while planning, before anything is written.
            ApplyFailedError: If a write fails. Every manifest already
                written in this call has been restored when it is raised.
        """
        changes, statuses = await self.plan(resolution)

        if not dry_run:
            await self._write(changes, statuses)

        return ApplyResult(
            dry_run=dry_run,
            resolution=resolution,
            modified_files=[c.path for c in changes],
            changes=changes,
            statuses=list(statuses.values()),
            summary=ApplySummary.from_resolution(resolution, len(changes)),
        )

    async def plan(
        self, resolution: VersionResolution
    ) -> tuple[list[ManifestChange], dict[str, PackageApplyStatus]]:
        """Read manifests and compute their new content without writing."""
        changes: list[ManifestChange] = []
        statuses: dict[str, PackageApplyStatus] = {}
        for update in resolution.updates:
            path = manifest_path(update.path)
            try:
                original = await self.fs.read_text(path)
            except OSError as exc:
                raise ManifestError(path, f"failed to read manifest: {exc}") from exc
            updated = rewrite_manifest(
                original, update.next_version, update.dependency_updates, path
            )
            if updated == original:
                statuses[update.name] = PackageApplyStatus(
                    name=update.name, manifest_path=path, status=ApplyStatus.UNCHANGED
                )
                continue
            changes.append(
                ManifestChange(
                    package=update.name, path=path, original=original, updated=updated
                )
            )
            statuses[update.name] = PackageApplyStatus(
                name=update.name, manifest_path=path, status=ApplyStatus.PLANNED
            )
        return changes, statuses

    async def _write(
        self, changes: list[ManifestChange], statuses: dict[str, PackageApplyStatus]
    ) -> None:
        backups: dict[Path, Path] = {}
        for change in changes:
            backup = backup_path(change.path)
            try:
                await self.fs.write_text(backup, change.original)
            except OSError as exc:
                await self._discard_backups(list(backups.values()))
                for pending in changes:
                    statuses[pending.package].status = ApplyStatus.NOT_ATTEMPTED
                raise ApplyFailedError(
                    change.path,
                    f"failed to create backup {backup}: {exc}",
                    list(statuses.values()),
                ) from exc
            backups[change.path] = backup

        written: list[ManifestChange] = []
        for index, change in enumerate(changes):
            try:
                await self.fs.write_text(change.path, change.updated, atomic=True)
            except OSError as exc:
                logger.warning(
                    "Writing %s failed, rolling back %d manifest(s)",
                    change.path,
                    len(written),
                )
                status = statuses[change.package]
                status.status = ApplyStatus.FAILED
                status.error = str(exc)
                restored = await self._restore([*written, change])
                for done in written:
                    statuses[done.package].status = ApplyStatus.ROLLED_BACK
                for pending in changes[index + 1 :]:
                    statuses[pending.package].status = ApplyStatus.NOT_ATTEMPTED
                if not self.keep_backups:
                    await self._discard_backups(
                        [backups[p.path] for p in changes[index + 1 :]]
                    )
                raise ApplyFailedError(
                    change.path, str(exc), list(statuses.values()), restored
                ) from exc
            written.append(change)
            statuses[change.package].status = ApplyStatus.WRITTEN
            logger.info("Updated %s", change.path)

        if not self.keep_backups:
            await self._discard_backups(list(backups.values()))

    async def _restore(self, changes: list[ManifestChange]) -> list[Path]:
        """Put original content back; returns the manifests restored.

        A manifest that can't be restored keeps its backup file on disk.
        """
        restored: list[Path] = []
        for change in changes:
            try:
                await self.fs.write_text(change.path, change.original, atomic=True)
            except OSError as exc:
                logger.error(
                    "Failed to restore %s; original kept in %s: %s",
                    change.path,
                    backup_path(change.path),
                    exc,
                )
                continue
            restored.append(change.path)
            if not self.keep_backups:
                await self._discard_backups([backup_path(change.path)])
        return restored

    async def _discard_backups(self, backups: list[Path]) -> None:
        """Remove backup files; one that can't be removed is left on disk."""
        for backup in backups:
            try:
                if await self.fs.exists(backup):
                    await self.fs.remove(backup)
            except OSError as exc:
                logger.warning("Failed to remove backup %s: %s", backup, exc)


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)
