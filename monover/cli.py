"""CLI entry point for monover."""

from __future__ import annotations

import argparse
import asyncio
import logging
from importlib.metadata import version as pkg_version
from pathlib import Path

from monover.apply import ApplyResult
from monover.config import MonoverConfig, load_config
from monover.errors import ApplyFailedError, MonoverError
from monover.graph import DependencyGraphBuilder
from monover.models import (
    Changeset,
    DependencyPropagation,
    PackageUpdate,
    VersioningStrategy,
    VersionResolution,
)
from monover.resolver import VersionResolver
from monover.shell import current_branch, current_commit, fatal, step
from monover.snapshot import SnapshotContext, SnapshotVersionGenerator
from monover.versions import VersionBump

__version__ = pkg_version("monover")


def _load_config(args: argparse.Namespace) -> MonoverConfig:
    config = load_config(Path(args.root))
    if getattr(args, "strategy", None):
        config = config.model_copy(
            update={"strategy": VersioningStrategy(args.strategy)}
        )
    return config


def _changeset(args: argparse.Namespace) -> Changeset:
    return Changeset(
        branch=args.branch or current_branch(),
        bump=VersionBump.parse(args.bump),
        packages=frozenset(args.package or []),
    )


def _describe(update: PackageUpdate) -> str:
    if isinstance(update.reason, DependencyPropagation):
        return f"via {update.reason.triggered_by}, depth {update.reason.depth}"
    return update.reason.kind.replace("_", " ")


def _print_resolution(resolution: VersionResolution) -> None:
    for cycle in resolution.circular_dependencies:
        print(f"  Warning: circular dependency {cycle.display_cycle()}")
    for update in resolution.updates:
        print(
            f"  {update.name}: {update.current_version} → {update.next_version}"
            f" ({_describe(update)})"
        )
        for dep in update.dependency_updates:
            print(f"      {dep.name}: {dep.old_spec} → {dep.new_spec}")


def _print_files(result: ApplyResult, verb: str) -> None:
    for path in result.modified_files:
        print(f"  {verb} {path}")
    if not result.modified_files:
        print("  No manifests to change")


def cmd_plan(args: argparse.Namespace) -> None:
    """Show the version updates a changeset would produce, writing nothing."""
    resolver = VersionResolver(Path(args.root), _load_config(args))
    result = asyncio.run(resolver.apply_versions(_changeset(args), dry_run=True))
    step("Planned version updates")
    _print_resolution(result.resolution)
    _print_files(result, "would write")


def cmd_apply(args: argparse.Namespace) -> None:
    """Resolve a changeset and write the new versions to package.json files."""
    resolver = VersionResolver(Path(args.root), _load_config(args))
    try:
        result = asyncio.run(
            resolver.apply_versions(
                _changeset(args), dry_run=False, keep_backups=args.keep_backups
            )
        )
    except ApplyFailedError as exc:
        for path in exc.restored:
            print(f"  restored {path}")
        raise
    step("Applied version updates")
    _print_resolution(result.resolution)
    _print_files(result, "wrote")


def cmd_cycles(args: argparse.Namespace) -> None:
    """List dependency cycles in the workspace."""
    config = _load_config(args)
    resolver = VersionResolver(Path(args.root), config)
    packages = asyncio.run(resolver.discover_packages())
    cycles = DependencyGraphBuilder(config.dependency).build(packages).detect_cycles()
    step(f"{len(cycles)} dependency cycle(s)")
    for cycle in cycles:
        print(f"  {cycle.display_cycle()}")


def cmd_snapshot(args: argparse.Namespace) -> None:
    """Print snapshot versions for workspace packages."""
    config = _load_config(args)
    generator = SnapshotVersionGenerator(args.format or config.snapshot_format)
    packages = asyncio.run(VersionResolver(Path(args.root), config).discover_packages())
    selected = set(args.package or [])
    branch = args.branch or current_branch()
    commit = args.commit or current_commit()
    for info in packages:
        if selected and info.name not in selected:
            continue
        context = SnapshotContext(version=info.version, branch=branch, commit=commit)
        print(f"{info.name} {generator.generate(context)}")


def _add_changeset_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--bump",
        required=True,
        choices=[b.value for b in VersionBump],
        help="Bump applied to the listed packages.",
    )
    parser.add_argument(
        "-p",
        "--package",
        action="append",
        metavar="NAME",
        help="Package changed by this changeset (repeatable).",
    )
    parser.add_argument(
        "--branch", default=None, help="Changeset branch. (default: current branch)"
    )
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in VersioningStrategy],
        default=None,
        help="Override the configured versioning strategy.",
    )


def cli(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="monover",
        description="Dependency-aware version bumps for npm-style monorepos.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--root", default=".", help="Workspace root. (default: %(default)s)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    plan_parser = subparsers.add_parser(
        "plan", help="Preview version updates without writing anything."
    )
    _add_changeset_args(plan_parser)
    plan_parser.set_defaults(func=cmd_plan)

    apply_parser = subparsers.add_parser(
        "apply", help="Write version updates to package.json files."
    )
    _add_changeset_args(apply_parser)
    apply_parser.add_argument(
        "--keep-backups",
        action="store_true",
        help="Keep package.json.monover-bak files after a successful apply.",
    )
    apply_parser.set_defaults(func=cmd_apply)

    cycles_parser = subparsers.add_parser(
        "cycles", help="List circular dependencies between workspace packages."
    )
    cycles_parser.set_defaults(func=cmd_cycles)

    snapshot_parser = subparsers.add_parser(
        "snapshot", help="Print snapshot versions for workspace packages."
    )
    snapshot_parser.add_argument(
        "--format", default=None, help="Snapshot template. (default: from config)"
    )
    snapshot_parser.add_argument("-p", "--package", action="append", metavar="NAME")
    snapshot_parser.add_argument("--branch", default=None)
    snapshot_parser.add_argument("--commit", default=None)
    snapshot_parser.set_defaults(func=cmd_snapshot)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except MonoverError as exc:
        fatal(str(exc))
