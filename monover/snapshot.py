"""Snapshot version templating.

Builds pre-release version strings for branch or ephemeral builds from a
template such as ``"{version}-{branch}.{commit}"``. Supported placeholders
are ``{version}``, ``{branch}``, ``{commit}`` and ``{timestamp}``;
``{version}`` is mandatory. Templates are validated when the generator is
created, so a bad configuration fails before any package is processed.
"""

from __future__ import annotations

import re
import time

import semver
from pydantic import BaseModel, ConfigDict, Field

from .errors import SnapshotFormatError
from .models import Version

SUPPORTED_PLACEHOLDERS = ("version", "branch", "commit", "timestamp")
SHORT_COMMIT_LENGTH = 7

_PLACEHOLDER_RE = re.compile(r"\{([^{}]*)\}")
_BRANCH_SEPARATOR_RE = re.compile(r"[/\s]+")
_BRANCH_INVALID_RE = re.compile(r"[^a-z0-9._-]")
_HYPHEN_RUN_RE = re.compile(r"-{2,}")


def _now() -> int:
    return int(time.time())


class SnapshotContext(BaseModel):
    """Values substituted into a snapshot template.

    Attributes:
        version: Base version of the package.
        branch: Branch name, sanitized before substitution.
        commit: Commit identifier, shortened before substitution.
        timestamp: Unix timestamp in whole seconds; defaults to now.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    version: Version
    branch: str = ""
    commit: str = ""
    timestamp: int = Field(default_factory=_now)


def sanitize_branch(branch: str) -> str:
    """Make a branch name safe for a pre-release identifier.

    Slashes and whitespace become hyphens, the result is lower-cased,
    characters other than ``[a-z0-9._-]`` are dropped, hyphen runs collapse
    and leading/trailing hyphens are trimmed.

    Examples:
        "feat/OAuth Login" → "feat-oauth-login"
        "release//2.0" → "release-2.0"
    """
    result = _BRANCH_SEPARATOR_RE.sub("-", branch).lower()
    result = _BRANCH_INVALID_RE.sub("", result)
    result = _HYPHEN_RUN_RE.sub("-", result)
    return result.strip("-")


def short_commit(commit: str) -> str:
    return commit[:SHORT_COMMIT_LENGTH]


class SnapshotVersionGenerator:
    """Formats snapshot versions from a validated template."""

    def __init__(self, template: str) -> None:
        """Validate and store the template.

        Raises:
            SnapshotFormatError: If the template is empty, lacks
                ``{version}`` or uses an unsupported placeholder.
        """
        if not template:
            raise SnapshotFormatError("Snapshot format cannot be empty")
        placeholders = _PLACEHOLDER_RE.findall(template)
        for name in placeholders:
            if name not in SUPPORTED_PLACEHOLDERS:
                supported = ", ".join(f"{{{p}}}" for p in SUPPORTED_PLACEHOLDERS)
                raise SnapshotFormatError(
                    f"Unsupported placeholder '{{{name}}}' in snapshot format. "
                    f"Supported placeholders: {supported}"
                )
        if "version" not in placeholders:
            raise SnapshotFormatError(
                "Snapshot format must contain the {version} placeholder"
            )
        self.template = template
        self.placeholders = tuple(dict.fromkeys(placeholders))

    def generate(self, context: SnapshotContext) -> str:
        """Substitute the context into the template.

        Raises:
            SnapshotFormatError: If the result is empty.
        """
        values = {
            "version": str(context.version),
            "branch": sanitize_branch(context.branch),
            "commit": short_commit(context.commit),
            "timestamp": str(context.timestamp),
        }
        result = _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], self.template)
        if not result:
            raise SnapshotFormatError("Generated snapshot version is empty")
        return result


def snapshot_version(version: semver.Version, identifier: str) -> semver.Version:
    """Attach ``identifier`` to ``version`` as its pre-release part.

    Convenience for callers that want a semver object; the identifier must
    itself be a valid pre-release string.

    Raises:
        SnapshotFormatError: If the identifier isn't a valid pre-release.
    """
    try:
        return semver.Version.parse(
            f"{version.major}.{version.minor}.{version.patch}-{identifier}"
        )
    except ValueError as exc:
        raise SnapshotFormatError(
            f"'{identifier}' is not a valid pre-release identifier"
        ) from exc
