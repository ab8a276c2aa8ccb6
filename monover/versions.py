"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

import re
from enum import Enum

import semver

from .errors import InvalidBumpTypeError

# Numeric core (1 to 3 components) followed by optional pre-release/build
_VERSION_RE = re.compile(r"^(?P<core>\d+(?:\.\d+){0,2})(?P<rest>[-+].*)?$")


class VersionBump(str, Enum):
    """Semantic-version increment class requested for a package.

    ``NONE`` keeps the version unchanged but still records the package as
    touched, so propagation and apply logic see it.
    """

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"

    @classmethod
    def parse(cls, value: str | VersionBump) -> VersionBump:
        """Parse a bump string case-insensitively.

        Raises:
            InvalidBumpTypeError: If value is not major, minor, patch or none.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidBumpTypeError(str(value)) from None


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "v1.2.3" → "1.2.3"

    Pre-release and build metadata are kept ("1.2.3-rc.1+build.5").

    Raises:
        ValueError: If the string is not a valid version.
    """
    text = version_str.strip()
    if text[:1] in ("v", "V", "="):
        text = text[1:]
    match = _VERSION_RE.match(text)
    if not match:
        raise ValueError(f"{version_str!r} is not a valid semantic version")
    parts = match.group("core").split(".")
    # Pad with zeros to ensure we have exactly 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts) + (match.group("rest") or ""))


def bump_version(version: semver.Version, bump: VersionBump | str) -> semver.Version:
    """Return ``version`` incremented by ``bump``.

    Pre-release and build metadata are dropped by every real bump, so
    "1.2.3-rc.1" bumped by patch gives "1.2.4". ``none`` returns the
    version unchanged.

    Examples:
        1.2.3 + major → 2.0.0
        1.2.3 + minor → 1.3.0
        1.2.3 + patch → 1.2.4
    """
    bump = VersionBump.parse(bump)
    if bump is VersionBump.NONE:
        return version
    base = semver.Version(version.major, version.minor, version.patch)
    if bump is VersionBump.MAJOR:
        return base.bump_major()
    if bump is VersionBump.MINOR:
        return base.bump_minor()
    return base.bump_patch()
