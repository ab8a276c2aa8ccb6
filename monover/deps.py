"""Dependency specifier handling.

Classifies raw ``package.json`` dependency specifiers by protocol and
rewrites simple version ranges to point at a new version while keeping
their range operator (``^1.0.0`` → ``^1.1.0``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from enum import Enum

import semver
from pydantic import BaseModel, ConfigDict


class ProtocolKind(str, Enum):
    WORKSPACE = "workspace"
    LOCAL = "local"
    SEMVER = "semver"
    EXTERNAL = "external"


class LocalLinkType(str, Enum):
    FILE = "file"
    LINK = "link"
    PORTAL = "portal"


class VersionProtocol(BaseModel):
    """Protocol of a dependency specifier.

    ``local`` is set only when ``kind`` is ``LOCAL``. ``EXTERNAL`` covers
    specifiers that carry no version at all (git URLs, tarballs, ``npm:``
    aliases, dist-tags); those never form workspace edges.
    """

    model_config = ConfigDict(frozen=True)

    kind: ProtocolKind
    local: LocalLinkType | None = None

    @property
    def name(self) -> str:
        """Short protocol name as used in ``skip_protocols`` configuration."""
        if self.kind is ProtocolKind.LOCAL and self.local is not None:
            return self.local.value
        return self.kind.value


WORKSPACE = VersionProtocol(kind=ProtocolKind.WORKSPACE)
SEMVER = VersionProtocol(kind=ProtocolKind.SEMVER)
EXTERNAL = VersionProtocol(kind=ProtocolKind.EXTERNAL)

DEFAULT_SKIP_PROTOCOLS = ("workspace", "file", "link", "portal")

# Leading operators we know how to carry over, longest first
RANGE_OPERATORS = (">=", "<=", "^", "~", ">", "<", "=")

# Anything npm would read as a version range rather than a tag or URL
_RANGE_START_RE = re.compile(r"^(?:[\^~<>=]|v?\d|[*xX](?:$|[\s.])|$)")

# A single comparator against one concrete version
_SIMPLE_RANGE_RE = re.compile(
    r"^(?P<op>>=|<=|\^|~|>|<|=)?\s*v?"
    r"(?P<version>\d+(?:\.\d+){0,2}(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$"
)


def detect_protocol(spec: str) -> VersionProtocol:
    """Classify a raw dependency specifier.

    Examples:
        "workspace:*" → workspace
        "file:../core" → local (file)
        "^1.2.3" → semver
        "git+https://github.com/o/r.git" → external
    """
    text = spec.strip()
    if text.startswith("workspace:"):
        return WORKSPACE
    for link_type in LocalLinkType:
        if text.startswith(f"{link_type.value}:"):
            return VersionProtocol(kind=ProtocolKind.LOCAL, local=link_type)
    if _RANGE_START_RE.match(text):
        return SEMVER
    return EXTERNAL


def should_skip_spec(spec: str, skip_protocols: Iterable[str]) -> bool:
    """Return True if the specifier's protocol is configured to be left alone."""
    return detect_protocol(spec).name in set(skip_protocols)


def range_operator(spec: str) -> str | None:
    """Return the leading range operator of a simple range.

    Returns "" for a bare version and None when the specifier is not a
    single comparator (compound ranges, wildcards, tags, URLs).
    """
    match = _SIMPLE_RANGE_RE.match(spec.strip())
    if not match:
        return None
    return match.group("op") or ""


def rewrite_spec(spec: str, new_version: semver.Version | str) -> str | None:
    """Point a simple range at ``new_version``, keeping its operator.

    Returns None when the specifier can't be rewritten safely, such as
    ``^1.0.0 || ^2.0.0``, ``>=1 <2``, ``*`` or ``1.x``.

    Examples:
        rewrite_spec("^1.0.0", "1.1.0") → "^1.1.0"
        rewrite_spec("~2.3.4", "2.4.0") → "~2.4.0"
        rewrite_spec("1.0.0", "1.0.1") → "1.0.1"
    """
    op = range_operator(spec)
    if op is None:
        return None
    return f"{op}{new_version}"
