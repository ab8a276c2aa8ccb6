"""package.json reading and rewriting.

Edits are made on the text itself so that only the touched values change
and everything else (key order, indentation, spacing, trailing newline)
is preserved. The edited text is re-parsed and compared with the intended
data; if a targeted edit can't be made safely the manifest is re-serialized
with its detected indentation instead.
"""

from __future__ import annotations

import copy
import json
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import semver

from .errors import ManifestError
from .models import DependencyUpdate

MANIFEST_FILENAME = "package.json"

_INDENT_RE = re.compile(r"^\{\s*?\n([ \t]+)\S", re.MULTILINE)


def manifest_path(package_dir: Path) -> Path:
    return Path(package_dir) / MANIFEST_FILENAME


def parse_manifest(text: str, path: Path | str) -> dict[str, Any]:
    """Parse manifest text into a dict.

    Raises:
        ManifestError: If the text is not a JSON object.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(path, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(path, "manifest must be a JSON object")
    return data


def detect_indent(text: str) -> int | str:
    """Return the indentation used by a JSON document (default 2 spaces)."""
    match = _INDENT_RE.search(text)
    if not match:
        return 2
    indent = match.group(1)
    return indent if "\t" in indent else len(indent)


def dump_manifest(data: dict[str, Any], indent: int | str = 2, newline: bool = True) -> str:
    text = json.dumps(data, indent=indent, ensure_ascii=False)
    return text + "\n" if newline else text


def _json_str(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _replace_value(text: str, key: str, old: str, new: str, start: int, end: int) -> str | None:
    """Replace ``"key": "old"`` with ``"key": "new"`` inside text[start:end]."""
    pattern = re.compile(
        r"(" + re.escape(_json_str(key)) + r"\s*:\s*)" + re.escape(_json_str(old))
    )
    match = pattern.search(text, start, end)
    if not match:
        return None
    return text[: match.end(1)] + _json_str(new) + text[match.end() :]


def _section_bounds(text: str, field: str) -> tuple[int, int] | None:
    match = re.search(re.escape(_json_str(field)) + r"\s*:\s*\{", text)
    if not match:
        return None
    close = text.find("}", match.end())
    if close == -1:
        return None
    return match.end(), close


def _edit_text(
    text: str,
    old_version: Any,
    new_version: str,
    dependency_updates: Iterable[tuple[str, str, str, str]],
) -> str | None:
    if not isinstance(old_version, str):
        return None
    if old_version != new_version:
        edited = _replace_value(text, "version", old_version, new_version, 0, len(text))
        if edited is None:
            return None
        text = edited
    for field, name, old, new in dependency_updates:
        bounds = _section_bounds(text, field)
        if bounds is None:
            return None
        edited = _replace_value(text, name, old, new, *bounds)
        if edited is None:
            return None
        text = edited
    return text


def rewrite_manifest(
    text: str,
    next_version: semver.Version | str,
    dependency_updates: Iterable[DependencyUpdate],
    path: Path | str = MANIFEST_FILENAME,
) -> str:
    """Set a manifest's version and rewrite dependency specifiers.

    Dependency updates whose entry is absent from the manifest are
    ignored. Returns the original text unchanged when nothing differs.

    Raises:
        ManifestError: If the text is not a valid manifest.
    """
    data = parse_manifest(text, path)
    expected = copy.deepcopy(data)
    new_version = str(next_version)
    expected["version"] = new_version

    edits: list[tuple[str, str, str, str]] = []
    for dep in dependency_updates:
        field = dep.dep_type.manifest_field
        section = expected.get(field)
        if not isinstance(section, dict) or section.get(dep.name) == dep.new_spec:
            continue
        if dep.name not in section:
            continue
        edits.append((field, dep.name, str(section[dep.name]), dep.new_spec))
        section[dep.name] = dep.new_spec

    if expected == data:
        return text

    edited = _edit_text(text, data.get("version"), new_version, edits)
    if edited is not None and json.loads(edited) == expected:
        return edited
    return dump_manifest(expected, detect_indent(text), text.endswith("\n"))
