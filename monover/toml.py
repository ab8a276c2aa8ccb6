"""TOML reading utilities.

Uses tomlkit to read monover.toml or the [tool.monover] table of a
pyproject.toml, keeping the same parser the rest of the toolchain uses for
formatting-preserving edits.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import ParseError

from .errors import ConfigError


def load_toml(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a TOML file.

    Raises:
        ConfigError: If the file can't be read or isn't valid TOML.
    """
    try:
        return tomlkit.parse(path.read_text())
    except (OSError, ParseError) as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc


def get_tool_table(doc: tomlkit.TOMLDocument, tool: str) -> dict[str, Any] | None:
    """Extract [tool.<tool>] from a pyproject.toml document as plain data.

    Returns None when the table is absent.
    """
    table = doc.get("tool", {}).get(tool)
    if table is None:
        return None
    return normalize_keys(table.unwrap())


def normalize_keys(data: Any) -> Any:
    """Convert kebab-case keys to snake_case, recursively.

    TOML configuration conventionally uses "max-propagation-depth" while
    the models use "max_propagation_depth".
    """
    if isinstance(data, dict):
        return {str(k).replace("-", "_"): normalize_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [normalize_keys(v) for v in data]
    return data
