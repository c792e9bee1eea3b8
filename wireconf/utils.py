"""
wireconf.utils
--------------

Shared utility functions for path handling, scalar parsing and shallow
mapping merges. Used internally by wireconf and available for downstream
consumers.
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional


def expand_path(path: Optional[str]) -> Optional[str]:
    """Expand ~ and environment variables in a path string.

    Args:
        path: Path string to expand, or None.

    Returns:
        Expanded path string, or None if input was None.

    Examples:
        >>> expand_path("~/configs/app.toml")
        '/home/user/configs/app.toml'
        >>> expand_path(None)
        None
    """
    if path is None:
        return None
    return os.path.expandvars(os.path.expanduser(path))


def resolve_path(path: Optional[str], base_dir: Optional[str] = None) -> Optional[Path]:
    """Expand and resolve a path to an absolute ``Path`` object.

    Relative paths are resolved against ``base_dir`` when given, otherwise
    against the current working directory.

    Args:
        path: Path string to resolve, or None.
        base_dir: Optional directory relative paths are anchored to.

    Returns:
        Resolved absolute ``Path``, or None if input was None.
    """
    if path is None:
        return None
    expanded = Path(expand_path(path))
    if base_dir is not None and not expanded.is_absolute():
        expanded = Path(expand_path(base_dir)) / expanded
    return expanded.resolve()


def parse_value(raw_value: Any) -> Any:
    """
    Attempts to parse a string value into Python types (bool, int, float, JSON list/dict).

    Handles 'true', 'false', 'null' (case-insensitive) and numbers. Attempts
    JSON decoding for strings that look like a JSON object, array or quoted
    string. Falls back to the original string if no rule applies.

    Args:
        raw_value: The value to parse. If not a string, it's returned directly.

    Returns:
        The parsed value (bool, int, float, list, dict, None) or the original value.
    """
    if not isinstance(raw_value, str):
        return raw_value

    stripped_val = raw_value.strip()
    lower_val = stripped_val.lower()
    if lower_val == 'true':
        return True
    if lower_val == 'false':
        return False
    if lower_val == 'null':
        return None

    try:
        return int(stripped_val)
    except ValueError:
        try:
            return float(stripped_val)
        except ValueError:
            pass

    if len(stripped_val) > 1 and (
        (stripped_val.startswith("{") and stripped_val.endswith("}"))
        or (stripped_val.startswith("[") and stripped_val.endswith("]"))
        or (stripped_val.startswith('"') and stripped_val.endswith('"'))
    ):
        try:
            return json.loads(stripped_val)
        except json.JSONDecodeError:
            pass

    return raw_value


def mixin(base: Mapping, updates: Mapping) -> dict:
    """
    Shallow top-level merge of ``updates`` over ``base``.

    Unlike a deep merge, a key present in ``updates`` replaces the whole value
    held under that key in ``base``; nested mappings and lists are never
    merged. Neither argument is modified.

    Args:
        base: The base mapping.
        updates: The mapping whose entries take precedence.

    Returns:
        A new dict holding the merged entries.

    Example:
        >>> mixin({"a": 1, "b": {"x": 1}}, {"b": {"y": 2}})
        {'a': 1, 'b': {'y': 2}}
    """
    merged = dict(base)
    merged.update(updates)
    return merged
