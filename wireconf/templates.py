"""
wireconf.templates
------------------

Minimal string templates used by ``?`` prefixed configuration values.

A template contains ``{ref}`` placeholders. Each reference is looked up in
the template context first as a whole key (so parameter references such as
``{$width}`` work directly), then as a dot-separated path into nested context
data. Unresolved references render as the empty string.
"""

import json
import re
from typing import Any, Mapping

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")

_MISSING = object()


def lookup(ref: str, context: Mapping[str, Any]) -> Any:
    """Resolve a placeholder reference against the context, or return None."""
    value = context.get(ref, _MISSING)
    if value is not _MISSING:
        return value
    value = context
    for part in ref.split('.'):
        if isinstance(value, Mapping):
            value = value.get(part, _MISSING)
        elif isinstance(value, (list, tuple)) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return None
        if value is _MISSING:
            return None
    return value


def _format(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def render(template: str, context: Mapping[str, Any]) -> str:
    """
    Render a template string against a context.

    Args:
        template: Template text, e.g. ``"prefix-{$x}-suffix"``.
        context: Mapping supplying placeholder values.

    Returns:
        The rendered string.

    Example:
        >>> render("view:{$id}", {"$id": 7})
        'view:7'
    """
    return _PLACEHOLDER.sub(lambda m: _format(lookup(m.group(1).strip(), context)), template)
