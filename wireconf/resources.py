"""
wireconf.resources
------------------

URI dereferencing for ``@`` prefixed configuration values.

A ``URIResolver`` maps URI schemes to handler callables. Two schemes are
built in:

    - ``file:path/to/data.json`` - loads a JSON or TOML file (relative paths
      resolve against the resolver's base directory) and returns it as a
      ``Resource``.
    - ``env:NAME`` - the parsed value of an environment variable.

A URI may carry parameters after its name, as ``+name@value`` pairs
(``new:Point+x@5+y@7``); they are parsed and passed to the scheme handler.
Containers register the ``named:``, ``new:`` and ``make:`` schemes.
"""

import logging
import os
from typing import Any, Callable, Dict, Optional, Tuple

from .conversions import TypeConversions
from .utils import parse_value, resolve_path

log = logging.getLogger(__name__)


class Resource:
    """
    A dereferenced URI value.

    Resources behave like plain data inside configurations: key-path
    traversal descends into ``as_json_data()``, and a resource used as a
    nested configuration is converted the same way.
    """

    def __init__(self, data: Any, uri: str, conversions: Optional[TypeConversions] = None):
        self.data = data
        self.uri = uri
        self._conversions = conversions or TypeConversions()

    def as_json_data(self) -> Any:
        return self._conversions.as_json_data(self.data)

    def as_string(self) -> Optional[str]:
        return self._conversions.as_string(self.data)

    def as_bytes(self) -> Optional[bytes]:
        return self._conversions.as_data(self.data)

    def as_representation(self, representation: str) -> Any:
        """Convert the resource to a named representation."""
        if representation == "resource":
            return self
        if representation == "json":
            return self.as_json_data()
        if representation == "string":
            return self.as_string()
        if representation == "data":
            return self.as_bytes()
        return self._conversions.as_representation(self.as_json_data(), representation)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.uri!r})"


SchemeHandler = Callable[[str, Dict[str, Any]], Any]

PARAMETER_SEPARATOR = "+"
PARAMETER_VALUE_SEPARATOR = "@"


def parse_uri(uri: str) -> Tuple[str, str, Dict[str, Any]]:
    """
    Split a URI into its scheme, name and parameters.

    Parameters follow the name as ``+name@value`` pairs; values are parsed
    with ``parse_value``.

    Example:
        >>> parse_uri("new:Point+x@5+label@start")
        ('new', 'Point', {'x': 5, 'label': 'start'})

    Raises:
        ValueError: If the URI has no scheme or a parameter has no value.
    """
    scheme, sep, rest = uri.partition(":")
    if not sep or not scheme:
        raise ValueError(f"no scheme in URI '{uri}'")
    name, *pairs = rest.split(PARAMETER_SEPARATOR)
    params: Dict[str, Any] = {}
    for pair in pairs:
        param_name, sep, raw_value = pair.partition(PARAMETER_VALUE_SEPARATOR)
        if not sep or not param_name:
            raise ValueError(f"expected +name@value, got '+{pair}' in URI '{uri}'")
        params[param_name] = parse_value(raw_value)
    return scheme, name, params


class URIResolver:
    """Dereferences ``scheme:name`` URIs through registered scheme handlers."""

    def __init__(self, base_dir: Optional[str] = None, conversions: Optional[TypeConversions] = None):
        self.base_dir = base_dir
        self.conversions = conversions or TypeConversions()
        self._schemes: Dict[str, SchemeHandler] = {
            "file": self._dereference_file,
            "env": self._dereference_env,
        }

    def add_scheme(self, scheme: str, handler: SchemeHandler):
        """Register (or replace) the handler for a URI scheme."""
        self._schemes[scheme] = handler

    def has_scheme(self, scheme: str) -> bool:
        return scheme in self._schemes

    def copy(self) -> "URIResolver":
        """Return a resolver with the same base directory and scheme handlers."""
        resolver = URIResolver(self.base_dir, self.conversions)
        resolver._schemes = dict(self._schemes)
        return resolver

    def dereference(self, uri: str) -> Any:
        """
        Dereference a URI.

        Args:
            uri: A URI in ``scheme:name`` form, optionally followed by
                ``+name@value`` parameters.

        Returns:
            The handler's result, or None for malformed URIs and unknown schemes.
        """
        try:
            scheme, name, params = parse_uri(uri)
        except ValueError as e:
            log.warning("Malformed URI '%s': %s", uri, e)
            return None
        handler = self._schemes.get(scheme)
        if handler is None:
            log.warning("No handler for URI scheme '%s' (uri: %s)", scheme, uri)
            return None
        return handler(name, params)

    def _dereference_file(self, name: str, params: Dict[str, Any]) -> Optional[Resource]:
        from .loader import load_file_data

        path = resolve_path(name, self.base_dir)
        try:
            data = load_file_data(str(path))
        except (FileNotFoundError, RuntimeError) as e:
            log.warning("Unable to dereference file URI '%s': %s", name, e)
            return None
        return Resource(data, f"file:{name}", self.conversions)

    def _dereference_env(self, name: str, params: Dict[str, Any]) -> Any:
        raw_value = os.environ.get(name)
        if raw_value is None:
            log.debug("Environment variable '%s' not set", name)
            return None
        return parse_value(raw_value)
