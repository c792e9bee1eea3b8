"""
wireconf.configuration
----------------------

The configuration value model.

A ``Configuration`` wraps nested configuration data (mappings, lists and
scalars) and resolves values at dot-separated key paths. String values may
carry a prefix which changes how they resolve:

    - ``$name``   parameter reference, looked up in the template context;
    - ``?text``   string template, rendered against the template context;
    - ``@uri``    URI reference, dereferenced through the URI resolver;
    - ``#path``   cross-reference to another key path on the root configuration;
    - ```text``   escaped value, returned without the backtick and otherwise untouched.

Configurations are composed with ``mixin``/``mixover`` (shallow, top-level
overlays), extended with parameters, and normalized to resolve the reserved
``*config``, ``*mixin``, ``*mixins`` and ``*extends`` keys. Composition never
modifies a configuration in place; it always returns a new one.
"""

import collections.abc
import logging
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional

from . import templates
from .conversions import Color, TypeConversions
from .resources import Resource, URIResolver
from .utils import mixin as mixin_maps

log = logging.getLogger(__name__)

PARAMETER_PREFIX = "$"

# Representation names understood by get_value_as().
BARE = "bare"
JSON = "json"
CONFIGURATION = "configuration"
MAYBE_CONFIGURATION = "maybe-configuration"


class ListBackedMap(collections.abc.MutableMapping):
    """
    A mutable mapping view of a list, keyed by string indices ("0", "1", ...).

    Assigning beyond the end of the list pads it with None, so items can be
    written in any order.
    """

    def __init__(self, items: Optional[list] = None):
        self._list = items if items is not None else []

    def get_list(self) -> list:
        return self._list

    @staticmethod
    def _index(key: Any) -> int:
        try:
            index = int(key)
        except (TypeError, ValueError):
            raise KeyError(key) from None
        if index < 0:
            raise KeyError(key)
        return index

    def __getitem__(self, key: Any) -> Any:
        index = self._index(key)
        if index >= len(self._list):
            raise KeyError(key)
        return self._list[index]

    def __setitem__(self, key: Any, value: Any):
        index = self._index(key)
        while len(self._list) <= index:
            self._list.append(None)
        self._list[index] = value

    def __delitem__(self, key: Any):
        index = self._index(key)
        if index >= len(self._list):
            raise KeyError(key)
        self._list[index] = None

    def __iter__(self) -> Iterator[str]:
        return (str(i) for i in range(len(self._list)))

    def __len__(self) -> int:
        return len(self._list)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._list!r})"


class ValueType(Enum):
    """The JSON type of a configuration value."""

    OBJECT = "object"
    LIST = "list"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    UNDEFINED = "undefined"


class Maybe:
    """
    A configuration value which may or may not be usable as a configuration.

    Holds the (normalized) configuration if the value could be converted to
    one, alongside the value's plain data and its original bare form. The
    object configurer uses this to defer the decision on how a value is used.
    """

    def __init__(self, configuration: Any, bare: Any):
        self.configuration = configuration.normalize() if isinstance(configuration, Configuration) else None
        self._bare = bare
        self.data = bare.as_json_data() if isinstance(bare, Resource) else bare

    def get_configuration(self) -> Optional["Configuration"]:
        return self.configuration

    def get_data(self) -> Any:
        return self.data

    def get_bare(self) -> Any:
        if isinstance(self._bare, ListBackedMap):
            return self._bare.get_list()
        return self._bare


class Configuration:
    """
    Configuration data with key-path resolution, value prefixes and composition.

    A configuration is either a root (created from data alone) or a child of
    a parent configuration, from which it inherits the URI resolver, the type
    conversions, the template context and the root used for ``#`` references.
    """

    def __init__(self,
                 data: Any = None,
                 parent: Optional["Configuration"] = None,
                 resolver: Optional[URIResolver] = None,
                 conversions: Optional[TypeConversions] = None,
                 context: Optional[Mapping[str, Any]] = None):
        if parent is not None:
            self.resolver = parent.resolver
            self.conversions = parent.conversions
            self.root = parent.root
            self.context = parent.context
        else:
            self.conversions = conversions or TypeConversions()
            self.resolver = resolver
            self.root = self
            self.context = {}
        if context is not None:
            self.context = dict(context)
        self.data = self._as_mapping(data)
        self._extract_parameters()

    def _as_mapping(self, data: Any) -> Mapping:
        if isinstance(data, Configuration):
            data = data.data
        if isinstance(data, (str, bytes)):
            data = self.conversions.as_json_data(data)
        if isinstance(data, Resource):
            data = data.as_json_data()
        if isinstance(data, list):
            data = ListBackedMap(data)
        if isinstance(data, Mapping):
            return data
        if data is not None:
            log.debug("Configuration data of type %s is not a mapping; using empty data", type(data).__name__)
        return {}

    def _extract_parameters(self):
        """Move parameter ($ prefixed) keys from the data into the context."""
        if isinstance(self.data, ListBackedMap):
            return
        params = {k: v for k, v in self.data.items() if isinstance(k, str) and k.startswith(PARAMETER_PREFIX)}
        if params:
            self.data = {k: v for k, v in self.data.items() if k not in params}
            self.context = mixin_maps(self.context, params)

    @classmethod
    def _composed(cls, config: "Configuration", over: "Configuration", parent: "Configuration") -> "Configuration":
        """Create a configuration from ``over``'s values mixed over ``config``'s."""
        result = cls.__new__(cls)
        result.resolver = parent.resolver
        result.conversions = parent.conversions
        result.root = parent.root
        result.data = mixin_maps(config.data, over.data)
        result.context = mixin_maps(config.context, over.context)
        result._extract_parameters()
        return result

    # --- Value resolution ---

    def _traverse(self, key_path: str) -> Any:
        value: Any = self.data
        for key in key_path.split('.'):
            if isinstance(value, Resource):
                value = value.as_json_data()
            if isinstance(value, Configuration):
                value = value.data
            if isinstance(value, Mapping):
                value = value.get(key)
            elif isinstance(value, (list, tuple)):
                try:
                    index = int(key)
                except ValueError:
                    return None
                if not 0 <= index < len(value):
                    return None
                value = value[index]
            else:
                return None
            if value is None:
                return None
        return value

    @staticmethod
    def _prefix(value: Optional[str]) -> str:
        return value[0] if isinstance(value, str) and len(value) > 1 else ""

    def _resolve_string(self, value_str: str, representation: str) -> Any:
        """Apply the value prefix rules to a string value."""
        value: Any = value_str
        prefix = self._prefix(value_str)
        if prefix == "$":
            value = self.context.get(value_str)
            if not isinstance(value, str):
                return value
            value_str = value
            prefix = self._prefix(value_str)
        if prefix == "?":
            value_str = templates.render(value_str[1:], self.context)
            value = value_str
            prefix = self._prefix(value_str)
        if prefix == "@":
            if self.resolver is None:
                log.warning("No URI resolver available to dereference '%s'", value_str)
                return None
            return self.resolver.dereference(value_str[1:])
        if prefix == "#":
            ref_path = value_str[1:]
            # Maybe wrappers are built by the caller from the bare referenced value.
            ref_representation = BARE if representation == MAYBE_CONFIGURATION else representation
            value = self.root.get_value_as(ref_path, ref_representation)
            return ref_path if value is None else value
        if prefix == "`":
            return value_str[1:]
        return value

    def get_value_as(self, key_path: str, representation: str) -> Any:
        """
        Resolve a configuration value.

        Recognizes value prefixes and converts the final value to the
        requested representation.

        Args:
            key_path: A path of keys separated by full stops.
            representation: The name of the required value representation.

        Returns:
            The value at the key path, converted; or None if no value is found
            or it can't be converted.
        """
        value = self._traverse(key_path)
        if isinstance(value, str):
            value = self._resolve_string(value, representation)
        if value is None or representation == BARE:
            return value

        if representation in (CONFIGURATION, MAYBE_CONFIGURATION):
            bare_value = value
            if not isinstance(value, Configuration):
                if isinstance(value, list):
                    value = ListBackedMap(value)
                if isinstance(value, (Mapping, Resource)):
                    value = Configuration(value, parent=self)
                else:
                    value = None
            if representation == MAYBE_CONFIGURATION:
                value = Maybe(value, bare_value)
            return value
        if isinstance(value, Resource):
            return value.as_representation(representation)
        if representation == JSON:
            return value
        return self.conversions.as_representation(value, representation)

    def has_value(self, key_path: str) -> bool:
        """Test if a non-null configuration value exists at the key path."""
        return self.get_value_as(key_path, BARE) is not None

    def get_value(self, key_path: str) -> Any:
        """Get a value in its bare representation, with no conversions applied."""
        return self.get_value_as(key_path, BARE)

    def get_value_as_string(self, key_path: str, default: Optional[str] = None) -> Optional[str]:
        value = self.get_value_as(key_path, "string")
        return default if value is None else value

    def get_value_as_number(self, key_path: str, default=None):
        value = self.get_value_as(key_path, "number")
        return default if value is None else value

    def get_value_as_boolean(self, key_path: str, default: bool = False) -> bool:
        value = self.get_value_as(key_path, "boolean")
        return default if value is None else value

    def get_value_as_date(self, key_path: str, default=None):
        value = self.get_value_as(key_path, "date")
        return default if value is None else value

    def get_value_as_url(self, key_path: str, default=None):
        value = self.get_value_as(key_path, "url")
        return default if value is None else value

    def get_value_as_data(self, key_path: str, default: Optional[bytes] = None) -> Optional[bytes]:
        value = self.get_value_as(key_path, "data")
        return default if value is None else value

    def get_value_as_color(self, key_path: str, default: str = "#000000") -> Optional[Color]:
        """Get a value as a ``Color``; falls back to the colour described by ``default``."""
        value = self.get_value_as(key_path, "color")
        if value is None:
            value = self.conversions.as_color(default)
        return value

    def get_value_as_resource(self, key_path: str) -> Optional[Resource]:
        value = self.get_value_as(key_path, "resource")
        return value if isinstance(value, Resource) else None

    def get_value_as_json(self, key_path: str, default=None) -> Any:
        value = self.get_value_as(key_path, JSON)
        return default if value is None else value

    def get_value_names(self) -> List[str]:
        """Return the top-level value names in the configuration data."""
        return list(self.data.keys())

    def get_value_type(self, key_path: str) -> ValueType:
        value = self.get_value_as(key_path, JSON)
        if isinstance(value, Configuration):
            value = value.data
        if value is None:
            return ValueType.UNDEFINED
        if isinstance(value, bool):
            return ValueType.BOOLEAN
        if isinstance(value, (int, float)):
            return ValueType.NUMBER
        if isinstance(value, str):
            return ValueType.STRING
        if isinstance(value, (list, ListBackedMap)):
            return ValueType.LIST
        return ValueType.OBJECT

    def get_value_as_configuration(self, key_path: str,
                                   default: Optional["Configuration"] = None) -> Optional["Configuration"]:
        """Get a value as a normalized configuration."""
        value = self.get_value_as(key_path, CONFIGURATION)
        if value is None:
            return default
        return value.normalize()

    def get_value_as_maybe_configuration(self, key_path: str) -> Maybe:
        value = self.get_value_as(key_path, MAYBE_CONFIGURATION)
        return value if value is not None else Maybe(None, None)

    def get_value_as_configuration_list(self, key_path: str) -> List["Configuration"]:
        """
        Get a list value as a list of configurations, one per item.

        Items that can't be used as configurations are omitted.
        """
        value = self.get_value(key_path)
        if isinstance(value, Configuration):
            value = value.data
        if isinstance(value, ListBackedMap):
            value = value.get_list()
        if not isinstance(value, list):
            value = self.get_value_as(key_path, JSON)
        result = []
        if isinstance(value, list):
            for i in range(len(value)):
                item = self.get_value_as_configuration(f"{key_path}.{i}")
                if item is not None:
                    result.append(item)
        return result

    def get_value_as_configuration_map(self, key_path: str) -> Dict[str, "Configuration"]:
        """Get a mapping value as a dict of configurations, one per entry."""
        value = self.get_value(key_path)
        if isinstance(value, Configuration):
            value = value.data
        result = {}
        if isinstance(value, Mapping):
            for key in value.keys():
                item = self.get_value_as_configuration(f"{key_path}.{key}")
                if item is not None:
                    result[str(key)] = item
        return result

    # --- Composition ---

    def mixin(self, other: "Configuration") -> "Configuration":
        """
        Create a new configuration with ``other``'s values copied over this one's.

        The merge is a top-level copy: a name present in ``other`` replaces the
        whole value held under that name here. Root, resolver and conversions
        come from this configuration.
        """
        return Configuration._composed(self, other, self)

    def mixover(self, other: "Configuration") -> "Configuration":
        """Like ``mixin`` but with this configuration's values taking precedence."""
        return Configuration._composed(other, self, self)

    def extend_with_parameters(self, params: Optional[Mapping[str, Any]]) -> "Configuration":
        """
        Extend this configuration with a set of parameters.

        Each parameter is added to the template context under a ``$`` prefixed
        name, so it can be used both as a direct reference (``"$param"``) and
        from within templates (``"?view:{$param}"``). Returns this configuration
        when there are no parameters.
        """
        if not params:
            return self
        context = dict(self.context)
        for name, value in params.items():
            context[PARAMETER_PREFIX + name] = value
        return Configuration(self.data, parent=self, context=context)

    def flatten(self) -> "Configuration":
        """Merge the ``*config``, ``*mixin`` and ``*mixins`` values into this configuration."""
        result = self
        for key in ("*config", "*mixin"):
            mixin_config = self.get_value_as_configuration(key)
            if mixin_config is not None:
                result = result.mixin(mixin_config)
        for mixin_config in self.get_value_as_configuration_list("*mixins"):
            result = result.mixin(mixin_config)
        return result

    def normalize(self) -> "Configuration":
        """
        Flatten this configuration and resolve its ``*extends`` chain.

        The chain of extended configurations is followed until it ends or a
        flattened configuration repeats. The chain is then merged from the
        most distant ancestor down to this configuration, so that values
        closer to this configuration win.
        """
        current = self.flatten()
        hierarchy = [current]
        while True:
            parent = current.get_value_as("*extends", CONFIGURATION)
            if parent is None:
                break
            current = parent.flatten()
            if current in hierarchy:
                log.debug("Configuration extension loop detected; truncating hierarchy at depth %d", len(hierarchy))
                break
            hierarchy.append(current)

        result = Configuration({}, resolver=self.resolver, conversions=self.conversions)
        for config in reversed(hierarchy):
            result = result.mixin(config)
        result.root = self.root
        result.resolver = self.resolver
        result.conversions = self.conversions
        return result

    def configuration_with_keys_excluded(self, *keys: str) -> "Configuration":
        """Return a copy of this configuration with the named top-level keys removed."""
        result = Configuration._composed(self, self, self)
        result.data = {k: v for k, v in result.data.items() if k not in keys}
        return result

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        return self.data == other.data and self.context == other.context

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(data={dict(self.data)!r}, context={self.context!r})"
