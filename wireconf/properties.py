"""
wireconf.properties
-------------------

Property introspection for configurable objects.

A class exposes a configurable property ``name`` through any of:

    - a class-level annotation (``name: str = ""``), including dataclass fields;
    - a ``property`` with a setter;
    - a ``set_name(value)`` method. A getter is optional and is looked up as
      ``get_name()``, or ``is_name()`` / ``has_name()`` for ``bool`` properties.

Each property is described by a ``Property`` giving its name, declared type
and (for collection types) member type info, with ``get``/``set`` operations
that never raise. Property tables are built once per class and cached.
"""

import collections.abc
import functools
import inspect
import logging
import types
from typing import (
    Annotated,
    Any,
    ClassVar,
    Dict,
    Optional,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

log = logging.getLogger(__name__)

_UNION_TYPES = (Union, types.UnionType)


class RawData:
    """
    Marker type for properties which take configuration data as-is.

    A property annotated ``RawData`` receives the plain (resolved) data found
    in its configuration, with no object construction applied.
    """


def resolve_type(hint: Any) -> Tuple[Any, Optional[tuple]]:
    """
    Normalize a type annotation into a declared type and member type info.

    Args:
        hint: A type annotation.

    Returns:
        A ``(declared_type, member_types)`` tuple. ``member_types`` is None
        unless the annotation is a parameterized generic.

    Example:
        >>> resolve_type(Optional[list[int]])
        (<class 'list'>, (<class 'int'>,))
        >>> resolve_type(Any)
        (<class 'object'>, None)
    """
    if hint is None or hint is Any or hint is inspect.Parameter.empty:
        return object, None
    origin = get_origin(hint)
    if origin is Annotated:
        return resolve_type(get_args(hint)[0])
    if origin in _UNION_TYPES:
        args = [a for a in get_args(hint) if a is not type(None)]
        if len(args) == 1:
            return resolve_type(args[0])
        return object, None
    if origin is not None:
        args = get_args(hint)
        return origin, (tuple(args) or None)
    if isinstance(hint, type):
        return hint, None
    return object, None


class Property:
    """
    A configurable property of a class.

    The base class carries the descriptor data; subclasses implement access.
    """

    def __init__(self, name: str, type_: Any = object, member_types: Optional[tuple] = None):
        self.name = name
        self.type = type_ if type_ is not None else object
        self.member_types = member_types

    def is_any_type(self) -> bool:
        """Test whether the property accepts a value of any type."""
        return self.type is object

    def is_type(self, other_type: type) -> bool:
        return self.type is other_type

    def is_assignable_from(self, other_type: type) -> bool:
        """Test whether values of ``other_type`` can be assigned to the property."""
        if self.is_any_type() or self.type is RawData:
            return True
        try:
            return issubclass(other_type, self.type)
        except TypeError:
            return False

    def is_subtype_of(self, other_type: type) -> bool:
        """Test whether the declared type is ``other_type`` or one of its subclasses."""
        try:
            return isinstance(self.type, type) and issubclass(self.type, other_type)
        except TypeError:
            return False

    def get(self, obj: Any) -> Any:
        return None

    def set(self, obj: Any, value: Any) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.type!r})"


class AttributeProperty(Property):
    """Property accessed by attribute assignment (annotations and ``property`` setters)."""

    def get(self, obj: Any) -> Any:
        try:
            return getattr(obj, self.name, None)
        except Exception:
            return None

    def set(self, obj: Any, value: Any) -> bool:
        try:
            setattr(obj, self.name, value)
            return True
        except Exception as e:
            log.debug("Unable to set attribute '%s' on %s: %s", self.name, type(obj).__name__, e)
            return False


class MethodProperty(Property):
    """Property accessed through ``set_name`` / ``get_name`` methods."""

    def __init__(self, name, type_, member_types, setter_name: str, getter_name: Optional[str]):
        super().__init__(name, type_, member_types)
        self.setter_name = setter_name
        self.getter_name = getter_name

    def get(self, obj: Any) -> Any:
        if self.getter_name is None:
            return None
        try:
            return getattr(obj, self.getter_name)()
        except Exception:
            return None

    def set(self, obj: Any, value: Any) -> bool:
        try:
            getattr(obj, self.setter_name)(value)
            return True
        except Exception as e:
            log.warning("Unable to call %s on %s: %s", self.setter_name, type(obj).__name__, e)
            return False


class MapEntryProperty(Property):
    """Presents a named entry of a mapping as a property."""

    def get(self, obj: Any) -> Any:
        try:
            return obj.get(self.name)
        except Exception:
            return None

    def set(self, obj: Any, value: Any) -> bool:
        try:
            obj[self.name] = value
            return True
        except Exception as e:
            log.debug("Unable to set entry '%s' on %s: %s", self.name, type(obj).__name__, e)
            return False


class NamedProperty(Property):
    """A container-scoped named object, presented as a property of the container."""

    def get(self, container: Any) -> Any:
        return container.named.get(self.name)

    def set(self, container: Any, value: Any) -> bool:
        container.named[self.name] = value
        return True


def _type_hints(obj: Any) -> Dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except Exception as e:
        log.debug("Falling back to raw annotations for %r: %s", obj, e)
        if inspect.isclass(obj):
            hints = {}
            for klass in reversed(obj.__mro__):
                hints.update(getattr(klass, "__annotations__", {}) or {})
            return hints
        return dict(getattr(obj, "__annotations__", {}) or {})


def _setter_value_hint(func: Any) -> Any:
    """Return the annotation of a setter's single value parameter (or None)."""
    params = list(inspect.signature(func).parameters.values())[1:]
    if len(params) != 1 or params[0].kind not in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
    ):
        raise ValueError("not a single-argument setter")
    return _type_hints(func).get(params[0].name)


@functools.lru_cache(maxsize=40)
def properties_for_class(cls: type) -> Dict[str, Property]:
    """
    Discover the configurable properties of a class.

    Results are cached per class (LRU, 40 classes); property tables are
    immutable once built.

    Args:
        cls: The class to inspect.

    Returns:
        Mapping of property name to ``Property``.
    """
    log.debug("properties_for_class(%s) cache miss", cls.__qualname__)
    properties: Dict[str, Property] = {}

    for name, hint in _type_hints(cls).items():
        if name.startswith('_') or get_origin(hint) is ClassVar or hint is ClassVar:
            continue
        type_, member_types = resolve_type(hint)
        properties[name] = AttributeProperty(name, type_, member_types)

    members: Dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is not object:
            members.update(vars(klass))

    for name, member in members.items():
        if name.startswith('_'):
            continue
        if isinstance(member, property):
            if member.fset is None:
                continue
            try:
                hint = _setter_value_hint(member.fset)
            except (ValueError, TypeError):
                continue
            if hint is None and member.fget is not None:
                hint = _type_hints(member.fget).get("return")
            type_, member_types = resolve_type(hint)
            properties[name] = AttributeProperty(name, type_, member_types)
        elif name.startswith("set_") and isinstance(member, types.FunctionType):
            base_name = name[4:]
            if not base_name:
                continue
            try:
                hint = _setter_value_hint(member)
            except (ValueError, TypeError):
                continue
            type_, member_types = resolve_type(hint)
            getter_name = None
            candidates = [f"get_{base_name}"]
            if type_ is bool:
                candidates += [f"is_{base_name}", f"has_{base_name}"]
            for candidate in candidates:
                if callable(members.get(candidate)):
                    getter_name = candidate
                    break
            properties[base_name] = MethodProperty(base_name, type_, member_types, name, getter_name)

    return properties


class Properties:
    """A view of the properties available on a configuration target."""

    def get(self, name: str) -> Optional[Property]:
        raise NotImplementedError


class ObjectProperties(Properties):
    """Properties discovered by class introspection."""

    def __init__(self, cls: type):
        self._properties = properties_for_class(cls)

    def has_own(self, name: str) -> bool:
        return name in self._properties

    def get(self, name: str) -> Optional[Property]:
        return self._properties.get(name)


class CollectionProperties(ObjectProperties):
    """
    Properties of a mapping (or list-backed mapping) target.

    Actual properties of the collection's class take precedence; any other
    name is presented as a map entry carrying the collection's member type.
    """

    def __init__(self, obj: Any, member_type: Any = None):
        super().__init__(type(obj))
        self.member_type = member_type if isinstance(member_type, type) else object

    def get(self, name: str) -> Optional[Property]:
        prop = super().get(name)
        if prop is None:
            prop = MapEntryProperty(name, self.member_type)
        return prop


class ContainerProperties(ObjectProperties):
    """
    Properties of a container: its own properties first, falling back to
    container-wide named objects.
    """

    def __init__(self, container: Any):
        super().__init__(type(container))

    def get(self, name: str) -> Optional[Property]:
        prop = super().get(name)
        if prop is None:
            prop = NamedProperty(name)
        return prop


def is_collection(obj: Any) -> bool:
    return isinstance(obj, (list, collections.abc.MutableMapping))


def properties_for_object(obj: Any, member_type: Any = None) -> Properties:
    """
    Return the properties view appropriate for an object.

    Mappings and lists get a map-entry view carrying ``member_type``; other
    objects get a class-introspection view.
    """
    if is_collection(obj):
        return CollectionProperties(obj, member_type)
    return ObjectProperties(type(obj))


def member_type_for(prop: Property, value: Any) -> Any:
    """Return the declared member type for a collection value assigned to ``prop``."""
    member_types = prop.member_types or ()
    if isinstance(value, collections.abc.Mapping) and len(member_types) > 1:
        return resolve_type(member_types[1])[0]
    if isinstance(value, list) and len(member_types) > 0:
        return resolve_type(member_types[0])[0]
    return None
