"""
wireconf.configurer
-------------------

The object configurer: resolves each value of a configuration into a property
value and injects it into the object being configured.

For every top-level name in an object's configuration the configurer:

    1. Resolves a value. Properties of simple declared types (bool, numbers,
       str, dates, colours, bytes, URLs, nested configurations, raw data) are
       read with the matching typed accessor. Anything else is treated as a
       possible nested object: built by a ``*factory``, instantiated from a
       container type hint, taken from the property's in-place value, used as
       plain data, or instantiated from the property's declared type; and
       then configured in turn.
    2. Injects the value. Proxies are unwrapped, pending named references are
       deferred until their object is complete, and values not assignable to
       the property's declared type are dropped.
"""

import logging
import numbers
from datetime import date
from typing import Any, Optional
from urllib.parse import ParseResult

from .configuration import Configuration, ListBackedMap, Maybe
from .conversions import Color
from .exceptions import ConstructionError
from .pending import PendingNamed
from .properties import Properties, Property, RawData, member_type_for, properties_for_object
from .protocols import ObjectAware, ObjectFactory, SelfConfiguring, has_hook
from .proxies import ConfigurationProxy

log = logging.getLogger(__name__)

RESERVED_PREFIX = "*"
PLATFORM_PREFIX = "*py-"


def normalize_property_name(name: Any) -> Optional[str]:
    """
    Normalize a configuration name to a property name.

    Reserved names (``*type``, ``*extends`` ...) return None. Names carrying the
    platform prefix (``*py-title``) are stripped of it, unless what remains is
    ``class`` or another reserved name.
    """
    name = str(name)
    if not name.startswith(RESERVED_PREFIX):
        return name
    if name.startswith(PLATFORM_PREFIX):
        name = name[len(PLATFORM_PREFIX):]
        if name and name != "class" and not name.startswith(RESERVED_PREFIX):
            return name
    return None


def key_path_for(key_path: str, name: str) -> str:
    return f"{key_path}.{name}" if key_path else name


class ObjectConfigurer:
    """Configures objects on behalf of a container."""

    def __init__(self, container):
        self.container = container

    def configure(self, obj: Any, properties: Properties, configuration: Configuration, key_path: str = "") -> Any:
        """
        Configure an object.

        Args:
            obj: The object being configured.
            properties: The properties view of the object.
            configuration: The object's (normalized) configuration.
            key_path: Key path of the object's configuration, used in log messages.

        Returns:
            The configured object.
        """
        # List items are written through a list-backed map, so they can arrive
        # in any order (including late, from pending named references).
        list_object = None
        if isinstance(obj, list):
            list_object = obj
            obj = ListBackedMap(list_object)

        if has_hook(obj, "before_configure"):
            obj.before_configure(configuration)

        if isinstance(obj, SelfConfiguring):
            obj.configure_with(configuration, self.container)
        else:
            for name in configuration.get_value_names():
                prop_name = normalize_property_name(name)
                if prop_name is None:
                    continue
                self.configure_property(obj, properties, prop_name, configuration, key_path, name)

        if list_object is not None:
            obj = list_object

        if has_hook(obj, "after_configure"):
            if self.container.has_pending_value_refs(obj):
                self.container.record_pending_value_object_configuration(obj, configuration)
            else:
                obj.after_configure(configuration)
        self.container.do_post_configuration(obj)
        return obj

    def configure_property(self, obj: Any, properties: Properties, prop_name: str,
                           configuration: Configuration, key_path: str = "", name: Optional[str] = None) -> Any:
        """
        Resolve a single property value from an object configuration and inject it.

        The value is read from the configuration under ``name`` (the
        un-normalized configuration name) when given, else under ``prop_name``.

        Returns:
            The value the property was configured with, or None.
        """
        prop = properties.get(prop_name)
        if prop is None:
            log.debug("No property '%s' at %s", prop_name, key_path_for(key_path, prop_name))
            return None
        name = name or prop_name

        value = None
        if not prop.is_any_type():
            value = self._typed_value(prop, name, configuration)

        if value is None:
            maybe = configuration.get_value_as_maybe_configuration(name)
            value_config = maybe.get_configuration()
            if value_config is not None:
                value = self._build_value(obj, prop, prop_name, maybe, value_config, key_path)
            if value is None:
                value = maybe.get_bare()

        if value is not None:
            value = self.inject_value_into_property(obj, properties, prop_name, value)
        return value

    def _typed_value(self, prop: Property, name: str, configuration: Configuration) -> Any:
        """Read a value for a property of a simple declared type, or return None."""
        if prop.is_type(bool):
            return configuration.get_value_as_boolean(name)
        if prop.is_subtype_of(numbers.Number):
            number = configuration.get_value_as_number(name)
            if number is None:
                return None
            try:
                if prop.is_type(int):
                    return int(number)
                if prop.is_type(float):
                    return float(number)
            except (OverflowError, ValueError):
                return None
            return number
        if prop.is_subtype_of(str):
            return configuration.get_value_as_string(name)
        if prop.is_subtype_of(date):
            return configuration.get_value_as_date(name)
        if prop.is_subtype_of(Color):
            return configuration.get_value_as_color(name)
        if prop.is_subtype_of(Configuration):
            return configuration.get_value_as_configuration(name)
        if prop.is_type(RawData):
            return configuration.get_value_as_json(name)
        if prop.is_subtype_of(bytes):
            return configuration.get_value_as_data(name)
        if prop.is_subtype_of(ParseResult):
            return configuration.get_value_as_url(name)
        return None

    def _build_value(self, obj: Any, prop: Property, prop_name: str, maybe: Maybe,
                     value_config: Configuration, key_path: str) -> Any:
        """Build (and configure) a property value from its nested configuration."""
        value_key_path = key_path_for(key_path, prop_name)

        # Factory-built objects skip the configuration step.
        factory = value_config.get_value("*factory")
        if factory is not None:
            value = None
            if isinstance(factory, ObjectFactory):
                try:
                    value = factory.build_object(value_config, self.container, prop_name)
                except Exception as e:
                    log.error("Factory %s failed to build object at %s: %s", type(factory).__name__, value_key_path, e)
                if value is not None:
                    self.container.do_post_instantiation(value)
                    self.container.do_post_configuration(value)
            else:
                log.warning("Invalid *factory %s referenced at %s", type(factory).__name__, value_key_path)
            return value

        configure_value = True
        value = None
        try:
            value = self.container.instantiate_object_with_configuration(value_config, prop_name)
        except ConstructionError as e:
            log.error("%s (at %s)", e, value_key_path)

        if value is None:
            value = prop.get(obj)
            if value is not None:
                value = self.container.proxies.apply_proxy_wrapper(value)

        # Untyped properties count as list-assignable, so they take plain data
        # when no type hint applies.
        is_list_prop = prop.is_assignable_from(list)
        is_map_prop = not is_list_prop and prop.is_assignable_from(dict)
        if value is None and (is_list_prop or is_map_prop) and not prop.member_types:
            value = maybe.get_data()
            configure_value = False

        if value is None:
            if is_list_prop:
                value = []
            elif is_map_prop:
                value = {}
            elif not prop.is_any_type():
                try:
                    value = self.container.new_instance_for_class_and_configuration(prop.type, value_config)
                except ConstructionError as e:
                    log.error("Error creating instance of inferred type %s at %s: %s", prop.type, value_key_path, e)

        if value is not None and configure_value:
            member_type = member_type_for(prop, value)
            self.configure(value, properties_for_object(value, member_type), value_config, value_key_path)
        return value

    def inject_value_into_property(self, obj: Any, properties: Properties, prop_name: str, value: Any) -> Any:
        """
        Inject a resolved value into an object property.

        Returns:
            The injected (possibly unwrapped) value.
        """
        # Notify before unwrapping so proxies get the notification.
        if isinstance(value, ObjectAware):
            value.notify_object(obj, prop_name)
        if isinstance(value, ConfigurationProxy):
            value = value.unwrap_value()
        if isinstance(value, PendingNamed):
            self.container.inc_pending_value_ref_count(
                value, obj, prop_name,
                lambda resolved: self.inject_value_into_property(obj, properties, prop_name, resolved),
            )
        elif value is not None:
            prop = properties.get(prop_name)
            if prop is not None and prop.is_assignable_from(type(value)):
                prop.set(obj, value)
            else:
                log.debug("Dropping value of type %s for property '%s'", type(value).__name__, prop_name)
        return value
