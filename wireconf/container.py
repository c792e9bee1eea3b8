"""
wireconf.container
------------------

Builds a graph of named objects from a configuration.

Each top-level name in a container configuration describes a named object.
A value carrying a ``*type`` hint is instantiated from the container's
``types`` registry and configured; any other value is kept as plain data.
Named objects reference each other with ``@named:<name>`` values. New
objects can also be built inline: ``@new:<type>+name@value`` instantiates a
registered type configured with the URI parameters, and
``@make:<template>+name@value`` builds one of the container's ``makes``
templates with the URI parameters as template parameters.

The build runs in two phases. Phase 1 allocates a slot for every name; phase
2 builds each slot in turn. A slot referenced before it has been built is
built on demand. A slot referenced while it is itself being built (a
circular reference) resolves to the slot's ``PendingNamed`` placeholder; the
assignments queued on the placeholder are replayed when the slot completes,
and ``after_configure`` hooks of the objects waiting on it run then.

Example:
    >>> container = Container(types={"Greeter": Greeter})
    >>> container.configure_with_data({
    ...     "greeter": {"*type": "Greeter", "message": "hello"},
    ... })
    >>> container.get_named("greeter").message
    'hello'
"""

import enum
import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .configuration import Configuration
from .configurer import ObjectConfigurer, normalize_property_name
from .conversions import TypeConversions
from .exceptions import ConstructionError, TypeResolutionError
from .identity import ObjectKey
from .pending import PendingNamed
from .properties import ContainerProperties, properties_for_object
from .protocols import ContainerAware, Service
from .proxies import ConfigurationProxy, ProxyRegistry, class_name
from .resources import URIResolver

log = logging.getLogger(__name__)


def resolve_type_reference(tag: str, reference: Any) -> Callable[[], Any]:
    """
    Resolve a ``types`` registry entry to a class or zero-argument factory.

    Args:
        tag: The registry tag, used in error messages.
        reference: A class or callable, or a ``"package.module:attr"`` string.
            ``"package.module.attr"`` is accepted when no ``:`` is present.

    Returns:
        The resolved class or factory.

    Raises:
        TypeResolutionError: If the reference can't be imported or isn't callable.
    """
    if not isinstance(reference, str):
        if callable(reference):
            return reference
        raise TypeResolutionError(tag, reference, "not a class or factory")

    module_name, sep, attr_path = reference.partition(":")
    if not sep:
        module_name, _, attr_path = reference.rpartition(".")
    if not module_name or not attr_path:
        raise TypeResolutionError(tag, reference, "expected 'package.module:attr'")

    try:
        resolved = importlib.import_module(module_name)
    except ImportError as e:
        raise TypeResolutionError(tag, reference, e) from e
    for attr in attr_path.split('.'):
        try:
            resolved = getattr(resolved, attr)
        except AttributeError as e:
            raise TypeResolutionError(tag, reference, e) from e
    if not callable(resolved):
        raise TypeResolutionError(tag, reference, "not a class or factory")
    return resolved


class SlotState(enum.Enum):
    ALLOCATED = "allocated"
    BUILDING = "building"
    BUILT = "built"


@dataclass
class Slot:
    """Build slot of a named object."""

    name: str
    key: str
    pending: PendingNamed
    state: SlotState = SlotState.ALLOCATED


class Container:
    """
    A container of named objects built from configuration.

    Attributes:
        named: The named objects, by name.
        proxies: The container's proxy registry. Register proxies before
            configuring the container.
        resolver: URI resolver for configurations built from data; it carries
            the container's ``named:``, ``new:`` and ``make:`` schemes.
        configurer: The object configurer used to configure objects.
    """

    def __init__(self,
                 types: Optional[Mapping[str, Any]] = None,
                 proxies: Optional[ProxyRegistry] = None,
                 resolver: Optional[URIResolver] = None,
                 conversions: Optional[TypeConversions] = None):
        self.conversions = conversions or TypeConversions()
        self.resolver = resolver or URIResolver(conversions=self.conversions)
        self._add_schemes()
        self.proxies = proxies or ProxyRegistry()
        self.configurer = ObjectConfigurer(self)
        self.named: Dict[str, Any] = {}
        self._types: Dict[str, Callable[[], Any]] = {}
        self._makes: Optional[Configuration] = None
        self._slots: Dict[str, Slot] = {}
        self._configuration: Optional[Configuration] = None
        self._properties: Optional[ContainerProperties] = None
        self._pending_refs: Dict[ObjectKey, int] = {}
        self._pending_configs: Dict[ObjectKey, Configuration] = {}
        self._services: List[Any] = []
        self._service_keys = set()
        self._started_keys = set()
        if types:
            self.set_types(types)

    # --- Type registry ---

    def set_types(self, types: Mapping[str, Any]):
        """
        Add entries to the types registry.

        String references are imported once, here.

        Raises:
            TypeResolutionError: If an entry can't be resolved.
        """
        resolved = {tag: resolve_type_reference(tag, reference) for tag, reference in types.items()}
        self._types.update(resolved)
        log.debug("Registered types: %s", ", ".join(resolved))

    def get_types(self) -> Mapping[str, Any]:
        return dict(self._types)

    def set_makes(self, makes: Configuration):
        """Set the parameterized object templates used by ``make:`` URIs."""
        self._makes = makes

    def get_makes(self) -> Optional[Configuration]:
        return self._makes

    # --- Instantiation ---

    def instantiate_object_with_configuration(self, configuration: Configuration, identifier: str) -> Any:
        """
        Instantiate the object described by a configuration's ``*type`` hint.

        Args:
            configuration: The object's configuration.
            identifier: Name of the object or property being built, for messages.

        Returns:
            The new (unconfigured) object; or None if the configuration has no
            type hint or the hint names an unknown type.

        Raises:
            ConstructionError: If instantiation fails.
        """
        tag = configuration.get_value_as_string("*type")
        if tag is None:
            return None
        factory = self._types.get(tag)
        if factory is None:
            log.warning("Unknown *type '%s' for object '%s'", tag, identifier)
            return None
        if isinstance(factory, type):
            return self.new_instance_for_class_and_configuration(factory, configuration)
        try:
            obj = factory()
        except Exception as e:
            raise ConstructionError(identifier, e) from e
        if obj is not None:
            self.do_post_instantiation(obj)
        return obj

    def new_instance_for_class_and_configuration(self, cls: type, configuration: Configuration) -> Any:
        """
        Instantiate a class for configuration.

        If a proxy is registered for the class, a proxy instance is returned
        in its place; it is configured like any object and unwrapped when
        injected.

        Raises:
            ConstructionError: If the class (or proxy) can't be instantiated.
        """
        entry = self.proxies.lookup(cls)
        if entry is not None:
            obj = entry.instantiate_proxy()
            if obj is None:
                raise ConstructionError(class_name(cls), f"unable to instantiate proxy {entry.proxy_class!r}")
        else:
            try:
                obj = cls()
            except Exception as e:
                raise ConstructionError(class_name(cls), e) from e
        self.do_post_instantiation(obj)
        return obj

    def build_object(self, configuration: Configuration, identifier: str) -> Any:
        """
        Build and configure a standalone object from a configuration.

        Returns:
            The configured object (unwrapped if a proxy was used), or None if
            the configuration has no usable ``*type`` hint.

        Raises:
            ConstructionError: If instantiation fails.
        """
        configuration = configuration.normalize()
        obj = self.instantiate_object_with_configuration(configuration, identifier)
        if obj is None:
            return None
        self.configurer.configure(obj, properties_for_object(obj), configuration, identifier)
        if isinstance(obj, ConfigurationProxy):
            obj = obj.unwrap_value()
        return obj

    # --- Post-instantiation and post-configuration ---

    def do_post_instantiation(self, obj: Any):
        if isinstance(obj, ContainerAware):
            obj.bind_container(self)

    def do_post_configuration(self, obj: Any):
        if isinstance(obj, Service):
            key = ObjectKey(obj)
            if key not in self._service_keys:
                self._service_keys.add(key)
                self._services.append(obj)

    def start_services(self):
        """Start every configured service which hasn't been started yet."""
        for service in self._services:
            key = ObjectKey(service)
            if key in self._started_keys:
                continue
            self._started_keys.add(key)
            log.debug("Starting service %s", type(service).__name__)
            service.start_service()

    # --- Pending named references ---

    def inc_pending_value_ref_count(self, pending: PendingNamed, target: Any, property_name: str,
                                    assign: Callable[[Any], Any]):
        """Queue an assignment on a pending named object and count it against the target."""
        pending.record(target, property_name, assign)
        key = ObjectKey(target)
        self._pending_refs[key] = self._pending_refs.get(key, 0) + 1

    def has_pending_value_refs(self, obj: Any) -> bool:
        return self._pending_refs.get(ObjectKey(obj), 0) > 0

    def record_pending_value_object_configuration(self, obj: Any, configuration: Configuration):
        """Defer an object's ``after_configure`` call until its pending references resolve."""
        self._pending_configs[ObjectKey(obj)] = configuration

    def _dec_pending_value_ref_count(self, key: ObjectKey):
        count = self._pending_refs.get(key, 0) - 1
        if count > 0:
            self._pending_refs[key] = count
            return
        self._pending_refs.pop(key, None)
        configuration = self._pending_configs.pop(key, None)
        if configuration is not None:
            key.obj.after_configure(configuration)

    # --- URI schemes ---

    def _add_schemes(self):
        self.resolver.add_scheme("named", self._dereference_named)
        self.resolver.add_scheme("new", self._dereference_new)
        self.resolver.add_scheme("make", self._dereference_make)

    def _dereference_named(self, name: str, params: Dict[str, Any]) -> Any:
        return self.get_named(name)

    def _dereference_new(self, name: str, params: Dict[str, Any]) -> Any:
        """Build a new instance of the registered type ``name``, configured with the URI parameters."""
        data = dict(params)
        data["*type"] = name
        configuration = Configuration(data, resolver=self.resolver, conversions=self.conversions)
        return self._build_for_uri(configuration, f"new:{name}")

    def _dereference_make(self, name: str, params: Dict[str, Any]) -> Any:
        """Build an object from the ``makes`` template ``name``, with the URI parameters as template parameters."""
        configuration = None
        if self._makes is not None:
            configuration = self._makes.get_value_as_configuration(name)
        if configuration is None:
            log.warning("No make template '%s'", name)
            return None
        configuration = configuration.extend_with_parameters(params)
        return self._build_for_uri(configuration, f"make:{name}")

    def _build_for_uri(self, configuration: Configuration, uri: str) -> Any:
        try:
            return self.build_object(configuration, uri)
        except ConstructionError as e:
            log.error("%s (uri: %s)", e, uri)
            return None

    # --- Named objects ---

    def get_named(self, name: str) -> Any:
        """
        Get a named object.

        Returns:
            The named object; the slot's ``PendingNamed`` if the object is
            currently being built; or None if there is no such object.
        """
        slot = self._slots.get(name)
        if slot is None:
            value = self.named.get(name)
            if value is None:
                log.warning("No named object '%s'", name)
            return value
        if slot.state is SlotState.BUILDING:
            return slot.pending
        if slot.state is SlotState.ALLOCATED:
            self._build_slot(slot)
        return self.named.get(name)

    def _build_slot(self, slot: Slot):
        slot.state = SlotState.BUILDING
        self.configurer.configure_property(self, self._properties, slot.name, self._configuration, name=slot.key)
        slot.state = SlotState.BUILT
        value = self.named.get(slot.name)
        assignments = slot.pending.take_assignments()
        if assignments:
            log.debug("Resolving %d pending reference(s) to '%s'", len(assignments), slot.name)
        for assignment in assignments:
            assignment.assign(value)
            self._dec_pending_value_ref_count(assignment.target)

    def configure_with(self, configuration: Configuration, container: Optional["Container"] = None):
        """
        Build the container's named objects from a configuration.

        Args:
            configuration: The container configuration.
            container: A parent container, when this container is itself
                configured as a value; its types are inherited.
        """
        if container is not None and container is not self:
            self._types = {**container.get_types(), **self._types}

        # The configuration is re-rooted on this container's resolver, so that
        # named:, new: and make: URIs resolve against this container.
        if configuration.resolver is not self.resolver:
            if configuration.resolver is not None:
                self.resolver = configuration.resolver.copy()
                self._add_schemes()
            configuration = Configuration(configuration.data,
                                          resolver=self.resolver,
                                          conversions=configuration.conversions,
                                          context=configuration.context)
        configuration = configuration.normalize()
        self._configuration = configuration
        self._properties = ContainerProperties(self)

        names = []
        for name in configuration.get_value_names():
            prop_name = normalize_property_name(name)
            if prop_name is None:
                continue
            if self._properties.has_own(prop_name):
                self.configurer.configure_property(self, self._properties, prop_name, configuration, name=name)
            else:
                names.append((prop_name, name))

        for prop_name, name in names:
            self._slots[prop_name] = Slot(prop_name, name, PendingNamed(prop_name))
        for prop_name, _ in names:
            slot = self._slots[prop_name]
            if slot.state is SlotState.ALLOCATED:
                self._build_slot(slot)
        log.debug("Container built %d named object(s)", len(names))

    def configure_with_data(self, data: Any):
        """Build the container's named objects from configuration data."""
        self.configure_with(Configuration(data, resolver=self.resolver, conversions=self.conversions))
