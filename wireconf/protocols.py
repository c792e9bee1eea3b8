"""
wireconf.protocols
------------------

Optional hooks a configurable object can implement.

The configurer and container check for these structurally (any object with
the right method qualifies); subclassing is not required.

Two further hooks are checked for individually with ``has_hook``:
``before_configure(configuration)`` runs before an object's properties are
configured, and ``after_configure(configuration)`` runs once the object and
every pending named reference it depends on are complete.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SelfConfiguring(Protocol):
    """Objects which configure themselves instead of using property injection."""

    def configure_with(self, configuration: Any, container: Any) -> None: ...


@runtime_checkable
class ObjectAware(Protocol):
    """Values notified of the object and property they are about to be injected into."""

    def notify_object(self, owner: Any, property_name: str) -> None: ...


@runtime_checkable
class ObjectFactory(Protocol):
    """Factories referenced by a ``*factory`` configuration value."""

    def build_object(self, configuration: Any, container: Any, identifier: str) -> Any: ...


@runtime_checkable
class ContainerAware(Protocol):
    """Objects given a reference to the container that instantiated them."""

    def bind_container(self, container: Any) -> None: ...


@runtime_checkable
class Service(Protocol):
    """Objects started by the container once the object graph is built."""

    def start_service(self) -> None: ...


def has_hook(obj: Any, name: str) -> bool:
    """Test whether an object exposes a callable hook method."""
    return callable(getattr(obj, name, None))
