"""
wireconf.proxies
----------------

Configuration proxies.

Some values cannot be configured through property injection: their classes
take required constructor arguments, are immutable, or expose no settable
properties. A configuration proxy stands in for such a value. The proxy is
configured like any other object and is unwrapped into the value it
represents when it gets injected.

Proxies are looked up by class through a ``ProxyRegistry``. The registry is
owned by a container and must be fully populated before objects are built:
lookups cache their result (including "no proxy") per class, so a proxy
registered for a superclass after a subclass has been looked up is not seen
for that subclass.
"""

import logging
from typing import Any, Dict, Optional, Union

log = logging.getLogger(__name__)


class ConfigurationProxy:
    """
    Base class for configuration proxies.

    Subclasses declare configurable properties like any other configurable
    object, and override ``unwrap_value`` to return the represented value.
    """

    def __init__(self):
        self.value = None

    def initialize_with_value(self, value: Any):
        """Initialize the proxy with an in-place value it is to act for."""
        self.value = value

    def unwrap_value(self) -> Any:
        """Return the value the proxy represents."""
        return self.value


def class_name(cls: type) -> str:
    """Return the qualified name used as a registry key for a class."""
    return f"{cls.__module__}.{cls.__qualname__}"


class ProxyEntry:
    """A registry entry mapping a proxied class to its proxy class."""

    __slots__ = ("proxy_class",)

    def __init__(self, proxy_class: Optional[type]):
        self.proxy_class = proxy_class

    def instantiate_proxy(self) -> Optional[ConfigurationProxy]:
        try:
            return self.proxy_class()
        except Exception as e:
            log.error("Error instantiating proxy %s: %s", self.proxy_class, e)
        return None

    def instantiate_proxy_with_value(self, value: Any) -> Optional[ConfigurationProxy]:
        proxy = self.instantiate_proxy()
        if proxy is not None:
            proxy.initialize_with_value(value)
        return proxy

    def __repr__(self) -> str:
        return f"ProxyEntry({self.proxy_class!r})"


NO_PROXY = ProxyEntry(None)


class ProxyRegistry:
    """Lookup of configuration proxies keyed by proxied class name."""

    def __init__(self):
        self._entries: Dict[str, ProxyEntry] = {}

    def register(self, proxy_class: Optional[type], proxied: Union[type, str]):
        """
        Register a proxy class for a proxied class.

        Args:
            proxy_class: The proxy class, or None to mark the proxied class
                explicitly as having no proxy.
            proxied: The proxied class, or its qualified name.
        """
        name = proxied if isinstance(proxied, str) else class_name(proxied)
        self._entries[name] = NO_PROXY if proxy_class is None else ProxyEntry(proxy_class)

    def entry_for_name(self, name: str) -> Optional[ProxyEntry]:
        """Return the raw cached entry for a class name, if any (including NO_PROXY)."""
        return self._entries.get(name)

    def lookup(self, cls: type) -> Optional[ProxyEntry]:
        """
        Look up the proxy entry for a class.

        Checks the class's own name first, then each class in its MRO. The
        outcome is cached under the original class name, including a NO_PROXY
        marker when nothing matched.

        Returns:
            The proxy entry, or None if no proxy applies to the class.
        """
        specific_name = class_name(cls)
        entry = self._entries.get(specific_name)
        if entry is not None:
            return None if entry is NO_PROXY else entry
        for base in cls.__mro__[1:]:
            entry = self._entries.get(class_name(base))
            if entry is not None:
                self._entries[specific_name] = entry
                return None if entry is NO_PROXY else entry
        self._entries[specific_name] = NO_PROXY
        return None

    def lookup_for_object(self, obj: Any) -> Optional[ProxyEntry]:
        return self.lookup(type(obj))

    def apply_proxy_wrapper(self, obj: Any) -> Any:
        """Wrap an object in its registered proxy, or return it unchanged."""
        if obj is not None:
            entry = self.lookup_for_object(obj)
            if entry is not None:
                proxy = entry.instantiate_proxy_with_value(obj)
                if proxy is not None:
                    return proxy
        return obj
