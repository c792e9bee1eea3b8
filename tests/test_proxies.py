# tests/test_proxies.py
"""
Tests for the proxy registry, identity keys and pending named placeholders.
"""

from wireconf.identity import ObjectKey
from wireconf.pending import PendingNamed
from wireconf.proxies import (
    NO_PROXY,
    ConfigurationProxy,
    ProxyEntry,
    ProxyRegistry,
    class_name,
)


class Base:
    pass


class Derived(Base):
    pass


class Unrelated:
    pass


class BaseProxy(ConfigurationProxy):
    pass


class BrokenProxy(ConfigurationProxy):
    def __init__(self, required):
        super().__init__()


# ---------------------------------------------------------------------------
# ProxyRegistry
# ---------------------------------------------------------------------------


class TestProxyLookup:
    """Lookup by class, along the MRO."""

    def test_exact_class(self):
        registry = ProxyRegistry()
        registry.register(BaseProxy, Base)
        assert registry.lookup(Base).proxy_class is BaseProxy

    def test_superclass_fallback_is_cached(self):
        registry = ProxyRegistry()
        registry.register(BaseProxy, Base)
        assert registry.lookup(Derived).proxy_class is BaseProxy
        assert registry.entry_for_name(class_name(Derived)).proxy_class is BaseProxy

    def test_register_by_name(self):
        registry = ProxyRegistry()
        registry.register(BaseProxy, class_name(Base))
        assert registry.lookup(Base).proxy_class is BaseProxy

    def test_no_match(self):
        registry = ProxyRegistry()
        registry.register(BaseProxy, Base)
        assert registry.lookup(Unrelated) is None

    def test_explicit_no_proxy(self):
        registry = ProxyRegistry()
        registry.register(BaseProxy, Base)
        registry.register(None, Derived)
        assert registry.lookup(Derived) is None
        assert registry.lookup(Base) is not None

    def test_negative_result_is_cached(self):
        """A proxy registered after a miss is not seen for the missed class."""
        registry = ProxyRegistry()
        assert registry.lookup(Derived) is None
        assert registry.entry_for_name(class_name(Derived)) is NO_PROXY

        registry.register(BaseProxy, Base)
        assert registry.lookup(Derived) is None
        assert registry.entry_for_name(class_name(Derived)) is NO_PROXY
        # Classes not looked up before do see the new registration.
        assert registry.lookup(Base).proxy_class is BaseProxy

    def test_lookup_for_object(self):
        registry = ProxyRegistry()
        registry.register(BaseProxy, Base)
        assert registry.lookup_for_object(Derived()).proxy_class is BaseProxy


class TestProxyWrapping:
    """apply_proxy_wrapper and proxy entries."""

    def test_wraps_registered_object(self):
        registry = ProxyRegistry()
        registry.register(BaseProxy, Base)
        obj = Base()
        wrapped = registry.apply_proxy_wrapper(obj)
        assert isinstance(wrapped, BaseProxy)
        assert wrapped.unwrap_value() is obj

    def test_unregistered_object_unchanged(self):
        registry = ProxyRegistry()
        obj = Unrelated()
        assert registry.apply_proxy_wrapper(obj) is obj
        assert registry.apply_proxy_wrapper(None) is None

    def test_failed_proxy_instantiation(self, caplog):
        entry = ProxyEntry(BrokenProxy)
        assert entry.instantiate_proxy() is None
        assert "BrokenProxy" in caplog.text

    def test_failed_proxy_leaves_object_unwrapped(self):
        registry = ProxyRegistry()
        registry.register(BrokenProxy, Base)
        obj = Base()
        assert registry.apply_proxy_wrapper(obj) is obj


# ---------------------------------------------------------------------------
# ObjectKey / PendingNamed
# ---------------------------------------------------------------------------


class TestObjectKey:
    """Identity-compared keys."""

    def test_equal_values_distinct_keys(self):
        a, b = {"x": 1}, {"x": 1}
        assert a == b
        assert ObjectKey(a) != ObjectKey(b)

    def test_same_object_same_key(self):
        a = [1, 2]
        counts = {ObjectKey(a): 1}
        assert counts[ObjectKey(a)] == 1
        assert hash(ObjectKey(a)) == id(a)

    def test_not_equal_to_wrapped_object(self):
        a = object()
        assert ObjectKey(a) != a


class TestPendingNamed:
    """Queued assignments on a pending named object."""

    def test_record_and_take(self):
        target = {}
        pending = PendingNamed("service")
        pending.record(target, "svc", lambda value: target.__setitem__("svc", value))
        assignments = pending.take_assignments()
        assert len(assignments) == 1
        assert assignments[0].target == ObjectKey(target)
        assert assignments[0].property_name == "svc"
        assignments[0].assign("resolved")
        assert target == {"svc": "resolved"}
        assert pending.take_assignments() == []
