# tests/test_composition.py
"""
Tests for configuration composition.

Covers:
    - mixin() / mixover() shallow overlays
    - extend_with_parameters()
    - flatten() of *config, *mixin and *mixins
    - normalize() of *extends chains, including cycles
"""

from wireconf.configuration import Configuration
from wireconf.resources import URIResolver

# ---------------------------------------------------------------------------
# mixin / mixover
# ---------------------------------------------------------------------------


class TestMixin:
    """Shallow top-level overlays."""

    def test_mixin(self):
        base = Configuration({"a": 1, "b": 2})
        result = base.mixin(Configuration({"b": 3, "c": 4}))
        assert dict(result.data) == {"a": 1, "b": 3, "c": 4}

    def test_mixover(self):
        base = Configuration({"a": 1, "b": 2})
        result = base.mixover(Configuration({"b": 3, "c": 4}))
        assert dict(result.data) == {"a": 1, "b": 2, "c": 4}

    def test_nested_values_replaced_whole(self):
        base = Configuration({"db": {"host": "a", "port": 1}})
        result = base.mixin(Configuration({"db": {"host": "b"}}))
        assert result.get_value("db") == {"host": "b"}

    def test_contexts_merge(self):
        base = Configuration({"$x": 1, "$y": 1})
        result = base.mixin(Configuration({"$y": 2}))
        assert result.context == {"$x": 1, "$y": 2}

    def test_root_and_resolver_from_target(self):
        resolver = URIResolver()
        base = Configuration({"a": "#b", "b": 1}, resolver=resolver)
        other = Configuration({"b": 2})
        mixed = base.mixin(other)
        assert mixed.root is base
        assert mixed.resolver is resolver
        assert other.mixover(base).root is other

    def test_sources_untouched(self):
        base = Configuration({"a": 1})
        other = Configuration({"a": 2})
        base.mixin(other)
        assert base.get_value("a") == 1
        assert other.get_value("a") == 2


class TestExtendWithParameters:
    """Parameter extension."""

    def test_parameter_and_template(self):
        source = Configuration({"a": "$x", "t": "?prefix-{$x}-suffix"})
        extended = source.extend_with_parameters({"x": 5})
        assert extended.get_value("a") == 5
        assert extended.get_value_as_string("t") == "prefix-5-suffix"

    def test_source_not_mutated(self):
        source = Configuration({"a": "$x"})
        source.extend_with_parameters({"x": 5})
        assert source.context == {}
        assert source.get_value("a") is None

    def test_empty_parameters_return_self(self):
        source = Configuration({"a": 1})
        assert source.extend_with_parameters({}) is source
        assert source.extend_with_parameters(None) is source

    def test_parameters_override_existing(self):
        source = Configuration({"$x": 1, "a": "$x"})
        assert source.extend_with_parameters({"x": 2}).get_value("a") == 2
        assert source.get_value("a") == 1


# ---------------------------------------------------------------------------
# flatten / normalize
# ---------------------------------------------------------------------------


class TestFlatten:
    """*config, *mixin and *mixins."""

    def test_mixin_key(self):
        cfg = Configuration({"*mixin": {"a": 1}, "b": 2}).flatten()
        assert cfg.get_value("a") == 1
        assert cfg.get_value("b") == 2

    def test_config_key(self):
        cfg = Configuration({"*config": {"a": 1}}).flatten()
        assert cfg.get_value("a") == 1

    def test_mixins_later_entries_win(self):
        cfg = Configuration({"*mixins": [{"b": 1, "c": 1}, {"b": 2}]}).flatten()
        assert cfg.get_value("b") == 2
        assert cfg.get_value("c") == 1

    def test_mixin_references(self):
        cfg = Configuration({
            "defaults": {"timeout": 30},
            "service": {"*mixin": "#defaults", "name": "web"},
        })
        service = cfg.get_value_as_configuration("service")
        assert service.get_value("timeout") == 30
        assert service.get_value("name") == "web"

    def test_no_composition_keys_returns_self(self):
        cfg = Configuration({"a": 1})
        assert cfg.flatten() is cfg


class TestNormalize:
    """*extends chains."""

    def test_extends(self):
        cfg = Configuration({
            "base": {"a": 1, "b": 1},
            "child": {"*extends": "#base", "b": 2},
        })
        child = cfg.get_value_as_configuration("child")
        assert child.get_value("a") == 1
        assert child.get_value("b") == 2

    def test_multi_level_chain(self):
        cfg = Configuration({
            "grand": {"a": "grand", "b": "grand", "c": "grand"},
            "parent": {"*extends": "#grand", "b": "parent", "c": "parent"},
            "child": {"*extends": "#parent", "c": "child"},
        })
        child = cfg.get_value_as_configuration("child")
        assert [child.get_value(k) for k in "abc"] == ["grand", "parent", "child"]

    def test_cycle_terminates(self):
        cfg = Configuration({
            "a": {"*extends": "#b", "x": 1},
            "b": {"*extends": "#a", "y": 2},
        })
        a = cfg.get_value_as_configuration("a")
        assert a.get_value("x") == 1
        assert a.get_value("y") == 2

    def test_self_extension_terminates(self):
        cfg = Configuration({"a": {"*extends": "#a", "x": 1}})
        assert cfg.get_value_as_configuration("a").get_value("x") == 1

    def test_idempotent(self):
        cfg = Configuration({
            "*extends": "#base",
            "*mixin": {"m": 1},
            "base": {"a": 1, "b": 1},
            "b": 2,
        })
        once = cfg.normalize()
        twice = once.normalize()
        assert dict(once.data) == dict(twice.data)
        assert [once.get_value(k) for k in ("a", "b", "m")] == [1, 2, 1]

    def test_preserves_root_and_resolver(self):
        resolver = URIResolver()
        cfg = Configuration({"child": {"*extends": "#base"}, "base": {"a": 1}}, resolver=resolver)
        child = cfg.get_value_as_configuration("child")
        assert child.root is cfg
        assert child.resolver is resolver
