# tests/test_utils.py
"""
Tests for the supporting modules.

Covers:
    - wireconf.utils: expand_path(), resolve_path(), parse_value(), mixin()
    - wireconf.templates: placeholder rendering
    - wireconf.conversions: representation conversions and colours
    - wireconf.resources: URI parsing, schemes and resources
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from wireconf.conversions import Color, TypeConversions
from wireconf.resources import Resource, URIResolver, parse_uri
from wireconf.templates import render
from wireconf.utils import expand_path, mixin, parse_value, resolve_path

# ---------------------------------------------------------------------------
# expand_path / resolve_path
# ---------------------------------------------------------------------------


class TestExpandPath:
    """Tests for wireconf.utils.expand_path()."""

    def test_none_input(self):
        assert expand_path(None) is None

    def test_tilde_expansion(self, monkeypatch):
        monkeypatch.setenv("HOME", "/home/testuser")
        assert expand_path("~/configs/app.toml") == "/home/testuser/configs/app.toml"

    def test_env_var_expansion(self, monkeypatch):
        monkeypatch.setenv("MY_DIR", "/opt/config")
        assert expand_path("$MY_DIR/app.toml") == "/opt/config/app.toml"


class TestResolvePath:
    """Tests for wireconf.utils.resolve_path()."""

    def test_none_input(self):
        assert resolve_path(None) is None

    def test_resolves_relative_to_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = resolve_path("relative/path")
        assert isinstance(result, Path)
        assert result == tmp_path.resolve() / "relative" / "path"

    def test_resolves_relative_to_base_dir(self, tmp_path):
        result = resolve_path("data.json", str(tmp_path))
        assert result == tmp_path.resolve() / "data.json"

    def test_absolute_ignores_base_dir(self, tmp_path):
        target = tmp_path / "abs.json"
        assert resolve_path(str(target), "/somewhere/else") == target.resolve()


class TestParseValue:
    """Tests for wireconf.utils.parse_value()."""

    @pytest.mark.parametrize("raw, expected", [
        ("true", True),
        ("FALSE", False),
        ("null", None),
        ("42", 42),
        ("2.5", 2.5),
        ("[1, 2]", [1, 2]),
        ('{"a": 1}', {"a": 1}),
        ('"quoted"', "quoted"),
        ("plain", "plain"),
        ("[not json", "[not json"),
    ])
    def test_parse(self, raw, expected):
        assert parse_value(raw) == expected

    def test_non_string_passthrough(self):
        value = {"a": 1}
        assert parse_value(value) is value


def test_mixin_is_shallow():
    base = {"a": 1, "b": {"x": 1}}
    merged = mixin(base, {"b": {"y": 2}})
    assert merged == {"a": 1, "b": {"y": 2}}
    assert base == {"a": 1, "b": {"x": 1}}


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestRender:
    """Template placeholder rendering."""

    def test_parameter(self):
        assert render("view:{$id}", {"$id": 7}) == "view:7"

    def test_nested_path(self):
        context = {"user": {"name": "ann", "roles": ["admin", "dev"]}}
        assert render("{user.name}/{user.roles.1}", context) == "ann/dev"

    def test_missing_renders_empty(self):
        assert render("a-{missing}-b", {}) == "a--b"

    def test_value_formatting(self):
        context = {"$flag": True, "$items": [1, 2], "$none": None}
        assert render("{$flag} {$items} [{$none}]", context) == "true [1, 2] []"

    def test_no_placeholders(self):
        assert render("plain text", {"$x": 1}) == "plain text"


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


class TestConversions:
    """Representation conversions."""

    @pytest.fixture
    def conversions(self):
        return TypeConversions()

    def test_unknown_representation(self, conversions):
        assert conversions.as_representation("x", "image") is None

    def test_string(self, conversions):
        assert conversions.as_string(True) == "true"
        assert conversions.as_string(3) == "3"
        assert conversions.as_string({"a": 1}) == '{"a": 1}'
        assert conversions.as_string(b"\xff") is None

    def test_number(self, conversions):
        assert conversions.as_number("12") == 12
        assert conversions.as_number(True) == 1
        assert conversions.as_number("true") is None
        assert conversions.as_number("abc") is None

    def test_boolean(self, conversions):
        assert conversions.as_boolean("false") is False
        assert conversions.as_boolean(0) is False
        assert conversions.as_boolean("1") is True
        assert conversions.as_boolean("maybe") is None

    def test_date(self, conversions):
        assert conversions.as_date("2021-03-04T05:06:07") == datetime(2021, 3, 4, 5, 6, 7)
        assert conversions.as_date(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert conversions.as_date("not a date") is None

    @pytest.mark.parametrize("value", [1e20, -1e20, "99999999999999999999", float("nan")])
    def test_date_out_of_range(self, conversions, value):
        assert conversions.as_date(value) is None

    def test_url_and_data(self, conversions):
        assert conversions.as_url("http://example.com/a").path == "/a"
        assert conversions.as_url("") is None
        assert conversions.as_data([1]) == b"[1]"

    def test_json_data(self, conversions):
        assert conversions.as_json_data('{"a": [1]}') == {"a": [1]}
        assert conversions.as_json_data("not json") == "not json"
        assert conversions.as_json_data(b'{"a": 1}') == {"a": 1}
        assert conversions.as_json_data(b"\xff\xfe{") == b"\xff\xfe{"

    @pytest.mark.parametrize("text, expected", [
        ("#fff", Color(255, 255, 255)),
        ("00ff00", Color(0, 255, 0)),
        ("#00ff0080", Color(0, 255, 0, 128)),
        ("Red", Color(255, 0, 0)),
        ("#12", None),
        ("#gggggg", None),
    ])
    def test_color(self, conversions, text, expected):
        assert conversions.as_color(text) == expected

    def test_color_to_hex(self):
        assert Color(255, 0, 16).to_hex() == "#ff0010"
        assert Color(0, 0, 0, 0).to_hex() == "#00000000"


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


class TestURIResolver:
    """URI scheme handlers."""

    def test_env_scheme(self, monkeypatch):
        monkeypatch.setenv("WIRECONF_RES_PORT", "8080")
        assert URIResolver().dereference("env:WIRECONF_RES_PORT") == 8080

    def test_env_scheme_unset(self, monkeypatch):
        monkeypatch.delenv("WIRECONF_RES_MISSING", raising=False)
        assert URIResolver().dereference("env:WIRECONF_RES_MISSING") is None

    def test_file_scheme(self, tmp_path):
        (tmp_path / "data.json").write_text(json.dumps({"a": [1, 2]}))
        resource = URIResolver(base_dir=str(tmp_path)).dereference("file:data.json")
        assert isinstance(resource, Resource)
        assert resource.as_json_data() == {"a": [1, 2]}
        assert resource.as_representation("string") == '{"a": [1, 2]}'
        assert resource.as_representation("resource") is resource

    def test_missing_file(self, tmp_path, caplog):
        assert URIResolver(base_dir=str(tmp_path)).dereference("file:nope.json") is None
        assert "nope.json" in caplog.text

    def test_malformed_and_unknown(self, caplog):
        resolver = URIResolver()
        assert resolver.dereference("noscheme") is None
        assert resolver.dereference("ftp:thing") is None
        assert "Malformed URI" in caplog.text
        assert "No handler for URI scheme 'ftp'" in caplog.text

    def test_custom_scheme(self):
        resolver = URIResolver()
        resolver.add_scheme("upper", lambda name, params: name.upper())
        assert resolver.has_scheme("upper")
        assert resolver.dereference("upper:abc") == "ABC"

    def test_copy_is_independent(self):
        resolver = URIResolver(base_dir="/base")
        copied = resolver.copy()
        copied.add_scheme("upper", lambda name, params: name.upper())
        assert copied.base_dir == "/base"
        assert copied.has_scheme("env")
        assert not resolver.has_scheme("upper")

    def test_parameters_passed_to_handler(self):
        resolver = URIResolver()
        resolver.add_scheme("echo", lambda name, params: (name, params))
        assert resolver.dereference("echo:thing+x@5+label@start") == ("thing", {"x": 5, "label": "start"})
        assert resolver.dereference("echo:thing") == ("thing", {})

    def test_malformed_parameter(self, caplog):
        resolver = URIResolver()
        resolver.add_scheme("echo", lambda name, params: (name, params))
        assert resolver.dereference("echo:thing+novalue") is None
        assert "+name@value" in caplog.text


class TestParseURI:
    """Tests for wireconf.resources.parse_uri()."""

    @pytest.mark.parametrize("uri, expected", [
        ("named:main", ("named", "main", {})),
        ("new:Point+x@5+y@-2", ("new", "Point", {"x": 5, "y": -2})),
        ("make:item+flag@true+tags@[1, 2]", ("make", "item", {"flag": True, "tags": [1, 2]})),
        ("new:Point+empty@", ("new", "Point", {"empty": ""})),
    ])
    def test_parse(self, uri, expected):
        assert parse_uri(uri) == expected

    @pytest.mark.parametrize("uri", ["noscheme", ":name", "new:Point+x", "new:Point+@5"])
    def test_malformed(self, uri):
        with pytest.raises(ValueError):
            parse_uri(uri)
