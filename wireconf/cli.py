# wireconf/cli.py

import fnmatch
import json
import re
from datetime import date
from urllib.parse import ParseResult

import click
import toml

from .configuration import Configuration, ListBackedMap
from .container import Container
from .conversions import Color
from .exceptions import TypeResolutionError
from .loader import load_configuration
from .proxies import class_name
from .resources import Resource
from .utils import parse_value


def _match(pattern: str, text: str, ignore_case: bool = False) -> bool:
    """
    Try glob first, then regex, then exact match.
      - Glob if pattern contains *, ?, [ or ]
      - Regex if pattern contains any of . + ^ $ ( ) { } | \\
      - Exact otherwise
    Honors ignore_case by lowercasing both pattern & text.
    """
    if ignore_case:
        pattern = pattern.lower()
        text = text.lower()

    if any(c in pattern for c in "*?[]"):
        return fnmatch.fnmatch(text, pattern)

    if any(c in pattern for c in ".+^$(){}|\\"):
        flags = re.IGNORECASE if ignore_case else 0
        return re.search(pattern, text, flags) is not None

    return pattern == text


def _flatten(d: dict, prefix: str = "") -> dict:
    """Flatten nested dict into { 'a.b.c': value, … }."""
    items = {}
    for k, v in d.items():
        key = f"{prefix}.{k}" if prefix else k
        if isinstance(v, dict):
            items.update(_flatten(v, key))
        else:
            items[key] = v
    return items


def _plain(value):
    """Convert a resolved configuration value to JSON/TOML serializable data."""
    if isinstance(value, Configuration):
        value = value.data
    if isinstance(value, ListBackedMap):
        value = value.get_list()
    if isinstance(value, Resource):
        value = value.as_json_data()
    if isinstance(value, Color):
        return value.to_hex()
    if isinstance(value, ParseResult):
        return value.geturl()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _parse_param(ctx, param, values):
    """Parse repeated NAME=VALUE options into a parameters dict."""
    params = {}
    for pair in values:
        name, sep, raw = pair.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME=VALUE, got '{pair}'")
        params[name.strip()] = parse_value(raw)
    return params


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-c", "--config", "file_path", help="JSON/TOML configuration file to load")
@click.option("-p", "--prefix", help="Env-var prefix for parameters")
@click.option("--param", "params", multiple=True, callback=_parse_param,
              help="Template parameter as NAME=VALUE (repeatable)")
@click.option("--no-dotenv", is_flag=True, help="Don't load a .env file")
@click.pass_context
def cli(ctx, file_path, prefix, params, no_dotenv):
    """
    wireconf CLI: inspect configurations and build object graphs.

    Load a file (`-c app.json`), then run subcommands:
      • get        KEY [--as REPR]
      • names
      • normalize  [KEY] [--to json|toml]
      • search     [--key PAT] [--val PAT] [-i]
      • build      [--type TAG=module:attr]
    """
    try:
        cfg = load_configuration(
            file_path=file_path,
            prefix=prefix,
            parameters=params,
            load_dotenv=not no_dotenv,
        )
    except (FileNotFoundError, RuntimeError) as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)

    ctx.obj = {
        "cfg": cfg,
        "file_path": file_path,
    }


@cli.command()
@click.argument("key")
@click.option("--as", "representation", default="json",
              help="Representation: json, bare, string, number, boolean, date, url, data, color, configuration")
@click.pass_context
def get(ctx, key, representation):
    """Print the resolved value of KEY (dot-notation) as JSON."""
    cfg = ctx.obj["cfg"]
    if representation == "configuration":
        val = cfg.get_value_as_configuration(key)
    else:
        val = cfg.get_value_as(key, representation)
    if val is None:
        click.secho(f"Key not found: {key}", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(json.dumps(_plain(val), indent=2))


@cli.command()
@click.pass_context
def names(ctx):
    """List the top-level value names."""
    for name in ctx.obj["cfg"].get_value_names():
        click.echo(name)


@cli.command()
@click.argument("key", required=False)
@click.option("--to", "fmt", type=click.Choice(["json", "toml"]), default="json",
              help="Output format")
@click.pass_context
def normalize(ctx, key, fmt):
    """
    Print the normalized configuration (or the normalized value at KEY),
    with *config, *mixin(s) and *extends applied.
    """
    cfg = ctx.obj["cfg"]
    normalized = cfg.get_value_as_configuration(key) if key else cfg.normalize()
    if normalized is None:
        click.secho(f"No configuration at: {key}", fg="yellow", err=True)
        ctx.exit(1)
    data = _plain(normalized)
    if fmt == "toml":
        click.echo(toml.dumps(data))
    else:
        click.echo(json.dumps(data, indent=2))


@cli.command()
@click.option("--key", "key_pat", help="Pattern for keys (regex/glob/plain)")
@click.option("--val", "val_pat", help="Pattern for values (regex/glob/plain)")
@click.option("-i", "--ignore-case", is_flag=True,
              help="Make key/value matching case-insensitive")
@click.pass_context
def search(ctx, key_pat, val_pat, ignore_case):
    """
    Search the normalized configuration for keys/values matching patterns.
    At least one of --key or --val must be provided.
    """
    if not (key_pat or val_pat):
        click.secho("Error: supply --key or --val", fg="red", err=True)
        ctx.exit(1)

    flat = _flatten(_plain(ctx.obj["cfg"].normalize()))
    found = {}
    for k, v in flat.items():
        ks = _match(key_pat, k, ignore_case) if key_pat else True
        vs = _match(val_pat, str(v), ignore_case) if val_pat else True
        if ks and vs:
            found[k] = v

    if not found:
        click.echo("No matches")
        ctx.exit(1)

    click.echo(json.dumps(found, indent=2))


@cli.command()
@click.option("--type", "type_refs", multiple=True,
              help="Type registry entry as TAG=package.module:attr (repeatable)")
@click.pass_context
def build(ctx, type_refs):
    """
    Build a container from the configuration and list its named objects.
    """
    types = {}
    for pair in type_refs:
        tag, sep, reference = pair.partition("=")
        if not sep or not tag.strip():
            click.secho(f"Error: expected TAG=module:attr, got '{pair}'", fg="red", err=True)
            ctx.exit(1)
        types[tag.strip()] = reference.strip()

    container = Container()
    try:
        container.set_types(types)
        container.configure_with(ctx.obj["cfg"])
    except TypeResolutionError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        ctx.exit(1)
    container.start_services()

    for name, obj in container.named.items():
        click.echo(f"{name}: {class_name(type(obj))}")


if __name__ == "__main__":
    cli()
