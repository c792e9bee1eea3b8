"""
wireconf.loader
---------------

Loads configurations from JSON/TOML files, .env files, environment variables
and explicit parameter dictionaries.

File data becomes the configuration data. Environment variables and explicit
parameters become template parameters (usable as ``"$name"`` values and
``{$name}`` template placeholders), with explicit parameters taking
precedence over the environment.
"""

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

import tomli
from dotenv import find_dotenv, load_dotenv

from .configuration import PARAMETER_PREFIX, Configuration
from .conversions import TypeConversions
from .resources import URIResolver
from .utils import expand_path, mixin, parse_value, resolve_path

log = logging.getLogger(__name__)


def load_file_data(file_path: str) -> Any:
    """
    Loads and parses a JSON or TOML file.

    Args:
        file_path: Path of the file. ``~`` and environment variables are expanded.

    Returns:
        The parsed file data.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        RuntimeError: If the file can't be parsed or has an unsupported extension.
    """
    file_path = expand_path(file_path)
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Config file not found: {file_path}")

    ext = os.path.splitext(file_path)[1].lower()
    try:
        if ext == '.toml':
            with open(file_path, mode='rb') as f:
                return tomli.load(f)
        elif ext == '.json':
            with open(file_path, mode='r', encoding='utf-8') as f:
                return json.load(f)
        else:
            raise ValueError(f"Unsupported config file type: {ext}")
    except Exception as e:
        raise RuntimeError(f"Error loading/parsing file {file_path}: {e}") from e


def collect_env_parameters(prefix: Optional[str]) -> Dict[str, Any]:
    """
    Collects environment variables matching a prefix as parameters.

    ``APP_DB_HOST=localhost`` with prefix ``APP`` becomes the parameter
    ``db_host``. Values are parsed with ``parse_value``.

    Args:
        prefix: Variable name prefix (a trailing ``_`` is optional). None or
            an empty prefix collects nothing.

    Returns:
        Mapping of parameter name to parsed value.
    """
    params: Dict[str, Any] = {}
    if not prefix or not prefix.strip():
        return params
    prefix_upper = prefix.strip().rstrip('_').upper() + '_'
    plen = len(prefix_upper)

    for var, raw_value in os.environ.items():
        if not var.upper().startswith(prefix_upper):
            continue
        name = var[plen:].lower()
        if not name:
            continue
        params[name] = parse_value(raw_value)
    log.debug("Collected %d parameter(s) from environment prefix '%s'", len(params), prefix)
    return params


def load_dotenv_file(dotenv_path: Optional[str] = None) -> bool:
    """
    Loads a .env file into ``os.environ``, without overriding variables already set.

    Args:
        dotenv_path: Explicit path of the .env file. When None the file is
            searched for from the current directory upwards.

    Returns:
        True if a file was found and loaded.
    """
    actual_dotenv_path = expand_path(dotenv_path) if dotenv_path else find_dotenv(usecwd=True)
    if not actual_dotenv_path or not os.path.exists(actual_dotenv_path):
        log.debug("No .env file found to load (searched path: %s)", dotenv_path or 'auto')
        return False
    loaded = load_dotenv(dotenv_path=actual_dotenv_path, override=False)
    log.debug("Loaded .env file from %s (changed: %s)", actual_dotenv_path, loaded)
    return True


def load_configuration(file_path: Optional[str] = None,
                       data: Any = None,
                       prefix: Optional[str] = None,
                       parameters: Optional[Mapping[str, Any]] = None,
                       load_dotenv: bool = True,
                       dotenv_path: Optional[str] = None,
                       resolver: Optional[URIResolver] = None,
                       conversions: Optional[TypeConversions] = None) -> Configuration:
    """
    Loads a root configuration.

    Loading order:
        1. ``.env`` file (``load_dotenv``), so its variables are visible to step 3.
        2. Configuration data: the file at ``file_path``, else ``data``.
        3. Environment parameters collected with ``prefix``.
        4. Explicit ``parameters``, overriding environment parameters.

    Args:
        file_path: Optional JSON/TOML configuration file.
        data: Configuration data used when no file is given.
        prefix: Environment variable prefix for parameters.
        parameters: Explicit parameters.
        load_dotenv: Whether to load a .env file.
        dotenv_path: Explicit .env file path.
        resolver: URI resolver; by default one whose ``file:`` scheme resolves
            relative to the configuration file's directory.
        conversions: Type conversion service.

    Returns:
        The root configuration.

    Raises:
        FileNotFoundError: If ``file_path`` doesn't exist.
        RuntimeError: If the file can't be parsed.
    """
    if load_dotenv:
        load_dotenv_file(dotenv_path)

    conversions = conversions or TypeConversions()
    base_dir = None
    if file_path:
        data = load_file_data(file_path)
        base_dir = str(resolve_path(file_path).parent)
    if resolver is None:
        resolver = URIResolver(base_dir=base_dir, conversions=conversions)

    params = collect_env_parameters(prefix)
    if parameters:
        params.update(parameters)
    configuration = Configuration(data, resolver=resolver, conversions=conversions)
    # Parameters go into the root context, over any declared in the file, so
    # "#" cross-references see them too.
    configuration.context = mixin(configuration.context,
                                  {PARAMETER_PREFIX + name: value for name, value in params.items()})
    return configuration
