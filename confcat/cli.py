# confcat/cli.py

import dataclasses
import enum
import json
import logging

import click

from .catalog import CatalogMap, derive_mappings
from .exceptions import ConfigurationException
from .loader import ConfigSource, get_by_dot
from .parser import parse
from .shape import constructor_parameters
from .utils import import_object


def _parse_overrides(overrides: str) -> dict:
    """Parse ``key:json_val,key2:json_val`` pairs; non-JSON values stay strings."""
    result = {}
    for pair in overrides.split(","):
        if ":" not in pair:
            continue
        key, raw = pair.split(":", 1)
        try:
            result[key.strip()] = json.loads(raw.strip())
        except json.JSONDecodeError:
            result[key.strip()] = raw.strip()
    return result


def _to_jsonable(value):
    """Convert a materialized catalog into JSON-friendly data (enums by name)."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def _fail(ctx, message):
    click.secho(f"Error: {message}", fg="red", err=True)
    ctx.exit(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-c", "--config", "file_paths", multiple=True, help="JSON/TOML file to load (repeatable)")
@click.option("-p", "--prefix", help="Env-var prefix for overrides (PREFIX__A__B)")
@click.option("--overrides", help="Comma-sep `key:json_val` pairs")
@click.option("--defaults", help="Path to JSON defaults (optional)")
@click.option("--mandatory", help="Comma-sep list of mandatory dot-keys")
@click.option("--env-file", "dotenv_path", help="Explicit .env file to load")
@click.option("--no-dotenv", is_flag=True, help="Do not look for a .env file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, file_paths, prefix, overrides, defaults, mandatory, dotenv_path, no_dotenv, verbose):
    """
    confcat CLI: inspect layered configuration and materialize catalogs.

    Load files (`-c app.toml`), then run subcommands:
      • get       KEY
      • exists    KEY
      • dump
      • catalog   MODULE:CLASS [--key-path P] [--map KEY_PATH=FIELD]
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    defaults_dict = {}
    if defaults:
        with open(defaults, "r", encoding="utf-8") as f:
            defaults_dict = json.load(f)

    try:
        source = ConfigSource(
            defaults=defaults_dict,
            file_paths=list(file_paths),
            prefix=prefix,
            overrides_dict=_parse_overrides(overrides) if overrides else None,
            mandatory=mandatory.split(",") if mandatory else None,
            load_dotenv_file=not no_dotenv,
            dotenv_path=dotenv_path,
        )
    except (ConfigurationException, FileNotFoundError, RuntimeError) as e:
        _fail(ctx, e)

    ctx.obj = {"source": source}


@cli.command()
@click.argument("key")
@click.pass_context
def get(ctx, key):
    """Print the value of KEY (dot-notation) as JSON."""
    source = ctx.obj["source"]
    if key not in source:
        click.secho(f"Key not found: {key}", fg="yellow", err=True)
        ctx.exit(1)
    click.echo(json.dumps(source.get(key), indent=2))


@cli.command()
@click.argument("key")
@click.pass_context
def exists(ctx, key):
    """Exit 0 if KEY exists in config, 1 otherwise."""
    try:
        get_by_dot(ctx.obj["source"].as_dict(), key)
    except (KeyError, TypeError):
        click.echo("false")
        ctx.exit(1)
    click.echo("true")


@cli.command()
@click.pass_context
def dump(ctx):
    """Pretty-print the entire merged config as JSON."""
    click.echo(json.dumps(ctx.obj["source"].as_dict(), indent=2))


@cli.command()
@click.argument("target")
@click.option("--key-path", default="", help="Prefix for sections derived from the catalog fields")
@click.option("--map", "maps", multiple=True, help="Explicit KEY_PATH=FIELD binding (repeatable)")
@click.pass_context
def catalog(ctx, target, key_path, maps):
    """
    Materialize the catalog dataclass TARGET (`module:Class`) and print it as JSON.

    Without --map, every catalog field is read from KEY_PATH.<field>.
    """
    try:
        catalog_type = import_object(target)
    except (ValueError, ImportError, AttributeError) as e:
        _fail(ctx, f"Cannot import {target}: {e}")

    try:
        if not maps:
            mappings = derive_mappings(catalog_type, key_path)
        else:
            field_types = {p.name.lower(): p.kind for p in constructor_parameters(catalog_type)}
            explicit = []
            for binding in maps:
                path, sep, field = binding.partition("=")
                if not sep or field.lower() not in field_types:
                    _fail(ctx, f"Invalid --map binding: {binding}")
                explicit.append(CatalogMap(path, field, field_types[field.lower()]))
            mappings = explicit
        result = parse(ctx.obj["source"], catalog_type, mappings)
    except ConfigurationException as e:
        _fail(ctx, e)

    click.echo(json.dumps(_to_jsonable(result), indent=2))
