"""
Command-line interface.

    declarest check endpoints.toml --config declarest.toml
    declarest assemble endpoints.toml get_user 42 --json
"""

from __future__ import annotations

import json
import logging
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

import declarest

from .config import Configuration, load_configuration
from .exceptions import DeclarestError
from .http import RequestDescriptor
from .manifest import load_manifest
from .registry import EndpointRegistry

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _fail(message: str) -> NoReturn:
    Console(stderr=True).print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    raise click.exceptions.Exit(1)


def _build_registry(manifest_path: str, config_path: str | None) -> EndpointRegistry:
    configuration = load_configuration(config_path) if config_path else Configuration()
    registry = EndpointRegistry(configuration)
    load_manifest(manifest_path).register(registry)
    return registry


def _decode_args(raw: tuple[str, ...], json_args: bool) -> list[Any]:
    if not json_args:
        return list(raw)
    decoded: list[Any] = []
    for index, text in enumerate(raw):
        try:
            decoded.append(json.loads(text))
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"argument {index} is not valid JSON: {e}") from e
    return decoded


def _render_table(request: RequestDescriptor, console: Console) -> None:
    table = Table(title=escape(f"{request.type} {request.full_url}"), show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value")
    for key, value in request.to_dict().items():
        if value in (None, [], ""):
            continue
        if isinstance(value, list):
            value = "\n".join(
                ": ".join("" if v is None else str(v) for v in item)
                if isinstance(item, list)
                else str(item)
                for item in value
            )
        table.add_row(key, escape(str(value)))
    console.print(table)


@click.group(name="declarest", context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "verbose", count=True, help="Increase verbosity (-v, -vv).")
@click.version_option(version=declarest.__version__, prog_name="declarest")
def cli(verbose: int) -> None:
    """Inspect and assemble declarative HTTP endpoints."""
    _configure_logging(verbose)


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False))
def check(manifest: str, config_path: str | None) -> None:
    """Compile every endpoint in MANIFEST and report configuration errors."""
    try:
        registry = _build_registry(manifest, config_path)
    except DeclarestError as e:
        _fail(e.message)
    console = Console()
    for descriptor in registry:
        console.print(
            f"[green]ok[/green] {descriptor.endpoint_id} "
            f"({descriptor.arity} parameter(s))",
            highlight=False,
        )
    console.print(f"{len(registry)} endpoint(s) registered", highlight=False)


@cli.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.argument("endpoint")
@click.argument("args", nargs=-1)
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json-args", is_flag=True, help="Decode each argument as a JSON literal.")
@click.option("--json", "as_json", is_flag=True, help="Print the request as JSON.")
def assemble(
    manifest: str,
    endpoint: str,
    args: tuple[str, ...],
    config_path: str | None,
    json_args: bool,
    as_json: bool,
) -> None:
    """Assemble ENDPOINT from MANIFEST with ARGS and print the request."""
    decoded = _decode_args(args, json_args)
    try:
        registry = _build_registry(manifest, config_path)
        if endpoint not in registry:
            _fail(f"Unknown endpoint '{endpoint}'. Known: {', '.join(registry.endpoint_ids)}")
        request = registry.assemble(endpoint, decoded)
    except DeclarestError as e:
        _fail(e.message)
    if as_json:
        click.echo(json.dumps(request.to_dict(), indent=2))
    else:
        _render_table(request, Console())
