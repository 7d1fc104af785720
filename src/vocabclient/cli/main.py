"""CLI commands for vocabclient."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vocabclient.adapters.store import JsonFileStore, MemoryStore
from vocabclient.client import CapabilityClient
from vocabclient.config import ClientSettings, load_settings
from vocabclient.discovery.catalog import OperationRecord, find_operation
from vocabclient.discovery.rules import CAPABILITY_NAMES
from vocabclient.errors import ApiError, VocabClientError
from vocabclient.ports.store import KeyValueStore
from vocabclient.session import ApiSession

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _make_store(settings: ClientSettings) -> KeyValueStore:
    if settings.cache_file:
        return JsonFileStore(settings.cache_file)
    return MemoryStore()


def _run(ctx: click.Context, work: Callable[[ApiSession], Awaitable[T]], force: bool = False) -> T:
    """Load a session, run work against it and map errors to exit code 1."""
    settings: ClientSettings = ctx.obj["settings"]

    async def runner() -> T:
        async with ApiSession(settings, store=_make_store(settings)) as session:
            await session.load(force=force)
            return await work(session)

    try:
        return asyncio.run(runner())
    except ApiError as e:
        err_console.print(f"[red]HTTP {e.status}: {escape(e.message)}[/red]")
        if isinstance(e.data, str):
            err_console.print(escape(e.data))
        elif e.data is not None:
            err_console.print_json(data=e.data)
        sys.exit(1)
    except VocabClientError as e:
        err_console.print(f"[red]{escape(e.message)}[/red]")
        for suggestion in e.suggestions:
            err_console.print(f"  [dim]- {escape(suggestion)}[/dim]")
        sys.exit(1)


def _parse_pairs(pairs: tuple[str, ...], option: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected name=value, got {pair!r}", param_hint=option)
        name, value = pair.split("=", 1)
        if name in result:
            existing = result[name]
            result[name] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            result[name] = value
    return result


def _parse_body(body: str | None) -> Any:
    if body is None:
        return None
    if body.startswith("@"):
        body = Path(body[1:]).read_text(encoding="utf-8")
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError:
        return body


def _require_operation(client: CapabilityClient, key: str) -> OperationRecord:
    op = find_operation(list(client.operations), key)
    if op is None:
        raise click.UsageError(f"Unknown operation: {key}")
    return op


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to config file")
@click.option("--base-url", "-u", help="Backend base URL")
@click.option("--cache-file", type=click.Path(), help="JSON file caching the API description")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    config: str | None,
    base_url: str | None,
    cache_file: str | None,
) -> None:
    """vocabclient - explore and call a vocabulary learning API."""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    try:
        ctx.obj["settings"] = load_settings(config, base_url=base_url, cache_file=cache_file)
    except VocabClientError as e:
        raise click.UsageError(e.message) from e


@cli.command()
@click.option("--refresh", is_flag=True, help="Bypass the cached API description")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@click.pass_context
def capabilities(ctx: click.Context, refresh: bool, as_json: bool) -> None:
    """Show which capabilities the backend exposes."""

    async def work(session: ApiSession) -> CapabilityClient:
        return session.client

    client = _run(ctx, work, force=refresh)

    if as_json:
        _echo_json({name: str(client.capabilities[name]) if client.has(name) else None for name in CAPABILITY_NAMES})
        return

    table = Table(title=f"Capabilities at {client.base_url}")
    table.add_column("Capability")
    table.add_column("Status")
    table.add_column("Endpoint")
    for name in CAPABILITY_NAMES:
        if client.has(name):
            table.add_row(name, "[green]found[/green]", str(client.capabilities[name]))
        else:
            table.add_row(name, "[red]missing[/red]", "")
    console.print(table)
    console.print(f"{len(client.capabilities)}/{len(CAPABILITY_NAMES)} core endpoints found")


@cli.command()
@click.option("--tag", "-t", help="Only show this tag")
@click.pass_context
def operations(ctx: click.Context, tag: str | None) -> None:
    """List every operation grouped by tag."""

    async def work(session: ApiSession) -> CapabilityClient:
        return session.client

    client = _run(ctx, work)
    groups = client.grouped_operations()

    if tag is not None and tag not in groups:
        raise click.UsageError(f"Unknown tag: {tag}")

    for name in sorted(groups):
        if tag is not None and name != tag:
            continue
        table = Table(title=name)
        table.add_column("Id")
        table.add_column("Method")
        table.add_column("Path")
        table.add_column("Summary")
        for op in groups[name]:
            table.add_row(op.id, op.method, op.path, op.summary)
        console.print(table)


@cli.command()
@click.argument("operation_id")
@click.pass_context
def example(ctx: click.Context, operation_id: str) -> None:
    """Print pre-filled path, query and body for an operation."""

    async def work(session: ApiSession) -> dict[str, Any]:
        client = session.client
        prepared = client.prefill(_require_operation(client, operation_id))
        return {"path": prepared.path_params, "query": prepared.query, "body": prepared.body}

    _echo_json(_run(ctx, work))


@cli.command()
@click.argument("operation_id")
@click.option("--path", "-p", "path_pairs", multiple=True, help="Path parameter name=value")
@click.option("--query", "-q", "query_pairs", multiple=True, help="Query parameter name=value")
@click.option("--body", "-b", help="JSON body, or @file to read it from a file")
@click.pass_context
def call(
    ctx: click.Context,
    operation_id: str,
    path_pairs: tuple[str, ...],
    query_pairs: tuple[str, ...],
    body: str | None,
) -> None:
    """Call any operation from the API description."""
    path_params = _parse_pairs(path_pairs, "--path")
    query = _parse_pairs(query_pairs, "--query")
    payload = _parse_body(body)

    async def work(session: ApiSession) -> Any:
        client = session.client
        op = _require_operation(client, operation_id)
        return await client.call_operation(op, path_params, query, payload)

    _echo_json(_run(ctx, work))


@cli.command("export")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the backup here instead of stdout")
@click.pass_context
def export_backup(ctx: click.Context, output: str | None) -> None:
    """Export a JSON backup through the sync export endpoint."""

    async def work(session: ApiSession) -> Any:
        return await session.client.sync_export()

    data = _run(ctx, work)
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(text, encoding="utf-8")
        console.print(f"[green]Export written to {output}[/green]")
    else:
        click.echo(text)


@cli.command("import")
@click.argument("backup_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_backup(ctx: click.Context, backup_file: str) -> None:
    """Import a JSON backup through the sync import endpoint."""
    try:
        payload = json.loads(Path(backup_file).read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="BACKUP_FILE") from e

    async def work(session: ApiSession) -> Any:
        return await session.client.sync_import(payload)

    _echo_json(_run(ctx, work))


def main() -> None:
    """Entry point for the vocabclient console script."""
    cli(obj={})
