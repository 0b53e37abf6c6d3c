"""
Command-line interface for graphql_fetcher.

Runs a single GraphQL operation from a file through the server dispatcher
and prints the response envelope as JSON.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from .config import ServerFetcherConfig, load_config_from_env
from .exceptions import GraphQLFetcherError
from .helpers import TypedDocumentString
from .logging import LoggingConfig, LogLevel, setup_logging
from .response import materialize
from .server import ServerFetcher
from .tracing import LoggingTracer
from .transport import AiohttpTransport


def parse_headers(values: Tuple[str, ...]) -> Dict[str, str]:
    """Parse ``Name: value`` header options."""
    headers: Dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected 'Name: value', got {item!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


def parse_variables(value: Optional[str]) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    try:
        variables = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--variables")
    if not isinstance(variables, dict):
        raise click.BadParameter("Variables must be a JSON object", param_hint="--variables")
    return variables


async def _run(
    config: ServerFetcherConfig,
    document: TypedDocumentString,
    variables: Optional[Dict[str, Any]],
    strict: bool,
) -> Any:
    async with AiohttpTransport() as transport:
        fetcher = ServerFetcher(config, transport=transport, tracer=LoggingTracer())
        if strict:
            data = await fetcher.fetch_strict(document, variables)
            return materialize(data)
        response = await fetcher.fetch(document, variables)
        return response.to_dict()


@click.command(name="graphql-fetcher")
@click.argument("query_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--endpoint", "-e", help="GraphQL endpoint URL (or GRAPHQL_FETCHER_ENDPOINT)")
@click.option("--variables", "-v", help="Operation variables as a JSON object")
@click.option("--apq/--no-apq", default=None, help="Probe with GET using automatic persisted queries")
@click.option("--document-id", help="Allow-listed document identifier")
@click.option("--include-query", is_flag=True, default=None, help="Send query text alongside the document id")
@click.option("--header", "-H", "headers", multiple=True, help="Extra header, 'Name: value'")
@click.option("--no-cache", is_flag=True, help="Disable all caching (forces POST)")
@click.option("--strict", is_flag=True, help="Print only data; fail if a field errored")
@click.option("--timeout", type=float, help="Timeout in seconds")
@click.option(
    "--log-level",
    type=click.Choice([level.value for level in LogLevel], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--json-logs", is_flag=True, help="Emit structured JSON logs")
def main(
    query_file: Path,
    endpoint: Optional[str],
    variables: Optional[str],
    apq: Optional[bool],
    document_id: Optional[str],
    include_query: Optional[bool],
    headers: Tuple[str, ...],
    no_cache: bool,
    strict: bool,
    timeout: Optional[float],
    log_level: str,
    json_logs: bool,
) -> None:
    """Execute the GraphQL operation in QUERY_FILE."""
    setup_logging(LoggingConfig(level=log_level.upper(), enable_structured=json_logs))

    meta = {"documentId": document_id} if document_id else {}
    document = TypedDocumentString(query_file.read_text(encoding="utf-8"), meta)

    try:
        config = load_config_from_env(
            ServerFetcherConfig,
            endpoint=endpoint,
            persisted_queries=apq,
            include_query=include_query,
            default_timeout=timeout,
            dangerously_disable_cache=True if no_cache else None,
            default_headers=parse_headers(headers) or None,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    try:
        result = asyncio.run(_run(config, document, parse_variables(variables), strict))
    except GraphQLFetcherError as e:
        click.echo(e.message, err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
