"""MCP Server exposing note graph queries.

Provides tools for:
- Building the link graph around one or more notes
- Building a graph seeded by a full-text search
- Building a graph of the most recently updated notes

Supports both STDIO and HTTP transports.

Usage:
    # STDIO (for desktop MCP clients)
    python -m notegraph.mcp_server

    # HTTP (for remote access)
    python -m notegraph.mcp_server --transport http --port 8000

Environment Variables:
    JOPLIN_URL: Joplin Data API URL (default: http://localhost:41184)
    JOPLIN_TOKEN: Joplin Web Clipper authorization token
    NOTEGRAPH_*: Query defaults, see notegraph.config
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from .cli_output import format_graph_markdown
from .config import GraphSettings
from .document import GraphData
from .folders import FilterConfig, FilterMode
from .store import JoplinClient

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger(__name__)

# Load .env before reading environment variables
load_dotenv()

# Create the MCP server
mcp = FastMCP(
    name="Note Graph",
    instructions="""
    A note graph server for a Joplin notebook collection that provides:

    - note_graph: Notes linked to (and optionally from) given notes, up to a
      maximum degree of separation
    - note_graph_search: The same, seeded by a full-text search
    - note_graph_all: Links among the most recently updated notes

    Output formats:
    - markdown: Readable list of notes and links (default)
    - json: Nodes and edges with distance and adjacency metadata
    """,
)


class OutputFormat(str, Enum):
    """Output format for graph results."""

    markdown = "markdown"
    json = "json"


def _format_timestamp() -> str:
    """Get current timestamp in ISO format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _parse_format(output_format: str) -> OutputFormat:
    try:
        return OutputFormat(output_format.lower())
    except ValueError:
        return OutputFormat.markdown


def _format_output(graph: GraphData, output_format: OutputFormat, heading: str) -> str:
    if output_format == OutputFormat.json:
        result = {"built_at": _format_timestamp(), **graph.to_dict()}
        return json.dumps(result, indent=2, ensure_ascii=False)
    return format_graph_markdown(graph, heading=heading)


def _filter_config(
    settings: GraphSettings,
    notebooks: Optional[str],
    filter_children: Optional[bool],
    filter_mode: Optional[str],
) -> FilterConfig:
    config = settings.filter
    if notebooks is not None:
        config = FilterConfig.from_names(
            notebooks,
            recurse_into_children=config.recurse_into_children,
            mode=config.mode,
        )
    if filter_children is not None:
        config.recurse_into_children = filter_children
    if filter_mode:
        config.mode = FilterMode(filter_mode.lower())
    return config


def _error(message: str, **context) -> str:
    LOGGER.error(message)
    return json.dumps({"error": message, **context}, ensure_ascii=False)


# =============================================================================
# GRAPH TOOLS
# =============================================================================


@mcp.tool
async def note_graph(
    note_ids: List[str],
    max_degree: Optional[int] = None,
    include_backlinks: Optional[bool] = None,
    notebooks: Optional[str] = None,
    filter_children: Optional[bool] = None,
    filter_mode: Optional[str] = None,
    output_format: str = "markdown",
):
    """
    Build the link graph around one or more notes.

    Args:
        note_ids: Seed note IDs (e.g. the currently selected notes)
        max_degree: Maximum degree of separation (0 = seed notes only).
            Default: NOTEGRAPH_MAX_DEGREE
        include_backlinks: Also follow notes linking to each note
        notebooks: Comma-separated notebook names to filter by
        filter_children: Apply the filter to sub-notebooks too
        filter_mode: "exclude" (drop matching notebooks) or "include"
            (keep only matching notebooks)
        output_format: "markdown" (default) or "json"

    Returns:
        The graph in the specified format.

    Examples:
        note_graph(note_ids=["0123abcd..."], max_degree=2)
        note_graph(note_ids=["0123abcd..."], notebooks="Archive", filter_children=True)
    """
    from . import build_graph_async

    settings = GraphSettings.from_env()
    degree = settings.max_degree if max_degree is None else max(0, max_degree)
    backlinks = (
        settings.include_backlinks if include_backlinks is None else include_backlinks
    )

    LOGGER.info("Building graph for %d note(s), max_degree=%d", len(note_ids), degree)
    try:
        config = _filter_config(settings, notebooks, filter_children, filter_mode)
        async with JoplinClient(settings.joplin_url, settings.joplin_token) as store:
            graph = await build_graph_async(
                store,
                note_ids,
                degree,
                filter_config=config,
                include_backlinks=backlinks,
                concurrency=settings.concurrency,
            )
    except Exception as exc:
        return _error(f"Graph query failed: {exc}", note_ids=note_ids)

    return _format_output(graph, _parse_format(output_format), "Note graph")


@mcp.tool
async def note_graph_search(
    query: str,
    max_degree: Optional[int] = None,
    max_nodes: Optional[int] = None,
    include_backlinks: Optional[bool] = None,
    notebooks: Optional[str] = None,
    filter_children: Optional[bool] = None,
    filter_mode: Optional[str] = None,
    output_format: str = "markdown",
):
    """
    Build a link graph seeded by the notes matching a search query.

    Args:
        query: Joplin search query
        max_degree: Maximum degree of separation. Default: NOTEGRAPH_MAX_DEGREE
        max_nodes: Maximum number of matching notes used as seeds.
            Default: NOTEGRAPH_MAX_NODES
        include_backlinks: Also follow notes linking to each note
        notebooks: Comma-separated notebook names to filter by
        filter_children: Apply the filter to sub-notebooks too
        filter_mode: "exclude" or "include"
        output_format: "markdown" (default) or "json"

    Returns:
        The graph in the specified format.
    """
    from . import build_search_graph_async

    settings = GraphSettings.from_env()
    degree = settings.max_degree if max_degree is None else max(0, max_degree)
    cap = settings.max_nodes if max_nodes is None else max(1, max_nodes)
    backlinks = (
        settings.include_backlinks if include_backlinks is None else include_backlinks
    )

    LOGGER.info("Building graph for query %r", query)
    try:
        config = _filter_config(settings, notebooks, filter_children, filter_mode)
        async with JoplinClient(settings.joplin_url, settings.joplin_token) as store:
            graph = await build_search_graph_async(
                store,
                query,
                degree,
                max_nodes=cap,
                filter_config=config,
                include_backlinks=backlinks,
                concurrency=settings.concurrency,
            )
    except Exception as exc:
        return _error(f"Graph query failed: {exc}", query=query)

    return _format_output(graph, _parse_format(output_format), f"Query: {query}")


@mcp.tool
async def note_graph_all(
    max_nodes: Optional[int] = None,
    notebooks: Optional[str] = None,
    filter_children: Optional[bool] = None,
    filter_mode: Optional[str] = None,
    output_format: str = "markdown",
):
    """
    Build the link graph among the most recently updated notes.

    Args:
        max_nodes: Maximum number of notes. Default: NOTEGRAPH_MAX_NODES
        notebooks: Comma-separated notebook names to filter by
        filter_children: Apply the filter to sub-notebooks too
        filter_mode: "exclude" or "include"
        output_format: "markdown" (default) or "json"

    Returns:
        The graph in the specified format.
    """
    from . import build_full_graph_async

    settings = GraphSettings.from_env()
    cap = settings.max_nodes if max_nodes is None else max(1, max_nodes)

    LOGGER.info("Building graph of up to %d notes", cap)
    try:
        config = _filter_config(settings, notebooks, filter_children, filter_mode)
        async with JoplinClient(settings.joplin_url, settings.joplin_token) as store:
            graph = await build_full_graph_async(
                store, max_nodes=cap, filter_config=config
            )
    except Exception as exc:
        return _error(f"Graph query failed: {exc}")

    return _format_output(graph, _parse_format(output_format), "All notes")


# =============================================================================
# CLI ENTRY POINT
# =============================================================================


def main():
    """CLI entry point for running the MCP server."""
    parser = argparse.ArgumentParser(
        description="Run the note graph MCP server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    JOPLIN_URL     Joplin Data API URL (default: http://localhost:41184)
    JOPLIN_TOKEN   Joplin Web Clipper authorization token

Examples:
    # STDIO transport (default)
    python -m notegraph.mcp_server

    # HTTP transport (for remote access)
    python -m notegraph.mcp_server --transport http --port 8000
""",
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to for HTTP transport (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to for HTTP transport (default: 8000)",
    )

    args = parser.parse_args()

    settings = GraphSettings.from_env()
    LOGGER.info("Joplin URL: %s", settings.joplin_url)
    LOGGER.info("Joplin token: %s", "Set" if settings.joplin_token else "Missing")

    if args.transport == "http":
        LOGGER.info("Starting MCP server on http://%s:%d/mcp", args.host, args.port)
        mcp.run(transport="http", host=args.host, port=args.port)
    else:
        LOGGER.info("Starting MCP server with STDIO transport")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
