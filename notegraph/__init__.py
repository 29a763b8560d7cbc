"""Bounded-degree link graphs for Joplin notes.

This module provides the query API used by the graph viewer. It supports:

- Graphs around a set of seed notes, expanded up to a degree of separation
- Optional expansion through backlinks (notes linking *to* a note)
- Include/exclude filtering by notebook name, optionally through sub-notebooks
- Graphs seeded by a full-text search
- A capped "every note" graph

Example usage:

    from notegraph import FilterConfig, JoplinClient, build_graph_async

    async with JoplinClient(token="...") as store:
        graph = await build_graph_async(
            store,
            ["a1b2c3..."],
            max_degree=2,
            filter_config=FilterConfig(names={"Archive"}),
            include_backlinks=True,
        )
    for edge in graph.edges:
        print(edge.source, "->", edge.target)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Iterable, List, Optional, Sequence, TypeVar

from .assembler import assemble_graph
from .backlinks import backlinks_of, filter_backlinks
from .config import GraphSettings
from .document import GraphData, GraphEdge, GraphNode, Note, Notebook, RawNote
from .fetch import DEFAULT_CONCURRENCY
from .folders import (
    FilterConfig,
    FilterMode,
    FolderFilter,
    FolderIndex,
    FolderNotFoundError,
)
from .links import build_note, extract_links, strip_anchor
from .session import GraphSession
from .store import JoplinClient, NoteNotFoundError, NoteStore, StoreError
from .traversal import traverse_async

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    # Data types
    "GraphData",
    "GraphEdge",
    "GraphNode",
    "Note",
    "Notebook",
    "RawNote",
    # Store
    "JoplinClient",
    "NoteStore",
    "StoreError",
    "NoteNotFoundError",
    # Links
    "extract_links",
    "strip_anchor",
    # Notebook filtering
    "FilterConfig",
    "FilterMode",
    "FolderFilter",
    "FolderIndex",
    "FolderNotFoundError",
    # Backlinks
    "backlinks_of",
    "filter_backlinks",
    # Queries
    "build_graph",
    "build_graph_async",
    "build_search_graph",
    "build_search_graph_async",
    "build_full_graph",
    "build_full_graph_async",
    "load_folder_filter",
    # Settings / session
    "GraphSettings",
    "GraphSession",
    # MCP Server
    "mcp",
]


# Lazy import for mcp to avoid requiring fastmcp if not used
def __getattr__(name):
    if name == "mcp":
        from .mcp_server import mcp

        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def _run_closing(store: NoteStore, query: Awaitable[T]) -> T:
    """Run ``query`` on a new event loop and close ``store`` before it ends.

    The store's HTTP client is bound to the loop it was created on, so it is
    released here and recreated by the next synchronous call.
    """

    async def _runner() -> T:
        try:
            return await query
        finally:
            close = getattr(store, "close", None)
            if close is not None:
                await close()

    return asyncio.run(_runner())


async def load_folder_filter(
    store: NoteStore, filter_config: Optional[FilterConfig]
) -> Optional[FolderFilter]:
    """Build the notebook filter for a query, or None when no names are set."""
    if filter_config is None or not filter_config.names:
        return None
    notebooks = await store.fetch_notebooks()
    folder_filter = FolderFilter(FolderIndex(notebooks), filter_config)
    if not folder_filter.enabled:
        LOGGER.info("No configured notebook name exists; filtering disabled")
        return None
    return folder_filter


async def build_graph_async(
    store: NoteStore,
    seed_ids: Sequence[str],
    max_degree: int,
    *,
    filter_config: Optional[FilterConfig] = None,
    include_backlinks: bool = False,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> GraphData:
    """
    Build the link graph around ``seed_ids``.

    Args:
        store: Note store adapter (usually a :class:`JoplinClient`).
        seed_ids: Note IDs the graph starts from (e.g. the selected notes).
        max_degree: Maximum degree of separation (0 = seed notes only).
        filter_config: Optional notebook-name filter.
        include_backlinks: Also follow notes that link to each visited note.
        concurrency: Maximum number of concurrent store requests.

    Returns:
        GraphData with nodes, edges and the seed IDs.

    Raises:
        StoreError: If the notebook listing needed by the filter fails.
    """
    folder_filter = await load_folder_filter(store, filter_config)
    notes = await traverse_async(
        store,
        seed_ids,
        max_degree,
        folder_filter=folder_filter,
        include_backlinks=include_backlinks,
        concurrency=concurrency,
    )
    graph = assemble_graph(notes, seed_ids)
    LOGGER.info(
        "Built graph for %d seed(s): %d nodes, %d edges",
        len(graph.seed_ids),
        len(graph.nodes),
        len(graph.edges),
    )
    return graph


def build_graph(
    store: NoteStore,
    seed_ids: Sequence[str],
    max_degree: int,
    *,
    filter_config: Optional[FilterConfig] = None,
    include_backlinks: bool = False,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> GraphData:
    """Synchronous wrapper for build_graph_async.

    Runs on its own event loop and closes ``store`` afterwards, so the same
    client can be passed to repeated calls.
    """
    return _run_closing(
        store,
        build_graph_async(
            store,
            seed_ids,
            max_degree,
            filter_config=filter_config,
            include_backlinks=include_backlinks,
            concurrency=concurrency,
        ),
    )


async def build_search_graph_async(
    store: JoplinClient,
    query: str,
    max_degree: int,
    *,
    max_nodes: int = 700,
    filter_config: Optional[FilterConfig] = None,
    include_backlinks: bool = False,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> GraphData:
    """Build a graph seeded by the notes matching a full-text ``query``."""
    found = await store.search_notes(query, max_nodes)
    seed_ids: List[str] = [raw.id for raw in found]
    LOGGER.info("Query %r matched %d note(s)", query, len(seed_ids))
    return await build_graph_async(
        store,
        seed_ids,
        max_degree,
        filter_config=filter_config,
        include_backlinks=include_backlinks,
        concurrency=concurrency,
    )


def build_search_graph(
    store: JoplinClient,
    query: str,
    max_degree: int,
    *,
    max_nodes: int = 700,
    filter_config: Optional[FilterConfig] = None,
    include_backlinks: bool = False,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> GraphData:
    """Synchronous wrapper for build_search_graph_async."""
    return _run_closing(
        store,
        build_search_graph_async(
            store,
            query,
            max_degree,
            max_nodes=max_nodes,
            filter_config=filter_config,
            include_backlinks=include_backlinks,
            concurrency=concurrency,
        ),
    )


async def build_full_graph_async(
    store: JoplinClient,
    *,
    max_nodes: int = 700,
    filter_config: Optional[FilterConfig] = None,
    seed_ids: Iterable[str] = (),
) -> GraphData:
    """Graph over the ``max_nodes`` most recently updated notes.

    No traversal happens here, so nodes carry no distance.
    """
    raw_notes = await store.fetch_all_notes(max_nodes)
    notes = {raw.id: build_note(raw) for raw in raw_notes}
    folder_filter = await load_folder_filter(store, filter_config)
    if folder_filter is not None:
        notes = folder_filter.filter_notes(notes)
    return assemble_graph(notes, seed_ids)


def build_full_graph(
    store: JoplinClient,
    *,
    max_nodes: int = 700,
    filter_config: Optional[FilterConfig] = None,
    seed_ids: Iterable[str] = (),
) -> GraphData:
    """Synchronous wrapper for build_full_graph_async."""
    return _run_closing(
        store,
        build_full_graph_async(
            store,
            max_nodes=max_nodes,
            filter_config=filter_config,
            seed_ids=seed_ids,
        ),
    )
