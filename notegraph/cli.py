"""Command-line interface for building note graphs."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shutil
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .cli_config import load_config
from .cli_output import write_output
from .config import GraphSettings
from .document import GraphData
from .folders import FilterConfig, FilterMode
from .store import JoplinClient, StoreError

# Configuration directory for global CLI usage
CONFIG_DIR = Path.home() / ".config" / "notegraph"
CONFIG_ENV_FILE = CONFIG_DIR / ".env"


def _load_config() -> None:
    load_config(
        config_dir=CONFIG_DIR,
        config_env_file=CONFIG_ENV_FILE,
        cwd=Path.cwd(),
        load_env=load_dotenv,
        copy_file=shutil.copy,
    )


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="notegraph",
        description="Build the link graph around Joplin notes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Notes within two hops of a note
  notegraph 0123456789abcdef0123456789abcdef --max-degree 2

  # Follow backlinks too, skipping the Archive notebook and its children
  notegraph <note-id> --backlinks --filter Archive --filter-children

  # Only notes from the Work notebook, as JSON
  notegraph <note-id> --filter Work --filter-mode include --json

  # Seed the graph with a full-text search
  notegraph --query "project plan" --max-degree 1

  # The 200 most recently updated notes
  notegraph --all --max-nodes 200 -o graph.json --json
""",
    )

    parser.add_argument(
        "seed_ids",
        nargs="*",
        help="Note ID(s) the graph starts from",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--query",
        type=str,
        default=None,
        help="Seed the graph with the notes matching this search query",
    )
    source.add_argument(
        "--all",
        action="store_true",
        dest="all_notes",
        help="Graph the most recently updated notes instead of a neighbourhood",
    )
    parser.add_argument(
        "--max-degree",
        type=int,
        default=None,
        help="Maximum degree of separation (default: NOTEGRAPH_MAX_DEGREE or 2)",
    )
    parser.add_argument(
        "--max-nodes",
        type=int,
        default=None,
        help="Cap for --query and --all results (default: NOTEGRAPH_MAX_NODES or 700)",
    )
    parser.add_argument(
        "--filter",
        type=str,
        default=None,
        help="Comma-separated notebook names to filter by",
    )
    parser.add_argument(
        "--filter-children",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also apply the filter to sub-notebooks of matching notebooks",
    )
    parser.add_argument(
        "--filter-mode",
        choices=[mode.value for mode in FilterMode],
        default=None,
        help="Keep (include) or drop (exclude) matching notebooks (default: exclude)",
    )
    parser.add_argument(
        "--backlinks",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Follow backlinks as well as forward links",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output as JSON",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _resolve_settings(args: argparse.Namespace) -> GraphSettings:
    """Overlay command-line flags on the environment settings."""
    settings = GraphSettings.from_env()
    if args.max_degree is not None:
        settings.max_degree = max(0, args.max_degree)
    if args.max_nodes is not None:
        settings.max_nodes = max(1, args.max_nodes)
    if args.backlinks is not None:
        settings.include_backlinks = args.backlinks
    if args.filter is not None:
        settings.filter = FilterConfig.from_names(
            args.filter,
            recurse_into_children=settings.filter.recurse_into_children,
            mode=settings.filter.mode,
        )
    if args.filter_children is not None:
        settings.filter.recurse_into_children = args.filter_children
    if args.filter_mode is not None:
        settings.filter.mode = FilterMode(args.filter_mode)
    return settings


async def _build_async(args: argparse.Namespace, settings: GraphSettings) -> GraphData:
    from . import build_full_graph_async, build_graph_async, build_search_graph_async

    async with JoplinClient(settings.joplin_url, settings.joplin_token) as store:
        if args.all_notes:
            logging.info("Building graph of up to %d notes", settings.max_nodes)
            return await build_full_graph_async(
                store,
                max_nodes=settings.max_nodes,
                filter_config=settings.filter,
                seed_ids=args.seed_ids,
            )

        if args.query:
            logging.info(
                "Building graph for query %r (max_degree=%d)",
                args.query,
                settings.max_degree,
            )
            return await build_search_graph_async(
                store,
                args.query,
                settings.max_degree,
                max_nodes=settings.max_nodes,
                filter_config=settings.filter,
                include_backlinks=settings.include_backlinks,
                concurrency=settings.concurrency,
            )

        logging.info(
            "Building graph for %d seed note(s) (max_degree=%d, backlinks=%s)",
            len(args.seed_ids),
            settings.max_degree,
            settings.include_backlinks,
        )
        return await build_graph_async(
            store,
            args.seed_ids,
            settings.max_degree,
            filter_config=settings.filter,
            include_backlinks=settings.include_backlinks,
            concurrency=settings.concurrency,
        )


async def _run_async(args: argparse.Namespace) -> int:
    """Main async entry point."""
    if not args.seed_ids and not args.query and not args.all_notes:
        logging.error("Provide at least one note ID, --query or --all")
        return 2

    settings = _resolve_settings(args)
    try:
        graph = await _build_async(args, settings)
    except StoreError as exc:
        logging.error("Store error: %s", exc)
        return 1

    if not graph.nodes:
        logging.warning("Graph is empty")

    write_output(graph, args.output, args.json_output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the notegraph command."""
    args = _parse_args(argv)
    _setup_logging(args.verbose)
    _load_config()

    try:
        return asyncio.run(_run_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("Error: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
