"""Output and formatting helpers for graph results."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from .document import GraphData


def format_graph_markdown(graph: GraphData, heading: str = "Note graph") -> str:
    """Format a graph as a readable markdown summary.

    Example output:
    # Note graph
    _3 notes, 2 links_

    ## Notes
    - **Project plan** `a1b2` (distance 0, seed)
    ...
    """
    titles: Dict[str, str] = {node.id: node.title for node in graph.nodes}
    seeds = set(graph.seed_ids)

    lines = [
        f"# {heading}",
        f"_{len(graph.nodes)} notes, {len(graph.edges)} links_",
        "",
        "## Notes",
    ]

    ordered = sorted(
        graph.nodes,
        key=lambda n: (
            n.distance_from_seed if n.distance_from_seed is not None else 1 << 30,
            n.title.lower(),
        ),
    )
    for node in ordered:
        details = []
        if node.distance_from_seed is not None:
            details.append(f"distance {node.distance_from_seed}")
        if node.id in seeds:
            details.append("seed")
        elif node.adjacent_to_seed:
            details.append("adjacent")
        suffix = f" ({', '.join(details)})" if details else ""
        lines.append(f"- **{node.title or 'Untitled'}** `{node.id}`{suffix}")

    if graph.edges:
        lines.append("")
        lines.append("## Links")
        for edge in graph.edges:
            source = titles.get(edge.source, edge.source)
            target = titles.get(edge.target, edge.target)
            lines.append(f"- {source} -> {target}")

    lines.append("")
    return "\n".join(lines)


def graph_to_json(graph: GraphData) -> str:
    return json.dumps(graph.to_dict(), indent=2, ensure_ascii=False)


def write_output(graph: GraphData, output: Optional[str], json_output: bool) -> None:
    """Write a graph to stdout or to ``output``."""
    text = graph_to_json(graph) if json_output else format_graph_markdown(graph)

    if output is None:
        print(text)
        return

    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    logging.info("Wrote %s", path)
