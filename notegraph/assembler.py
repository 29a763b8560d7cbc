"""Turn a traversal result into graph nodes and edges."""

from __future__ import annotations

from typing import Dict, Iterable

from .document import GraphData, GraphEdge, GraphNode, Note
from .links import strip_anchor


def assemble_graph(notes: Dict[str, Note], seed_ids: Iterable[str]) -> GraphData:
    """Build :class:`GraphData` from fetched notes.

    Edges are only emitted when the target note was fetched; links to notes
    outside the result (filtered, beyond the degree limit, or deleted) are
    dropped instead of producing dangling edges or placeholder nodes.
    """
    seeds = list(dict.fromkeys(seed_ids))
    seed_set = set(seeds)
    adjacent = set()
    edges = []

    for note_id, note in notes.items():
        for link in sorted(note.links):
            target = strip_anchor(link)
            if target not in notes:
                continue

            touches_seed = note_id in seed_set or target in seed_set
            edges.append(
                GraphEdge(source=note_id, target=target, adjacent_to_seed=touches_seed)
            )
            if note_id in seed_set:
                adjacent.add(target)
            elif target in seed_set:
                adjacent.add(note_id)

    nodes = []
    for note_id, note in notes.items():
        note.adjacent_to_seed = note_id in adjacent
        nodes.append(
            GraphNode(
                id=note_id,
                title=note.title,
                folder_id=note.folder_id,
                distance_from_seed=note.distance_from_seed,
                adjacent_to_seed=note.adjacent_to_seed,
            )
        )

    return GraphData(nodes=nodes, edges=edges, seed_ids=seeds)
