"""Data structures representing notes, notebooks and the assembled graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set


@dataclass(slots=True)
class Notebook:
    """A folder in the notebook forest."""

    id: str
    title: str
    parent_id: Optional[str] = None


@dataclass(slots=True)
class RawNote:
    """Note record as returned by the store, body included."""

    id: str
    folder_id: str
    title: str
    body: str = ""


@dataclass(slots=True)
class Note:
    """A note reduced to its outgoing references.

    The body is never stored here; only the set of linked note IDs survives
    extraction.
    """

    id: str
    folder_id: str
    title: str
    links: Set[str] = field(default_factory=set)
    backlinks: List[str] = field(default_factory=list)
    # 0 => seed note itself, 1 => directly adjacent, ...
    distance_from_seed: Optional[int] = None
    adjacent_to_seed: bool = False


@dataclass(slots=True)
class GraphNode:
    id: str
    title: str
    folder_id: str
    distance_from_seed: Optional[int] = None
    adjacent_to_seed: bool = False


@dataclass(slots=True)
class GraphEdge:
    source: str
    target: str
    adjacent_to_seed: bool = False


@dataclass(slots=True)
class GraphData:
    """Node/edge set handed to the presentation layer."""

    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    seed_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "nodes": [
                {
                    "id": node.id,
                    "title": node.title,
                    "folder_id": node.folder_id,
                    "distance_from_seed": node.distance_from_seed,
                    "adjacent_to_seed": node.adjacent_to_seed,
                }
                for node in self.nodes
            ],
            "edges": [
                {
                    "source": edge.source,
                    "target": edge.target,
                    "adjacent_to_seed": edge.adjacent_to_seed,
                }
                for edge in self.edges
            ],
            "seed_ids": list(self.seed_ids),
        }
