"""Per-viewer session state for incremental graph updates."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence

from .document import GraphData
from .links import extract_links

LOGGER = logging.getLogger(__name__)

NoteChange = Literal["title", "links", "other"]


@dataclass
class GraphSession:
    """Tracks what the viewer currently shows.

    The session decides whether an edit to the selected note requires a new
    graph query (its links changed) or only a label update (its title
    changed).
    """

    graph: Optional[GraphData] = None
    seed_ids: List[str] = field(default_factory=list)
    prev_note_title: Optional[str] = None
    prev_note_links: Optional[List[str]] = None
    sync_in_progress: bool = False

    def begin_sync(self) -> None:
        self.sync_in_progress = True

    def end_sync(self) -> None:
        self.sync_in_progress = False

    @property
    def accepts_updates(self) -> bool:
        return not self.sync_in_progress

    def select_notes(
        self,
        note_ids: Sequence[str],
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
    ) -> None:
        """Record a new selection; title/body only apply to a single note."""
        self.seed_ids = list(note_ids)
        if len(self.seed_ids) == 1:
            self.prev_note_title = title
            self.prev_note_links = sorted(extract_links(body))
        else:
            self.prev_note_title = None
            self.prev_note_links = None

    def classify_note_change(self, title: str, body: Optional[str]) -> NoteChange:
        """Classify an edit of the selected note and remember its new state."""
        if title != self.prev_note_title:
            self.prev_note_title = title
            return "title"

        links = sorted(extract_links(body))
        if links != self.prev_note_links:
            self.prev_note_links = links
            return "links"

        return "other"

    def needs_refetch(self, max_degree: int) -> bool:
        """Whether a selection change requires a new query.

        With ``max_degree == 0`` the current graph can be reused as long as
        every selected note is already part of it.
        """
        if self.graph is None or max_degree > 0:
            return True
        shown = {node.id for node in self.graph.nodes}
        return not all(note_id in shown for note_id in self.seed_ids)

    def update(self, graph: GraphData) -> None:
        LOGGER.debug(
            "Session graph updated: %d nodes, %d edges",
            len(graph.nodes),
            len(graph.edges),
        )
        self.graph = graph
