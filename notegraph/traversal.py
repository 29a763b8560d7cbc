"""Degree-bounded BFS over note links and backlinks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from .backlinks import resolve_backlinks_batch
from .document import Note
from .fetch import DEFAULT_CONCURRENCY, fetch_notes_async
from .folders import FolderFilter
from .links import strip_anchor
from .store import NoteStore

LOGGER = logging.getLogger(__name__)


@dataclass
class TraversalState:
    """Mutable state owned by a single traversal run."""

    visited: Set[str] = field(default_factory=set)
    # dict keys double as an insertion-ordered set
    frontier: Dict[str, None] = field(default_factory=dict)
    result: Dict[str, Note] = field(default_factory=dict)
    cache: Dict[str, Note] = field(default_factory=dict)
    # IDs whose fetch failed; never requested again in this run
    failed: Set[str] = field(default_factory=set)
    degree: int = 0

    @classmethod
    def seeded(cls, seed_ids: Iterable[str]) -> "TraversalState":
        return cls(frontier=dict.fromkeys(seed_ids))

    def advance(self, discovered: Iterable[str]) -> None:
        """Replace the frontier with unvisited discoveries and bump the degree."""
        self.frontier = {
            note_id: None for note_id in discovered if note_id not in self.visited
        }
        self.degree += 1


async def _kept_notes(
    store: NoteStore,
    note_ids: Iterable[str],
    folder_filter: Optional[FolderFilter],
    *,
    cache: Dict[str, Note],
    failed: Set[str],
    semaphore: asyncio.Semaphore,
) -> Dict[str, Note]:
    notes = await fetch_notes_async(
        store, note_ids, cache=cache, failed=failed, semaphore=semaphore
    )
    if folder_filter is not None:
        notes = folder_filter.filter_notes(notes)
    return notes


async def fetch_seed_notes_async(
    store: NoteStore,
    seed_ids: Iterable[str],
    folder_filter: Optional[FolderFilter] = None,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> Dict[str, Note]:
    """Fetch only the seed notes, without following any link."""
    notes = await _kept_notes(
        store,
        seed_ids,
        folder_filter,
        cache={},
        failed=set(),
        semaphore=asyncio.Semaphore(max(1, concurrency)),
    )
    for note in notes.values():
        note.distance_from_seed = 0
    return notes


async def traverse_async(
    store: NoteStore,
    seed_ids: Iterable[str],
    max_degree: int,
    *,
    folder_filter: Optional[FolderFilter] = None,
    include_backlinks: bool = False,
    concurrency: int = DEFAULT_CONCURRENCY,
) -> Dict[str, Note]:
    """
    Collect notes reachable from ``seed_ids`` within ``max_degree`` hops.

    Args:
        store: Note store adapter.
        seed_ids: Degree-0 note IDs.
        max_degree: Last degree that is fetched (0 = seed notes only).
        folder_filter: Optional notebook filter applied to every fetched note
            and to backlink candidates.
        include_backlinks: Also expand through notes linking *to* each note.
        concurrency: Maximum number of concurrent store requests.

    Returns:
        Map of note ID -> Note with ``distance_from_seed`` and ``backlinks``
        set. Notes that could not be fetched are absent.
    """
    if max_degree <= 0:
        return await fetch_seed_notes_async(
            store, seed_ids, folder_filter, concurrency=concurrency
        )

    state = TraversalState.seeded(seed_ids)
    semaphore = asyncio.Semaphore(max(1, concurrency))

    while state.frontier and state.degree <= max_degree:
        pending = list(state.frontier)
        notes = await _kept_notes(
            store,
            pending,
            folder_filter,
            cache=state.cache,
            failed=state.failed,
            semaphore=semaphore,
        )
        state.visited.update(pending)

        backlinks_by_note: Dict[str, List[str]] = {}
        if include_backlinks and notes:
            backlinks_by_note = await resolve_backlinks_batch(
                store,
                list(notes),
                folder_filter,
                cache=state.cache,
                failed=state.failed,
                semaphore=semaphore,
            )

        discovered: Dict[str, None] = {}
        for note in notes.values():
            backlinks = backlinks_by_note.get(note.id, [])
            note.backlinks = backlinks
            note.distance_from_seed = state.degree
            state.result[note.id] = note
            for link in sorted(note.links):
                discovered[strip_anchor(link)] = None
            discovered.update(dict.fromkeys(backlinks))

        LOGGER.debug(
            "Degree %d: requested %d, kept %d, discovered %d",
            state.degree,
            len(pending),
            len(notes),
            len(discovered),
        )
        state.advance(discovered)

    LOGGER.info(
        "Traversal finished at degree %d with %d notes",
        max(state.degree - 1, 0),
        len(state.result),
    )
    return state.result
