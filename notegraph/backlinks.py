"""Backlink discovery through the store's full-text search."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Set

from .document import Note
from .fetch import fetch_notes_async
from .folders import FolderFilter
from .store import NoteStore, StoreError

LOGGER = logging.getLogger(__name__)


async def backlinks_of(store: NoteStore, note_id: str) -> List[str]:
    """Return IDs of notes whose body references ``note_id``.

    The store indexes link targets, so searching for the bare ID finds every
    note linking to it. A note is never reported as its own backlink.
    """
    ids = await store.search_ids(note_id)
    backlinks = [found for found in dict.fromkeys(ids) if found != note_id]
    LOGGER.debug("Found %d backlinks for %s", len(backlinks), note_id)
    return backlinks


async def _search_backlinks(
    store: NoteStore,
    note_id: str,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> List[str]:
    try:
        if semaphore is None:
            return await backlinks_of(store, note_id)
        async with semaphore:
            return await backlinks_of(store, note_id)
    except StoreError as exc:
        LOGGER.warning("Backlink search failed for %s: %s", note_id, exc)
        return []


async def filter_backlinks(
    store: NoteStore,
    backlinks: Sequence[str],
    folder_filter: Optional[FolderFilter],
    *,
    cache: Optional[Dict[str, Note]] = None,
    failed: Optional[Set[str]] = None,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> List[str]:
    """Keep backlinks whose notebook passes ``folder_filter``.

    Every candidate is fetched (in one concurrent batch) to learn its
    notebook; candidates that cannot be fetched are dropped.
    """
    if not backlinks or folder_filter is None or not folder_filter.enabled:
        return list(backlinks)

    notes = await fetch_notes_async(
        store, backlinks, cache=cache, failed=failed, semaphore=semaphore
    )
    return [
        note_id
        for note_id, note in notes.items()
        if folder_filter.is_kept(note.folder_id)
    ]


async def resolve_backlinks(
    store: NoteStore,
    note_id: str,
    folder_filter: Optional[FolderFilter],
    *,
    cache: Optional[Dict[str, Note]] = None,
    failed: Optional[Set[str]] = None,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> List[str]:
    """Search and filter the backlinks of a single note."""
    found = await _search_backlinks(store, note_id, semaphore)
    return await filter_backlinks(
        store, found, folder_filter, cache=cache, failed=failed, semaphore=semaphore
    )


async def resolve_backlinks_batch(
    store: NoteStore,
    note_ids: Sequence[str],
    folder_filter: Optional[FolderFilter],
    *,
    cache: Optional[Dict[str, Note]] = None,
    failed: Optional[Set[str]] = None,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> Dict[str, List[str]]:
    """Backlinks for several notes, filtering the union of candidates once.

    All searches run first; every distinct candidate is then fetched in a
    single batch, so a note linking to several of ``note_ids`` is requested
    only once.
    """
    searches = await asyncio.gather(
        *(_search_backlinks(store, note_id, semaphore) for note_id in note_ids)
    )
    found: Dict[str, List[str]] = dict(zip(note_ids, searches))

    candidates = list(dict.fromkeys(c for ids in searches for c in ids))
    kept = set(
        await filter_backlinks(
            store,
            candidates,
            folder_filter,
            cache=cache,
            failed=failed,
            semaphore=semaphore,
        )
    )
    return {
        note_id: [c for c in ids if c in kept] for note_id, ids in found.items()
    }
