"""Concurrent note fetching with per-run caching."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Set

from .document import Note
from .links import build_note
from .store import NoteStore, StoreError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 8


async def fetch_notes_async(
    store: NoteStore,
    note_ids: Iterable[str],
    *,
    cache: Optional[Dict[str, Note]] = None,
    failed: Optional[Set[str]] = None,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> Dict[str, Note]:
    """Fetch notes concurrently, keyed by ID.

    A :class:`StoreError` for one note is logged and that note is left out of
    the result; it never affects the sibling requests. Any other exception
    propagates. Notes already in ``cache`` are served from it and fresh notes
    are added to it. IDs in ``failed`` are not requested again, and IDs that
    fail now are added to it.
    """
    ids: List[str] = list(dict.fromkeys(note_ids))
    found: Dict[str, Note] = {}
    missing: List[str] = []
    for note_id in ids:
        if cache is not None and note_id in cache:
            found[note_id] = cache[note_id]
        elif failed is None or note_id not in failed:
            missing.append(note_id)

    if not missing:
        return found

    gate = semaphore or asyncio.Semaphore(DEFAULT_CONCURRENCY)

    async def _fetch_one(note_id: str) -> Note:
        async with gate:
            raw = await store.fetch_note(note_id)
        return build_note(raw)

    results = await asyncio.gather(
        *(_fetch_one(note_id) for note_id in missing),
        return_exceptions=True,
    )

    for note_id, result in zip(missing, results):
        if isinstance(result, StoreError):
            LOGGER.warning("Dropping note %s: %s", note_id, result)
            if failed is not None:
                failed.add(note_id)
            continue
        if isinstance(result, BaseException):
            raise result
        found[note_id] = result
        if cache is not None:
            cache[note_id] = result

    # Preserve request order for deterministic output.
    return {note_id: found[note_id] for note_id in ids if note_id in found}
