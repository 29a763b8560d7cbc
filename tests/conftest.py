"""Shared fixtures: an in-memory note store."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Optional

import pytest

from notegraph.document import Notebook, RawNote
from notegraph.store import NoteNotFoundError, StoreError


class FakeStore:
    """In-memory stand-in for the Joplin Data API.

    Search behaves like Joplin's index: a query matches every note whose body
    contains the query token.
    """

    def __init__(
        self,
        notes: Iterable[RawNote] = (),
        notebooks: Iterable[Notebook] = (),
        *,
        failing: Iterable[str] = (),
    ):
        self.notes: Dict[str, RawNote] = {note.id: note for note in notes}
        self.notebooks: List[Notebook] = list(notebooks)
        self.failing = set(failing)
        self.fetch_calls: Counter = Counter()
        self.search_calls: Counter = Counter()
        self.notebook_calls = 0

    def add(
        self,
        note_id: str,
        body: str = "",
        folder_id: str = "nb-root",
        title: Optional[str] = None,
    ) -> "FakeStore":
        self.notes[note_id] = RawNote(
            id=note_id, folder_id=folder_id, title=title or note_id.upper(), body=body
        )
        return self

    async def fetch_note(self, note_id: str) -> RawNote:
        self.fetch_calls[note_id] += 1
        if note_id in self.failing:
            raise StoreError(f"boom: {note_id}", resource=note_id)
        try:
            return self.notes[note_id]
        except KeyError:
            raise NoteNotFoundError(f"Not found: {note_id}", resource=note_id) from None

    async def fetch_notebooks(self) -> List[Notebook]:
        self.notebook_calls += 1
        return list(self.notebooks)

    async def search_ids(self, query: str) -> List[str]:
        self.search_calls[query] += 1
        return [note.id for note in self.notes.values() if query in note.body]

    async def search_notes(self, query: str, limit: int) -> List[RawNote]:
        found = [note for note in self.notes.values() if query in note.body]
        return found[:limit]

    async def fetch_all_notes(self, limit: int) -> List[RawNote]:
        return list(self.notes.values())[:limit]


@pytest.fixture
def hierarchy() -> List[Notebook]:
    """Root -> Work -> Project, plus an unrelated Personal root."""
    return [
        Notebook(id="nb-root", title="Root"),
        Notebook(id="nb-work", title="Work", parent_id="nb-root"),
        Notebook(id="nb-project", title="Project", parent_id="nb-work"),
        Notebook(id="nb-personal", title="Personal"),
    ]


@pytest.fixture
def make_store(hierarchy):
    def _make(**kwargs) -> FakeStore:
        kwargs.setdefault("notebooks", hierarchy)
        return FakeStore(**kwargs)

    return _make
