"""Notebook hierarchy lookup and notebook-name based note filtering."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Set, TypeVar

from .document import Note, Notebook

LOGGER = logging.getLogger(__name__)

NoteT = TypeVar("NoteT", bound=Note)


class FolderNotFoundError(KeyError):
    """Raised when a notebook ID is not part of the listing."""

    def __init__(self, folder_id: str):
        self.folder_id = folder_id
        super().__init__(folder_id)


class FilterMode(str, Enum):
    """Polarity of the notebook-name filter."""

    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass
class FilterConfig:
    """Notebook filter settings for a single query.

    ``names`` holds the configured notebook titles. In exclude mode these are
    the excluded names; in include mode they are the only names kept.
    """

    names: Set[str] = field(default_factory=set)
    recurse_into_children: bool = False
    mode: FilterMode = FilterMode.EXCLUDE

    @classmethod
    def from_names(
        cls,
        raw_names: Optional[str],
        *,
        recurse_into_children: bool = False,
        mode: str | FilterMode = FilterMode.EXCLUDE,
    ) -> "FilterConfig":
        """Build a config from a comma-separated name list."""
        names = {name.strip() for name in (raw_names or "").split(",")}
        names.discard("")
        return cls(
            names=names,
            recurse_into_children=recurse_into_children,
            mode=FilterMode(mode),
        )


class FolderIndex:
    """Lookup of notebook ID -> (title, parent) built from the full listing."""

    def __init__(self, notebooks: Iterable[Notebook]):
        self._by_id: Dict[str, Notebook] = {nb.id: nb for nb in notebooks}

    def __contains__(self, folder_id: object) -> bool:
        return folder_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def _get(self, folder_id: str) -> Notebook:
        try:
            return self._by_id[folder_id]
        except KeyError:
            raise FolderNotFoundError(folder_id) from None

    def title_of(self, folder_id: str) -> str:
        return self._get(folder_id).title

    def parent_of(self, folder_id: str) -> Optional[str]:
        return self._get(folder_id).parent_id or None

    def ancestors_of(self, folder_id: str) -> Iterator[str]:
        """Yield ``folder_id`` and then each ancestor up to a root.

        A missing notebook ends the walk as if a root had been reached. The
        walk also stops on a repeated ID so a corrupt parent cycle cannot
        loop forever.
        """
        seen: Set[str] = set()
        current: Optional[str] = folder_id
        while current and current not in seen:
            if current not in self._by_id:
                return
            seen.add(current)
            yield current
            current = self._by_id[current].parent_id or None

    def titles(self) -> Set[str]:
        return {nb.title for nb in self._by_id.values()}

    def folder_ids(self) -> List[str]:
        return list(self._by_id)


class FolderFilter:
    """Decides which notebooks' notes are kept for a given config."""

    def __init__(self, index: FolderIndex, config: FilterConfig):
        self.index = index
        self.config = config
        known_titles = index.titles()
        dropped = sorted(config.names - known_titles)
        if dropped:
            LOGGER.debug("Ignoring unknown notebook names in filter: %s", dropped)
        self.names: Set[str] = config.names & known_titles

    @property
    def enabled(self) -> bool:
        return bool(self.names)

    def _is_name_matched(self, folder_id: str) -> bool:
        try:
            if self.index.title_of(folder_id) in self.names:
                return True
        except FolderNotFoundError:
            return False

        if not self.config.recurse_into_children:
            return False

        return any(
            self.index.title_of(ancestor) in self.names
            for ancestor in self.index.ancestors_of(folder_id)
        )

    def is_kept(self, folder_id: str) -> bool:
        if not self.enabled:
            return True
        matched = self._is_name_matched(folder_id)
        if self.config.mode is FilterMode.INCLUDE:
            return matched
        return not matched

    def should_exclude(self, folder_id: str) -> bool:
        return not self.is_kept(folder_id)

    def excluded_folder_ids(self) -> List[str]:
        """IDs of every notebook whose notes are dropped by this filter."""
        if not self.enabled:
            return []
        return [fid for fid in self.index.folder_ids() if self.should_exclude(fid)]

    def filter_notes(self, notes: Dict[str, NoteT]) -> Dict[str, NoteT]:
        """Return the subset of ``notes`` whose notebook is kept."""
        if not self.enabled:
            return notes
        return {
            note_id: note
            for note_id, note in notes.items()
            if self.is_kept(note.folder_id)
        }
