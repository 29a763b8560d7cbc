"""Helpers for parsing note cross-references from markdown bodies."""

from __future__ import annotations

import re
from typing import Optional, Set

from .document import Note, RawNote

# ``[]`` is matched so it cannot start a bogus ``[...](:/...)`` match, but it
# never captures a target.
NOTE_LINK = re.compile(r"\[\]|\[.*?\]\(:/(?P<target>.*?)\)")


def extract_links(body: Optional[str]) -> Set[str]:
    """Return the set of note IDs referenced by ``[label](:/<id>)`` links."""
    links: Set[str] = set()
    for match in NOTE_LINK.finditer(body or ""):
        target = match.group("target")
        if target:
            links.add(target)
    return links


def strip_anchor(target: str) -> str:
    """Drop an in-note anchor suffix (``abc#section`` -> ``abc``)."""
    head, _, _ = target.partition("#")
    return head


def build_note(raw: RawNote) -> Note:
    """Reduce a raw store record to a :class:`Note`, discarding its body."""
    return Note(
        id=raw.id,
        folder_id=raw.folder_id,
        title=raw.title,
        links=extract_links(raw.body),
    )
