"""Joplin Data API adapter.

The graph core only talks to the store through the small :class:`NoteStore`
surface. :class:`JoplinClient` implements it against the REST API exposed by
the Joplin clipper service; paginated endpoints are flattened here so callers
never see page numbers.

Environment variables are read when a client is created, so tests can
monkeypatch them freely::

    async with JoplinClient() as store:
        notebooks = await store.fetch_notebooks()
        note = await store.fetch_note("0123abcd...")
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Protocol

import httpx

from .document import Notebook, RawNote

LOGGER = logging.getLogger(__name__)

DEFAULT_JOPLIN_URL = "http://localhost:41184"
PAGE_SIZE = 100

_NOTE_FIELDS = "id,parent_id,title,body"
_NOTEBOOK_FIELDS = "id,title,parent_id"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """Raised when the note store cannot serve a request."""

    def __init__(self, message: str, resource: str = ""):
        self.resource = resource
        super().__init__(message)


class NoteNotFoundError(StoreError):
    """Raised when a note does not exist (deleted or never created)."""


class NoteStore(Protocol):
    """Store operations the graph core depends on."""

    async def fetch_note(self, note_id: str) -> RawNote: ...

    async def fetch_notebooks(self) -> List[Notebook]: ...

    async def search_ids(self, query: str) -> List[str]: ...


# ---------------------------------------------------------------------------
# Record validation
# ---------------------------------------------------------------------------


def _require(raw: Dict[str, Any], key: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str):
        raise ValueError(f"record is missing required field {key!r}")
    return value


def _raw_to_note(raw: Dict[str, Any]) -> RawNote:
    """Convert a raw note record, rejecting records without id/parent/title."""
    return RawNote(
        id=_require(raw, "id"),
        folder_id=_require(raw, "parent_id"),
        title=_require(raw, "title"),
        body=raw.get("body") or "",
    )


def _raw_to_notebook(raw: Dict[str, Any]) -> Notebook:
    return Notebook(
        id=_require(raw, "id"),
        title=_require(raw, "title"),
        parent_id=raw.get("parent_id") or None,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class JoplinClient:
    """Async client for the Joplin Data API.

    An ``httpx.AsyncClient`` passed as ``client`` stays owned by the caller
    and is never closed here. Otherwise the client is created on first use
    (with the optional ``transport``) and released by :meth:`close`, after
    which the next request creates a fresh one.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        *,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or os.getenv("JOPLIN_URL", DEFAULT_JOPLIN_URL)
        self.token = token or os.getenv("JOPLIN_TOKEN")
        self.timeout = timeout
        self._transport = transport
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "JoplinClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query: Dict[str, Any] = dict(params or {})
        if self.token:
            query["token"] = self.token

        try:
            response = await self.client.get(path, params=query)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 404:
                raise NoteNotFoundError(f"Not found: {path}", resource=path) from exc
            if status in (401, 403):
                raise StoreError(
                    "Authentication failed. Check JOPLIN_TOKEN.", resource=path
                ) from exc
            raise StoreError(
                f"Joplin API error: {status} - {exc.response.text}", resource=path
            ) from exc

        except httpx.RequestError as exc:
            raise StoreError(f"Request failed: {exc}", resource=path) from exc

        except ValueError as exc:
            raise StoreError(f"Invalid JSON from {path}: {exc}", resource=path) from exc

    async def _get_pages(
        self,
        path: str,
        params: Dict[str, Any],
        *,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Collect ``items`` from every page until ``has_more`` is false."""
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            page_params = dict(params, page=page)
            if limit is not None:
                page_params["limit"] = min(limit, PAGE_SIZE)
            data = await self._get(path, page_params)
            items.extend(data.get("items") or [])
            if not data.get("has_more"):
                break
            if limit is not None and len(items) >= limit:
                break
            page += 1
        return items[:limit] if limit is not None else items

    def _parse_notes(self, records: List[Dict[str, Any]]) -> List[RawNote]:
        notes: List[RawNote] = []
        for raw in records:
            try:
                notes.append(_raw_to_note(raw))
            except ValueError as exc:
                LOGGER.warning("Skipping malformed note record %r: %s", raw, exc)
        return notes

    async def fetch_note(self, note_id: str) -> RawNote:
        data = await self._get(f"/notes/{note_id}", {"fields": _NOTE_FIELDS})
        try:
            return _raw_to_note(data)
        except ValueError as exc:
            raise StoreError(
                f"Malformed note {note_id}: {exc}", resource=note_id
            ) from exc

    async def fetch_notebooks(self) -> List[Notebook]:
        records = await self._get_pages("/folders", {"fields": _NOTEBOOK_FIELDS})
        notebooks: List[Notebook] = []
        for raw in records:
            try:
                notebooks.append(_raw_to_notebook(raw))
            except ValueError as exc:
                LOGGER.warning("Skipping malformed notebook record %r: %s", raw, exc)
        return notebooks

    async def search_ids(self, query: str) -> List[str]:
        records = await self._get_pages("/search", {"query": query, "fields": "id"})
        return [raw["id"] for raw in records if isinstance(raw.get("id"), str)]

    async def search_notes(self, query: str, limit: int) -> List[RawNote]:
        records = await self._get_pages(
            "/search",
            {"query": query, "fields": _NOTE_FIELDS},
            limit=max(1, limit),
        )
        return self._parse_notes(records)

    async def fetch_all_notes(self, limit: int) -> List[RawNote]:
        """Fetch up to ``limit`` notes, most recently updated first."""
        records = await self._get_pages(
            "/notes",
            {
                "fields": _NOTE_FIELDS,
                "order_by": "updated_time",
                "order_dir": "DESC",
            },
            limit=max(1, limit),
        )
        return self._parse_notes(records)
