r"""Persistence boundary for custom knowledge-base pages.

The pipeline depends on a document-oriented CRUD service but never implements
its storage. :class:`PageStore` names the five operations the composer and
the CLI use; :class:`HttpPageStore` talks to the ``/api/custom-pages`` service
over HTTP and :class:`InMemoryPageStore` mirrors its semantics for tests and
offline authoring.

Calls are awaited and never retried. A failure surfaces as a
:class:`~kb_pages.errors.StoreError` subclass so the caller can show it next
to the form while keeping the entered state for a resubmission.

Example
-------
>>> import asyncio
>>> from kb_pages.store import InMemoryPageStore
>>> store = InMemoryPageStore()
>>> asyncio.run(store.list_pages())
[]
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import json
import logging
import typing as typ
import uuid
from http import HTTPStatus
from urllib.parse import quote

import requests

from ._constants import DEFAULT_CATEGORY, PAGES_API_PATH
from .blocks import to_payload as block_payload
from .documents import PageDocument, page_from_payload, page_to_payload
from .errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    TransportError,
)

if typ.TYPE_CHECKING:
    from .blocks import ContentBlock

logger = logging.getLogger(__name__)


@dc.dataclass(slots=True)
class PageUpdate:
    """Partial page update; only fields that are not ``None`` are applied.

    ``new_slug`` renames the page and is checked for collisions.
    """

    title: str | None = None
    new_slug: str | None = None
    summary: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    blocks: list[ContentBlock] | None = None
    published: bool | None = None

    def to_payload(self) -> dict[str, typ.Any]:
        payload: dict[str, typ.Any] = {}
        if self.title is not None:
            payload["title"] = self.title
        if self.new_slug is not None:
            payload["newSlug"] = self.new_slug
        if self.summary is not None:
            payload["summary"] = self.summary
        if self.category is not None:
            payload["category"] = self.category
        if self.tags is not None:
            payload["tags"] = list(self.tags)
        if self.blocks is not None:
            payload["blocks"] = [block_payload(block) for block in self.blocks]
        if self.published is not None:
            payload["published"] = self.published
        return payload


class PageStore(typ.Protocol):
    """Operations the pipeline needs from the page service."""

    async def list_pages(
        self, *, include_unpublished: bool = False
    ) -> list[PageDocument]: ...

    async def get_page(self, slug: str) -> PageDocument: ...

    async def create_page(self, page: PageDocument) -> PageDocument: ...

    async def update_page(self, slug: str, update: PageUpdate) -> PageDocument: ...

    async def delete_page(self, slug: str) -> None: ...


def _utc_now() -> str:
    return dt.datetime.now(dt.UTC).isoformat().replace("+00:00", "Z")


class InMemoryPageStore:
    """Process-local store with the same rules as the page service."""

    def __init__(self, pages: typ.Iterable[PageDocument] = ()) -> None:
        self._pages: dict[str, PageDocument] = {}
        self.calls: list[str] = []
        for page in pages:
            self._insert(dc.replace(page, blocks=list(page.blocks)))

    async def list_pages(
        self, *, include_unpublished: bool = False
    ) -> list[PageDocument]:
        """Return pages newest first, without their blocks."""
        self.calls.append("list_pages")
        visible = [
            page
            for page in self._pages.values()
            if include_unpublished or page.published
        ]
        visible.sort(key=lambda page: page.created_at or "", reverse=True)
        return [dc.replace(page, blocks=[]) for page in visible]

    async def get_page(self, slug: str) -> PageDocument:
        self.calls.append("get_page")
        return self._copy(self._require(slug))

    async def create_page(self, page: PageDocument) -> PageDocument:
        """Store ``page`` under a fresh id and server-set timestamps."""
        self.calls.append("create_page")
        missing = [
            name
            for name, value in (
                ("title", page.title),
                ("slug", page.slug),
                ("blocks", page.blocks),
            )
            if not value
        ]
        if missing:
            msg = f"Missing required fields: {', '.join(missing)}"
            raise BadRequestError(msg)
        if page.slug in self._pages:
            msg = f"A page with slug '{page.slug}' already exists"
            raise ConflictError(msg)
        now = _utc_now()
        stored = dc.replace(
            page,
            summary=page.summary or "",
            category=page.category or DEFAULT_CATEGORY,
            tags=list(page.tags),
            blocks=list(page.blocks),
            id=uuid.uuid4().hex,
            created_at=now,
            updated_at=now,
        )
        self._insert(stored)
        return self._copy(stored)

    async def update_page(self, slug: str, update: PageUpdate) -> PageDocument:
        """Apply the provided fields of ``update`` and refresh ``updated_at``."""
        self.calls.append("update_page")
        current = self._require(slug)
        target_slug = update.new_slug or slug
        if target_slug != slug and target_slug in self._pages:
            msg = f"A page with slug '{target_slug}' already exists"
            raise ConflictError(msg)
        changes: dict[str, typ.Any] = {
            name: value
            for name, value in (
                ("title", update.title),
                ("summary", update.summary),
                ("category", update.category),
                ("tags", update.tags),
                ("blocks", update.blocks),
                ("published", update.published),
            )
            if value is not None
        }
        updated = dc.replace(current, slug=target_slug, updated_at=_utc_now(), **changes)
        del self._pages[slug]
        self._insert(updated)
        return self._copy(updated)

    async def delete_page(self, slug: str) -> None:
        self.calls.append("delete_page")
        self._require(slug)
        del self._pages[slug]

    def _insert(self, page: PageDocument) -> None:
        self._pages[page.slug] = page

    def _require(self, slug: str) -> PageDocument:
        try:
            return self._pages[slug]
        except KeyError:
            msg = f"No page with slug '{slug}'"
            raise NotFoundError(msg) from None

    @staticmethod
    def _copy(page: PageDocument) -> PageDocument:
        return dc.replace(page, tags=list(page.tags), blocks=list(page.blocks))


class HttpPageStore:
    """Client for the custom-pages HTTP service.

    Requests go through a :class:`requests.Session` on a worker thread so the
    caller's event loop is never blocked. Status codes map onto the store
    error classes: 404 to :class:`NotFoundError`, 409 to
    :class:`ConflictError`, 400 to :class:`BadRequestError`, and any other
    error status or connection failure to :class:`TransportError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialise the client.

        Parameters
        ----------
        base_url : str
            Service origin such as ``http://localhost:3001``.
        session : requests.Session, optional
            Preconfigured session to reuse connections. Defaults to a new
            session per client.
        timeout : float, optional
            Per-request timeout in seconds. Defaults to ``10.0``.
        """
        self._endpoint = f"{base_url.rstrip('/')}{PAGES_API_PATH}"
        self._session = session or requests.Session()
        self.timeout = timeout
        self._headers = {
            "Accept": "application/json",
            "User-Agent": "kb-pages/0.1",
        }

    async def list_pages(
        self, *, include_unpublished: bool = False
    ) -> list[PageDocument]:
        params = {"all": "true"} if include_unpublished else None
        payload = await self._request("GET", self._endpoint, params=params)
        if not isinstance(payload, list):
            msg = "Page listing response was not a JSON array"
            raise TransportError(msg)
        return [page_from_payload(item, require_blocks=False) for item in payload]

    async def get_page(self, slug: str) -> PageDocument:
        payload = await self._request("GET", self._page_url(slug))
        return page_from_payload(payload)

    async def create_page(self, page: PageDocument) -> PageDocument:
        payload = await self._request(
            "POST", self._endpoint, json_body=page_to_payload(page)
        )
        return page_from_payload(payload)

    async def update_page(self, slug: str, update: PageUpdate) -> PageDocument:
        payload = await self._request(
            "PUT", self._page_url(slug), json_body=update.to_payload()
        )
        return page_from_payload(payload)

    async def delete_page(self, slug: str) -> None:
        await self._request("DELETE", self._page_url(slug))

    def _page_url(self, slug: str) -> str:
        normalized = slug.strip()
        if not normalized:
            msg = "Page slug cannot be empty"
            raise ValueError(msg)
        return f"{self._endpoint}/{quote(normalized, safe='')}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json_body: dict[str, typ.Any] | None = None,
    ) -> typ.Any:  # noqa: ANN401
        return await asyncio.to_thread(
            self._send, method, url, params=params, json_body=json_body
        )

    def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None,
        json_body: dict[str, typ.Any] | None,
    ) -> typ.Any:  # noqa: ANN401
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.exception("%s %s failed", method, url)
            msg = f"Failed to reach the page service at '{url}': {exc}"
            raise TransportError(msg) from exc

        status = response.status_code
        if status >= HTTPStatus.BAD_REQUEST:
            message = _error_message(response)
            match status:
                case HTTPStatus.NOT_FOUND:
                    raise NotFoundError(message)
                case HTTPStatus.CONFLICT:
                    raise ConflictError(message)
                case HTTPStatus.BAD_REQUEST:
                    raise BadRequestError(message)
                case _:
                    logger.error("%s %s returned status %s", method, url, status)
                    msg = f"Page service returned status {status}: {message}"
                    raise TransportError(msg)

        if status == HTTPStatus.NO_CONTENT or not response.content:
            return None
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            msg = f"Page service response from '{url}' was not valid JSON"
            raise TransportError(msg) from exc


def _error_message(response: requests.Response) -> str:
    """Return the service's ``message`` field, then ``error``, then the body text."""
    try:
        payload = response.json()
    except json.JSONDecodeError:
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("message", "error"):
            if payload.get(key):
                return str(payload[key])
    return response.text[:200]


__all__ = [
    "HttpPageStore",
    "InMemoryPageStore",
    "PageStore",
    "PageUpdate",
]
