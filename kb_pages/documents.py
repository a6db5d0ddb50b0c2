"""The persisted page aggregate and its JSON representation.

:class:`PageDocument` is what the composer submits and what the store hands
back. Field names follow Python conventions in memory and the camelCase
service shape (``createdAt``, ``updatedAt``) on the wire. Timestamps are set
by the persistence boundary only.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

import msgspec
import msgspec.json as msgspec_json

from ._constants import CATEGORIES, DEFAULT_CATEGORY
from .blocks import ContentBlock, parse_blocks, to_payload
from .errors import PageValidationError

REQUIRED_PAGE_FIELDS: tuple[str, ...] = ("title", "slug", "blocks")


@dc.dataclass(slots=True)
class PageDocument:
    """A custom knowledge-base page.

    Attributes
    ----------
    title : str
        Display title.
    slug : str
        Unique, URL-safe identifier.
    summary : str
        Short description for cards and listings.
    category : str
        One of :data:`kb_pages._constants.CATEGORIES`.
    tags : list[str]
        Free-text tags, unique and in authoring order.
    blocks : list[ContentBlock]
        Ordered page content; empty in list views.
    published : bool
        Whether the page appears in the default listing.
    id : str | None
        Opaque store id, distinct from ``slug``.
    created_at, updated_at : str | None
        ISO-8601 timestamps assigned by the store.
    """

    title: str
    slug: str
    summary: str = ""
    category: str = DEFAULT_CATEGORY
    tags: list[str] = dc.field(default_factory=list)
    blocks: list[ContentBlock] = dc.field(default_factory=list)
    published: bool = True
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


def page_to_payload(
    page: PageDocument, *, include_server_fields: bool = False
) -> dict[str, typ.Any]:
    """Return the JSON mapping for ``page``.

    Server-owned fields (``id`` and timestamps) are only included when
    ``include_server_fields`` is set, so client submissions never carry them.
    """
    payload: dict[str, typ.Any] = {
        "title": page.title,
        "slug": page.slug,
        "summary": page.summary,
        "category": page.category,
        "tags": list(page.tags),
        "blocks": [to_payload(block) for block in page.blocks],
        "published": page.published,
    }
    if include_server_fields:
        payload["id"] = page.id
        payload["createdAt"] = page.created_at
        payload["updatedAt"] = page.updated_at
    return payload


def page_from_payload(
    payload: cabc.Mapping[str, typ.Any], *, require_blocks: bool = True
) -> PageDocument:
    """Build a :class:`PageDocument` from a service or bulk-input mapping.

    Parameters
    ----------
    payload : Mapping[str, Any]
        Decoded JSON object.
    require_blocks : bool, optional
        List views omit ``blocks``; pass ``False`` to accept that.

    Raises
    ------
    PageValidationError
        When required fields are missing or ``blocks`` is not a list.
    BlockValidationError
        When any block is structurally invalid.
    """
    required = REQUIRED_PAGE_FIELDS if require_blocks else ("title", "slug")
    missing = [name for name in required if not payload.get(name)]
    if missing:
        msg = f"Missing required fields: {', '.join(missing)}"
        raise PageValidationError("json", msg)
    raw_blocks = payload.get("blocks") or []
    if not isinstance(raw_blocks, list):
        msg = "blocks must be an array"
        raise PageValidationError("json", msg)
    category = payload.get("category") or DEFAULT_CATEGORY
    if category not in CATEGORIES:
        msg = f"Unknown category: {category}"
        raise PageValidationError("category", msg)
    return PageDocument(
        title=str(payload["title"]),
        slug=str(payload["slug"]),
        summary=str(payload.get("summary") or ""),
        category=category,
        tags=[str(tag) for tag in payload.get("tags") or []],
        blocks=parse_blocks(raw_blocks),
        published=payload.get("published") is not False,
        id=payload.get("id"),
        created_at=payload.get("createdAt"),
        updated_at=payload.get("updatedAt"),
    )


def decode_page_json(text: str | bytes) -> PageDocument:
    """Parse bulk JSON input into a validated :class:`PageDocument`."""
    try:
        decoded = msgspec_json.decode(text)
    except msgspec.DecodeError as exc:
        msg = f"Invalid JSON syntax: {exc}"
        raise PageValidationError("json", msg) from exc
    if not isinstance(decoded, dict):
        msg = "Page JSON must be an object"
        raise PageValidationError("json", msg)
    return page_from_payload(decoded)


def encode_page_json(page: PageDocument) -> str:
    """Serialise ``page`` as indented JSON in the bulk-input shape."""
    raw = msgspec_json.encode(page_to_payload(page))
    return msgspec_json.format(raw, indent=2).decode("utf-8")


__all__ = [
    "REQUIRED_PAGE_FIELDS",
    "PageDocument",
    "decode_page_json",
    "encode_page_json",
    "page_from_payload",
    "page_to_payload",
]
