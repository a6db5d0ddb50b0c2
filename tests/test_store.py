"""Tests for the page store implementations.

``InMemoryPageStore`` is exercised directly. ``HttpPageStore`` is driven
with a mocked :class:`requests.Session` so status mapping and request shapes
can be checked without a running service.
"""

from __future__ import annotations

import asyncio
import json
import typing as typ

import pytest
import requests

from kb_pages.blocks import NotesBlock
from kb_pages.documents import PageDocument, page_from_payload
from kb_pages.errors import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    TransportError,
)
from kb_pages.store import HttpPageStore, InMemoryPageStore, PageUpdate

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _page(slug: str, *, created_at: str, published: bool = True) -> PageDocument:
    return PageDocument(
        title=slug.title(),
        slug=slug,
        blocks=[NotesBlock(id=f"{slug}-b", content="text")],
        published=published,
        created_at=created_at,
    )


def test_memory_create_assigns_server_fields() -> None:
    """Creation sets id and timestamps and fills defaults."""
    store = InMemoryPageStore()
    created = asyncio.run(
        store.create_page(
            PageDocument(title="T", slug="t", blocks=[NotesBlock(id="b")])
        )
    )
    assert created.id, "id should be assigned"
    assert created.created_at, "created_at should be assigned"
    assert created.created_at.endswith("Z"), "timestamps should be UTC"
    assert created.category == "custom", "default category expected"


def test_memory_create_rejects_incomplete_pages() -> None:
    """Missing title, slug, or blocks is a bad request."""
    store = InMemoryPageStore()
    with pytest.raises(BadRequestError, match="title, blocks"):
        asyncio.run(store.create_page(PageDocument(title="", slug="x")))


def test_memory_create_rejects_duplicate_slug() -> None:
    """A second page with the same slug conflicts."""
    store = InMemoryPageStore([_page("dup", created_at="2024-01-01T00:00:00Z")])
    with pytest.raises(ConflictError, match="dup"):
        asyncio.run(store.create_page(_page("dup", created_at="")))


def test_memory_list_orders_and_filters() -> None:
    """Listing is newest first, hides drafts by default, and omits blocks."""
    store = InMemoryPageStore(
        [
            _page("old", created_at="2024-01-01T00:00:00Z"),
            _page("new", created_at="2024-03-01T00:00:00Z"),
            _page("draft", created_at="2024-02-01T00:00:00Z", published=False),
        ]
    )
    published = asyncio.run(store.list_pages())
    everything = asyncio.run(store.list_pages(include_unpublished=True))
    assert [page.slug for page in published] == ["new", "old"], "wrong listing"
    assert [page.slug for page in everything] == ["new", "draft", "old"], "drafts missing"
    assert all(page.blocks == [] for page in everything), "listing should omit blocks"


def test_memory_update_renames_and_checks_conflicts() -> None:
    """Updates apply given fields; renaming onto an existing slug conflicts."""
    store = InMemoryPageStore(
        [
            _page("a", created_at="2024-01-01T00:00:00Z"),
            _page("b", created_at="2024-01-02T00:00:00Z"),
        ]
    )
    with pytest.raises(ConflictError):
        asyncio.run(store.update_page("a", PageUpdate(new_slug="b")))
    updated = asyncio.run(
        store.update_page("a", PageUpdate(new_slug="c", summary="moved"))
    )
    assert updated.slug == "c", "slug not renamed"
    assert updated.summary == "moved", "summary not applied"
    assert updated.title == "A", "untouched fields must be kept"
    with pytest.raises(NotFoundError):
        asyncio.run(store.get_page("a"))


def test_memory_delete_and_missing_pages() -> None:
    """Deleted pages are gone; missing slugs raise ``NotFoundError``."""
    store = InMemoryPageStore([_page("a", created_at="2024-01-01T00:00:00Z")])
    asyncio.run(store.delete_page("a"))
    with pytest.raises(NotFoundError):
        asyncio.run(store.delete_page("a"))
    assert store.calls == ["delete_page", "delete_page"], "calls not recorded"


def test_page_update_payload_uses_service_names() -> None:
    """Only provided fields are sent, with ``newSlug`` for renames."""
    payload = PageUpdate(new_slug="n", published=False, tags=["x"]).to_payload()
    assert payload == {"newSlug": "n", "tags": ["x"], "published": False}


def _response(
    mocker: MockerFixture, status: int, body: object = None, *, text: str | None = None
) -> requests.Response:
    response = mocker.Mock(spec=requests.Response)
    response.status_code = status
    raw = text if text is not None else ("" if body is None else json.dumps(body))
    response.text = raw
    response.content = raw.encode("utf-8")
    if body is None and text is not None:
        response.json.side_effect = json.JSONDecodeError("bad", raw, 0)
    else:
        response.json.return_value = body
    return response


def _store(mocker: MockerFixture, response: requests.Response) -> tuple[HttpPageStore, typ.Any]:
    session = mocker.Mock(spec=requests.Session)
    session.request.return_value = response
    return HttpPageStore("http://kb.test/", session=session, timeout=3), session


def test_http_list_sends_all_flag(
    mocker: MockerFixture, page_payload: dict[str, typ.Any]
) -> None:
    """``include_unpublished`` maps to ``?all=true`` on the listing endpoint."""
    listing = {key: value for key, value in page_payload.items() if key != "blocks"}
    store, session = _store(mocker, _response(mocker, 200, [listing]))
    pages = asyncio.run(store.list_pages(include_unpublished=True))
    assert [page.slug for page in pages] == ["gameplay-attribute-sets"], "bad listing"
    method, url = session.request.call_args.args
    assert (method, url) == ("GET", "http://kb.test/api/custom-pages"), "bad request"
    assert session.request.call_args.kwargs["params"] == {"all": "true"}
    assert session.request.call_args.kwargs["timeout"] == 3, "timeout not applied"


def test_http_create_posts_client_fields_only(
    mocker: MockerFixture, page_payload: dict[str, typ.Any]
) -> None:
    """Creation posts the page without server fields and parses the reply."""
    reply = {**page_payload, "id": "abc", "createdAt": "2024-01-01T00:00:00Z"}
    store, session = _store(mocker, _response(mocker, 201, reply))
    created = asyncio.run(store.create_page(page_from_payload(page_payload)))
    body = session.request.call_args.kwargs["json"]
    assert "id" not in body, "client must not send an id"
    assert body["blocks"][2]["type"] == "mermaid", "diagram wire type expected"
    assert created.id == "abc", "server id not parsed"


def test_http_slug_is_url_encoded(mocker: MockerFixture) -> None:
    """Slugs are quoted when placed in the path."""
    store, session = _store(mocker, _response(mocker, 204))
    asyncio.run(store.delete_page("a b/c"))
    _method, url = session.request.call_args.args
    assert url == "http://kb.test/api/custom-pages/a%20b%2Fc", "slug not encoded"


def test_http_blank_slug_is_rejected(mocker: MockerFixture) -> None:
    """Blank slugs never produce a request."""
    store, session = _store(mocker, _response(mocker, 204))
    with pytest.raises(ValueError, match="slug"):
        asyncio.run(store.get_page("  "))
    session.request.assert_not_called()


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (404, NotFoundError),
        (409, ConflictError),
        (400, BadRequestError),
        (500, TransportError),
    ],
)
def test_http_status_codes_map_to_errors(
    mocker: MockerFixture, status: int, error: type[Exception]
) -> None:
    """Error statuses raise the matching store error with the service message."""
    store, _session = _store(mocker, _response(mocker, status, {"message": "nope"}))
    with pytest.raises(error, match="nope"):
        asyncio.run(store.get_page("x"))


def test_http_connection_failure_is_transport_error(mocker: MockerFixture) -> None:
    """Network failures become ``TransportError``."""
    session = mocker.Mock(spec=requests.Session)
    session.request.side_effect = requests.ConnectionError("refused")
    store = HttpPageStore("http://kb.test", session=session)
    with pytest.raises(TransportError, match="refused"):
        asyncio.run(store.list_pages())


def test_http_invalid_json_is_transport_error(mocker: MockerFixture) -> None:
    """A success status with a non-JSON body is a transport failure."""
    store, _session = _store(mocker, _response(mocker, 200, text="<html>"))
    with pytest.raises(TransportError, match="not valid JSON"):
        asyncio.run(store.get_page("x"))


def test_http_error_without_json_uses_body_text(mocker: MockerFixture) -> None:
    """Plain-text error bodies are used as the message."""
    store, _session = _store(mocker, _response(mocker, 404, text="missing page"))
    with pytest.raises(NotFoundError, match="missing page"):
        asyncio.run(store.get_page("x"))


def test_http_conflict_uses_service_message(mocker: MockerFixture) -> None:
    """The ``message`` field of an error reply becomes the exception text."""
    reply = {"message": "A page with this slug already exists"}
    store, _session = _store(mocker, _response(mocker, 409, reply))
    with pytest.raises(ConflictError) as excinfo:
        asyncio.run(store.create_page(_page("dup", created_at="")))
    assert str(excinfo.value) == "A page with this slug already exists", (
        "raw JSON body should not leak into the message"
    )


def test_http_error_field_is_used_without_message(mocker: MockerFixture) -> None:
    """Replies carrying only ``error`` still yield a readable message."""
    store, _session = _store(mocker, _response(mocker, 400, {"error": "bad slug"}))
    with pytest.raises(BadRequestError) as excinfo:
        asyncio.run(store.get_page("x"))
    assert str(excinfo.value) == "bad slug", "error field should be used"
