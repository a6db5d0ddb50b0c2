"""Unit tests for the page document and its JSON representation."""

from __future__ import annotations

import typing as typ

import msgspec.json as msgspec_json
import pytest

from kb_pages.blocks import DiagramBlock
from kb_pages.documents import (
    PageDocument,
    decode_page_json,
    encode_page_json,
    page_from_payload,
    page_to_payload,
)
from kb_pages.errors import BlockValidationError, PageValidationError


def test_decode_builds_typed_blocks(page_payload: dict[str, typ.Any]) -> None:
    """Bulk JSON decodes into a document with typed blocks."""
    page = decode_page_json(msgspec_json.encode(page_payload))
    assert page.slug == "gameplay-attribute-sets", "slug not decoded"
    assert [block.kind.value for block in page.blocks] == [
        "notes",
        "code",
        "diagram",
        "table",
    ], "block kinds not preserved"
    assert isinstance(page.blocks[2], DiagramBlock), "mermaid should become diagram"
    assert page.published, "published flag not decoded"


def test_decode_rejects_invalid_syntax() -> None:
    """Malformed JSON becomes a page-level validation error."""
    with pytest.raises(PageValidationError, match="Invalid JSON syntax") as excinfo:
        decode_page_json('{"title": ')
    assert excinfo.value.field == "json", "error should be attributed to the json field"


def test_decode_rejects_non_object() -> None:
    """Top-level arrays are not pages."""
    with pytest.raises(PageValidationError, match="must be an object"):
        decode_page_json("[]")


@pytest.mark.parametrize("field", ["title", "slug", "blocks"])
def test_missing_required_fields_are_named(
    page_payload: dict[str, typ.Any], field: str
) -> None:
    """Each required field is checked and named in the message."""
    del page_payload[field]
    with pytest.raises(PageValidationError, match=field):
        page_from_payload(page_payload)


def test_blocks_must_be_an_array(page_payload: dict[str, typ.Any]) -> None:
    """A non-list ``blocks`` value is rejected."""
    page_payload["blocks"] = {"id": "x"}
    with pytest.raises(PageValidationError, match="array"):
        page_from_payload(page_payload)


def test_unknown_category_is_rejected(page_payload: dict[str, typ.Any]) -> None:
    """Categories come from a fixed set."""
    page_payload["category"] = "gossip"
    with pytest.raises(PageValidationError) as excinfo:
        page_from_payload(page_payload)
    assert excinfo.value.field == "category", "wrong field reported"


def test_block_errors_propagate(page_payload: dict[str, typ.Any]) -> None:
    """Block problems surface as an itemised ``BlockValidationError``."""
    page_payload["blocks"][1]["type"] = "video"
    with pytest.raises(BlockValidationError) as excinfo:
        page_from_payload(page_payload)
    assert str(excinfo.value) == "Block 2: has invalid type: video", "wrong message"


def test_list_views_may_omit_blocks(page_payload: dict[str, typ.Any]) -> None:
    """Listing payloads without blocks are accepted when asked."""
    del page_payload["blocks"]
    page = page_from_payload(page_payload, require_blocks=False)
    assert page.blocks == [], "blocks should default to empty"


def test_server_fields_are_opt_in() -> None:
    """Ids and timestamps are only serialised for store responses."""
    page = PageDocument(
        title="T", slug="t", id="abc", created_at="2024-01-01T00:00:00Z"
    )
    assert "id" not in page_to_payload(page), "client payloads carry no id"
    full = page_to_payload(page, include_server_fields=True)
    assert full["id"] == "abc", "id missing from server payload"
    assert full["createdAt"] == "2024-01-01T00:00:00Z", "timestamp key not camelCase"


def test_encode_then_decode_is_stable(page_payload: dict[str, typ.Any]) -> None:
    """Encoding a decoded page reproduces the same text when decoded again."""
    text = encode_page_json(decode_page_json(msgspec_json.encode(page_payload)))
    assert encode_page_json(decode_page_json(text)) == text, "encoding not stable"
    assert text.startswith('{\n  "title"'), "output should be indented"
