"""Tests for rendering pages, the pages index, and bundled documents.

Pages are rendered with the fake diagram backend from ``conftest`` and
inspected with BeautifulSoup, mirroring how a browser would see them.

Usage
-----
Run with ``pytest tests/test_page_generation.py``.
"""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from bs4 import BeautifulSoup

from kb_pages.config import default_site_config
from kb_pages.documents import PageDocument, page_from_payload
from kb_pages.errors import RenderError
from kb_pages.generator import (
    BlockRenderer,
    HtmlContentRenderer,
    PageGenerator,
    PagesIndexBuilder,
    render_bundled_html,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from conftest import FakeDiagramBackend
    from pytest_mock import MockerFixture


@pytest.fixture
def page(page_payload: dict[str, typ.Any]) -> PageDocument:
    """Return the sample page with a mermaid fence added to its notes."""
    page_payload["blocks"][0]["content"] += "\n\n```mermaid\nsequenceDiagram\nA->>B: hi\n```"
    return page_from_payload(page_payload)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def test_page_renders_every_block_in_order(
    page: PageDocument, backend: FakeDiagramBackend
) -> None:
    """Each block becomes a section keyed by its id, in page order."""
    generator = PageGenerator(default_site_config(), backend=backend)
    soup = _soup(asyncio.run(generator.render_page(page)))
    sections = soup.select("article.kb-page > section.kb-block")
    assert [section["id"] for section in sections] == [
        "block-notes",
        "block-code",
        "block-diagram",
        "block-table",
    ], "sections out of order"
    assert soup.select_one("h1").text == "Gameplay Attribute Sets", "title missing"
    assert [tag.text for tag in soup.select("li.kb-tag")] == ["GAS", "Attributes"]


def test_code_block_is_highlighted(
    page: PageDocument, backend: FakeDiagramBackend
) -> None:
    """Code blocks carry the pygments wrapper and language attribute."""
    generator = PageGenerator(default_site_config(), backend=backend)
    soup = _soup(asyncio.run(generator.render_page(page)))
    code = soup.select_one("#block-code div.codehilite")
    assert code is not None, "highlighted block missing"
    assert code["data-language"] == "cpp", "language attribute missing"
    assert ".codehilite" in (soup.select_one("style").string or ""), "css missing"


def test_diagrams_render_through_backend(
    page: PageDocument, backend: FakeDiagramBackend
) -> None:
    """Diagram blocks and mermaid fences in notes each get their own instance."""
    generator = PageGenerator(default_site_config(), backend=backend)
    soup = _soup(asyncio.run(generator.render_page(page)))
    assert soup.select_one("#block-diagram figure.kb-diagram svg") is not None
    assert soup.select_one("#block-notes figure.kb-diagram svg") is not None
    render_ids = [render_id for render_id, _source in backend.rendered]
    assert len(set(render_ids)) == 2, "each diagram needs a distinct render id"
    assert any(item.startswith("block-notes-d0-") for item in render_ids), (
        "notes diagram should be keyed by its block"
    )
    assert soup.select_one("script[type=module]") is None, "no client script expected"


def test_failing_diagram_is_isolated(
    page: PageDocument, backend: FakeDiagramBackend
) -> None:
    """A diagram that fails shows an error panel while siblings render."""
    backend.fail_when("Attribute]", "Parse error on line 2: unexpected token")
    generator = PageGenerator(default_site_config(), backend=backend)
    soup = _soup(asyncio.run(generator.render_page(page)))
    error = soup.select_one("#block-diagram .kb-error-message")
    assert error is not None, "error panel missing"
    assert error.text == "Parse error on line 2: unexpected token", "message altered"
    assert soup.select_one("#block-notes svg") is not None, "sibling diagram lost"
    assert soup.select_one("#block-table table") is not None, "table lost"


def test_backend_os_error_stays_local(
    page: PageDocument, backend: FakeDiagramBackend
) -> None:
    """An I/O failure inside the backend only affects its own diagram."""
    backend.raise_when("Attribute]", OSError(28, "No space left on device"))
    generator = PageGenerator(default_site_config(), backend=backend)
    soup = _soup(asyncio.run(generator.render_page(page)))
    error = soup.select_one("#block-diagram .kb-error-message")
    assert error is not None, "error panel missing"
    assert "No space left on device" in error.text, "exception message missing"
    assert soup.select_one("#block-table table") is not None, "table lost"
    assert soup.select_one("#block-notes svg") is not None, "sibling diagram lost"


def test_block_exception_becomes_failed_section(
    page: PageDocument, backend: FakeDiagramBackend, mocker: MockerFixture
) -> None:
    """Pipeline errors inside one block mark only that section as failed."""
    generator = PageGenerator(default_site_config(), backend=backend)
    mocker.patch.object(
        generator.content, "code_block", side_effect=RenderError("highlighter down")
    )
    soup = _soup(asyncio.run(generator.render_page(page)))
    failed = soup.select("section.kb-block-failed")
    assert [section["id"] for section in failed] == ["block-code"], "wrong failures"
    assert "highlighter down" in failed[0].text, "error message missing"


def test_client_side_diagrams_emit_placeholders(
    page: PageDocument, backend: FakeDiagramBackend
) -> None:
    """Client-side mode emits ``pre.mermaid`` and the mermaid module script."""
    generator = PageGenerator(
        default_site_config(), client_side_diagrams=True, backend=backend
    )
    soup = _soup(asyncio.run(generator.render_page(page)))
    sources = [pre.text for pre in soup.select("pre.mermaid")]
    assert sources == [
        "sequenceDiagram\nA->>B: hi",
        "flowchart TD\nA[Effect] --> B[Attribute]",
    ], "placeholders missing"
    assert backend.rendered == [], "backend must not be used"
    script = soup.select_one("script[type=module]")
    assert script is not None, "mermaid script missing"
    assert '"startOnLoad":false' in (script.string or ""), "mermaid config missing"


def test_client_side_invalid_diagram_shows_error(
    page: PageDocument,
) -> None:
    """Invalid diagrams are reported even when rendering happens in the browser."""
    page.blocks[2].content = "not a diagram"
    generator = PageGenerator(default_site_config(), client_side_diagrams=True)
    soup = _soup(asyncio.run(generator.render_page(page)))
    message = soup.select_one("#block-diagram .kb-error-message")
    assert message is not None, "error panel missing"
    assert "UnrecognizedDiagramKind" in message.text, "reason missing"


def test_write_page_uses_slug(
    page: PageDocument, backend: FakeDiagramBackend, tmp_path: Path
) -> None:
    """Pages are written to ``<output_dir>/<slug>.html``."""
    generator = PageGenerator(default_site_config(), backend=backend, output_dir=tmp_path)
    written = asyncio.run(generator.write_page(page))
    assert written == tmp_path / "gameplay-attribute-sets.html", "wrong path"
    assert "Gameplay Attribute Sets" in written.read_text(encoding="utf-8")


def test_notes_reference_links(backend: FakeDiagramBackend) -> None:
    """Snippet references on code fences become links to their pages."""
    renderer = BlockRenderer(HtmlContentRenderer(), backend=backend)
    html = asyncio.run(renderer.render_notes("```cpp[gas-basics|GAS basics]\nint x;\n```"))
    link = _soup(html).select_one("ul.kb-snippet-refs a")
    assert link is not None, "reference link missing"
    assert link["href"] == "gas-basics.html", "wrong link target"
    assert link.text == "GAS basics", "wrong link label"


def test_unknown_language_falls_back_to_text() -> None:
    """Languages without a lexer are highlighted as plain text."""
    html = HtmlContentRenderer().code_block("x", "blueprint")
    assert 'data-language="blueprint"' in html, "language tag should be kept"


def test_index_lists_pages_newest_first(tmp_path: Path) -> None:
    """The index shows one card per page ordered by creation time."""
    pages = [
        PageDocument(title="Old", slug="old", created_at="2024-01-01T00:00:00Z"),
        PageDocument(
            title="New",
            slug="new",
            summary="Fresh *notes*",
            created_at="2024-02-01T00:00:00Z",
            published=False,
        ),
    ]
    builder = PagesIndexBuilder(default_site_config(), output_dir=tmp_path)
    written = builder.write(pages)
    soup = _soup(written.read_text(encoding="utf-8"))
    cards = soup.select("li.kb-card")
    assert [card["data-slug"] for card in cards] == ["new", "old"], "wrong order"
    assert cards[0].select_one("a")["href"] == "new.html", "wrong link"
    assert cards[0].select_one(".kb-draft") is not None, "draft marker missing"
    assert cards[0].select_one("em").text == "notes", "summary markdown not rendered"


def test_empty_index_shows_message() -> None:
    """An index without pages shows the empty state."""
    html = PagesIndexBuilder(default_site_config()).render([])
    assert _soup(html).select_one("p.kb-index-empty") is not None, "empty state missing"


def test_bundled_html_is_sanitized(tmp_path: Path) -> None:
    """External documents are sanitized before being wrapped in the site page."""
    source = tmp_path / "report.html"
    source.write_text(
        '<h2>Report</h2><script>alert(1)</script><p onclick="x()">Body</p>',
        encoding="utf-8",
    )
    written = render_bundled_html(
        source, default_site_config(), title="Weekly report", output_path=tmp_path / "out.html"
    )
    soup = _soup(written.read_text(encoding="utf-8"))
    body = soup.select_one(".kb-bundled-body")
    assert body is not None, "bundled body missing"
    assert body.find("script") is None, "script survived"
    assert body.find("p").get("onclick") is None, "event handler survived"
    assert soup.select_one("article.kb-bundled h1").text == "Weekly report"
