"""Unit tests for the external HTML sanitizer."""

from __future__ import annotations

from bs4 import BeautifulSoup

from kb_pages.sanitizer import sanitize_html


def test_script_elements_are_removed() -> None:
    """Script tags never survive sanitizing."""
    cleaned = sanitize_html("<p>Hello</p><script>alert(1)</script>")
    soup = BeautifulSoup(cleaned, "html.parser")
    assert soup.find("script") is None, "script tag survived"
    assert soup.find("p").text == "Hello", "safe content lost"


def test_event_handler_attributes_are_removed() -> None:
    """Inline event handlers are stripped from allowed tags."""
    cleaned = sanitize_html('<div class="box" onclick="steal()">x</div>')
    assert "onclick" not in cleaned, "event handler survived"
    assert 'class="box"' in cleaned, "class attribute should be kept"


def test_javascript_urls_are_dropped() -> None:
    """Links with a ``javascript:`` scheme lose their href."""
    cleaned = sanitize_html('<a href="javascript:alert(1)">click</a>')
    assert "javascript:" not in cleaned, "javascript url survived"


def test_document_structure_and_targets_are_allowed() -> None:
    """Headings, tables, and link targets are part of the allow-list."""
    source = (
        '<h2 id="intro">Intro</h2>'
        "<table><tr><td>1</td></tr></table>"
        '<a href="https://example.com" target="_blank">ext</a>'
    )
    soup = BeautifulSoup(sanitize_html(source), "html.parser")
    assert soup.find("h2", id="intro") is not None, "heading removed"
    assert soup.find("td") is not None, "table removed"
    assert soup.find("a")["target"] == "_blank", "target attribute removed"


def test_comments_are_dropped() -> None:
    """HTML comments are removed."""
    assert "<!--" not in sanitize_html("<p>a</p><!-- hidden -->"), "comment kept"
