"""HTML for notes markdown and highlighted code blocks.

:class:`HtmlContentRenderer` owns one pygments formatter per page so that
every code block and the page stylesheet agree on the ``codehilite`` class.
"""

from __future__ import annotations

import typing as typ
from html import escape

from pygments import highlight
from pygments.formatters.html import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from kb_pages.markdown_pipeline import FencedBlock, MarkdownPipeline

if typ.TYPE_CHECKING:
    from kb_pages.markdown_pipeline import DiagramHtml, SnippetReference

WRAPPER_CLASS = "codehilite"
LEXER_ALIASES: dict[str, str] = {
    "blueprint": "text",
    "shell": "bash",
}


class HtmlContentRenderer:
    """Turn block content into HTML fragments for the page template."""

    def __init__(self, pygments_style: str = "monokai") -> None:
        """Create a renderer highlighting with ``pygments_style``.

        Parameters
        ----------
        pygments_style : str, optional
            Pygments style for code blocks and the generated stylesheet.
        """
        self.pygments_style = pygments_style
        self._formatter = HtmlFormatter(style=pygments_style, cssclass=WRAPPER_CLASS)
        self.pipeline = MarkdownPipeline(code_html=self.fenced_code)

    @property
    def stylesheet(self) -> str:
        """CSS rules for the ``codehilite`` wrapper."""
        return self._formatter.get_style_defs(f".{WRAPPER_CLASS}")

    def markdown(self, text: str, *, diagram_html: DiagramHtml | None = None) -> str:
        """Render notes markdown, passing diagram fences to ``diagram_html``."""
        if not text.strip():
            return ""
        return self.pipeline.render_html(text, diagram_html=diagram_html)

    def code_block(self, code: str, language: str | None = None) -> str:
        """Highlight a code block.

        Parameters
        ----------
        code : str
            Block content, rendered verbatim.
        language : str, optional
            Author-supplied language tag. Unknown or missing tags fall back to
            the plain-text lexer but are still reported in ``data-language``.

        Returns
        -------
        str
            The pygments ``div.codehilite`` wrapper tagged with the language.
        """
        tag = language or "text"
        try:
            lexer = get_lexer_by_name(LEXER_ALIASES.get(tag, tag))
        except ClassNotFound:
            lexer = get_lexer_by_name("text")
        highlighted = highlight(code, lexer, self._formatter)
        return _tag_language(highlighted, tag)

    def fenced_code(self, block: FencedBlock) -> str:
        """Render a markdown code fence plus links to its referenced snippets."""
        html = self.code_block(block.content, block.language)
        if block.references:
            html += _reference_links(block.references)
        return html


def _tag_language(html: str, language: str) -> str:
    opening = f'<div class="{WRAPPER_CLASS}">'
    tagged = f'<div class="{WRAPPER_CLASS}" data-language="{escape(language, quote=True)}">'
    return html.replace(opening, tagged, 1)


def _reference_links(references: list[SnippetReference]) -> str:
    links = "".join(
        f'<li><a href="{escape(ref.slug, quote=True)}.html">'
        f"{escape(ref.label or ref.slug)}</a></li>"
        for ref in references
    )
    return f'<ul class="kb-snippet-refs">{links}</ul>'


__all__ = ["HtmlContentRenderer"]
