"""Render each content block of a page into an HTML fragment.

:class:`BlockRenderer` is the single place that dispatches over the closed
block union. Code goes to Pygments, notes to the markdown pipeline (with each
mermaid fence rendered by its own diagram instance), diagrams to a
:class:`~kb_pages.diagrams.DiagramComponent`, and tables to the tabular text
renderer. Blocks render independently: a failure in one produces an error
panel for that block and leaves its siblings untouched.
"""

from __future__ import annotations

import asyncio
import logging
import typing as typ
from html import escape

from kb_pages.blocks import (
    CodeBlock,
    ContentBlock,
    DiagramBlock,
    NotesBlock,
    TableBlock,
)
from kb_pages.diagrams import DiagramComponent, DiagramRenderResult, validate
from kb_pages.errors import KbPagesError
from kb_pages.markdown_pipeline import client_side_diagram
from kb_pages.tables import render_table

from .models import RenderedBlock

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from kb_pages.diagrams import DiagramBackend, ScrollZoomPreference

    from .renderer import HtmlContentRenderer

logger = logging.getLogger(__name__)


def diagram_panel(result: DiagramRenderResult, source: str, element_id: str) -> str:
    """Return the HTML panel for a settled diagram render."""
    if result.ready:
        return (
            f'<figure class="kb-diagram" id="{escape(element_id, quote=True)}">'
            f'<div class="kb-diagram-canvas">{result.svg_markup or ""}</div>'
            "</figure>"
        )
    return error_panel(
        "Diagram error", result.error_message or "Diagram did not render", source
    )


def error_panel(heading: str, message: str, source: str | None = None) -> str:
    """Return an inline error panel with the message shown verbatim."""
    details = ""
    if source:
        details = (
            "<details><summary>Source</summary>"
            f"<pre>{escape(source)}</pre></details>"
        )
    return (
        '<div class="kb-error" role="alert">'
        f'<p class="kb-error-title">{escape(heading)}</p>'
        f'<pre class="kb-error-message">{escape(message)}</pre>'
        f"{details}</div>"
    )


class BlockRenderer:
    """Turn content blocks into HTML fragments."""

    def __init__(
        self,
        content: HtmlContentRenderer,
        *,
        backend: DiagramBackend | None = None,
        preference: ScrollZoomPreference | None = None,
    ) -> None:
        """Configure block rendering.

        Parameters
        ----------
        content : HtmlContentRenderer
            Markdown and code highlighter.
        backend : DiagramBackend, optional
            Diagram renderer producing SVG. Without one, valid diagrams are
            emitted as ``<pre class="mermaid">`` placeholders for mermaid.js.
        preference : ScrollZoomPreference, optional
            Shared wheel preference handed to diagram components.
        """
        self.content = content
        self.backend = backend
        self.preference = preference

    @property
    def client_side_diagrams(self) -> bool:
        return self.backend is None

    async def render_all(
        self, blocks: cabc.Sequence[ContentBlock]
    ) -> list[RenderedBlock]:
        """Render every block concurrently, preserving page order."""
        return list(await asyncio.gather(*(self.render(block) for block in blocks)))

    async def render(self, block: ContentBlock) -> RenderedBlock:
        """Render one block, turning pipeline errors into an error panel."""
        try:
            html = await self._dispatch(block)
        except KbPagesError as exc:
            logger.warning("block %s failed to render: %s", block.id, exc)
            return RenderedBlock(
                block_id=block.id,
                kind=block.kind,
                title=block.title,
                html=error_panel("Block error", str(exc)),
                error=str(exc),
            )
        return RenderedBlock(
            block_id=block.id, kind=block.kind, title=block.title, html=html
        )

    async def _dispatch(self, block: ContentBlock) -> str:
        match block:
            case CodeBlock():
                return self.content.code_block(block.content, block.language)
            case NotesBlock():
                return await self.render_notes(block.content, hint=block.id)
            case DiagramBlock():
                return await self.render_diagram(block.content, hint=block.id)
            case TableBlock():
                return render_table(block.content, block.title)
            case _:
                typ.assert_never(block)

    async def render_notes(self, text: str, *, hint: str | None = None) -> str:
        """Render markdown notes with each mermaid fence as its own diagram."""
        if not text.strip():
            return ""
        sources = self.content.pipeline.diagram_sources(text)
        panels = await asyncio.gather(
            *(
                self.render_diagram(source, hint=f"{hint or 'notes'}-d{index}")
                for index, source in enumerate(sources)
            )
        )
        return self.content.markdown(
            text, diagram_html=lambda index, _source: panels[index]
        )

    async def render_diagram(self, source: str, *, hint: str | None = None) -> str:
        """Render diagram source through a fresh, non-interactive instance."""
        if self.backend is None:
            validation = validate(source)
            if not validation.ok:
                message = f"{validation.message} ({validation.reason})"
                return error_panel("Diagram error", message, source)
            return client_side_diagram(0, source.strip())

        component = DiagramComponent(
            source,
            backend=self.backend,
            hint=hint,
            interactive=False,
            preference=self.preference,
        )
        component.mount()
        try:
            result = await component.refresh()
            return diagram_panel(result, source, component.instance_id)
        finally:
            component.unmount()


__all__ = ["BlockRenderer", "diagram_panel", "error_panel"]
