"""Shared dataclasses used by the page generation pipeline."""

from __future__ import annotations

import dataclasses as dc

from kb_pages.blocks import BlockKind


@dc.dataclass(slots=True)
class RenderedBlock:
    """Structured data passed to the page template for one block.

    Attributes
    ----------
    block_id : str
        Id of the source block; used as the element id in the page.
    kind : BlockKind
        Kind of the source block.
    title : str | None
        Optional block heading.
    html : str
        Rendered fragment, or an error panel when ``error`` is set.
    error : str | None
        Message shown when the block could not be rendered.
    """

    block_id: str
    kind: BlockKind
    title: str | None
    html: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dc.dataclass(slots=True)
class PageSummaryModel:
    """One card on the pages index."""

    title: str
    slug: str
    href: str
    category: str
    summary_html: str
    tags: list[str]
    published: bool
    updated_at: str | None


__all__ = ["PageSummaryModel", "RenderedBlock"]
