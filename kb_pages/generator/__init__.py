"""Render blocks, pages, and the pages index into themed HTML."""

from .blocks import BlockRenderer, diagram_panel, error_panel
from .index import PagesIndexBuilder
from .models import PageSummaryModel, RenderedBlock
from .page_generator import PageGenerator, build_environment, render_bundled_html
from .renderer import HtmlContentRenderer

__all__ = [
    "BlockRenderer",
    "HtmlContentRenderer",
    "PageGenerator",
    "PageSummaryModel",
    "PagesIndexBuilder",
    "RenderedBlock",
    "build_environment",
    "diagram_panel",
    "error_panel",
    "render_bundled_html",
]
