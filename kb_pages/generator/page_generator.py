"""High-level orchestration for static page generation.

This module renders :class:`~kb_pages.documents.PageDocument` objects with the
shared Jinja templates and writes themed HTML files. It exposes
:class:`PageGenerator`, which renders each block with :class:`BlockRenderer`,
and :func:`render_bundled_html`, which wraps an externally sourced HTML
document in the site chrome after sanitizing it.

Example
-------
>>> import asyncio
>>> from kb_pages.config import default_site_config
>>> from kb_pages.generator import PageGenerator
>>> generator = PageGenerator(default_site_config())  # doctest: +SKIP
>>> asyncio.run(generator.write_page(page))  # doctest: +SKIP
PosixPath('public/my-page.html')
"""

from __future__ import annotations

import datetime as dt
import logging
import typing as typ
from pathlib import Path

import msgspec.json as msgspec_json
from jinja2 import Environment, FileSystemLoader, select_autoescape

from kb_pages.diagrams import MermaidCliBackend
from kb_pages.sanitizer import sanitize_html

from .blocks import BlockRenderer
from .renderer import HtmlContentRenderer

if typ.TYPE_CHECKING:
    from kb_pages.config import SiteConfig
    from kb_pages.diagrams import DiagramBackend
    from kb_pages.documents import PageDocument

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"


def build_environment(templates_dir: Path | None = None) -> Environment:
    """Return the Jinja environment shared by page and index rendering."""
    return Environment(
        loader=FileSystemLoader(str(templates_dir or DEFAULT_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "jinja"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class PageGenerator:
    """Render pages into themed HTML files."""

    def __init__(
        self,
        config: SiteConfig,
        *,
        client_side_diagrams: bool = False,
        backend: DiagramBackend | None = None,
        templates_dir: Path | None = None,
        output_dir: Path | None = None,
    ) -> None:
        """Initialize the generator with configuration and template context.

        Parameters
        ----------
        config : SiteConfig
            Theme, highlighting, diagram, and output settings.
        client_side_diagrams : bool, optional
            Emit mermaid placeholders rendered in the browser instead of SVG.
        backend : DiagramBackend, optional
            Diagram backend; defaults to the mermaid CLI configured in
            ``config.diagrams``. Ignored with ``client_side_diagrams``.
        templates_dir : Path, optional
            Directory containing Jinja templates; defaults to the package templates.
        output_dir : Path, optional
            Override for the HTML output directory; defaults to ``config.output_dir``.
        """
        self.config = config
        self.output_dir = output_dir or config.output_dir
        self.content = HtmlContentRenderer(config.pygments_style)
        if client_side_diagrams:
            diagram_backend = None
        else:
            diagram_backend = backend or MermaidCliBackend(config.diagrams)
        self.blocks = BlockRenderer(self.content, backend=diagram_backend)
        self.env = build_environment(templates_dir)
        self.template = self.env.get_template("page.jinja")

    async def render_page(self, page: PageDocument) -> str:
        """Return the full HTML document for ``page``."""
        rendered = await self.blocks.render_all(page.blocks)
        failures = [block.block_id for block in rendered if not block.ok]
        if failures:
            logger.warning(
                "page %s rendered with failing blocks: %s", page.slug, ", ".join(failures)
            )
        context = {
            "page": page,
            "blocks": rendered,
            "theme": self.config.theme,
            "pygments_css": self.content.stylesheet,
            "client_side_diagrams": self.blocks.client_side_diagrams,
            "mermaid_config": self._mermaid_config_json(),
            "generated_at": dt.datetime.now(dt.UTC),
        }
        return self.template.render(**context)

    async def write_page(self, page: PageDocument) -> Path:
        """Render ``page`` and write ``<output_dir>/<slug>.html``."""
        html = await self.render_page(page)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / f"{page.slug}.html"
        output_path.write_text(html, encoding="utf-8")
        return output_path

    def _mermaid_config_json(self) -> str:
        return msgspec_json.encode(self.config.diagrams.mermaid_config()).decode("utf-8")


def render_bundled_html(
    source: Path,
    config: SiteConfig,
    *,
    title: str,
    templates_dir: Path | None = None,
    output_path: Path | None = None,
) -> Path:
    """Sanitize an external HTML document and wrap it in the site template.

    Parameters
    ----------
    source : Path
        HTML file produced outside the authoring flow.
    config : SiteConfig
        Provides the theme and default output directory.
    title : str
        Heading and ``<title>`` for the wrapped page.
    templates_dir : Path, optional
        Directory containing Jinja templates.
    output_path : Path, optional
        Destination; defaults to ``<output_dir>/<source stem>.html``.

    Returns
    -------
    Path
        Path to the written document.
    """
    raw = source.read_text(encoding="utf-8")
    body = sanitize_html(raw)
    template = build_environment(templates_dir).get_template("bundled.jinja")
    html = template.render(
        title=title,
        body_html=body,
        theme=config.theme,
        generated_at=dt.datetime.now(dt.UTC),
    )
    destination = output_path or config.output_dir / f"{source.stem}.html"
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(html, encoding="utf-8")
    return destination


__all__ = ["PageGenerator", "build_environment", "render_bundled_html"]
