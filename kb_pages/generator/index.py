"""Build the listing page for custom knowledge-base pages."""

from __future__ import annotations

import datetime as dt
import typing as typ

from .models import PageSummaryModel
from .page_generator import build_environment
from .renderer import HtmlContentRenderer

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from kb_pages.config import SiteConfig
    from kb_pages.documents import PageDocument


class PagesIndexBuilder:
    """Render page summaries, newest first, into ``index.html``."""

    def __init__(
        self,
        config: SiteConfig,
        *,
        templates_dir: Path | None = None,
        output_dir: Path | None = None,
    ) -> None:
        self.config = config
        self.output_dir = output_dir or config.output_dir
        self.content = HtmlContentRenderer(config.pygments_style)
        self.template = build_environment(templates_dir).get_template("index.jinja")

    def build_models(
        self, pages: cabc.Iterable[PageDocument]
    ) -> list[PageSummaryModel]:
        """Return template models ordered by creation time, newest first."""
        ordered = sorted(pages, key=lambda page: page.created_at or "", reverse=True)
        return [
            PageSummaryModel(
                title=page.title,
                slug=page.slug,
                href=f"{page.slug}.html",
                category=page.category,
                summary_html=self.content.markdown(page.summary),
                tags=list(page.tags),
                published=page.published,
                updated_at=page.updated_at,
            )
            for page in ordered
        ]

    def render(self, pages: cabc.Iterable[PageDocument]) -> str:
        return self.template.render(
            pages=self.build_models(pages),
            theme=self.config.theme,
            generated_at=dt.datetime.now(dt.UTC),
        )

    def write(self, pages: cabc.Iterable[PageDocument]) -> Path:
        """Render the index and write ``<output_dir>/index.html``."""
        html = self.render(pages)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        output_path = self.output_dir / "index.html"
        output_path.write_text(html, encoding="utf-8")
        return output_path


__all__ = ["PagesIndexBuilder"]
