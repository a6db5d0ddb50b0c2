r"""Compose knowledge-base pages from metadata and typed blocks.

:class:`PageComposer` owns the one in-memory page model. Manual editing goes
through its properties and :attr:`PageComposer.blocks`; bulk JSON input goes
through :meth:`PageComposer.import_json`, which validates the whole document
and then populates the same state the manual path edits. Exporting an
imported page therefore yields exactly the JSON that was imported.

:class:`LivePreview` follows a composer and keeps rendered fragments current.
Metadata, notes and code previews refresh on every change; diagram and table
previews are debounced so only the latest state within the window renders.

Example
-------
>>> from kb_pages.composer import PageComposer, derive_slug
>>> derive_slug("My Cool Page!!")
'my-cool-page'
>>> composer = PageComposer()
>>> composer.title = "Attribute Sets"
>>> composer.slug
'attribute-sets'
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import inspect
import logging
import re
import typing as typ

from ._constants import CATEGORIES, DEFAULT_CATEGORY
from .blocks import (
    BlockList,
    CodeBlock,
    ContentBlock,
    DiagramBlock,
    NotesBlock,
    TableBlock,
)
from .diagrams import DiagramComponent
from .documents import PageDocument, decode_page_json, encode_page_json
from .errors import PageValidationError
from .generator import BlockRenderer, HtmlContentRenderer, diagram_panel
from .tables import render_table

if typ.TYPE_CHECKING:
    from .config import SiteConfig
    from .diagrams import DiagramBackend, ScrollZoomPreference, ViewportPolicy
    from .store import PageStore

logger = logging.getLogger(__name__)

SLUG_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
SLUG_WHITESPACE = re.compile(r"\s+")
SLUG_HYPHENS = re.compile(r"-+")

MARKDOWN_DEFAULT_HEADINGS: dict[type, str] = {
    CodeBlock: "Code",
    NotesBlock: "Notes",
    DiagramBlock: "Diagram",
    TableBlock: "Table",
}

ChangeListener = cabc.Callable[[], None]


def derive_slug(title: str) -> str:
    """Return the URL-safe slug derived from ``title``.

    Lower-cases, removes characters outside ``[a-z0-9\\s-]``, turns whitespace
    runs into single hyphens, collapses repeated hyphens, and trims hyphens
    from both ends.
    """
    slug = SLUG_DISALLOWED.sub("", title.lower())
    slug = SLUG_WHITESPACE.sub("-", slug)
    slug = SLUG_HYPHENS.sub("-", slug)
    return slug.strip("-")


class PageComposer:
    """Authoring state for one page, shared by manual and bulk input."""

    def __init__(self) -> None:
        self._title = ""
        self._slug = ""
        self._slug_manual = False
        self._summary = ""
        self._category = DEFAULT_CATEGORY
        self._tags: list[str] = []
        self._published = True
        self._listeners: list[ChangeListener] = []
        self._suspended = False
        self.blocks = BlockList(on_change=self._changed)

    # metadata ------------------------------------------------------------
    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        self._title = value
        if not self._slug_manual:
            self._slug = derive_slug(value)
        self._changed()

    @property
    def slug(self) -> str:
        return self._slug

    @slug.setter
    def slug(self, value: str) -> None:
        """Set the slug by hand; later title edits no longer derive it."""
        self._slug = value
        self._slug_manual = True
        self._changed()

    @property
    def slug_is_manual(self) -> bool:
        return self._slug_manual

    @property
    def summary(self) -> str:
        return self._summary

    @summary.setter
    def summary(self, value: str) -> None:
        self._summary = value
        self._changed()

    @property
    def category(self) -> str:
        return self._category

    @category.setter
    def category(self, value: str) -> None:
        if value not in CATEGORIES:
            msg = f"Unknown category: {value}"
            raise PageValidationError("category", msg)
        self._category = value
        self._changed()

    @property
    def published(self) -> bool:
        return self._published

    @published.setter
    def published(self, value: bool) -> None:
        self._published = value
        self._changed()

    @property
    def tags(self) -> tuple[str, ...]:
        return tuple(self._tags)

    def add_tag(self, tag: str) -> bool:
        """Add ``tag`` once; blank and duplicate tags are ignored."""
        normalized = tag.strip()
        if not normalized or normalized in self._tags:
            return False
        self._tags.append(normalized)
        self._changed()
        return True

    def remove_tag(self, tag: str) -> bool:
        if tag not in self._tags:
            return False
        self._tags.remove(tag)
        self._changed()
        return True

    # notifications -------------------------------------------------------
    def subscribe(self, listener: ChangeListener) -> cabc.Callable[[], None]:
        """Call ``listener`` after every change and return an unsubscriber."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _changed(self) -> None:
        if self._suspended:
            return
        for listener in list(self._listeners):
            listener()

    # document conversion -------------------------------------------------
    def load_document(self, page: PageDocument) -> None:
        """Replace the whole authoring state with ``page``.

        The slug is treated as entered by hand so that editing the title of a
        loaded page never renames it.
        """
        self._suspended = True
        try:
            self._title = page.title
            self._slug = page.slug
            self._slug_manual = True
            self._summary = page.summary
            self._category = page.category
            self._tags = list(page.tags)
            self._published = page.published
            self.blocks.replace_all(dc.replace(block) for block in page.blocks)
        finally:
            self._suspended = False
        self._changed()

    def import_json(self, text: str | bytes) -> PageDocument:
        """Validate bulk JSON input and load it into the composer.

        Nothing changes when validation fails.

        Raises
        ------
        PageValidationError
            On malformed JSON or missing page fields.
        BlockValidationError
            When any block is structurally invalid; every problem is listed.
        """
        page = decode_page_json(text)
        self.load_document(page)
        return page

    def to_document(self) -> PageDocument:
        return PageDocument(
            title=self._title,
            slug=self._slug,
            summary=self._summary,
            category=self._category,
            tags=list(self._tags),
            blocks=[dc.replace(block) for block in self.blocks],
            published=self._published,
        )

    def export_json(self) -> str:
        """Serialise the current state in the bulk-input JSON shape."""
        return encode_page_json(self.to_document())

    def to_markdown(self) -> str:
        """Return a markdown rendition of the page, or ``""`` without a title."""
        if not self._title.strip():
            return ""
        parts = [f"# {self._title}\n\n> {self._summary}\n\n---\n\n"]
        for block in self.blocks:
            heading = block.title or MARKDOWN_DEFAULT_HEADINGS[type(block)]
            parts.append(f"## {heading}\n\n{_markdown_body(block)}\n\n---\n\n")
        if self._tags:
            parts.append("## Tags\n" + "\n".join(f"- {tag}" for tag in self._tags) + "\n")
        return "".join(parts)

    # submission ----------------------------------------------------------
    def validate_for_submit(self) -> PageDocument:
        """Check title, then slug, then blocks, stopping at the first failure.

        The returned document has its title, slug and summary trimmed.
        """
        if not self._title.strip():
            raise PageValidationError("title", "Title is required")
        if not self._slug.strip():
            raise PageValidationError("slug", "Slug is required")
        if not self.blocks:
            raise PageValidationError("blocks", "At least one block is required")
        return dc.replace(
            self.to_document(),
            title=self._title.strip(),
            slug=self._slug.strip(),
            summary=self._summary.strip(),
        )

    async def submit(self, store: PageStore) -> PageDocument:
        """Validate and create the page, resetting the form on success.

        Store errors propagate unchanged and leave every field populated so
        the author can fix the problem and resubmit.
        """
        document = self.validate_for_submit()
        created = await store.create_page(document)
        logger.info("created page %s", created.slug)
        self.reset()
        return created

    def reset(self) -> None:
        self.load_document(PageDocument(title="", slug=""))
        self._slug_manual = False


def _markdown_body(block: ContentBlock) -> str:
    match block:
        case CodeBlock():
            return f"```{block.language}\n{block.content}\n```"
        case NotesBlock():
            return block.content
        case DiagramBlock():
            return f"```mermaid\n{block.content}\n```"
        case TableBlock():
            return f"```csv\n{block.content}\n```"
        case _:
            typ.assert_never(block)


T = typ.TypeVar("T")


class Debouncer(typ.Generic[T]):
    """Run ``callback`` with the latest pushed value once pushes go quiet.

    Each push restarts the delay; values pushed inside the window replace one
    another, so only the most recent one is delivered. Coroutine callbacks
    are scheduled as tasks that :meth:`flush` awaits.
    """

    _MISSING: typ.ClassVar[object] = object()

    def __init__(
        self,
        delay: float,
        callback: cabc.Callable[[T], cabc.Awaitable[None] | None],
    ) -> None:
        self.delay = delay
        self.callback = callback
        self._pending: object = self._MISSING
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> bool:
        return self._pending is not self._MISSING

    def push(self, value: T) -> None:
        """Record ``value`` and restart the window; needs a running loop."""
        loop = asyncio.get_running_loop()
        self._pending = value
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = self._MISSING

    async def flush(self) -> None:
        """Deliver any pending value now and wait for running callbacks."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self.pending:
            self._fire()
        if self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _fire(self) -> None:
        self._handle = None
        if not self.pending:
            return
        value = typ.cast("T", self._pending)
        self._pending = self._MISSING
        outcome = self.callback(value)
        if inspect.isawaitable(outcome):
            task = asyncio.ensure_future(outcome)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)


@dc.dataclass(slots=True)
class PreviewMetadata:
    """Metadata section of the live preview."""

    title: str
    slug: str
    summary: str
    category: str
    tags: tuple[str, ...]


class LivePreview:
    """Keep rendered previews of a composer's page up to date."""

    def __init__(
        self,
        composer: PageComposer,
        block_renderer: BlockRenderer,
        *,
        debounce_seconds: float = 0.5,
        policy: ViewportPolicy | None = None,
    ) -> None:
        """Subscribe to ``composer`` and render its current state.

        Must be created while an event loop is running when the page has
        diagram or table blocks, since their previews are scheduled on it.
        ``policy`` sets the zoom bounds and initial scale of diagram previews.
        """
        self.composer = composer
        self.block_renderer = block_renderer
        self.debounce_seconds = debounce_seconds
        self.policy = policy
        self.metadata = self._metadata()
        self.previews: dict[str, str] = {}
        self.render_counts: dict[str, int] = {}
        self._signatures: dict[str, tuple[object, ...]] = {}
        self._debouncers: dict[str, Debouncer[ContentBlock]] = {}
        self._diagrams: dict[str, DiagramComponent] = {}
        self._unsubscribe: cabc.Callable[[], None] | None = composer.subscribe(
            self._on_change
        )
        self._on_change()

    @classmethod
    def from_site_config(
        cls,
        composer: PageComposer,
        config: SiteConfig,
        *,
        backend: DiagramBackend | None = None,
        preference: ScrollZoomPreference | None = None,
        detail: bool = False,
    ) -> LivePreview:
        """Build a preview from the highlighting, timing and zoom settings in ``config``.

        ``detail`` selects the detail-view initial scale for diagram previews.
        Without a ``backend`` diagrams are previewed as mermaid.js placeholders.
        """
        renderer = BlockRenderer(
            HtmlContentRenderer(config.pygments_style),
            backend=backend,
            preference=preference,
        )
        return cls(
            composer,
            renderer,
            debounce_seconds=config.preview.debounce_seconds,
            policy=config.viewport.policy(detail=detail),
        )

    @property
    def markdown(self) -> str:
        return self.composer.to_markdown()

    def diagram(self, block_id: str) -> DiagramComponent | None:
        return self._diagrams.get(block_id)

    async def flush(self) -> None:
        """Render every debounced preview that is still waiting."""
        for debouncer in list(self._debouncers.values()):
            await debouncer.flush()

    def close(self) -> None:
        """Stop following the composer and unmount diagram previews."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for debouncer in self._debouncers.values():
            debouncer.cancel()
        for component in self._diagrams.values():
            component.unmount()
        self._debouncers.clear()
        self._diagrams.clear()
        self._signatures.clear()

    def _metadata(self) -> PreviewMetadata:
        composer = self.composer
        return PreviewMetadata(
            title=composer.title,
            slug=composer.slug,
            summary=composer.summary,
            category=composer.category,
            tags=composer.tags,
        )

    def _on_change(self) -> None:
        self.metadata = self._metadata()
        current_ids: set[str] = set()
        for block in self.composer.blocks:
            current_ids.add(block.id)
            signature = _signature(block)
            if self._signatures.get(block.id) == signature:
                continue
            self._signatures[block.id] = signature
            match block:
                case CodeBlock() | NotesBlock():
                    self._store(block.id, self._render_now(block))
                case DiagramBlock() | TableBlock():
                    self._debouncer(block.id).push(dc.replace(block))
                case _:
                    typ.assert_never(block)
        for block_id in set(self._signatures) - current_ids:
            self._forget(block_id)

    def _render_now(self, block: CodeBlock | NotesBlock) -> str:
        content = self.block_renderer.content
        if isinstance(block, CodeBlock):
            return content.code_block(block.content, block.language)
        return content.markdown(block.content)

    async def _render_debounced(self, block: ContentBlock) -> None:
        if block.id not in self._signatures:
            return
        if isinstance(block, TableBlock):
            self._store(block.id, render_table(block.content, block.title))
            return
        html = await self._render_diagram(block)
        if html is not None:
            self._store(block.id, html)

    async def _render_diagram(self, block: ContentBlock) -> str | None:
        """Return the diagram panel, or ``None`` if the block went away meanwhile."""
        backend = self.block_renderer.backend
        if backend is None:
            html = await self.block_renderer.render_diagram(block.content, hint=block.id)
            return html if block.id in self._signatures else None
        component = self._diagrams.get(block.id)
        if component is None:
            component = DiagramComponent(
                block.content,
                backend=backend,
                hint=block.id,
                policy=self.policy,
                preference=self.block_renderer.preference,
            )
            self._diagrams[block.id] = component
            component.mount()
            result = await component.refresh()
        else:
            result = await component.update(source=block.content)
        if self._diagrams.get(block.id) is not component:
            return None
        return diagram_panel(result, block.content, f"{component.instance_id}-container")

    def _store(self, block_id: str, html: str) -> None:
        self.previews[block_id] = html
        self.render_counts[block_id] = self.render_counts.get(block_id, 0) + 1

    def _debouncer(self, block_id: str) -> Debouncer[ContentBlock]:
        debouncer = self._debouncers.get(block_id)
        if debouncer is None:
            debouncer = Debouncer(self.debounce_seconds, self._render_debounced)
            self._debouncers[block_id] = debouncer
        return debouncer

    def _forget(self, block_id: str) -> None:
        self._signatures.pop(block_id, None)
        self.previews.pop(block_id, None)
        debouncer = self._debouncers.pop(block_id, None)
        if debouncer is not None:
            debouncer.cancel()
        component = self._diagrams.pop(block_id, None)
        if component is not None:
            component.unmount()


def _signature(block: ContentBlock) -> tuple[object, ...]:
    return (block.kind, block.content, block.title, getattr(block, "language", None))


__all__ = [
    "Debouncer",
    "LivePreview",
    "PageComposer",
    "PreviewMetadata",
    "derive_slug",
]
